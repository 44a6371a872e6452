import pytest

from lesson_portal.services.lesson_store import InMemoryLessonStore, LessonNotFound


@pytest.mark.asyncio
async def test_create_assigns_id_and_timestamp() -> None:
    store = InMemoryLessonStore()

    lesson = await store.create({"title": "Cells", "grade_level": "5"})

    assert lesson.id
    assert lesson.title == "Cells"
    assert lesson.grade_level == "5"
    assert lesson.resources == []
    assert lesson.updated_at.endswith("+00:00")
    assert await store.list() == [lesson]


@pytest.mark.asyncio
async def test_list_preserves_insertion_order() -> None:
    store = InMemoryLessonStore()
    first = await store.create({"title": "One"})
    second = await store.create({"title": "Two"})

    assert [lesson.id for lesson in await store.list()] == [first.id, second.id]
    assert first.id != second.id


@pytest.mark.asyncio
async def test_update_merges_fields() -> None:
    store = InMemoryLessonStore()
    lesson = await store.create({"title": "Cells", "duration": "30 minutes"})

    updated = await store.update(lesson.id, {"content": "# Plan", "id": "hijack"})

    assert updated.id == lesson.id
    assert updated.title == "Cells"
    assert updated.duration == "30 minutes"
    assert updated.content == "# Plan"
    assert (await store.get(lesson.id)).content == "# Plan"


@pytest.mark.asyncio
async def test_missing_lessons_raise() -> None:
    store = InMemoryLessonStore()

    with pytest.raises(LessonNotFound):
        await store.get("missing")
    with pytest.raises(LessonNotFound):
        await store.update("missing", {"title": "x"})
    with pytest.raises(LessonNotFound):
        await store.delete("missing")


@pytest.mark.asyncio
async def test_delete_removes_lesson() -> None:
    store = InMemoryLessonStore()
    lesson = await store.create({"title": "Cells"})

    await store.delete(lesson.id)

    assert await store.list() == []
