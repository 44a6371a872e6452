import pathlib
import sys

import pytest

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from lesson_portal.config import get_settings  # noqa: E402


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """Ensure env changes made by a test are visible to `get_settings()`."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
