"""Application factory for the FastAPI service."""

from __future__ import annotations

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .generation import LessonGenerator
from .logging_settings import LoggingSettings, parse_logging_settings
from .routers.generation import router as generation_router
from .routers.lessons import router as lessons_router
from .services.generation_logging import GenerationLogWriter, cleanup_old_logs
from .services.lesson_store import InMemoryLessonStore

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _configure_logging(logging_settings: LoggingSettings) -> None:
    """Configure logging from LOG_LEVEL / LOG_FILE and the settings file."""
    # Load .env file first to ensure LOG_FILE is available
    load_dotenv()

    env_level = os.getenv("LOG_LEVEL")
    if env_level:
        log_level = getattr(logging, env_level.upper(), logging.INFO)
    else:
        log_level = logging_settings.terminal_level or logging.INFO

    handlers: list[logging.Handler] = []

    log_file = os.getenv("LOG_FILE")
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt=_LOG_DATEFMT))
        handlers.append(file_handler)

    # terminal = off silences the console but keeps LOG_FILE output
    if env_level or logging_settings.terminal_level is not None:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(
            logging.Formatter(_LOG_FORMAT, datefmt=_LOG_DATEFMT)
        )
        handlers.append(console_handler)

    if not handlers:
        handlers.append(logging.NullHandler())

    logging.basicConfig(
        level=log_level,
        handlers=handlers,
        force=True,  # Override any existing configuration
    )

    logging.getLogger("lesson_portal").setLevel(log_level)
    logging.getLogger("uvicorn").setLevel(log_level)
    logging.getLogger("uvicorn.access").setLevel(log_level)
    logging.getLogger("uvicorn.error").setLevel(log_level)

    # Quiet noisy transport logs unless debugging
    if log_level > logging.DEBUG:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)


def create_app() -> FastAPI:
    settings = get_settings()

    logging_settings = parse_logging_settings(
        settings.resolve_path(settings.logging_settings_path)
    )
    _configure_logging(logging_settings)

    generation_log_dir = settings.resolve_path(settings.generation_log_dir)
    log_writer = GenerationLogWriter(
        generation_log_dir,
        min_level=logging_settings.generations_level,
    )
    generator = LessonGenerator(settings, log_writer=log_writer)
    lesson_store = InMemoryLessonStore()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if not settings.has_openai_credentials:
            logging.warning(
                "OPENAI_API_KEY is not configured; lesson generation will fail"
            )
        if not logging_settings.transcripts_enabled:
            logging.info(
                "Generation transcripts disabled (generations = %s)",
                logging_settings.generations,
            )
        try:
            await asyncio.to_thread(
                cleanup_old_logs,
                generation_log_dir,
                logging_settings.retention_hours,
            )
        except OSError as exc:
            logging.warning("Generation log cleanup failed: %s", exc)
        try:
            yield
        finally:
            try:
                await asyncio.wait_for(generator.aclose(), timeout=5.0)
            except asyncio.TimeoutError:
                logging.warning("Lesson generator shutdown timed out after 5s")

    app = FastAPI(
        title="Lesson Portal",
        version="0.1.0",
        description="Lesson plan records and tool-augmented lesson generation.",
        lifespan=lifespan,
    )

    app.state.lesson_generator = generator
    app.state.lesson_store = lesson_store
    app.state.generation_log_writer = log_writer

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(lessons_router)
    app.include_router(generation_router)

    @app.get("/health", tags=["health"])
    async def healthcheck() -> dict[str, str | bool]:
        return {
            "status": "ok",
            "model": settings.generation_model,
            "generation_configured": settings.has_openai_credentials,
        }

    return app


__all__ = ["create_app"]
