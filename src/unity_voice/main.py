"""FastAPI application entry point."""

import logging
import os
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from unity_voice.api.routes import router
from unity_voice.config import Settings, get_settings
from unity_voice.content.generator import ContentGenerator
from unity_voice.progression.engine import LevelProgressionEngine
from unity_voice.storage.db import create_engine_from_settings, create_schema
from unity_voice.storage.repository import ScoreRepository
from unity_voice.storage.seed import seed_reference_data
from unity_voice.tasks.service import TaskService

# Configure structlog based on environment
is_production = os.getenv("ENV", "development").lower() == "production"

if is_production:
    # Production: JSON format for machine parsing
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.INFO),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
else:
    # Development: console format for human readability
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

logger = structlog.get_logger()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application; services are constructed in the lifespan."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = create_engine_from_settings(settings)
        await create_schema(engine)
        repository = ScoreRepository.from_engine(engine)
        if settings.seed_reference_data:
            await seed_reference_data(repository, settings.levels_per_topic)

        progression = LevelProgressionEngine(repository)
        app.state.progression = progression
        app.state.task_service = TaskService(repository, progression)
        app.state.content_generator = (
            ContentGenerator(settings.openai_api_key, settings.generation_model)
            if settings.openai_api_key
            else None
        )
        logger.info("app_started", database=engine.url.render_as_string(hide_password=True))
        try:
            yield
        finally:
            await engine.dispose()
            logger.info("app_stopped")

    app = FastAPI(title="Unity Voice", version="0.1.0", lifespan=lifespan)
    _allowed_origins_env = os.getenv(
        "ALLOWED_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000"
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in _allowed_origins_env.split(",")],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)
    return app


def main() -> None:
    """Run the application."""
    settings = get_settings()
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level="info",
    )


if __name__ == "__main__":
    main()
