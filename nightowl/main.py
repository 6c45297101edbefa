# nightowl/main.py
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from nightowl.api.api import api_router
from nightowl.core.config import settings
from nightowl.core.logging import setup_logging
from nightowl.core.error_handlers import register_exception_handlers
from nightowl.core.middleware import register_middlewares
from nightowl.db.session import Database
from nightowl.repositories import GamificationRepository
from nightowl.services import EventBus, GamificationEngine

logger = logging.getLogger(__name__)


def build_engine(database: Database) -> GamificationEngine:
    repository = GamificationRepository(
        database.session_factory, max_active_quests=settings.MAX_ACTIVE_QUESTS
    )
    return GamificationEngine(repository, EventBus(), config=settings)


def create_app(engine: Optional[GamificationEngine] = None) -> FastAPI:
    """
    Build the API. Without an engine, startup opens the configured database
    and wires Database -> GamificationRepository -> GamificationEngine.
    """

    # Context manager for startup/shutdown events
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        database = None
        if engine is None:
            setup_logging()
            database = Database(settings.DATABASE_URL)
            # Deployed databases are migrated with Alembic
            if settings.ENVIRONMENT == "development":
                database.create_schema()
            app.state.engine = build_engine(database)
            logger.info("Gamification engine ready")
        logger.info(f"Starting {settings.PROJECT_NAME} {app.version}")
        yield
        logger.info("Shutting down application")
        if database is not None:
            database.dispose()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Gamification engine for an insomnia CBT-I coaching chatbot",
        version="0.1.0",
        lifespan=lifespan,
    )
    if engine is not None:
        app.state.engine = engine

    # Register custom exception handlers
    register_exception_handlers(app)

    # Register middleware
    register_middlewares(app)

    app.include_router(api_router, prefix=settings.API_V1_STR)

    @app.get("/")
    def root():
        return {"message": f"Welcome to the {settings.PROJECT_NAME}"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
