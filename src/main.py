"""FastAPI application entrypoint."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI

from src.api.content import router as content_router
from src.api.health import router as health_router
from src.config import settings
from src.core.content.builtin_hooks import register_builtin_hooks
from src.core.content.hooks import HookRegistry
from src.core.content.loader import CategoryLoader, CategoryRegistry
from src.core.content.store import CategoryDataStore
from src.core.event_bus import EventBus
from src.core.logging import get_logger, setup_logging
from src.db.database import SessionLocal, engine as db_engine
from src.db.models import Base
from src.services.content_service import ContentService
from src.services.record_index import ContentRecordIndex

setup_logging(settings.LOG_LEVEL)
logger = get_logger(__name__)

# 애플리케이션별 훅은 시작 전에 이 저장소에 등록한다
hook_registry = HookRegistry()
register_builtin_hooks(hook_registry)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup and shutdown events."""
    logger.info("Creating database tables...")
    Base.metadata.create_all(bind=db_engine)
    logger.info("Database tables created.")

    logger.info("Loading content forms from %s...", settings.FORMS_DIR)
    registry = CategoryRegistry()
    store = CategoryDataStore(settings.FORMS_DATA_DIR)
    loader = CategoryLoader(registry, hook_registry, store, settings.FORMS_DIR)
    loader.init()

    event_bus = EventBus()
    record_index = ContentRecordIndex(SessionLocal, event_bus, store)
    record_index.sync_all()

    app.state.content_service = ContentService(
        registry=registry,
        store=store,
        event_bus=event_bus,
        record_index=record_index,
        hook_timeout=settings.HOOK_TIMEOUT_SECONDS,
        author=settings.CONTENT_AUTHOR,
    )
    logger.info("ContentService initialized (%d categories).", registry.count())

    yield

    logger.info("Shutting down...")
    db_engine.dispose()


app = FastAPI(title="Content Forms", lifespan=lifespan)

app.include_router(health_router)
app.include_router(content_router)
