"""FastAPI server for the multi-tenant content service."""

import logging
from collections.abc import AsyncGenerator

from fastapi import APIRouter, FastAPI
from fastapi_mongo_base.core import app_factory

from apps.activity.routes import router as activity_router
from apps.content.routes import info_router, member_router, public_router
from apps.content.routes import router as content_router
from apps.directory.routes import router as directory_router

from . import config, db
from .exceptions import register_exception_handlers


async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan handler."""
    logging.info("Lifespan started - initializing database connection")
    db_manager = db.db_manager
    await db_manager.aconnect()
    await db.directory.init_schema()
    logging.info("Database connection initialized and directory schema created")
    yield
    await db.dispatcher.drain()
    await db_manager.adisconnect()
    if db.redis is not None:
        await db.redis.aclose()
    logging.info("Lifespan ended - database connections closed")


app = app_factory.create_app(settings=config.Settings(), lifespan_func=lifespan)
register_exception_handlers(app)
server_router = APIRouter()

for router in [
    content_router,
    member_router,
    info_router,
    public_router,
    activity_router,
    directory_router,
]:
    server_router.include_router(router)

app.include_router(server_router, prefix=config.Settings.base_path)
