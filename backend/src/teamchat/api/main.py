from __future__ import annotations

import logging
from os import environ

from dotenv import load_dotenv
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Mount, Route, Router

from teamchat.api.auth import routes as auth_routes
from teamchat.api.methods import routes as rpc_routes
from teamchat.api.middleware import DatabaseSessionMiddleware
from teamchat.api.storage_routes import routes as storage_routes
from teamchat.config import Settings
from teamchat.database.session import SessionManager, build_engine
from teamchat.logging_config import setup_logging
from teamchat.storage.files import FileStorage

logger = logging.getLogger(__name__)


async def health(request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok"})


def create_app(
    settings: Settings | None = None,
    session_manager: SessionManager | None = None,
) -> Starlette:
    if settings is None:
        load_dotenv()
        settings = Settings.from_environ(environ)
    setup_logging(settings.log_level)

    if session_manager is None:
        session_manager = SessionManager(build_engine(settings.database_url))
    if settings.create_tables:
        session_manager.create_all()

    storage = FileStorage(
        settings.storage_dir,
        public_url=settings.public_url,
        upload_ttl=settings.upload_url_ttl,
    )

    app = Starlette(
        routes=[
            Route("/api/health", health, methods=["GET"]),
            Mount("/api/auth", app=Router(auth_routes)),
            Mount("/api/storage", app=Router(storage_routes)),
            Mount("/api", app=Router(rpc_routes)),
        ]
    )
    app.state.settings = settings
    app.state.sessions = session_manager
    app.state.storage = storage

    app.add_middleware(DatabaseSessionMiddleware, session_manager=session_manager)

    logger.info(f"teamchat API ready (storage at {storage.base_dir})")
    return app
