from __future__ import annotations

import logging

from starlette import status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from teamchat.api.auth import extract_token, get_principal_id
from teamchat.database.session import SessionManager

logger = logging.getLogger(__name__)

PUBLIC_PATHS = {"/api/health"}


class DatabaseSessionMiddleware(BaseHTTPMiddleware):
    """Opens the request's session and resolves its principal.

    The session commits when the endpoint returns and rolls back if it
    raises; endpoints that turn errors into responses roll back themselves.
    """

    def __init__(self, app, *, session_manager: SessionManager):
        super().__init__(app)
        self.session_manager = session_manager

    async def dispatch(self, request: Request, call_next) -> Response:
        path = request.scope.get("path", "")
        if path in PUBLIC_PATHS or not path.startswith("/api/"):
            return await call_next(request)

        token = extract_token(request.headers)
        try:
            with self.session_manager.with_session() as session:
                request.state.db_session = session
                request.state.session_token = token
                request.state.user_id = get_principal_id(session, token)
                return await call_next(request)
        except Exception:
            logger.exception("Unhandled exception in DatabaseSessionMiddleware")
            return JSONResponse(
                {"ok": False, "error": "internal_error"},
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )
