from __future__ import annotations

import logging

from starlette import status
from starlette.requests import Request
from starlette.responses import FileResponse, JSONResponse, Response
from starlette.routing import Route

from teamchat.core.errors import ChatAPIError

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


async def upload_file(request: Request) -> Response:
    """Store the raw request body against a single-use upload ticket."""
    storage = request.app.state.storage
    session = request.state.db_session
    token = request.path_params["token"]

    data = await request.body()
    content_type = request.headers.get("content-type") or DEFAULT_CONTENT_TYPE
    try:
        stored = storage.consume_upload(session, token, data, content_type)
    except ChatAPIError as exc:
        session.rollback()
        return exc.to_response()
    return JSONResponse({"storage_id": stored.id})


async def download_file(request: Request) -> Response:
    storage = request.app.state.storage
    stored = storage.get(request.state.db_session, request.path_params["storage_id"])
    if stored is None:
        return JSONResponse(
            {"ok": False, "error": "file_not_found"},
            status_code=status.HTTP_404_NOT_FOUND,
        )
    return FileResponse(
        stored.path, media_type=stored.content_type or DEFAULT_CONTENT_TYPE
    )


routes = [
    Route("/upload/{token}", upload_file, methods=["POST"]),
    Route("/{storage_id}", download_file, methods=["GET"]),
]
