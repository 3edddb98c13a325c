from __future__ import annotations

import json
import logging
from typing import Any, Callable

from pydantic import BaseModel, ValidationError
from starlette import status
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from teamchat.api import models
from teamchat.core.errors import ChatAPIError, InvalidInput
from teamchat.handlers import (
    channels,
    conversations,
    members,
    messages,
    reactions,
    upload,
    users,
    workspaces,
)
from teamchat.handlers.context import HandlerContext

logger = logging.getLogger(__name__)

Handler = Callable[[HandlerContext, Any], Any]

PAGINATION_QUERY_KEYS = ("numItems", "num_items", "cursor")


def _session(request: Request):
    session = getattr(request.state, "db_session", None)
    if session is None:
        raise ChatAPIError(
            "missing database session", status.HTTP_500_INTERNAL_SERVER_ERROR
        )
    return session


def _context(request: Request) -> HandlerContext:
    return HandlerContext(
        session=_session(request),
        user_id=getattr(request.state, "user_id", None),
        storage=getattr(request.app.state, "storage", None),
    )


def _get_params(request: Request) -> dict[str, Any]:
    params: dict[str, Any] = {k: request.query_params.get(k) for k in request.query_params}
    # GET callers pass pagination options flat: ?channelId=...&numItems=20
    pagination = {k: params.pop(k) for k in PAGINATION_QUERY_KEYS if k in params}
    if pagination:
        params["paginationOpts"] = pagination
    return params


async def _get_params_async(request: Request) -> dict[str, Any]:
    if request.method.upper() == "GET":
        return _get_params(request)

    body = await request.body()
    if not body:
        return {}
    payload = json.loads(body)
    if not isinstance(payload, dict):
        raise InvalidInput("invalid_json")
    return payload


def _serialize(result: Any) -> Any:
    if isinstance(result, BaseModel):
        return result.model_dump(mode="json")
    if isinstance(result, list):
        return [_serialize(item) for item in result]
    return result


CHAT_HANDLERS: dict[str, tuple[Handler, type[BaseModel]]] = {
    "workspaces.create": (workspaces.create, models.CreateWorkspaceArgs),
    "workspaces.get": (workspaces.get, models.NoArgs),
    "workspaces.getById": (workspaces.get_by_id, models.WorkspaceIdArgs),
    "workspaces.getInfoById": (workspaces.get_info_by_id, models.WorkspaceIdArgs),
    "workspaces.update": (workspaces.update, models.UpdateWorkspaceArgs),
    "workspaces.remove": (workspaces.remove, models.WorkspaceIdArgs),
    "workspaces.newJoinCode": (workspaces.new_join_code, models.NewJoinCodeArgs),
    "workspaces.join": (workspaces.join, models.JoinWorkspaceArgs),
    "channels.create": (channels.create, models.CreateChannelArgs),
    "channels.get": (channels.get, models.WorkspaceScopedArgs),
    "channels.getById": (channels.get_by_id, models.ChannelIdArgs),
    "channels.update": (channels.update, models.UpdateChannelArgs),
    "channels.remove": (channels.remove, models.ChannelIdArgs),
    "members.get": (members.get, models.WorkspaceScopedArgs),
    "members.getById": (members.get_by_id, models.MemberIdArgs),
    "members.current": (members.current, models.WorkspaceScopedArgs),
    "members.update": (members.update, models.UpdateMemberArgs),
    "members.remove": (members.remove, models.MemberIdArgs),
    "conversations.createOrGet": (
        conversations.create_or_get,
        models.CreateOrGetConversationArgs,
    ),
    "messages.create": (messages.create, models.CreateMessageArgs),
    "messages.get": (messages.get, models.GetMessagesArgs),
    "messages.getById": (messages.get_by_id, models.MessageIdArgs),
    "messages.update": (messages.update, models.UpdateMessageArgs),
    "messages.remove": (messages.remove, models.MessageIdArgs),
    "reactions.toggle": (reactions.toggle, models.ToggleReactionArgs),
    "users.current": (users.current, models.NoArgs),
    "upload.generateUploadUrl": (upload.generate_upload_url, models.NoArgs),
}


async def rpc_endpoint(request: Request) -> JSONResponse:
    endpoint = request.path_params["endpoint"]
    entry = CHAT_HANDLERS.get(endpoint)
    if entry is None:
        return JSONResponse(
            {"ok": False, "error": "unsupported_endpoint"},
            status_code=status.HTTP_404_NOT_FOUND,
        )
    handler, args_model = entry
    try:
        payload = await _get_params_async(request)
        args = args_model.model_validate(payload)
        result = handler(_context(request), args)
        return JSONResponse({"ok": True, "result": _serialize(result)})
    except json.JSONDecodeError:
        _session(request).rollback()
        return JSONResponse(
            {"ok": False, "error": "invalid_json"},
            status_code=status.HTTP_400_BAD_REQUEST,
        )
    except ValidationError as exc:
        _session(request).rollback()
        return JSONResponse(
            {
                "ok": False,
                "error": "invalid_arguments",
                "details": json.loads(exc.json(include_url=False)),
            },
            status_code=status.HTTP_400_BAD_REQUEST,
        )
    except ChatAPIError as exc:
        _session(request).rollback()
        logger.debug(f"{endpoint} failed: {exc.detail}")
        return exc.to_response()
    except Exception:
        _session(request).rollback()
        logger.exception(f"Unhandled exception in {endpoint}")
        return JSONResponse(
            {"ok": False, "error": "internal_error"},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


routes = [
    Route("/{endpoint}", rpc_endpoint, methods=["GET", "POST"]),
]
