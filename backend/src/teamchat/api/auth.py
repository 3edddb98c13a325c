"""
Password sign-up/sign-in and session token resolution.

Sessions are opaque bearer tokens stored in the auth_sessions table. Every
request may carry one in ``Authorization: Bearer <token>`` or
``X-Session-Token``; requests without a valid token proceed anonymously.
"""

from __future__ import annotations

import json
import logging
from typing import Mapping, Optional

import bcrypt
from pydantic import ValidationError
from sqlalchemy.orm import Session
from starlette import status
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from teamchat.api.models import AuthResponse, SignInRequest, SignUpRequest
from teamchat.core.errors import (
    EMAIL_TAKEN,
    INVALID_CREDENTIALS,
    ChatAPIError,
    InvalidInput,
    Unauthorized,
)
from teamchat.database import operations as ops

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes
BCRYPT_MAX_BYTES = 72


def hash_password(password: str) -> str:
    return bcrypt.hashpw(
        password.encode("utf-8")[:BCRYPT_MAX_BYTES], bcrypt.gensalt()
    ).decode("utf-8")


def verify_password(password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(
            password.encode("utf-8")[:BCRYPT_MAX_BYTES], password_hash.encode("utf-8")
        )
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


def extract_token(headers: Mapping[str, str]) -> Optional[str]:
    """Session token from the Authorization or X-Session-Token header."""
    auth_header = headers.get("authorization")
    if auth_header:
        # Strip "Bearer " prefix if present
        if auth_header.lower().startswith("bearer "):
            auth_header = auth_header[7:]
        return auth_header.strip() or None
    token = headers.get("x-session-token")
    return token.strip() if token else None


def get_principal_id(session: Session, token: Optional[str]) -> Optional[str]:
    if not token:
        return None
    auth_session = ops.get_active_auth_session(session, token)
    if auth_session is None:
        logger.debug("Ignoring unknown or expired session token")
        return None
    return auth_session.user_id


async def _read_json(request: Request) -> dict:
    body = await request.body()
    if not body:
        return {}
    payload = json.loads(body)
    if not isinstance(payload, dict):
        raise InvalidInput("invalid_json")
    return payload


def _issue_session(request: Request, user_id: str) -> JSONResponse:
    session = request.state.db_session
    ttl = request.app.state.settings.session_ttl
    auth_session = ops.create_auth_session(session, user_id, ttl_seconds=ttl)
    response = AuthResponse(token=auth_session.token, user_id=user_id)
    return JSONResponse(response.model_dump(mode="json"))


async def _auth_call(request: Request, handler) -> JSONResponse:
    try:
        return await handler(request)
    except json.JSONDecodeError:
        request.state.db_session.rollback()
        return JSONResponse(
            {"ok": False, "error": "invalid_json"},
            status_code=status.HTTP_400_BAD_REQUEST,
        )
    except ValidationError as exc:
        request.state.db_session.rollback()
        return JSONResponse(
            {
                "ok": False,
                "error": "invalid_arguments",
                "details": json.loads(exc.json(include_url=False)),
            },
            status_code=status.HTTP_400_BAD_REQUEST,
        )
    except ChatAPIError as exc:
        request.state.db_session.rollback()
        return exc.to_response()


async def _sign_up(request: Request) -> JSONResponse:
    args = SignUpRequest.model_validate(await _read_json(request))
    session = request.state.db_session
    email = args.email.strip().lower()

    if ops.get_user_by_email(session, email) is not None:
        raise InvalidInput(EMAIL_TAKEN)
    try:
        user = ops.create_user(
            session,
            email=email,
            name=args.name.strip(),
            password_hash=hash_password(args.password),
        )
    except ValueError:
        raise InvalidInput(EMAIL_TAKEN)

    logger.info(f"User {user.id} signed up")
    return _issue_session(request, user.id)


async def _sign_in(request: Request) -> JSONResponse:
    args = SignInRequest.model_validate(await _read_json(request))
    session = request.state.db_session

    user = ops.get_user_by_email(session, args.email.strip().lower())
    if user is None or not verify_password(args.password, user.password_hash):
        logger.debug(f"Failed sign-in for {args.email}")
        raise Unauthorized(INVALID_CREDENTIALS)
    return _issue_session(request, user.id)


async def _sign_out(request: Request) -> JSONResponse:
    token = getattr(request.state, "session_token", None)
    if token:
        ops.delete_auth_session(request.state.db_session, token)
    return JSONResponse({"ok": True})


async def sign_up(request: Request) -> JSONResponse:
    return await _auth_call(request, _sign_up)


async def sign_in(request: Request) -> JSONResponse:
    return await _auth_call(request, _sign_in)


async def sign_out(request: Request) -> JSONResponse:
    return await _auth_call(request, _sign_out)


routes = [
    Route("/signUp", sign_up, methods=["POST"]),
    Route("/signIn", sign_in, methods=["POST"]),
    Route("/signOut", sign_out, methods=["POST"]),
]
