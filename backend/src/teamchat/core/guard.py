"""
Membership guard.

Resolves the request principal to its Member row within a workspace and
enforces role checks. Read paths use the soft variants, which return None
so the caller can answer with an empty result; write paths use the hard
variants, which raise Unauthorized.
"""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from teamchat.core.errors import Unauthorized
from teamchat.database import operations as ops
from teamchat.database.schema import (
    Channel,
    Conversation,
    Member,
    MemberRole,
    Message,
    Reaction,
)

logger = logging.getLogger(__name__)


def resolve_member(
    session: Session, workspace_id: str | None, user_id: str | None
) -> Member | None:
    if user_id is None or workspace_id is None:
        return None
    return ops.get_member(session, workspace_id, user_id)


def require_user(user_id: str | None) -> str:
    if user_id is None:
        raise Unauthorized()
    return user_id


def require_member(
    session: Session, workspace_id: str | None, user_id: str | None
) -> Member:
    require_user(user_id)
    member = resolve_member(session, workspace_id, user_id)
    if member is None:
        logger.debug(f"User {user_id} is not a member of workspace {workspace_id}")
        raise Unauthorized()
    return member


def is_admin(member: Member | None) -> bool:
    return member is not None and member.role == MemberRole.admin


def require_admin(
    session: Session, workspace_id: str | None, user_id: str | None
) -> Member:
    member = require_member(session, workspace_id, user_id)
    if not is_admin(member):
        logger.debug(f"Member {member.id} lacks admin role in {workspace_id}")
        raise Unauthorized()
    return member


def workspace_of(
    entity: Channel | Conversation | Message | Member | Reaction | None,
) -> str | None:
    """Workspace a channel, conversation, message, member or reaction row belongs to."""
    if entity is None:
        return None
    return entity.workspace_id


def resolve_member_for(
    session: Session,
    entity: Channel | Message | Member | Reaction | None,
    user_id: str | None,
) -> Member | None:
    return resolve_member(session, workspace_of(entity), user_id)


def require_member_for(
    session: Session,
    entity: Channel | Message | Member | Reaction | None,
    user_id: str | None,
) -> Member:
    return require_member(session, workspace_of(entity), user_id)
