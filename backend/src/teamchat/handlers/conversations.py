from __future__ import annotations

import logging

from teamchat.api.models import CreateOrGetConversationArgs
from teamchat.core import guard
from teamchat.core.errors import MEMBER_NOT_FOUND, NotFound
from teamchat.database import operations as ops
from teamchat.database.schema import Member
from teamchat.handlers.context import HandlerContext

logger = logging.getLogger(__name__)


def create_or_get(ctx: HandlerContext, args: CreateOrGetConversationArgs) -> str:
    """Direct conversation between the principal and another member."""
    user_id = guard.require_user(ctx.user_id)

    current_member = guard.resolve_member(ctx.session, args.workspace_id, user_id)
    other_member = ctx.session.get(Member, args.member_id)
    if (
        current_member is None
        or other_member is None
        or other_member.workspace_id != args.workspace_id
    ):
        raise NotFound(MEMBER_NOT_FOUND)

    existing = ops.find_conversation(
        ctx.session, args.workspace_id, current_member.id, other_member.id
    )
    if existing is not None:
        return existing.id

    conversation = ops.create_conversation(
        ctx.session,
        workspace_id=args.workspace_id,
        member_one_id=current_member.id,
        member_two_id=other_member.id,
    )
    logger.info(
        f"Conversation {conversation.id} opened between "
        f"{current_member.id} and {other_member.id}"
    )
    return conversation.id
