from __future__ import annotations

from teamchat.api.models import ToggleReactionArgs
from teamchat.core import guard
from teamchat.core.errors import MESSAGE_NOT_FOUND, NotFound
from teamchat.database import operations as ops
from teamchat.database.schema import Message
from teamchat.handlers.context import HandlerContext


def toggle(ctx: HandlerContext, args: ToggleReactionArgs) -> str:
    """Remove the principal's reaction if present, otherwise add it.

    Returns the id of the removed or inserted reaction.
    """
    guard.require_user(ctx.user_id)
    message = ctx.session.get(Message, args.message_id)
    if message is None:
        raise NotFound(MESSAGE_NOT_FOUND)
    member = guard.require_member_for(ctx.session, message, ctx.user_id)

    existing = ops.find_reaction(ctx.session, message.id, member.id, args.value)
    if existing is not None:
        reaction_id = existing.id
        ops.remove_reaction(ctx.session, existing)
        return reaction_id

    message_id, member_id = message.id, member.id
    try:
        return ops.add_reaction(ctx.session, message, member_id, args.value).id
    except ValueError:
        # A concurrent toggle inserted the same reaction first
        concurrent = ops.find_reaction(ctx.session, message_id, member_id, args.value)
        if concurrent is None:
            raise
        return concurrent.id
