from __future__ import annotations

from teamchat.api.models import NoArgs
from teamchat.core.aggregator import populate_user
from teamchat.database.pydantic_schemas import UserSchema
from teamchat.handlers.context import HandlerContext


def current(ctx: HandlerContext, args: NoArgs) -> UserSchema | None:
    if ctx.user_id is None:
        return None
    user = populate_user(ctx.session, ctx.user_id)
    return UserSchema.model_validate(user) if user else None
