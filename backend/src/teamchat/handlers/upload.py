from __future__ import annotations

from teamchat.api.models import NoArgs
from teamchat.core import guard
from teamchat.handlers.context import HandlerContext


def generate_upload_url(ctx: HandlerContext, args: NoArgs) -> str:
    user_id = guard.require_user(ctx.user_id)
    if ctx.storage is None:
        raise RuntimeError("File storage is not configured")
    return ctx.storage.generate_upload_url(ctx.session, user_id)
