from __future__ import annotations

import logging

from teamchat.api.models import (
    ChannelIdArgs,
    CreateChannelArgs,
    UpdateChannelArgs,
    WorkspaceScopedArgs,
)
from teamchat.core import guard
from teamchat.core.errors import (
    CHANNEL_NOT_FOUND,
    INVALID_CHANNEL_NAME,
    InvalidInput,
    NotFound,
)
from teamchat.database import operations as ops
from teamchat.database.pydantic_schemas import ChannelSchema
from teamchat.database.schema import Channel
from teamchat.handlers.context import HandlerContext

logger = logging.getLogger(__name__)

MIN_CHANNEL_NAME_LENGTH = 3
MAX_CHANNEL_NAME_LENGTH = 80


def _parse_name(name: str) -> str:
    parsed = ops.normalize_channel_name(name.strip())
    if not MIN_CHANNEL_NAME_LENGTH <= len(parsed) <= MAX_CHANNEL_NAME_LENGTH:
        raise InvalidInput(INVALID_CHANNEL_NAME)
    return parsed


def create(ctx: HandlerContext, args: CreateChannelArgs) -> str:
    guard.require_admin(ctx.session, args.workspace_id, ctx.user_id)
    channel = ops.create_channel(
        ctx.session, workspace_id=args.workspace_id, name=_parse_name(args.name)
    )
    logger.info(f"Channel {channel.id} ({channel.name}) created in {args.workspace_id}")
    return channel.id


def get(ctx: HandlerContext, args: WorkspaceScopedArgs) -> list[ChannelSchema]:
    if guard.resolve_member(ctx.session, args.workspace_id, ctx.user_id) is None:
        return []
    return [
        ChannelSchema.model_validate(channel)
        for channel in ops.list_channels(ctx.session, args.workspace_id)
    ]


def get_by_id(ctx: HandlerContext, args: ChannelIdArgs) -> ChannelSchema | None:
    channel = ctx.session.get(Channel, args.id)
    if guard.resolve_member_for(ctx.session, channel, ctx.user_id) is None:
        return None
    return ChannelSchema.model_validate(channel)


def _get_channel(ctx: HandlerContext, channel_id: str) -> Channel:
    guard.require_user(ctx.user_id)
    channel = ctx.session.get(Channel, channel_id)
    if channel is None:
        raise NotFound(CHANNEL_NOT_FOUND)
    guard.require_admin(ctx.session, channel.workspace_id, ctx.user_id)
    return channel


def update(ctx: HandlerContext, args: UpdateChannelArgs) -> str:
    channel = _get_channel(ctx, args.id)
    ops.rename_channel(ctx.session, channel.id, _parse_name(args.name))
    return channel.id


def remove(ctx: HandlerContext, args: ChannelIdArgs) -> str:
    channel = _get_channel(ctx, args.id)
    counts = ops.delete_channel(ctx.session, channel.id)
    logger.info(f"Channel {channel.id} removed: {counts}")
    return channel.id
