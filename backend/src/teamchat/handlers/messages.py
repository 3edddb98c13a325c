from __future__ import annotations

import logging

from teamchat.api.models import (
    CreateMessageArgs,
    GetMessagesArgs,
    MessageIdArgs,
    UpdateMessageArgs,
)
from teamchat.core import guard
from teamchat.core.aggregator import aggregate_message
from teamchat.core.errors import (
    CHANNEL_NOT_FOUND,
    CONVERSATION_NOT_FOUND,
    MEMBER_NOT_FOUND,
    MESSAGE_NOT_FOUND,
    PARENT_MESSAGE_NOT_FOUND,
    NotFound,
    Unauthorized,
)
from teamchat.core.pagination import (
    MessageContainer,
    paginate_messages,
    resolve_container,
)
from teamchat.database import operations as ops
from teamchat.database.pydantic_schemas import MessagePageSchema, MessageViewSchema
from teamchat.database.schema import Channel, Conversation, Message
from teamchat.handlers.context import HandlerContext

logger = logging.getLogger(__name__)


def _require_in_workspace(
    ctx: HandlerContext, model, entity_id: str | None, not_found: str, workspace_id: str
) -> None:
    if not entity_id:
        return
    entity = ctx.session.get(model, entity_id)
    if entity is None:
        raise NotFound(not_found)
    if guard.workspace_of(entity) != workspace_id:
        logger.debug(f"{model.__name__} {entity_id} is outside workspace {workspace_id}")
        raise Unauthorized()


def create(ctx: HandlerContext, args: CreateMessageArgs) -> str:
    member = guard.require_member(ctx.session, args.workspace_id, ctx.user_id)

    # Every target must live in the workspace the caller is a member of
    for model, entity_id, not_found in (
        (Channel, args.channel_id, CHANNEL_NOT_FOUND),
        (Conversation, args.conversation_id, CONVERSATION_NOT_FOUND),
        (Message, args.parent_message_id, PARENT_MESSAGE_NOT_FOUND),
    ):
        _require_in_workspace(ctx, model, entity_id, not_found, member.workspace_id)

    container = resolve_container(
        ctx.session,
        channel_id=args.channel_id,
        conversation_id=args.conversation_id,
        parent_message_id=args.parent_message_id,
    )
    message = ops.create_message(
        ctx.session,
        workspace_id=args.workspace_id,
        member_id=member.id,
        body=args.body,
        image=args.image,
        channel_id=container.channel_id,
        conversation_id=container.conversation_id,
        parent_message_id=container.parent_message_id,
    )
    return message.id


def _container_workspace(
    ctx: HandlerContext, container: MessageContainer
) -> str | None:
    if container.channel_id:
        channel = ctx.session.get(Channel, container.channel_id)
        return channel.workspace_id if channel else None
    if container.conversation_id:
        conversation = ctx.session.get(Conversation, container.conversation_id)
        return conversation.workspace_id if conversation else None
    return None


def get(ctx: HandlerContext, args: GetMessagesArgs) -> MessagePageSchema:
    container = resolve_container(
        ctx.session,
        channel_id=args.channel_id,
        conversation_id=args.conversation_id,
        parent_message_id=args.parent_message_id,
    )
    workspace_id = _container_workspace(ctx, container)
    if guard.resolve_member(ctx.session, workspace_id, ctx.user_id) is None:
        return MessagePageSchema(page=[], is_done=True, continue_cursor="")
    return paginate_messages(ctx.session, container, args.pagination_opts, ctx.storage)


def get_by_id(ctx: HandlerContext, args: MessageIdArgs) -> MessageViewSchema | None:
    message = ctx.session.get(Message, args.id)
    if guard.resolve_member_for(ctx.session, message, ctx.user_id) is None:
        return None
    return aggregate_message(ctx.session, message, ctx.storage)


def _get_own_message(ctx: HandlerContext, message_id: str) -> Message:
    user_id = guard.require_user(ctx.user_id)
    message = ctx.session.get(Message, message_id)
    if message is None:
        raise NotFound(MESSAGE_NOT_FOUND)
    member = guard.resolve_member(ctx.session, message.workspace_id, user_id)
    if member is None or member.id != message.member_id:
        raise NotFound(MEMBER_NOT_FOUND)
    return message


def update(ctx: HandlerContext, args: UpdateMessageArgs) -> str:
    message = _get_own_message(ctx, args.id)
    ops.update_message_body(ctx.session, message.id, args.body)
    return message.id


def remove(ctx: HandlerContext, args: MessageIdArgs) -> str:
    message = _get_own_message(ctx, args.id)
    counts = ops.delete_message(ctx.session, message.id)
    logger.info(f"Message {message.id} removed: {counts}")
    return args.id
