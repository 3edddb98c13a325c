"""Newest-first, keyset-paginated message listing for one container."""

from __future__ import annotations

import base64
import json
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlalchemy.orm import Session

from teamchat.core.aggregator import aggregate_message
from teamchat.core.errors import InvalidInput, NotFound, PARENT_MESSAGE_NOT_FOUND
from teamchat.database import operations as ops
from teamchat.database.pydantic_schemas import MessagePageSchema
from teamchat.database.schema import Message

if TYPE_CHECKING:
    from teamchat.storage.files import FileStorage


DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


class PaginationOpts(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    num_items: int = Field(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)
    cursor: str | None = None


@dataclass
class MessageContainer:
    channel_id: str | None = None
    conversation_id: str | None = None
    parent_message_id: str | None = None


def resolve_container(
    session: Session,
    channel_id: str | None = None,
    conversation_id: str | None = None,
    parent_message_id: str | None = None,
) -> MessageContainer:
    """Fill in a thread's container from its parent when none was given."""
    if not channel_id and not conversation_id and parent_message_id:
        parent = session.get(Message, parent_message_id)
        if parent is None:
            raise NotFound(PARENT_MESSAGE_NOT_FOUND)
        # Inherits the parent's channel as well as its conversation, not just
        # the conversation, so channel thread listings find the reply
        return MessageContainer(
            channel_id=parent.channel_id,
            conversation_id=parent.conversation_id,
            parent_message_id=parent_message_id,
        )
    return MessageContainer(
        channel_id=channel_id or None,
        conversation_id=conversation_id or None,
        parent_message_id=parent_message_id or None,
    )


def encode_cursor(message: Message) -> str:
    data = json.dumps({"created_at": message.created_at.isoformat(), "id": message.id})
    return base64.urlsafe_b64encode(data.encode()).decode()


def decode_cursor(cursor: str) -> tuple[datetime, str]:
    try:
        decoded = base64.urlsafe_b64decode(cursor.encode()).decode()
        payload = json.loads(decoded)
        return datetime.fromisoformat(payload["created_at"]), str(payload["id"])
    except (ValueError, KeyError, TypeError) as exc:
        raise InvalidInput("invalid_cursor") from exc


def paginate_messages(
    session: Session,
    container: MessageContainer,
    opts: PaginationOpts,
    storage: "FileStorage | None" = None,
) -> MessagePageSchema:
    before = decode_cursor(opts.cursor) if opts.cursor else None

    # Fetch one extra to check if more pages exist
    rows = ops.list_container_messages(
        session,
        channel_id=container.channel_id,
        conversation_id=container.conversation_id,
        parent_message_id=container.parent_message_id,
        limit=opts.num_items + 1,
        before=before,
    )
    is_done = len(rows) <= opts.num_items
    rows = rows[: opts.num_items]

    page = []
    for message in rows:
        view = aggregate_message(session, message, storage)
        # Orphaned authors are dropped instead of failing the page
        if view is not None:
            page.append(view)

    continue_cursor = encode_cursor(rows[-1]) if rows else (opts.cursor or "")
    return MessagePageSchema(
        page=page, is_done=is_done, continue_cursor=continue_cursor
    )
