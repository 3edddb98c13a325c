"""
Message aggregation.

Turns a raw Message row into the display projection: author member and
user, reactions grouped by value, thread summary and a freshly resolved
image URL.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

from sqlalchemy.orm import Session

from teamchat.database import operations as ops
from teamchat.database.pydantic_schemas import (
    AggregatedReactionSchema,
    MemberSchema,
    MessageViewSchema,
    ThreadSummarySchema,
    UserSchema,
    to_millis,
)
from teamchat.database.schema import Member, Message, Reaction, User

if TYPE_CHECKING:
    from teamchat.storage.files import FileStorage


def populate_member(session: Session, member_id: str) -> Member | None:
    return session.get(Member, member_id)


def populate_user(session: Session, user_id: str) -> User | None:
    return session.get(User, user_id)


def aggregate_reactions(reactions: Iterable[Reaction]) -> list[AggregatedReactionSchema]:
    """Group reaction rows by value, first-seen order, member ids deduplicated."""
    grouped: dict[str, dict] = {}
    for reaction in reactions:
        entry = grouped.setdefault(
            reaction.value,
            {
                "id": reaction.id,
                "value": reaction.value,
                "count": 0,
                "member_ids": [],
                "message_id": reaction.message_id,
                "workspace_id": reaction.workspace_id,
                "creation_time": to_millis(reaction.created_at),
            },
        )
        entry["count"] += 1
        if reaction.member_id not in entry["member_ids"]:
            entry["member_ids"].append(reaction.member_id)
    return [AggregatedReactionSchema(**entry) for entry in grouped.values()]


def thread_summary(session: Session, message_id: str) -> ThreadSummarySchema:
    replies = ops.list_thread_replies(session, message_id)
    if not replies:
        return ThreadSummarySchema()

    last_reply = replies[-1]
    summary = ThreadSummarySchema(
        count=len(replies),
        timestamp=to_millis(last_reply.created_at),
    )

    # An unresolvable author only blanks the author fields; the count stays
    member = populate_member(session, last_reply.member_id)
    user = populate_user(session, member.user_id) if member is not None else None
    if user is not None:
        summary.image = user.image
        summary.name = user.name or ""
    return summary


def aggregate_message(
    session: Session,
    message: Message,
    storage: "FileStorage | None" = None,
) -> MessageViewSchema | None:
    """Build the display projection, or None when the author cannot be resolved."""
    member = populate_member(session, message.member_id)
    user = populate_user(session, member.user_id) if member is not None else None
    if member is None or user is None:
        return None

    thread = thread_summary(session, message.id)
    image = storage.get_url(session, message.image) if storage is not None else None

    return MessageViewSchema(
        id=message.id,
        body=message.body,
        image=image,
        member_id=message.member_id,
        workspace_id=message.workspace_id,
        channel_id=message.channel_id,
        conversation_id=message.conversation_id,
        parent_message_id=message.parent_message_id,
        updated_at=to_millis(message.updated_at) if message.updated_at else None,
        creation_time=to_millis(message.created_at),
        member=MemberSchema.model_validate(member),
        user=UserSchema.model_validate(user),
        reactions=aggregate_reactions(ops.list_reactions(session, message.id)),
        thread_count=thread.count,
        thread_image=thread.image,
        thread_name=thread.name,
        thread_timestamp=thread.timestamp,
    )
