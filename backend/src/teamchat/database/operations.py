from teamchat.database.schema import (
    User,
    AuthSession,
    Workspace,
    Member,
    MemberRole,
    Channel,
    Conversation,
    Message,
    Reaction,
)

import re
import secrets
import string
from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy.orm import Session
from sqlalchemy import select, delete, and_, or_, func
from sqlalchemy.exc import IntegrityError


JOIN_CODE_ALPHABET = string.digits + string.ascii_lowercase
JOIN_CODE_LENGTH = 6
DEFAULT_CHANNEL_NAME = "general"


def _generate_id(prefix: str) -> str:
    """Generate an opaque ID: prefix + 15 random uppercase alphanumeric chars."""
    chars = string.ascii_uppercase + string.digits
    return prefix + "".join(secrets.choice(chars) for _ in range(15))


def generate_join_code() -> str:
    return "".join(secrets.choice(JOIN_CODE_ALPHABET) for _ in range(JOIN_CODE_LENGTH))


def normalize_channel_name(name: str) -> str:
    return re.sub(r"\s+", "-", name).lower()


# Users and sessions


def create_user(
    session: Session,
    email: str,
    name: str | None = None,
    image: str | None = None,
    password_hash: str | None = None,
    user_id: Optional[str] = None,
    created_at: Optional[datetime] = None,
) -> User:
    if user_id is None:
        user_id = _generate_id("U")

    user = User(
        id=user_id,
        email=email,
        name=name,
        image=image,
        password_hash=password_hash,
        **({"created_at": created_at} if created_at is not None else {}),
    )
    session.add(user)

    try:
        session.flush()
    except IntegrityError:
        session.rollback()
        raise ValueError("email_taken")

    return user


def get_user_by_email(session: Session, email: str) -> User | None:
    return session.execute(select(User).where(User.email == email)).scalar_one_or_none()


def create_auth_session(
    session: Session, user_id: str, ttl_seconds: int
) -> AuthSession:
    now = datetime.now()
    auth_session = AuthSession(
        token=secrets.token_urlsafe(32),
        user_id=user_id,
        created_at=now,
        expires_at=now + timedelta(seconds=ttl_seconds),
    )
    session.add(auth_session)
    return auth_session


def get_active_auth_session(session: Session, token: str) -> AuthSession | None:
    auth_session = session.get(AuthSession, token)
    if auth_session is None or auth_session.expires_at <= datetime.now():
        return None
    return auth_session


def delete_auth_session(session: Session, token: str) -> None:
    auth_session = session.get(AuthSession, token)
    if auth_session is not None:
        session.delete(auth_session)


# Workspaces


def create_workspace(
    session: Session,
    name: str,
    owner_user_id: str,
    workspace_id: Optional[str] = None,
    join_code: Optional[str] = None,
    created_at: Optional[datetime] = None,
) -> Workspace:
    """Insert a workspace together with its admin member and default channel."""
    if workspace_id is None:
        workspace_id = _generate_id("W")

    workspace = Workspace(
        id=workspace_id,
        name=name,
        user_id=owner_user_id,
        join_code=join_code or generate_join_code(),
        **({"created_at": created_at} if created_at is not None else {}),
    )
    session.add(workspace)
    session.add(
        Member(
            id=_generate_id("M"),
            user_id=owner_user_id,
            workspace_id=workspace_id,
            role=MemberRole.admin,
        )
    )
    session.add(
        Channel(
            id=_generate_id("C"),
            name=DEFAULT_CHANNEL_NAME,
            workspace_id=workspace_id,
        )
    )
    session.flush()
    return workspace


def list_user_workspaces(session: Session, user_id: str) -> list[Workspace]:
    query = (
        select(Workspace)
        .join(Member, Member.workspace_id == Workspace.id)
        .where(Member.user_id == user_id)
        .order_by(Workspace.created_at.asc(), Workspace.id.asc())
    )
    return list(session.execute(query).scalars().all())


def rename_workspace(session: Session, workspace_id: str, name: str) -> Workspace:
    workspace = session.get(Workspace, workspace_id)
    if workspace is None:
        raise ValueError("Workspace not found")
    workspace.name = name
    return workspace


def regenerate_join_code(session: Session, workspace_id: str) -> Workspace:
    workspace = session.get(Workspace, workspace_id)
    if workspace is None:
        raise ValueError("Workspace not found")
    workspace.join_code = generate_join_code()
    return workspace


def delete_workspace(session: Session, workspace_id: str) -> dict[str, int]:
    """Delete a workspace and every row that belongs to it.

    Runs inside the caller's transaction; nothing is committed here, so a
    failure in any step leaves the workspace untouched once rolled back.

    Returns:
        Number of deleted rows per table
    """
    workspace = session.get(Workspace, workspace_id)
    if workspace is None:
        raise ValueError("Workspace not found")

    counts = {
        "reactions": _delete_where(
            session, Reaction, Reaction.workspace_id == workspace_id
        ),
        "messages": _delete_messages(
            session,
            session.execute(
                select(Message.id).where(Message.workspace_id == workspace_id)
            )
            .scalars()
            .all(),
        ),
        "conversations": _delete_where(
            session, Conversation, Conversation.workspace_id == workspace_id
        ),
        "channels": _delete_where(session, Channel, Channel.workspace_id == workspace_id),
        "members": _delete_where(session, Member, Member.workspace_id == workspace_id),
    }
    session.delete(workspace)
    session.flush()
    return counts


# Members


def get_member(session: Session, workspace_id: str, user_id: str) -> Member | None:
    return session.execute(
        select(Member)
        .where(Member.workspace_id == workspace_id)
        .where(Member.user_id == user_id)
    ).scalar_one_or_none()


def add_member(
    session: Session,
    workspace_id: str,
    user_id: str,
    role: MemberRole = MemberRole.member,
    member_id: Optional[str] = None,
) -> Member:
    member = Member(
        id=member_id or _generate_id("M"),
        workspace_id=workspace_id,
        user_id=user_id,
        role=role,
    )
    session.add(member)

    try:
        session.flush()
    except IntegrityError:
        session.rollback()
        raise ValueError("already_member")

    return member


def list_members(session: Session, workspace_id: str) -> list[Member]:
    return list(
        session.execute(
            select(Member)
            .where(Member.workspace_id == workspace_id)
            .order_by(Member.created_at.asc(), Member.id.asc())
        )
        .scalars()
        .all()
    )


def set_member_role(session: Session, member_id: str, role: MemberRole) -> Member:
    member = session.get(Member, member_id)
    if member is None:
        raise ValueError("Member not found")
    member.role = role
    return member


def delete_member(session: Session, member_id: str) -> dict[str, int]:
    """Delete a member with its messages, reactions and conversations."""
    member = session.get(Member, member_id)
    if member is None:
        raise ValueError("Member not found")

    conversation_ids = list(
        session.execute(
            select(Conversation.id).where(
                or_(
                    Conversation.member_one_id == member_id,
                    Conversation.member_two_id == member_id,
                )
            )
        )
        .scalars()
        .all()
    )
    message_ids = list(
        session.execute(
            select(Message.id).where(
                or_(
                    Message.member_id == member_id,
                    Message.conversation_id.in_(conversation_ids),
                )
            )
        )
        .scalars()
        .all()
    )

    counts = {
        "reactions": _delete_where(session, Reaction, Reaction.member_id == member_id),
        "messages": _delete_messages(session, message_ids),
        "conversations": _delete_where(
            session, Conversation, Conversation.id.in_(conversation_ids)
        ),
    }
    session.delete(member)
    session.flush()
    return counts


# Channels


def create_channel(
    session: Session,
    workspace_id: str,
    name: str,
    channel_id: Optional[str] = None,
    created_at: Optional[datetime] = None,
) -> Channel:
    workspace = session.get(Workspace, workspace_id)
    if workspace is None:
        raise ValueError("Workspace not found")

    if channel_id is None:
        channel_id = _generate_id("C")

    channel = Channel(
        id=channel_id,
        name=name,
        workspace_id=workspace_id,
        **({"created_at": created_at} if created_at is not None else {}),
    )
    session.add(channel)
    session.flush()
    return channel


def list_channels(session: Session, workspace_id: str) -> list[Channel]:
    return list(
        session.execute(
            select(Channel)
            .where(Channel.workspace_id == workspace_id)
            .order_by(Channel.created_at.asc(), Channel.id.asc())
        )
        .scalars()
        .all()
    )


def rename_channel(session: Session, channel_id: str, name: str) -> Channel:
    channel = session.get(Channel, channel_id)
    if channel is None:
        raise ValueError("Channel not found")
    channel.name = name
    return channel


def delete_channel(session: Session, channel_id: str) -> dict[str, int]:
    channel = session.get(Channel, channel_id)
    if channel is None:
        raise ValueError("Channel not found")
    message_ids = (
        session.execute(select(Message.id).where(Message.channel_id == channel_id))
        .scalars()
        .all()
    )
    counts = {"messages": _delete_messages(session, message_ids)}
    session.delete(channel)
    session.flush()
    return counts


# Conversations


def find_conversation(
    session: Session, workspace_id: str, member_a_id: str, member_b_id: str
) -> Conversation | None:
    return (
        session.execute(
            select(Conversation)
            .where(Conversation.workspace_id == workspace_id)
            .where(
                or_(
                    and_(
                        Conversation.member_one_id == member_a_id,
                        Conversation.member_two_id == member_b_id,
                    ),
                    and_(
                        Conversation.member_one_id == member_b_id,
                        Conversation.member_two_id == member_a_id,
                    ),
                )
            )
            .order_by(Conversation.created_at.asc())
        )
        .scalars()
        .first()
    )


def create_conversation(
    session: Session,
    workspace_id: str,
    member_one_id: str,
    member_two_id: str,
    conversation_id: Optional[str] = None,
) -> Conversation:
    conversation = Conversation(
        id=conversation_id or _generate_id("D"),
        workspace_id=workspace_id,
        member_one_id=member_one_id,
        member_two_id=member_two_id,
    )
    session.add(conversation)
    session.flush()
    return conversation


# Messages


def create_message(
    session: Session,
    workspace_id: str,
    member_id: str,
    body: str,
    image: str | None = None,
    channel_id: str | None = None,
    conversation_id: str | None = None,
    parent_message_id: str | None = None,
    message_id: Optional[str] = None,
    created_at: Optional[datetime] = None,
) -> Message:
    message = Message(
        id=message_id or _generate_id("X"),
        workspace_id=workspace_id,
        member_id=member_id,
        body=body,
        image=image,
        channel_id=channel_id,
        conversation_id=conversation_id,
        parent_message_id=parent_message_id,
        **({"created_at": created_at} if created_at is not None else {}),
    )
    session.add(message)
    session.flush()
    return message


def update_message_body(session: Session, message_id: str, body: str) -> Message:
    message = session.get(Message, message_id)
    if message is None:
        raise ValueError("Message not found")
    message.body = body
    message.updated_at = datetime.now()
    return message


def delete_message(session: Session, message_id: str) -> dict[str, int]:
    """Delete a message, its thread replies and all of their reactions."""
    message = session.get(Message, message_id)
    if message is None:
        raise ValueError("Message not found")
    return {"messages": _delete_messages(session, [message_id])}


def list_thread_replies(session: Session, parent_message_id: str) -> list[Message]:
    return list(
        session.execute(
            select(Message)
            .where(Message.parent_message_id == parent_message_id)
            .order_by(Message.created_at.asc(), Message.id.asc())
        )
        .scalars()
        .all()
    )


def list_container_messages(
    session: Session,
    channel_id: str | None,
    conversation_id: str | None,
    parent_message_id: str | None,
    limit: int,
    before: tuple[datetime, str] | None = None,
) -> list[Message]:
    """List messages of one container, newest first.

    Every container key is matched exactly, a missing key matching NULL, so
    a channel listing never includes thread replies.

    Args:
        session: Database session
        channel_id: Channel the messages were posted to
        conversation_id: Conversation the messages were posted to
        parent_message_id: Thread root for thread listings
        limit: Maximum number of rows to return
        before: (created_at, id) of the last row already seen; only strictly
            older rows are returned
    """
    query = select(Message).where(
        _eq_or_null(Message.channel_id, channel_id),
        _eq_or_null(Message.conversation_id, conversation_id),
        _eq_or_null(Message.parent_message_id, parent_message_id),
    )
    if before is not None:
        created_at, last_id = before
        query = query.where(
            or_(
                Message.created_at < created_at,
                and_(Message.created_at == created_at, Message.id < last_id),
            )
        )
    query = query.order_by(Message.created_at.desc(), Message.id.desc()).limit(limit)
    return list(session.execute(query).scalars().all())


def count_thread_replies(session: Session, parent_message_id: str) -> int:
    return session.execute(
        select(func.count())
        .select_from(Message)
        .where(Message.parent_message_id == parent_message_id)
    ).scalar_one()


# Reactions


def list_reactions(session: Session, message_id: str) -> list[Reaction]:
    return list(
        session.execute(
            select(Reaction)
            .where(Reaction.message_id == message_id)
            .order_by(Reaction.created_at.asc(), Reaction.id.asc())
        )
        .scalars()
        .all()
    )


def find_reaction(
    session: Session, message_id: str, member_id: str, value: str
) -> Reaction | None:
    return (
        session.execute(
            select(Reaction)
            .where(Reaction.message_id == message_id)
            .where(Reaction.member_id == member_id)
            .where(Reaction.value == value)
        )
        .scalars()
        .first()
    )


def add_reaction(
    session: Session,
    message: Message,
    member_id: str,
    value: str,
    created_at: Optional[datetime] = None,
) -> Reaction:
    reaction = Reaction(
        id=_generate_id("R"),
        workspace_id=message.workspace_id,
        message_id=message.id,
        member_id=member_id,
        value=value,
        **({"created_at": created_at} if created_at is not None else {}),
    )
    session.add(reaction)

    try:
        session.flush()
    except IntegrityError:
        session.rollback()
        raise ValueError("reaction_exists")

    return reaction


def remove_reaction(session: Session, reaction: Reaction) -> None:
    session.delete(reaction)
    session.flush()


# Cascade helpers


def _eq_or_null(column, value):
    return column.is_(None) if value is None else column == value


def _delete_where(session: Session, model, criterion) -> int:
    result = session.execute(delete(model).where(criterion))
    return result.rowcount or 0


def _delete_messages(session: Session, message_ids) -> int:
    """Delete messages plus all replies below them and their reactions.

    Returns the number of messages removed.
    """
    # A message found again one level down is deleted at that deeper level
    depth: dict[str, int] = {}
    level = list(dict.fromkeys(message_ids))
    current = 0
    while level:
        for message_id in level:
            depth[message_id] = current
        current += 1
        level = list(
            session.execute(
                select(Message.id).where(Message.parent_message_id.in_(level))
            )
            .scalars()
            .all()
        )
    if not depth:
        return 0

    _delete_where(session, Reaction, Reaction.message_id.in_(list(depth)))
    removed = 0
    # Deepest replies first so no row outlives its parent
    for d in sorted(set(depth.values()), reverse=True):
        ids = [message_id for message_id, at in depth.items() if at == d]
        removed += _delete_where(session, Message, Message.id.in_(ids))
    return removed
