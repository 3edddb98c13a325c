from __future__ import annotations

import logging

from teamchat.api.models import MemberIdArgs, UpdateMemberArgs, WorkspaceScopedArgs
from teamchat.core import guard
from teamchat.core.aggregator import populate_user
from teamchat.core.errors import (
    ADMIN_CANNOT_BE_DELETED,
    CANNOT_DELETE_YOURSELF,
    MEMBER_NOT_FOUND,
    InvalidInput,
    NotFound,
    Unauthorized,
)
from teamchat.database import operations as ops
from teamchat.database.pydantic_schemas import (
    MemberSchema,
    MemberWithUserSchema,
    UserSchema,
)
from teamchat.database.schema import Member, MemberRole
from teamchat.handlers.context import HandlerContext

logger = logging.getLogger(__name__)


def _with_user(ctx: HandlerContext, member: Member) -> MemberWithUserSchema | None:
    user = populate_user(ctx.session, member.user_id)
    if user is None:
        return None
    return MemberWithUserSchema(
        **MemberSchema.model_validate(member).model_dump(),
        user=UserSchema.model_validate(user),
    )


def get(ctx: HandlerContext, args: WorkspaceScopedArgs) -> list[MemberWithUserSchema]:
    if guard.resolve_member(ctx.session, args.workspace_id, ctx.user_id) is None:
        return []
    members = []
    for member in ops.list_members(ctx.session, args.workspace_id):
        populated = _with_user(ctx, member)
        if populated is not None:
            members.append(populated)
    return members


def get_by_id(ctx: HandlerContext, args: MemberIdArgs) -> MemberWithUserSchema | None:
    member = ctx.session.get(Member, args.id)
    if guard.resolve_member_for(ctx.session, member, ctx.user_id) is None:
        return None
    return _with_user(ctx, member)


def current(ctx: HandlerContext, args: WorkspaceScopedArgs) -> MemberSchema | None:
    member = guard.resolve_member(ctx.session, args.workspace_id, ctx.user_id)
    return MemberSchema.model_validate(member) if member else None


def update(ctx: HandlerContext, args: UpdateMemberArgs) -> str:
    guard.require_user(ctx.user_id)
    member = ctx.session.get(Member, args.id)
    if member is None:
        raise NotFound(MEMBER_NOT_FOUND)
    guard.require_admin(ctx.session, member.workspace_id, ctx.user_id)
    ops.set_member_role(ctx.session, member.id, args.role)
    return member.id


def remove(ctx: HandlerContext, args: MemberIdArgs) -> str:
    guard.require_user(ctx.user_id)
    member = ctx.session.get(Member, args.id)
    if member is None:
        raise NotFound(MEMBER_NOT_FOUND)

    current_member = guard.resolve_member(ctx.session, member.workspace_id, ctx.user_id)
    if current_member is None:
        raise Unauthorized()
    # Non-admins may only remove themselves (leave the workspace)
    if current_member.id != member.id and not guard.is_admin(current_member):
        raise Unauthorized()
    if member.role == MemberRole.admin:
        raise InvalidInput(ADMIN_CANNOT_BE_DELETED)
    if current_member.id == member.id and guard.is_admin(current_member):
        raise InvalidInput(CANNOT_DELETE_YOURSELF)

    counts = ops.delete_member(ctx.session, member.id)
    logger.info(f"Member {member.id} removed by {current_member.id}: {counts}")
    return args.id
