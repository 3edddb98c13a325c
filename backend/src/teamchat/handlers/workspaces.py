from __future__ import annotations

import logging

from teamchat.api.models import (
    CreateWorkspaceArgs,
    JoinWorkspaceArgs,
    NewJoinCodeArgs,
    NoArgs,
    UpdateWorkspaceArgs,
    WorkspaceIdArgs,
)
from teamchat.core import guard
from teamchat.core.errors import (
    ALREADY_A_MEMBER,
    INVALID_JOIN_CODE,
    WORKSPACE_NOT_FOUND,
    InvalidInput,
    NotFound,
)
from teamchat.database import operations as ops
from teamchat.database.pydantic_schemas import WorkspaceInfoSchema, WorkspaceSchema
from teamchat.database.schema import MemberRole, Workspace
from teamchat.handlers.context import HandlerContext

logger = logging.getLogger(__name__)


def create(ctx: HandlerContext, args: CreateWorkspaceArgs) -> str:
    user_id = guard.require_user(ctx.user_id)
    workspace = ops.create_workspace(ctx.session, name=args.name, owner_user_id=user_id)
    logger.info(f"Workspace {workspace.id} created by {user_id}")
    return workspace.id


def get(ctx: HandlerContext, args: NoArgs) -> list[WorkspaceSchema]:
    if ctx.user_id is None:
        return []
    return [
        WorkspaceSchema.model_validate(workspace)
        for workspace in ops.list_user_workspaces(ctx.session, ctx.user_id)
    ]


def get_by_id(ctx: HandlerContext, args: WorkspaceIdArgs) -> WorkspaceSchema | None:
    guard.require_user(ctx.user_id)
    if guard.resolve_member(ctx.session, args.id, ctx.user_id) is None:
        return None
    workspace = ctx.session.get(Workspace, args.id)
    return WorkspaceSchema.model_validate(workspace) if workspace else None


def get_info_by_id(
    ctx: HandlerContext, args: WorkspaceIdArgs
) -> WorkspaceInfoSchema | None:
    """Name and membership flag, visible to any signed-in user (join page)."""
    if ctx.user_id is None:
        return None
    workspace = ctx.session.get(Workspace, args.id)
    if workspace is None:
        return None
    member = guard.resolve_member(ctx.session, args.id, ctx.user_id)
    return WorkspaceInfoSchema(name=workspace.name, is_member=member is not None)


def update(ctx: HandlerContext, args: UpdateWorkspaceArgs) -> str:
    guard.require_admin(ctx.session, args.id, ctx.user_id)
    ops.rename_workspace(ctx.session, args.id, args.name)
    return args.id


def remove(ctx: HandlerContext, args: WorkspaceIdArgs) -> str:
    guard.require_admin(ctx.session, args.id, ctx.user_id)
    counts = ops.delete_workspace(ctx.session, args.id)
    logger.info(f"Workspace {args.id} removed by {ctx.user_id}: {counts}")
    return args.id


def new_join_code(ctx: HandlerContext, args: NewJoinCodeArgs) -> str:
    guard.require_admin(ctx.session, args.workspace_id, ctx.user_id)
    ops.regenerate_join_code(ctx.session, args.workspace_id)
    return args.workspace_id


def join(ctx: HandlerContext, args: JoinWorkspaceArgs) -> str:
    user_id = guard.require_user(ctx.user_id)

    workspace = ctx.session.get(Workspace, args.workspace_id)
    if workspace is None:
        raise NotFound(WORKSPACE_NOT_FOUND)
    if workspace.join_code != args.join_code.lower():
        raise InvalidInput(INVALID_JOIN_CODE)
    if guard.resolve_member(ctx.session, workspace.id, user_id) is not None:
        raise InvalidInput(ALREADY_A_MEMBER)

    try:
        ops.add_member(ctx.session, workspace.id, user_id, role=MemberRole.member)
    except ValueError:
        # Lost a race against a concurrent join for the same user
        raise InvalidInput(ALREADY_A_MEMBER)

    logger.info(f"User {user_id} joined workspace {workspace.id}")
    return workspace.id
