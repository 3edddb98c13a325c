from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from teamchat.core.pagination import PaginationOpts
from teamchat.database.schema import MemberRole


class RequestModel(BaseModel):
    """Endpoint arguments; accepts camelCase wire names and snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class NoArgs(RequestModel):
    pass


# Auth


class SignUpRequest(RequestModel):
    name: str = Field(min_length=1, max_length=100)
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=8, max_length=128)


class SignInRequest(RequestModel):
    email: str
    password: str


class AuthResponse(BaseModel):
    token: str
    user_id: str


# Workspaces


class CreateWorkspaceArgs(RequestModel):
    name: str = Field(min_length=3, max_length=80)


class WorkspaceIdArgs(RequestModel):
    id: str


class UpdateWorkspaceArgs(RequestModel):
    id: str
    name: str = Field(min_length=3, max_length=80)


class NewJoinCodeArgs(RequestModel):
    workspace_id: str


class JoinWorkspaceArgs(RequestModel):
    join_code: str
    workspace_id: str


# Channels


class CreateChannelArgs(RequestModel):
    name: str
    workspace_id: str


class ChannelIdArgs(RequestModel):
    id: str


class UpdateChannelArgs(RequestModel):
    id: str
    name: str


class WorkspaceScopedArgs(RequestModel):
    workspace_id: str


# Members


class MemberIdArgs(RequestModel):
    id: str


class UpdateMemberArgs(RequestModel):
    id: str
    role: MemberRole


# Conversations


class CreateOrGetConversationArgs(RequestModel):
    workspace_id: str
    member_id: str


# Messages


class CreateMessageArgs(RequestModel):
    body: str = Field(min_length=1)
    image: Optional[str] = None
    workspace_id: str
    channel_id: Optional[str] = None
    parent_message_id: Optional[str] = None
    conversation_id: Optional[str] = None


class MessageIdArgs(RequestModel):
    id: str


class GetMessagesArgs(RequestModel):
    channel_id: Optional[str] = None
    conversation_id: Optional[str] = None
    parent_message_id: Optional[str] = None
    pagination_opts: PaginationOpts = Field(default_factory=PaginationOpts)


class UpdateMessageArgs(RequestModel):
    id: str
    body: str = Field(min_length=1)


# Reactions


class ToggleReactionArgs(RequestModel):
    message_id: str
    value: str = Field(min_length=1, max_length=64)
