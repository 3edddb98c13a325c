from datetime import datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

from .schema import MemberRole


def to_millis(value: Any) -> Any:
    if isinstance(value, datetime):
        return int(value.timestamp() * 1000)
    return value


EpochMillis = Annotated[int, BeforeValidator(to_millis)]


class UserSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    name: str | None = None
    email: str
    image: str | None = None
    creation_time: EpochMillis = Field(validation_alias="created_at")


class WorkspaceSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    name: str
    user_id: str
    join_code: str
    creation_time: EpochMillis = Field(validation_alias="created_at")


class WorkspaceInfoSchema(BaseModel):
    name: str
    is_member: bool


class MemberSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    user_id: str
    workspace_id: str
    role: MemberRole
    creation_time: EpochMillis = Field(validation_alias="created_at")


class MemberWithUserSchema(MemberSchema):
    user: UserSchema


class ChannelSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    name: str
    workspace_id: str
    creation_time: EpochMillis = Field(validation_alias="created_at")


class ConversationSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    workspace_id: str
    member_one_id: str
    member_two_id: str
    creation_time: EpochMillis = Field(validation_alias="created_at")


class AggregatedReactionSchema(BaseModel):
    id: str
    value: str
    count: int
    member_ids: list[str]
    message_id: str
    workspace_id: str
    creation_time: int


class ThreadSummarySchema(BaseModel):
    count: int = 0
    image: str | None = None
    timestamp: int = 0
    name: str = ""


class MessageViewSchema(BaseModel):
    id: str
    body: str
    image: str | None = None
    member_id: str
    workspace_id: str
    channel_id: str | None = None
    conversation_id: str | None = None
    parent_message_id: str | None = None
    updated_at: int | None = None
    creation_time: int
    member: MemberSchema
    user: UserSchema
    reactions: list[AggregatedReactionSchema]
    thread_count: int = 0
    thread_image: str | None = None
    thread_name: str = ""
    thread_timestamp: int = 0


class MessagePageSchema(BaseModel):
    page: list[MessageViewSchema]
    is_done: bool
    continue_cursor: str
