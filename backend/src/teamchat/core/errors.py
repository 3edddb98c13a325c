# Error kinds raised by handlers and surfaced to callers as descriptive strings

from typing import Any

from starlette import status
from starlette.responses import JSONResponse


UNAUTHORIZED = "Unauthorized"
WORKSPACE_NOT_FOUND = "Workspace not found"
CHANNEL_NOT_FOUND = "Channel not found"
CONVERSATION_NOT_FOUND = "Conversation not found"
MEMBER_NOT_FOUND = "Member not found"
MESSAGE_NOT_FOUND = "Message not found"
PARENT_MESSAGE_NOT_FOUND = "Parent message not found"
INVALID_JOIN_CODE = "Invalid join code"
ALREADY_A_MEMBER = "Already an active member"
ADMIN_CANNOT_BE_DELETED = "Admin cannot be deleted"
CANNOT_DELETE_YOURSELF = "Cannot delete yourself"
INVALID_CHANNEL_NAME = "Invalid channel name"
UPLOAD_URL_USED = "Upload URL already used"
UPLOAD_URL_EXPIRED = "Upload URL expired"
INVALID_CREDENTIALS = "Invalid credentials"
EMAIL_TAKEN = "Email already registered"


class ChatAPIError(Exception):
    """Base exception for errors returned by RPC endpoints."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        detail: str,
        status_code: int | None = None,
        extra: dict[str, Any] | None = None,
    ):
        super().__init__(detail)
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code
        self.extra = extra or {}

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"ok": False, "error": self.detail}
        if self.extra:
            payload.update(self.extra)
        return payload

    def to_response(self) -> JSONResponse:
        return JSONResponse(self.to_dict(), status_code=self.status_code)


class Unauthorized(ChatAPIError):
    """No session, not a member of the workspace, or insufficient role."""

    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, detail: str = UNAUTHORIZED):
        super().__init__(detail)


class NotFound(ChatAPIError):
    status_code = status.HTTP_404_NOT_FOUND


class InvalidInput(ChatAPIError):
    status_code = status.HTTP_400_BAD_REQUEST
