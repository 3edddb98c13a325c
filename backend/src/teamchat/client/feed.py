from __future__ import annotations

from enum import Enum
from typing import Any

from teamchat.client.client import TeamChatClient

BATCH_SIZE = 20


class FeedStatus(str, Enum):
    LOADING_FIRST_PAGE = "loading_first_page"
    CAN_LOAD_MORE = "can_load_more"
    LOADING_MORE = "loading_more"
    EXHAUSTED = "exhausted"


class MessageFeed:
    """Accumulates a container's messages page by page, newest first.

    Each ``load_more`` appends the next strictly older page. Messages posted
    after the first page was fetched are not picked up; start a new feed to
    see them.
    """

    def __init__(
        self,
        client: TeamChatClient,
        channel_id: str | None = None,
        conversation_id: str | None = None,
        parent_message_id: str | None = None,
        batch_size: int = BATCH_SIZE,
    ):
        self.client = client
        self.channel_id = channel_id
        self.conversation_id = conversation_id
        self.parent_message_id = parent_message_id
        self.batch_size = batch_size

        self.messages: list[dict[str, Any]] = []
        self.status = FeedStatus.LOADING_FIRST_PAGE
        self._cursor: str | None = None

    @property
    def can_load_more(self) -> bool:
        return self.status in (FeedStatus.LOADING_FIRST_PAGE, FeedStatus.CAN_LOAD_MORE)

    async def load_more(self) -> list[dict[str, Any]]:
        """Fetch the next page; returns the messages it added."""
        if not self.can_load_more:
            return []

        first_page = self.status == FeedStatus.LOADING_FIRST_PAGE
        if not first_page:
            self.status = FeedStatus.LOADING_MORE

        pagination_opts: dict[str, Any] = {"numItems": self.batch_size}
        if self._cursor:
            pagination_opts["cursor"] = self._cursor
        try:
            result = await self.client.call(
                "messages.get",
                channelId=self.channel_id,
                conversationId=self.conversation_id,
                parentMessageId=self.parent_message_id,
                paginationOpts=pagination_opts,
            )
        except Exception:
            self.status = (
                FeedStatus.LOADING_FIRST_PAGE if first_page else FeedStatus.CAN_LOAD_MORE
            )
            raise

        page = result["page"]
        self.messages.extend(page)
        self._cursor = result["continue_cursor"]
        self.status = FeedStatus.EXHAUSTED if result["is_done"] else FeedStatus.CAN_LOAD_MORE
        return page
