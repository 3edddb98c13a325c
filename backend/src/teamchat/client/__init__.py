from teamchat.client.client import TeamChatClient, TeamChatClientError
from teamchat.client.feed import BATCH_SIZE, FeedStatus, MessageFeed

__all__ = [
    "BATCH_SIZE",
    "FeedStatus",
    "MessageFeed",
    "TeamChatClient",
    "TeamChatClientError",
]
