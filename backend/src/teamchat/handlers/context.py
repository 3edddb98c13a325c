from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session

from teamchat.storage.files import FileStorage


@dataclass
class HandlerContext:
    """What every handler gets: the request's session and its principal."""

    session: Session
    user_id: str | None
    storage: FileStorage | None = None
