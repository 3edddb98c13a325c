"""
Attachment storage on the local filesystem.

Uploads go through single-use tickets: the client asks for an upload URL,
POSTs the raw bytes to it once, and gets back a storage id to attach to a
message. Storage ids are resolved to download URLs on every read.
"""

from __future__ import annotations

import logging
import secrets
import string
from datetime import datetime, timedelta
from pathlib import Path

from sqlalchemy.orm import Session

from teamchat.core.errors import (
    NotFound,
    InvalidInput,
    UPLOAD_URL_EXPIRED,
    UPLOAD_URL_USED,
)
from teamchat.database.schema import StoredFile, UploadTicket

logger = logging.getLogger(__name__)


def _generate_storage_id() -> str:
    chars = string.ascii_lowercase + string.digits
    return "s" + "".join(secrets.choice(chars) for _ in range(23))


class FileStorage:
    def __init__(self, base_dir: str | Path, public_url: str, upload_ttl: int = 3600):
        self.base_dir = Path(base_dir)
        self.public_url = public_url.rstrip("/")
        self.upload_ttl = upload_ttl

    def generate_upload_url(self, session: Session, user_id: str) -> str:
        now = datetime.now()
        ticket = UploadTicket(
            token=secrets.token_urlsafe(24),
            user_id=user_id,
            created_at=now,
            expires_at=now + timedelta(seconds=self.upload_ttl),
        )
        session.add(ticket)
        session.flush()
        return f"{self.public_url}/api/storage/upload/{ticket.token}"

    def consume_upload(
        self,
        session: Session,
        token: str,
        data: bytes,
        content_type: str | None = None,
    ) -> StoredFile:
        ticket = session.get(UploadTicket, token)
        if ticket is None:
            raise NotFound("Upload URL not found")
        if ticket.used_at is not None:
            raise InvalidInput(UPLOAD_URL_USED)
        if ticket.expires_at <= datetime.now():
            raise InvalidInput(UPLOAD_URL_EXPIRED)

        stored = self.save(session, data, content_type)
        ticket.used_at = datetime.now()
        ticket.storage_id = stored.id
        session.flush()
        return stored

    def save(
        self, session: Session, data: bytes, content_type: str | None = None
    ) -> StoredFile:
        storage_id = _generate_storage_id()
        self.base_dir.mkdir(parents=True, exist_ok=True)
        path = self.base_dir / storage_id
        path.write_bytes(data)

        stored = StoredFile(
            id=storage_id,
            content_type=content_type,
            size=len(data),
            path=str(path),
        )
        session.add(stored)
        session.flush()
        logger.info(f"Stored file {storage_id} ({len(data)} bytes)")
        return stored

    def get(self, session: Session, storage_id: str) -> StoredFile | None:
        stored = session.get(StoredFile, storage_id)
        if stored is None or not Path(stored.path).exists():
            return None
        return stored

    def get_url(self, session: Session, storage_id: str | None) -> str | None:
        if not storage_id:
            return None
        if self.get(session, storage_id) is None:
            return None
        return f"{self.public_url}/api/storage/{storage_id}"
