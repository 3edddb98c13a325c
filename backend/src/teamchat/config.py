from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

DEFAULT_DATABASE_URL = "sqlite:///./teamchat.db"
DEFAULT_SESSION_TTL = 30 * 24 * 60 * 60


def _parse_bool(value: str | None) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    database_url: str = DEFAULT_DATABASE_URL
    storage_dir: str = "./storage"
    public_url: str = "http://localhost:8000"
    session_ttl: int = DEFAULT_SESSION_TTL
    upload_url_ttl: int = 3600
    create_tables: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_environ(cls, environ: Mapping[str, str]) -> "Settings":
        return cls(
            database_url=environ.get("DATABASE_URL", DEFAULT_DATABASE_URL),
            storage_dir=environ.get("TEAMCHAT_STORAGE_DIR", "./storage"),
            public_url=environ.get("TEAMCHAT_PUBLIC_URL", "http://localhost:8000"),
            session_ttl=int(
                environ.get("TEAMCHAT_SESSION_TTL", str(DEFAULT_SESSION_TTL))
            ),
            upload_url_ttl=int(environ.get("TEAMCHAT_UPLOAD_URL_TTL", "3600")),
            create_tables=_parse_bool(environ.get("TEAMCHAT_CREATE_TABLES")),
            log_level=environ.get("LOG_LEVEL", "INFO").upper(),
        )
