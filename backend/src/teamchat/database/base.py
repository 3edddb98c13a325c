from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for teamchat ORM models."""

    pass
