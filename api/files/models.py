"""
Models for the Files API
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from sqlmodel import SQLModel, Field
from pydantic import ConfigDict


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FileRecord(SQLModel, table=True):
    """
    Metadata for one dropped file and its access state.

    A record is never deleted. Once consumed it stays behind as a tombstone
    so later lookups can tell "gone" apart from "never existed".
    """
    __tablename__ = "filerecord"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    location: str = Field(max_length=1024, nullable=False)  # Public object URL
    password_hash: str | None = Field(default=None, max_length=60)
    protected: bool = Field(default=False, nullable=False)
    consumed: bool = Field(default=False, nullable=False, index=True)

    # Metadata
    filename: str = Field(max_length=255, nullable=False)
    content_type: str | None = Field(default=None, max_length=255)
    size: int | None = None  # Size in bytes
    created_on: datetime = Field(default_factory=utcnow, nullable=False)

    model_config = ConfigDict(from_attributes=True)


class FilePublic(SQLModel):
    """Public file representation. Carries no password or access state."""

    id: uuid.UUID
    file_url: str
    filename: str
    content_type: str | None = None
    size: int | None = None
    created_on: datetime

    @classmethod
    def from_record(cls, record: FileRecord) -> "FilePublic":
        return cls(
            id=record.id,
            file_url=record.location,
            filename=record.filename,
            content_type=record.content_type,
            size=record.size,
            created_on=record.created_on,
        )


class RetrievalStatus(str, Enum):
    """Result kinds of a retrieval attempt"""

    GRANTED = "granted"
    GONE = "gone"
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    INVALID_IDENTIFIER = "invalid_identifier"


class RetrievalOutcome(SQLModel):
    """What a retrieval attempt decided, plus the released file when granted"""

    status: RetrievalStatus
    file: FilePublic | None = None
    message: str | None = None

    @property
    def granted(self) -> bool:
        return self.status == RetrievalStatus.GRANTED
