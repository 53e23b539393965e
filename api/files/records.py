"""
Metadata record store for dropped files.

RecordStore is the contract the ingestion and retrieval services depend on;
SQLRecordStore implements it on top of a SQLModel session.
"""
import uuid
from datetime import datetime, timezone
from typing import List, Protocol

from sqlalchemy import update as sql_update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from api.files.exceptions import DuplicateID, RecordNotFound, StoreUnavailable
from api.files.models import FileRecord


class RecordStore(Protocol):
    """Durable keyed storage for file records"""

    def insert(self, record: FileRecord) -> FileRecord:
        ...

    def find_by_id(self, file_id: uuid.UUID) -> FileRecord | None:
        ...

    def update(self, record: FileRecord, expected_consumed: bool | None = None) -> bool:
        ...

    def list_consumed(self, since: datetime | None = None) -> List[FileRecord]:
        ...


class SQLRecordStore:
    """RecordStore backed by the filerecord table"""

    def __init__(self, session: Session):
        self.session = session

    def insert(self, record: FileRecord) -> FileRecord:
        """
        Persist a new record.

        Raises:
            DuplicateID: a record with this id already exists
            StoreUnavailable: the database could not be reached
        """
        try:
            self.session.add(record)
            self.session.commit()
            self.session.refresh(record)
            self.session.expunge(record)
        except IntegrityError as exc:
            self.session.rollback()
            raise DuplicateID(f"File record {record.id} already exists") from exc
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StoreUnavailable(f"Unable to insert file record {record.id}") from exc
        return record

    def find_by_id(self, file_id: uuid.UUID) -> FileRecord | None:
        """Return the record, or None when no record has this id"""
        try:
            record = self.session.exec(
                select(FileRecord).where(FileRecord.id == file_id)
            ).one_or_none()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StoreUnavailable(f"Unable to read file record {file_id}") from exc
        if record is not None:
            # Callers hold snapshots; changing one never writes through
            self.session.expunge(record)
        return record

    def update(self, record: FileRecord, expected_consumed: bool | None = None) -> bool:
        """
        Replace the stored record with the given one.

        When expected_consumed is not None the replace is a single conditional
        UPDATE that only applies while the stored consumed flag still equals
        it, so concurrent callers cannot both flip the same record.

        Returns:
            True if the row was replaced, False if the condition did not hold

        Raises:
            RecordNotFound: no record with this id exists anymore
            StoreUnavailable: the database could not be reached
        """
        table = FileRecord.__table__
        statement = (
            sql_update(table)
            .where(table.c.id == record.id)
            .values(
                location=record.location,
                password_hash=record.password_hash,
                protected=record.protected,
                consumed=record.consumed,
                filename=record.filename,
                content_type=record.content_type,
                size=record.size,
                created_on=record.created_on,
            )
        )
        if expected_consumed is not None:
            statement = statement.where(table.c.consumed == expected_consumed)

        try:
            result = self.session.connection().execute(statement)
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StoreUnavailable(f"Unable to update file record {record.id}") from exc

        if result.rowcount == 1:
            return True

        # Nothing matched: either the row is gone or the condition failed
        if self.find_by_id(record.id) is None:
            raise RecordNotFound(f"File record {record.id} no longer exists")
        return False

    def list_consumed(self, since: datetime | None = None) -> List[FileRecord]:
        """
        Consumed records, oldest first.
        A since without a timezone is taken as UTC.
        """
        query = select(FileRecord).where(FileRecord.consumed == True)  # noqa: E712
        if since is not None:
            if since.tzinfo is None:
                since = since.replace(tzinfo=timezone.utc)
            query = query.where(FileRecord.created_on >= since)
        try:
            return list(self.session.exec(query.order_by(FileRecord.created_on)).all())
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StoreUnavailable("Unable to list consumed file records") from exc
