"""
Test the SQL record store
"""
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from mock import patch
from sqlalchemy.exc import OperationalError
from sqlmodel import Session

from api.files.exceptions import DuplicateID, RecordNotFound, StoreUnavailable
from api.files.models import FileRecord
from api.files.records import SQLRecordStore


def make_record(**kwargs) -> FileRecord:
    values = {
        "location": "https://test-bucket.s3.amazonaws.com/2024-05-01/x-a.txt",
        "filename": "a.txt",
        "size": 1,
    }
    values.update(kwargs)
    return FileRecord(**values)


def test_insert_and_find(record_store: SQLRecordStore):
    record = record_store.insert(make_record())

    found = record_store.find_by_id(record.id)
    assert found is not None
    assert found.id == record.id
    assert found.filename == "a.txt"
    assert found.consumed is False
    assert found.protected is False


def test_find_missing_returns_none(record_store: SQLRecordStore):
    assert record_store.find_by_id(uuid.uuid4()) is None


def test_insert_duplicate_id(session: Session):
    record_id = uuid.uuid4()
    SQLRecordStore(session).insert(make_record(id=record_id))

    with pytest.raises(DuplicateID):
        SQLRecordStore(session).insert(make_record(id=record_id))


def test_found_record_is_a_snapshot(record_store: SQLRecordStore, session: Session):
    """Changing a returned record does not write it back"""
    record = record_store.insert(make_record())
    found = record_store.find_by_id(record.id)

    found.consumed = True
    session.commit()

    assert record_store.find_by_id(record.id).consumed is False


def test_unconditional_update(record_store: SQLRecordStore):
    record = record_store.insert(make_record())
    found = record_store.find_by_id(record.id)
    found.consumed = True

    assert record_store.update(found) is True
    assert record_store.find_by_id(record.id).consumed is True


def test_conditional_update_applies_once(record_store: SQLRecordStore):
    record = record_store.insert(make_record())

    first = record_store.find_by_id(record.id)
    second = record_store.find_by_id(record.id)
    first.consumed = True
    second.consumed = True

    assert record_store.update(first, expected_consumed=False) is True
    assert record_store.update(second, expected_consumed=False) is False
    assert record_store.find_by_id(record.id).consumed is True


def test_update_missing_record(record_store: SQLRecordStore):
    with pytest.raises(RecordNotFound):
        record_store.update(make_record(), expected_consumed=False)


def test_update_store_failure(record_store: SQLRecordStore, session: Session):
    record = record_store.insert(make_record())
    found = record_store.find_by_id(record.id)

    error = OperationalError("UPDATE filerecord", {}, Exception("database is locked"))
    with patch.object(Session, "connection", side_effect=error):
        with pytest.raises(StoreUnavailable):
            record_store.update(found, expected_consumed=False)


def test_find_store_failure(record_store: SQLRecordStore, session: Session):
    error = OperationalError("SELECT", {}, Exception("timeout"))
    with patch.object(Session, "exec", side_effect=error):
        with pytest.raises(StoreUnavailable):
            record_store.find_by_id(uuid.uuid4())


def test_list_consumed(record_store: SQLRecordStore):
    now = datetime(2024, 5, 10, 12, 0, 0, tzinfo=timezone.utc)
    old = record_store.insert(make_record(consumed=True, created_on=now - timedelta(days=3)))
    new = record_store.insert(make_record(consumed=True, created_on=now))
    record_store.insert(make_record(consumed=False, created_on=now))

    assert [r.id for r in record_store.list_consumed()] == [old.id, new.id]
    assert [r.id for r in record_store.list_consumed(since=now - timedelta(days=1))] == [new.id]


def test_list_consumed_since_without_timezone(record_store: SQLRecordStore):
    """A plain date such as 2024-05-01 is read as midnight UTC"""
    before = record_store.insert(make_record(
        consumed=True, created_on=datetime(2024, 4, 30, 23, 0, tzinfo=timezone.utc)
    ))
    after = record_store.insert(make_record(
        consumed=True, created_on=datetime(2024, 5, 1, 1, 0, tzinfo=timezone.utc)
    ))

    found = record_store.list_consumed(since=datetime.fromisoformat("2024-05-01"))

    assert [r.id for r in found] == [after.id]
    assert before.id not in [r.id for r in found]
