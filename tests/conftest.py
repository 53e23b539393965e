import os
import threading
from datetime import timezone

os.environ.setdefault("SETTINGS_MODE", "test")

import pytest  # noqa: E402
from botocore.exceptions import ClientError, EndpointConnectionError  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import Session, create_engine, SQLModel  # noqa: E402
from sqlmodel.pool import StaticPool  # noqa: E402

from api.files.exceptions import DuplicateID, RecordNotFound  # noqa: E402
from api.files.models import FileRecord  # noqa: E402
from api.files.records import SQLRecordStore  # noqa: E402
from api.files.services import FileIngestor, RetrievalCoordinator  # noqa: E402
from api.files.storage import S3ObjectStore  # noqa: E402
from core.config import InMemoryDbSettings, get_settings  # noqa: E402
from core.deps import get_db, get_s3_client  # noqa: E402
from main import app  # noqa: E402


class MockS3Client:
    """Mock S3 client for testing"""

    def __init__(self):
        self.objects = {}  # {(bucket, key): {"Body": bytes, "ContentType": str, "ACL": str}}
        self.deleted = []  # (bucket, key) in call order
        self.error_mode = {}  # operation name -> error type

    def simulate_error(self, error_type: str, operation: str = "*"):
        """
        Configure client to raise specific errors

        Args:
            error_type: One of "AccessDenied", "NoSuchBucket", "EndpointConnectionError"
            operation: "put_object", "delete_object" or "*" for both
        """
        self.error_mode[operation] = error_type

    def _maybe_fail(self, operation: str):
        error_type = self.error_mode.get(operation) or self.error_mode.get("*")
        if error_type is None:
            return
        if error_type == "EndpointConnectionError":
            raise EndpointConnectionError(endpoint_url="https://s3.amazonaws.com")
        raise ClientError(
            {"Error": {"Code": error_type, "Message": error_type}},
            operation,
        )

    def put_object(self, Bucket: str, Key: str, Body: bytes, ContentType: str, ACL: str):
        self._maybe_fail("put_object")
        self.objects[(Bucket, Key)] = {"Body": Body, "ContentType": ContentType, "ACL": ACL}
        return {"ETag": '"mock"'}

    def delete_object(self, Bucket: str, Key: str):
        self._maybe_fail("delete_object")
        self.deleted.append((Bucket, Key))
        self.objects.pop((Bucket, Key), None)
        return {}

    def keys(self, bucket: str = "test-bucket") -> list:
        return [key for (b, key) in self.objects if b == bucket]


class MemoryRecordStore:
    """
    Thread safe in-memory RecordStore.
    Hands out copies so callers hold snapshots, like a real database.
    """

    def __init__(self):
        self._rows = {}
        self._lock = threading.Lock()

    @staticmethod
    def _copy(record: FileRecord) -> FileRecord:
        return FileRecord(**record.model_dump())

    def insert(self, record: FileRecord) -> FileRecord:
        with self._lock:
            if record.id in self._rows:
                raise DuplicateID(str(record.id))
            self._rows[record.id] = self._copy(record)
        return record

    def find_by_id(self, file_id):
        with self._lock:
            row = self._rows.get(file_id)
            return self._copy(row) if row is not None else None

    def update(self, record: FileRecord, expected_consumed=None) -> bool:
        with self._lock:
            row = self._rows.get(record.id)
            if row is None:
                raise RecordNotFound(str(record.id))
            if expected_consumed is not None and row.consumed != expected_consumed:
                return False
            self._rows[record.id] = self._copy(record)
            return True

    def list_consumed(self, since=None):
        with self._lock:
            rows = [self._copy(r) for r in self._rows.values() if r.consumed]
        if since is not None:
            if since.tzinfo is None:
                since = since.replace(tzinfo=timezone.utc)
            rows = [r for r in rows if r.created_on >= since]
        return sorted(rows, key=lambda r: r.created_on)


@pytest.fixture(name="test_settings")
def test_settings_fixture():
    return InMemoryDbSettings()


@pytest.fixture(name="session")
def session_fixture():
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(name="mock_s3_client")
def mock_s3_client_fixture():
    """Provide a mock S3 client for testing"""
    return MockS3Client()


@pytest.fixture(name="object_store")
def object_store_fixture(mock_s3_client: MockS3Client, test_settings: InMemoryDbSettings):
    return S3ObjectStore(
        mock_s3_client,
        bucket=test_settings.AWS_STORAGE_BUCKET_NAME,
        public_root=test_settings.AWS_BUCKET_ROOT_PATH,
    )


@pytest.fixture(name="record_store")
def record_store_fixture(session: Session):
    return SQLRecordStore(session)


@pytest.fixture(name="ingestor")
def ingestor_fixture(record_store, object_store, test_settings):
    return FileIngestor(record_store, object_store, test_settings)


@pytest.fixture(name="coordinator")
def coordinator_fixture(record_store, object_store):
    return RetrievalCoordinator(record_store, object_store)


@pytest.fixture(name="client")
def client_fixture(
    session: Session,
    mock_s3_client: MockS3Client,
    test_settings: InMemoryDbSettings,
):
    def get_db_override():
        return session

    def get_s3_client_override():
        return mock_s3_client

    def get_settings_override():
        return test_settings

    app.dependency_overrides[get_db] = get_db_override
    app.dependency_overrides[get_s3_client] = get_s3_client_override
    app.dependency_overrides[get_settings] = get_settings_override

    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="memory_record_store")
def memory_record_store_fixture():
    """Provide the thread safe in-memory record store"""
    return MemoryRecordStore()
