"""
Define functions/aliases for dependency injection
"""
from collections.abc import Generator
from functools import lru_cache
from typing import Annotated, TypeAlias

import boto3
from botocore.config import Config
from fastapi import Depends
from sqlmodel import Session

from core.config import Settings, get_settings
from core.db import get_engine
from api.files.records import SQLRecordStore
from api.files.services import FileIngestor, RetrievalCoordinator
from api.files.storage import S3ObjectStore


# Define db dependency
def get_db() -> Generator[Session, None, None]:
    with Session(get_engine()) as session:
        yield session


@lru_cache
def _build_s3_client():
    settings = get_settings()
    return boto3.client(
        "s3",
        region_name=settings.AWS_REGION,
        aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
        aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
        config=Config(
            connect_timeout=settings.STORE_TIMEOUT_SECONDS,
            read_timeout=settings.STORE_TIMEOUT_SECONDS,
            retries={"max_attempts": 3, "mode": "standard"},
        ),
    )


def get_s3_client():
    """boto3 clients are thread safe, so one is shared by all requests"""
    return _build_s3_client()


SessionDep: TypeAlias = Annotated[Session, Depends(get_db)]
SettingsDep: TypeAlias = Annotated[Settings, Depends(get_settings)]


def get_record_store(session: SessionDep) -> SQLRecordStore:
    return SQLRecordStore(session)


def get_object_store(settings: SettingsDep, s3_client=Depends(get_s3_client)) -> S3ObjectStore:
    return S3ObjectStore(
        s3_client,
        bucket=settings.AWS_STORAGE_BUCKET_NAME,
        public_root=settings.AWS_BUCKET_ROOT_PATH,
    )


RecordStoreDep: TypeAlias = Annotated[SQLRecordStore, Depends(get_record_store)]
ObjectStoreDep: TypeAlias = Annotated[S3ObjectStore, Depends(get_object_store)]


def get_ingestor(
    records: RecordStoreDep, objects: ObjectStoreDep, settings: SettingsDep
) -> FileIngestor:
    return FileIngestor(records, objects, settings)


def get_coordinator(records: RecordStoreDep, objects: ObjectStoreDep) -> RetrievalCoordinator:
    return RetrievalCoordinator(records, objects)


IngestorDep: TypeAlias = Annotated[FileIngestor, Depends(get_ingestor)]
CoordinatorDep: TypeAlias = Annotated[RetrievalCoordinator, Depends(get_coordinator)]
