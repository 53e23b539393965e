"""
Services for the Files API

FileIngestor stores uploads; RetrievalCoordinator releases each of them at
most once.
"""
from core.config import Settings
from core.logger import logger
from core.security import (
    MAX_PASSWORD_BYTES,
    hash_password,
    parse_file_id,
    verify_password,
)

from api.files.exceptions import (
    FileDropError,
    InconsistentState,
    InvalidUpload,
    RecordNotFound,
    StoreUnavailable,
)
from api.files.models import (
    FilePublic,
    FileRecord,
    RetrievalOutcome,
    RetrievalStatus,
)
from api.files.records import RecordStore
from api.files.storage import ObjectStore, build_upload_path, sanitize_filename

PASSWORD_REQUIRED_TEXT = (
    "This file requires a password in order to be accessed. "
    "Please enter the correct password in order to access this file."
)
PASSWORD_INCORRECT_TEXT = "Incorrect password. Please try again."


class FileIngestor:
    """Creates file records bound to freshly stored content"""

    def __init__(self, records: RecordStore, objects: ObjectStore, settings: Settings):
        self.records = records
        self.objects = objects
        self.bcrypt_rounds = settings.BCRYPT_ROUNDS

    def ingest(
        self,
        content: bytes,
        filename: str | None,
        content_type: str | None = None,
        password: str | None = None,
    ) -> FilePublic:
        """
        Store content and create its record.

        The object is written first. If that fails nothing is persisted.
        If the record cannot be written afterwards the object is removed again.

        Raises:
            InvalidUpload: the password is longer than bcrypt supports
            StoreUnavailable: either store failed
        """
        record = FileRecord(
            location="",
            filename=sanitize_filename(filename),
            content_type=content_type,
            size=len(content),
        )

        if password:
            if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
                raise InvalidUpload(
                    f"Password must be at most {MAX_PASSWORD_BYTES} bytes long."
                )
            record.password_hash = hash_password(password, rounds=self.bcrypt_rounds)
            record.protected = True

        path = build_upload_path(record.filename)
        record.location = self.objects.put(path, content, content_type)

        try:
            self.records.insert(record)
        except FileDropError:
            logger.error("Record insert failed for %s, removing stored object", path)
            try:
                self.objects.delete(path)
            except StoreUnavailable as exc:
                logger.error("Orphaned object left at %s: %s", path, exc)
            raise

        logger.info(
            "Stored file %s (%s bytes, protected=%s)", record.id, record.size, record.protected
        )
        return FilePublic.from_record(record)


class RetrievalCoordinator:
    """
    Gates access to a dropped file and performs its single release.

    Per record the only transition is Available -> Consumed, taken by the
    first authorized retrieve(). The conditional update in the record store
    decides which caller wins when several race on the same id.
    """

    def __init__(self, records: RecordStore, objects: ObjectStore):
        self.records = records
        self.objects = objects

    def retrieve(self, file_id: str, password: str | None = None) -> RetrievalOutcome:
        """
        Try to release a file.

        Returns:
            RetrievalOutcome with status INVALID_IDENTIFIER, NOT_FOUND, GONE,
            UNAUTHORIZED or GRANTED (with the released file)

        Raises:
            StoreUnavailable: the record could not be read
            InconsistentState: access was granted but could not be committed
        """
        record_id = parse_file_id(file_id)
        if record_id is None:
            return RetrievalOutcome(
                status=RetrievalStatus.INVALID_IDENTIFIER, message="Invalid ID format."
            )

        record = self.records.find_by_id(record_id)
        if record is None:
            return RetrievalOutcome(status=RetrievalStatus.NOT_FOUND)

        if record.consumed:
            return RetrievalOutcome(status=RetrievalStatus.GONE)

        if record.protected:
            if not password:
                return RetrievalOutcome(
                    status=RetrievalStatus.UNAUTHORIZED, message=PASSWORD_REQUIRED_TEXT
                )
            if not verify_password(password, record.password_hash or ""):
                return RetrievalOutcome(
                    status=RetrievalStatus.UNAUTHORIZED, message=PASSWORD_INCORRECT_TEXT
                )

        return self._grant(record)

    def _grant(self, record: FileRecord) -> RetrievalOutcome:
        record.consumed = True
        try:
            committed = self.records.update(record, expected_consumed=False)
        except (StoreUnavailable, RecordNotFound) as exc:
            logger.error("Grant of file %s could not be committed: %s", record.id, exc)
            raise InconsistentState(
                f"Consumption of file {record.id} was not recorded"
            ) from exc

        if not committed:
            # Another request consumed it between our read and our update
            logger.info("File %s was consumed by a concurrent request", record.id)
            return RetrievalOutcome(status=RetrievalStatus.GONE)

        path = self.objects.path_from_url(record.location)
        try:
            self.objects.delete(path)
        except StoreUnavailable as exc:
            # consumed is already committed, so the file stays unreachable
            logger.error("Unable to delete object %s of consumed file %s: %s", path, record.id, exc)

        logger.info("Released file %s", record.id)
        return RetrievalOutcome(
            status=RetrievalStatus.GRANTED, file=FilePublic.from_record(record)
        )
