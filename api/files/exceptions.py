"""
Errors raised by the file drop services.

Expected retrieval results (bad id, missing record, consumed, wrong password)
are not errors; they are reported through RetrievalOutcome.
"""


class FileDropError(Exception):
    """Base class for file drop errors"""


class InvalidUpload(FileDropError):
    """The upload request cannot be accepted as submitted"""


class StoreUnavailable(FileDropError):
    """The object store or the record store failed or timed out"""


class DuplicateID(FileDropError):
    """A record with the same id already exists"""


class RecordNotFound(FileDropError):
    """A record disappeared between being read and being updated"""


class InconsistentState(FileDropError):
    """
    A grant was decided but its consumption could not be committed.
    Always fatal for the request.
    """
