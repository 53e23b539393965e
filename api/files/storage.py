"""
Object storage for dropped file content
"""
import uuid
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import Protocol

from botocore.exceptions import BotoCoreError, ClientError

from api.files.exceptions import StoreUnavailable


class ObjectStore(Protocol):
    """Where the bytes of a dropped file live"""

    def put(self, path: str, content: bytes, content_type: str | None) -> str:
        ...

    def delete(self, path: str) -> None:
        ...

    def path_from_url(self, url: str) -> str:
        ...


def build_upload_path(filename: str, now: datetime | None = None) -> str:
    """
    Create the object path for a new upload based on:
    today's date, a random uuid and the file name.

    Example: 2024-05-01/4f0c...-report.pdf
    """
    now = now or datetime.now(timezone.utc)
    return f"{now.strftime('%Y-%m-%d')}/{uuid.uuid4()}-{filename}"


def sanitize_filename(filename: str | None) -> str:
    """Keep only the final component of a client supplied file name"""
    name = PurePosixPath((filename or "").replace("\\", "/")).name
    if name in ("", ".", ".."):
        return "file"
    return name


class S3ObjectStore:
    """ObjectStore on a single S3 bucket with public-read objects"""

    def __init__(self, s3_client, bucket: str, public_root: str):
        self.s3_client = s3_client
        self.bucket = bucket
        self.public_root = public_root if public_root.endswith("/") else public_root + "/"

    def url_for(self, path: str) -> str:
        return f"{self.public_root}{path}"

    def path_from_url(self, url: str) -> str:
        """Strip the bucket root from a public URL to get the object key"""
        if url.startswith(self.public_root):
            return url[len(self.public_root):]
        return url

    def put(self, path: str, content: bytes, content_type: str | None) -> str:
        """
        Upload content and return its public URL

        Raises:
            StoreUnavailable: S3 rejected the upload or could not be reached
        """
        try:
            self.s3_client.put_object(
                Bucket=self.bucket,
                Key=path,
                Body=content,
                ContentType=content_type or "application/octet-stream",
                ACL="public-read",
            )
        except (BotoCoreError, ClientError) as exc:
            raise StoreUnavailable(
                f"Unable to store s3://{self.bucket}/{path}: {exc}"
            ) from exc
        return self.url_for(path)

    def delete(self, path: str) -> None:
        """
        Delete an object. Deleting a missing key is not an error on S3.

        Raises:
            StoreUnavailable: S3 rejected the delete or could not be reached
        """
        try:
            self.s3_client.delete_object(Bucket=self.bucket, Key=path)
        except (BotoCoreError, ClientError) as exc:
            raise StoreUnavailable(
                f"Unable to delete s3://{self.bucket}/{path}: {exc}"
            ) from exc
