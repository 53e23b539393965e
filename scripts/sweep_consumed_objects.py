#!/usr/bin/env python
"""
Delete objects left behind by consumed files.

Retrieval deletes a file's object on a best effort basis. If that delete
failed the object outlives its record. This script walks consumed records
and deletes their objects again. Deleting a key that is already gone is a
no-op on S3, so the sweep can be re-run safely.

Usage:
    PYTHONPATH=.
    python scripts/sweep_consumed_objects.py
    python scripts/sweep_consumed_objects.py --since 2024-05-01
    python scripts/sweep_consumed_objects.py --dry-run
"""

import argparse
import sys
from datetime import datetime, timezone

from api.files.exceptions import StoreUnavailable
from api.files.records import RecordStore, SQLRecordStore
from api.files.storage import ObjectStore, S3ObjectStore
from core.config import get_settings
from core.db import get_session
from core.deps import get_s3_client
from core.logger import logger


class ConsumedObjectSweeper:
    """Deletes the objects of consumed file records."""

    def __init__(self, records: RecordStore, objects: ObjectStore, dry_run: bool = False):
        self.records = records
        self.objects = objects
        self.dry_run = dry_run
        self.stats = {"scanned": 0, "deleted": 0, "errors": 0}

    def sweep(self, since: datetime | None = None) -> dict:
        for record in self.records.list_consumed(since=since):
            self.stats["scanned"] += 1
            path = self.objects.path_from_url(record.location)

            if self.dry_run:
                logger.info("[DRY RUN] Would delete %s (file %s)", path, record.id)
                continue

            try:
                self.objects.delete(path)
                self.stats["deleted"] += 1
            except StoreUnavailable as exc:
                self.stats["errors"] += 1
                logger.error("Failed to delete %s (file %s): %s", path, record.id, exc)

        return self.stats

    def print_summary(self):
        print("\n" + "=" * 40)
        print("SWEEP SUMMARY")
        print("=" * 40)
        print(f"Records scanned:  {self.stats['scanned']}")
        print(f"Objects deleted:  {self.stats['deleted']}")
        print(f"Errors:           {self.stats['errors']}")
        if self.dry_run:
            print("\nThis was a dry run. No objects were deleted.")


def parse_since(value: str) -> datetime:
    """ISO date or datetime; values without a timezone are UTC"""
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Delete S3 objects that belong to consumed files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--since",
        type=parse_since,
        help="Only sweep files uploaded on or after this date (YYYY-MM-DD)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="List the objects that would be deleted without deleting them",
    )
    args = parser.parse_args(argv)

    settings = get_settings()
    objects = S3ObjectStore(
        get_s3_client(),
        bucket=settings.AWS_STORAGE_BUCKET_NAME,
        public_root=settings.AWS_BUCKET_ROOT_PATH,
    )

    session = next(get_session())
    try:
        sweeper = ConsumedObjectSweeper(SQLRecordStore(session), objects, dry_run=args.dry_run)
        sweeper.sweep(since=args.since)
    except StoreUnavailable as exc:
        logger.error("Sweep aborted: %s", exc)
        return 1
    finally:
        session.close()

    sweeper.print_summary()
    return 1 if sweeper.stats["errors"] else 0


if __name__ == "__main__":
    sys.exit(main())
