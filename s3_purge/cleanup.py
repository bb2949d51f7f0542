from __future__ import annotations
"""Per-bucket cleanup state machine."""
import logging
from typing import Callable

from .errors import BucketNotFoundError, PurgeError
from .models import CleanupResult, CleanupState, MissingBucketPolicy, RecordKind
from .services import S3PurgeService
from .ui_utils import DEFAULT_PREVIEW_LIMIT, format_preview, pluralize

ConfirmFn = Callable[[str], bool]
WriteFn = Callable[[str], None]

LOGGER = logging.getLogger(__name__)


class BucketCleaner:
    """Walks a single bucket from existence check to deletion.

    Every destructive call is preceded by its own confirmation. Declines end
    the bucket in ``SKIPPED``; storage failures are annotated with the
    bucket and the current state and re-raised for the caller to handle.
    """

    def __init__(
        self,
        service: S3PurgeService,
        confirm: ConfirmFn,
        *,
        write: WriteFn = print,
        missing_bucket_policy: MissingBucketPolicy = MissingBucketPolicy.SKIP,
        preview_limit: int = DEFAULT_PREVIEW_LIMIT,
    ):
        self._service = service
        self._confirm = confirm
        self._write = write
        self._missing_bucket_policy = MissingBucketPolicy(missing_bucket_policy)
        self._preview_limit = preview_limit

    def run(self, bucket_name: str) -> CleanupResult:
        result = CleanupResult(bucket=bucket_name)
        try:
            self._run_phases(result)
        except PurgeError as exc:
            location = f"{bucket_name}:{result.state.name}"
            exc.step = f"{location}/{exc.step}" if exc.step else location
            self._enter(result, CleanupState.FAILED)
            raise
        return result

    def _run_phases(self, result: CleanupResult) -> None:
        bucket = result.bucket

        self._enter(result, CleanupState.VERIFYING)
        if not self._service.bucket_exists(bucket):
            if self._missing_bucket_policy is MissingBucketPolicy.FAIL:
                raise BucketNotFoundError(bucket)
            self._write(f"Bucket '{bucket}' does not exist, skipping.")
            self._skip(result, "missing")
            return

        self._enter(result, CleanupState.CONFIRM_ENTRY)
        if not self._confirm(f"Proceed deleting bucket '{bucket}'?"):
            self._write(f"Leaving bucket '{bucket}' untouched.")
            self._skip(result, "declined")
            return

        self._enter(result, CleanupState.PREFIX_PHASE)
        self._delete_prefixes(result)

        self._enter(result, CleanupState.ROOT_PHASE)
        self._delete_root_objects(result)

        self._enter(result, CleanupState.VERSION_PHASE)
        self._delete_versions(result)

        self._enter(result, CleanupState.FINAL_CONFIRM)
        if not self._confirm(f"PERMANENTLY delete bucket '{bucket}'? This cannot be undone."):
            self._write(f"Bucket '{bucket}' was kept.")
            self._skip(result, "declined")
            return

        self._enter(result, CleanupState.DELETING)
        self._service.delete_bucket(bucket)
        self._write(f"Bucket '{bucket}' deleted.")
        self._enter(result, CleanupState.DONE)

    def _delete_prefixes(self, result: CleanupResult) -> None:
        bucket = result.bucket
        for prefix in self._service.list_prefixes(bucket):
            if not self._confirm(f"Delete folder '{prefix}' in bucket '{bucket}'?"):
                continue
            deleted = self._service.delete_prefix(bucket, prefix)
            result.deleted_objects += deleted
            self._write(f"Deleted {pluralize(deleted, 'object')} under '{prefix}'.")

    def _delete_root_objects(self, result: CleanupResult) -> None:
        bucket = result.bucket
        keys = self._service.list_root_objects(bucket)
        if not keys:
            return
        self._write(f"Bucket '{bucket}' has {pluralize(len(keys), 'root object')}:")
        for line in format_preview(keys, self._preview_limit):
            self._write(line)
        if not self._confirm(f"Delete all root objects in bucket '{bucket}'?"):
            return
        deleted = self._service.delete_objects(bucket, keys)
        result.deleted_objects += deleted
        self._write(f"Deleted {pluralize(deleted, 'root object')}.")

    def _delete_versions(self, result: CleanupResult) -> None:
        bucket = result.bucket
        listing = self._service.list_versions(bucket)
        for kind in (RecordKind.VERSIONS, RecordKind.DELETE_MARKERS):
            records = listing.records(kind)
            if not records:
                continue
            self._write(f"Found {len(records)} {kind.label} in bucket '{bucket}'.")
            if not self._confirm(f"Delete all {len(records)} {kind.label} in bucket '{bucket}'?"):
                continue
            deleted = self._service.delete_versions(bucket, records)
            if kind is RecordKind.VERSIONS:
                result.deleted_versions += deleted
            else:
                result.deleted_markers += deleted
            self._write(f"Deleted {deleted} {kind.label}.")

    def _skip(self, result: CleanupResult, reason: str) -> None:
        result.reason = reason
        self._enter(result, CleanupState.SKIPPED)

    def _enter(self, result: CleanupResult, state: CleanupState) -> None:
        LOGGER.debug("Bucket '%s': %s", result.bucket, state.name)
        result.state = state
        result.trail.append(state)
