from __future__ import annotations
"""Storage calls used by the bucket cleanup workflow."""
import logging
from typing import Callable, Iterable, Iterator, Optional

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from .errors import StorageCallError
from .models import VersionListing, VersionRecord

LOGGER = logging.getLogger(__name__)

PAGE_SIZE = 1000
# DeleteObjects accepts at most 1000 identifiers per request.
DELETE_BATCH_SIZE = 1000
MISSING_BUCKET_CODES = {"404", "NoSuchBucket", "NotFound"}


def _chunks(items: list, size: int) -> Iterator[list]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


class S3PurgeService:
    """Lists and deletes bucket contents through a boto3 S3 client.

    Every botocore failure is re-raised as :class:`StorageCallError` naming
    the S3 operation that failed.
    """

    def __init__(
        self,
        client_factory: Callable[..., object] | None = None,
        *,
        endpoint_url: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        region_name: str | None = None,
    ):
        self._client_factory = client_factory or boto3.client
        self._connection_params = {
            "endpoint_url": endpoint_url,
            "aws_access_key_id": access_key,
            "aws_secret_access_key": secret_key,
            "region_name": region_name,
        }
        self._client = None

    @property
    def client(self):
        if self._client is None:
            self._client = self._create_client()
        return self._client

    def bucket_exists(self, bucket_name: str) -> bool:
        """Return whether the bucket exists.

        Raises:
            StorageCallError: for failures other than a missing bucket, e.g. access denied.
        """
        LOGGER.debug("Checking bucket '%s'", bucket_name)
        try:
            self.client.head_bucket(Bucket=bucket_name)
        except ClientError as exc:
            code = str(exc.response.get("Error", {}).get("Code", ""))
            if code in MISSING_BUCKET_CODES:
                return False
            raise StorageCallError.from_exception("HeadBucket", exc) from exc
        except BotoCoreError as exc:
            raise StorageCallError.from_exception("HeadBucket", exc) from exc
        return True

    def list_prefixes(self, bucket_name: str, delimiter: str = "/") -> list[str]:
        """Return the top-level prefixes of a bucket in listing order."""

        prefixes: list[str] = []
        for page in self._iter_object_pages(bucket_name, delimiter=delimiter):
            prefixes.extend(common["Prefix"] for common in page.get("CommonPrefixes", []))
        return prefixes

    def list_root_objects(self, bucket_name: str, delimiter: str = "/") -> list[str]:
        """Return keys stored directly in the bucket root."""

        keys: list[str] = []
        for page in self._iter_object_pages(bucket_name, delimiter=delimiter):
            keys.extend(obj["Key"] for obj in page.get("Contents", []))
        return keys

    def list_keys(self, bucket_name: str, prefix: str = "") -> list[str]:
        """Return every key under ``prefix``, recursively."""

        keys: list[str] = []
        for page in self._iter_object_pages(bucket_name, prefix=prefix):
            keys.extend(obj["Key"] for obj in page.get("Contents", []))
        return keys

    def delete_prefix(self, bucket_name: str, prefix: str) -> int:
        """Delete every object under ``prefix`` and return how many were removed."""

        keys = self.list_keys(bucket_name, prefix=prefix)
        LOGGER.debug("Deleting %d object(s) under '%s' in '%s'", len(keys), prefix, bucket_name)
        return self.delete_objects(bucket_name, keys)

    def delete_objects(self, bucket_name: str, keys: Iterable[str]) -> int:
        identifiers = [{"Key": key} for key in keys]
        return self._delete_identifiers(bucket_name, identifiers)

    def list_versions(self, bucket_name: str) -> VersionListing:
        """Return all object versions and delete markers of a bucket.

        A bucket that never had versioning enabled returns an empty listing.
        """
        listing = VersionListing()
        params = {"Bucket": bucket_name, "MaxKeys": PAGE_SIZE}
        while True:
            response = self._call("ListObjectVersions", self.client.list_object_versions, **params)
            listing.versions.extend(
                VersionRecord(key=item["Key"], version_id=item["VersionId"])
                for item in response.get("Versions", [])
            )
            listing.delete_markers.extend(
                VersionRecord(key=item["Key"], version_id=item["VersionId"])
                for item in response.get("DeleteMarkers", [])
            )
            key_marker = response.get("NextKeyMarker")
            version_marker = response.get("NextVersionIdMarker")
            if not response.get("IsTruncated") or not (key_marker or version_marker):
                break
            params.pop("KeyMarker", None)
            params.pop("VersionIdMarker", None)
            if key_marker:
                params["KeyMarker"] = key_marker
            if version_marker:
                params["VersionIdMarker"] = version_marker
        LOGGER.debug(
            "Bucket '%s' has %d version(s) and %d delete marker(s)",
            bucket_name,
            len(listing.versions),
            len(listing.delete_markers),
        )
        return listing

    def delete_versions(self, bucket_name: str, records: Iterable[VersionRecord]) -> int:
        identifiers = [record.as_identifier() for record in records]
        return self._delete_identifiers(bucket_name, identifiers)

    def delete_bucket(self, bucket_name: str) -> None:
        LOGGER.debug("Deleting bucket '%s'", bucket_name)
        self._call("DeleteBucket", self.client.delete_bucket, Bucket=bucket_name)

    def _create_client(self):
        config = Config(signature_version="s3v4")
        params = {name: value for name, value in self._connection_params.items() if value}
        return self._client_factory("s3", config=config, **params)

    def _iter_object_pages(
        self,
        bucket_name: str,
        *,
        prefix: str = "",
        delimiter: str | None = None,
    ) -> Iterator[dict]:
        list_params = {"Bucket": bucket_name, "MaxKeys": PAGE_SIZE}
        if prefix:
            list_params["Prefix"] = prefix
        if delimiter:
            list_params["Delimiter"] = delimiter
        while True:
            response = self._call("ListObjectsV2", self.client.list_objects_v2, **list_params)
            yield response
            token = response.get("NextContinuationToken")
            if not response.get("IsTruncated") or not token:
                break
            list_params["ContinuationToken"] = token

    def _delete_identifiers(self, bucket_name: str, identifiers: list[dict[str, str]]) -> int:
        deleted = 0
        for batch in _chunks(identifiers, DELETE_BATCH_SIZE):
            response = self._call(
                "DeleteObjects",
                self.client.delete_objects,
                Bucket=bucket_name,
                Delete={"Objects": batch, "Quiet": True},
            )
            errors = response.get("Errors") or []
            if errors:
                first = errors[0]
                raise StorageCallError(
                    "DeleteObjects",
                    f"{len(errors)} of {len(batch)} deletion(s) failed in '{bucket_name}', "
                    f"first: {first.get('Key')} ({first.get('Code')}: {first.get('Message')})",
                )
            deleted += len(batch)
        return deleted

    def _call(self, operation: str, method: Callable[..., dict], **params) -> dict:
        LOGGER.debug("%s %s", operation, {k: v for k, v in params.items() if k != "Delete"})
        try:
            return method(**params) or {}
        except (ClientError, BotoCoreError) as exc:
            raise StorageCallError.from_exception(operation, exc) from exc
