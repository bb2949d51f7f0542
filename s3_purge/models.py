from __future__ import annotations
"""Data models describing bucket contents and cleanup outcomes."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class CleanupState(Enum):
    VERIFYING = "verifying"
    CONFIRM_ENTRY = "confirm-entry"
    PREFIX_PHASE = "prefix-phase"
    ROOT_PHASE = "root-phase"
    VERSION_PHASE = "version-phase"
    FINAL_CONFIRM = "final-confirm"
    DELETING = "deleting"
    DONE = "done"
    SKIPPED = "skipped"
    FAILED = "failed"


class RecordKind(Enum):
    """The two kinds of history records kept by a versioned bucket."""

    VERSIONS = "versions"
    DELETE_MARKERS = "delete markers"

    @property
    def label(self) -> str:
        return self.value


class MissingBucketPolicy(str, Enum):
    SKIP = "skip"
    FAIL = "fail"


@dataclass(frozen=True)
class VersionRecord:
    """A ``(key, version id)`` pair identifying a version or delete marker."""

    key: str
    version_id: str

    def as_identifier(self) -> dict[str, str]:
        return {"Key": self.key, "VersionId": self.version_id}


@dataclass
class VersionListing:
    """All versions and delete markers found in a bucket."""

    versions: list[VersionRecord] = field(default_factory=list)
    delete_markers: list[VersionRecord] = field(default_factory=list)

    def records(self, kind: RecordKind) -> list[VersionRecord]:
        if kind is RecordKind.VERSIONS:
            return self.versions
        return self.delete_markers


@dataclass
class CleanupResult:
    """Outcome of walking one bucket through the cleanup phases."""

    bucket: str
    state: CleanupState = CleanupState.VERIFYING
    trail: list[CleanupState] = field(default_factory=list)
    reason: Optional[str] = None
    deleted_objects: int = 0
    deleted_versions: int = 0
    deleted_markers: int = 0

    @property
    def bucket_deleted(self) -> bool:
        return self.state is CleanupState.DONE


@dataclass
class RunSummary:
    """Results for every bucket handled during a run, in input order."""

    results: list[CleanupResult] = field(default_factory=list)

    @property
    def deleted(self) -> list[str]:
        return [result.bucket for result in self.results if result.bucket_deleted]

    @property
    def skipped(self) -> list[str]:
        return [result.bucket for result in self.results if result.state is CleanupState.SKIPPED]
