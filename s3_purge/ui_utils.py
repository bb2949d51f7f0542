from __future__ import annotations
"""Formatting helpers for operator-facing output."""
from importlib.metadata import PackageNotFoundError, version
from typing import Sequence

from .models import CleanupResult, CleanupState, RunSummary

DIST_NAME = "s3purge"
DEFAULT_PREVIEW_LIMIT = 10


def package_version(dist_name: str = DIST_NAME) -> str:
    try:
        return version(dist_name)
    except PackageNotFoundError:
        return "unknown"


def format_preview(keys: Sequence[str], limit: int = DEFAULT_PREVIEW_LIMIT) -> list[str]:
    """Return indented preview lines for the first ``limit`` keys."""

    limit = max(int(limit), 0)
    lines = [f"  {key}" for key in keys[:limit]]
    remaining = len(keys) - len(lines)
    if remaining > 0:
        lines.append(f"  ... and {remaining} more")
    return lines


def pluralize(count: int, singular: str, plural: str | None = None) -> str:
    noun = singular if count == 1 else (plural or f"{singular}s")
    return f"{count} {noun}"


def describe_result(result: CleanupResult) -> str:
    if result.state is CleanupState.DONE:
        status = "deleted"
    elif result.state is CleanupState.SKIPPED:
        status = f"skipped ({result.reason})" if result.reason else "skipped"
    else:
        status = result.state.value
    counts = ", ".join(
        [
            pluralize(result.deleted_objects, "object"),
            pluralize(result.deleted_versions, "version"),
            pluralize(result.deleted_markers, "delete marker"),
        ]
    )
    return f"{result.bucket}: {status}; removed {counts}"


def format_summary(summary: RunSummary) -> list[str]:
    if not summary.results:
        return ["No buckets were given."]
    lines = [describe_result(result) for result in summary.results]
    lines.append(
        f"{pluralize(len(summary.deleted), 'bucket')} deleted, {len(summary.skipped)} skipped."
    )
    return lines
