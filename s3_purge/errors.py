from __future__ import annotations
"""Typed failures raised by the purge workflow."""
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError

# Exit codes follow the AWS CLI: 254 for service errors, 255 for client-side
# failures.
EXIT_CONFIG_ERROR = 2
EXIT_SERVICE_ERROR = 254
EXIT_CLIENT_ERROR = 255
EXIT_TOOL_MISSING = 127
EXIT_SESSION_BUSY = 75


class PurgeError(RuntimeError):
    """Base class for failures that end the run."""

    exit_code = 1

    def __init__(self, message: str, *, step: Optional[str] = None, exit_code: Optional[int] = None):
        super().__init__(message)
        self.step = step
        if exit_code is not None:
            self.exit_code = exit_code


class ToolingMissingError(PurgeError):
    """Raised when a required executable cannot be found on ``PATH``."""

    exit_code = EXIT_TOOL_MISSING

    def __init__(self, tools: list[str]):
        self.tools = list(tools)
        super().__init__(
            "required tool(s) not installed: " + ", ".join(self.tools),
            step="startup",
        )


class ProfileNotFoundError(PurgeError):
    """Raised when a named connection profile does not exist."""

    exit_code = EXIT_CONFIG_ERROR

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Profile '{name}' does not exist", step="configuration")


class BucketNotFoundError(PurgeError):
    """Raised when a bucket is missing and the policy treats it as fatal."""

    exit_code = EXIT_SERVICE_ERROR

    def __init__(self, bucket: str):
        self.bucket = bucket
        super().__init__(f"Bucket '{bucket}' does not exist")


class StorageCallError(PurgeError):
    """Wraps a failed call to the storage provider."""

    exit_code = EXIT_SERVICE_ERROR

    def __init__(self, operation: str, message: str, *, exit_code: Optional[int] = None):
        self.operation = operation
        super().__init__(f"{operation} failed: {message}", step=operation, exit_code=exit_code)

    @classmethod
    def from_exception(cls, operation: str, exc: Exception) -> "StorageCallError":
        if isinstance(exc, ClientError):
            return cls(operation, str(exc), exit_code=EXIT_SERVICE_ERROR)
        if isinstance(exc, BotoCoreError):
            return cls(operation, str(exc), exit_code=EXIT_CLIENT_ERROR)
        return cls(operation, str(exc), exit_code=1)
