from __future__ import annotations
"""Process-wide error boundary."""
import logging
import os
import traceback
from typing import Callable

from .errors import PurgeError, ToolingMissingError
from .session import TmuxSession

WriteFn = Callable[[str], None]

LOGGER = logging.getLogger(__name__)


def describe_location(exc: BaseException) -> str:
    """Return the step of a :class:`PurgeError` or the innermost failing line."""

    if isinstance(exc, PurgeError) and exc.step:
        return exc.step
    frames = traceback.extract_tb(exc.__traceback__)
    if not frames:
        return type(exc).__name__
    frame = frames[-1]
    return f"{os.path.basename(frame.filename)}:{frame.lineno} ({frame.name})"


def exit_code_for(exc: BaseException) -> int:
    code = getattr(exc, "exit_code", 1)
    return code if isinstance(code, int) and code else 1


class ErrorTrap:
    """Reports a fatal failure, surfaces the session and returns its exit code.

    Nothing is retried: the operator inspects the partial state and decides
    how to continue.
    """

    def __init__(self, session: TmuxSession, session_name: str, *, write: WriteFn = print):
        self._session = session
        self._session_name = session_name
        self._write = write

    def run(self, func: Callable[[], int]) -> int:
        try:
            return func()
        except Exception as exc:
            return self.handle(exc)

    def handle(self, exc: Exception) -> int:
        code = exit_code_for(exc)
        location = describe_location(exc)
        if isinstance(exc, PurgeError):
            LOGGER.debug("Run failed at %s", location, exc_info=exc)
        else:
            LOGGER.exception("Unexpected failure at %s", location)
        self._write(f"ERROR: {location} failed with exit code {code}: {exc}")
        if not isinstance(exc, ToolingMissingError):
            self._write(
                f"Reattaching to session '{self._session_name}' for inspection; "
                "exit the shell to end the run."
            )
            self._session.reattach(self._session_name)
        return code
