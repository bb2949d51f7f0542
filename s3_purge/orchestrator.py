from __future__ import annotations
"""Coordinates a purge run across the buckets named by the operator."""
import logging
from typing import Callable, Sequence

from .cleanup import BucketCleaner
from .models import RunSummary
from .session import DEFAULT_SESSION_NAME, TmuxSession
from .ui_utils import format_summary

ReadLineFn = Callable[[str], str]
WriteFn = Callable[[str], None]

LOGGER = logging.getLogger(__name__)

COMPLETION_MESSAGE = "All buckets processed."


class RunOrchestrator:
    """Collects bucket names and cleans them one after another."""

    def __init__(
        self,
        cleaner: BucketCleaner,
        session: TmuxSession,
        session_name: str = DEFAULT_SESSION_NAME,
        *,
        read_line: ReadLineFn = input,
        write: WriteFn = print,
    ):
        self._cleaner = cleaner
        self._session = session
        self._session_name = session_name
        self._read_line = read_line
        self._write = write

    def ensure_durable_context(self, command: Sequence[str], *, detached: bool = False) -> bool:
        """Return ``True`` when the run may continue in this process.

        Outside the persistent session the command is relaunched inside it
        and ``False`` tells the caller to stop.
        """
        if self._session.is_inside():
            return True
        started = self._session.relaunch(self._session_name, command, detached=detached)
        if detached:
            if started:
                self._write(f"Started session '{self._session_name}'.")
            else:
                self._write(f"Session '{self._session_name}' is already running.")
            self._write(f"Attach with: tmux attach -t {self._session_name}")
        return False

    def collect_bucket_names(self) -> list[str]:
        """Read bucket names one per line until a blank line or end of input."""

        self._write("Enter bucket names, one per line (blank line to finish):")
        names: list[str] = []
        while True:
            try:
                line = self._read_line("> ")
            except EOFError:
                break
            name = line.strip()
            if not name:
                break
            names.append(name)
        LOGGER.debug("Collected %d bucket name(s)", len(names))
        return names

    def run(self, bucket_names: Sequence[str]) -> RunSummary:
        summary = RunSummary()
        for index, bucket_name in enumerate(bucket_names, start=1):
            self._write(f"[{index}/{len(bucket_names)}] Bucket '{bucket_name}'")
            summary.results.append(self._cleaner.run(bucket_name))
        for line in format_summary(summary):
            self._write(line)
        self._write(COMPLETION_MESSAGE)
        return summary

    def execute(self, command: Sequence[str], *, detached: bool = False) -> int:
        if not self.ensure_durable_context(command, detached=detached):
            return 0
        self.run(self.collect_bucket_names())
        self._session.hold_open(self._session_name)
        return 0
