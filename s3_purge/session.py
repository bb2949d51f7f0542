from __future__ import annotations
"""Persistent terminal session handling backed by tmux."""
import logging
import os
import shlex
import shutil
import subprocess
from typing import Callable, Iterable, Mapping, Optional, Sequence

from .errors import ToolingMissingError

LOGGER = logging.getLogger(__name__)

DEFAULT_SESSION_NAME = "s3-purge"
FORWARDED_ENV_PREFIXES = ("AWS_", "S3PURGE_")

Runner = Callable[..., subprocess.CompletedProcess]


def require_tools(tools: Iterable[str], *, which: Callable[[str], Optional[str]] = shutil.which) -> None:
    """Raise :class:`ToolingMissingError` unless every tool is on ``PATH``."""

    missing = [tool for tool in tools if not which(tool)]
    if missing:
        raise ToolingMissingError(missing)


class TmuxSession:
    """Runs the purge inside a named tmux session that survives disconnects."""

    def __init__(
        self,
        executable: str = "tmux",
        *,
        runner: Runner | None = None,
        environ: Mapping[str, str] | None = None,
        prompt: Callable[[str], str] | None = None,
    ):
        self._executable = executable
        self._runner = runner or subprocess.run
        self._environ = os.environ if environ is None else environ
        self._prompt = prompt or input

    @property
    def required_tools(self) -> list[str]:
        return [self._executable]

    def is_inside(self) -> bool:
        return bool(self._environ.get("TMUX"))

    def has_session(self, name: str) -> bool:
        result = self._runner(
            [self._executable, "has-session", "-t", name],
            capture_output=True,
            check=False,
        )
        return result.returncode == 0

    def relaunch(self, name: str, command: Sequence[str], *, detached: bool = False) -> bool:
        """Start ``command`` in session ``name``.

        Returns ``False`` when the session was already running; in that case
        an attached invocation joins it instead of starting a second run.
        """
        if self.has_session(name):
            LOGGER.info("Session '%s' is already running", name)
            if not detached:
                self.attach(name)
            return False

        args = [self._executable, "new-session"]
        if detached:
            args.append("-d")
        args.extend(["-s", name, "-c", os.getcwd()])
        for key, value in sorted(self._environ.items()):
            if key.startswith(FORWARDED_ENV_PREFIXES):
                args.extend(["-e", f"{key}={value}"])
        args.append(shlex.join(command))
        LOGGER.debug("Starting session '%s': %s", name, command)
        self._runner(args, check=False)
        return True

    def attach(self, name: str) -> int:
        result = self._runner([self._executable, "attach-session", "-t", name], check=False)
        return result.returncode

    def reattach(self, name: str) -> int:
        """Give the operator a live view of session ``name``.

        Inside the session the pane is kept open with an interactive shell;
        outside it the terminal is attached to the session if it still exists.
        """
        if self.is_inside():
            shell = self._environ.get("SHELL") or "/bin/sh"
            LOGGER.debug("Opening inspection shell %s in session '%s'", shell, name)
            return self._runner([shell], check=False).returncode
        if self.has_session(name):
            return self.attach(name)
        LOGGER.debug("Session '%s' is not running, nothing to reattach", name)
        return 0

    def hold_open(self, name: str) -> None:
        """Keep the session pane on screen until the operator dismisses it."""

        if not self.is_inside():
            return
        try:
            self._prompt(f"Press Enter to close session '{name}'. ")
        except EOFError:
            return


class InlineSession:
    """Session backend for runs that stay in the invoking terminal."""

    required_tools: list[str] = []

    def is_inside(self) -> bool:
        return True

    def has_session(self, name: str) -> bool:
        return False

    def relaunch(self, name: str, command: Sequence[str], *, detached: bool = False) -> bool:
        return False

    def reattach(self, name: str) -> int:
        return 0

    def hold_open(self, name: str) -> None:
        return None
