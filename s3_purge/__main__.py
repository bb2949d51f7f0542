"""Command line entry point for the bucket purge tool."""
from __future__ import annotations

import argparse
import functools
import io
import logging
import os
import sys
import tempfile
from typing import Callable, Optional, Sequence, TextIO

from .cleanup import BucketCleaner
from .errors import EXIT_SESSION_BUSY
from .models import MissingBucketPolicy
from .orchestrator import RunOrchestrator
from .profiles import ProfileStorage
from .prompts import confirm
from .services import S3PurgeService
from .session import InlineSession, TmuxSession, require_tools
from .settings import AppSettings, SettingsStorage
from .trap import ErrorTrap
from .ui_utils import package_version

LOGGER = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
QUIET_LOGGERS = ("boto3", "botocore", "urllib3", "s3transfer")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="s3purge",
        description=(
            "Interactively delete S3 buckets: folders, root objects, versions, "
            "delete markers and finally the bucket itself. Bucket names are read "
            "one per line from standard input."
        ),
    )
    parser.add_argument("--session-name", help="Name of the persistent tmux session")
    parser.add_argument(
        "--missing-bucket",
        choices=[policy.value for policy in MissingBucketPolicy],
        help="Skip missing buckets or treat them as a fatal error",
    )
    parser.add_argument("--preview-limit", type=int, help="Number of root objects to preview")
    parser.add_argument("--profile", help="Saved connection profile to use")
    parser.add_argument("--endpoint-url", help="Custom S3-compatible endpoint")
    parser.add_argument("--region", help="Region for the S3 client")
    parser.add_argument("--input-file", help="Read bucket names and answers from this file")
    parser.add_argument("--remove-input-file", action="store_true", help=argparse.SUPPRESS)
    parser.add_argument("--no-session", action="store_true", help="Run without a tmux session")
    parser.add_argument("--log-file", help="Also write log records to this file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {package_version()}")
    return parser


def configure_logging(*, verbose: bool = False, log_file: str = "") -> None:
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def build_service(args: argparse.Namespace, profiles: ProfileStorage | None = None) -> S3PurgeService:
    endpoint_url = args.endpoint_url
    region = args.region
    access_key = secret_key = None
    if args.profile:
        profile = (profiles or ProfileStorage()).find(args.profile)
        endpoint_url = endpoint_url or profile.endpoint_url or None
        region = region or profile.region or None
        access_key = profile.access_key
        secret_key = profile.secret_key
    return S3PurgeService(
        endpoint_url=endpoint_url,
        access_key=access_key,
        secret_key=secret_key,
        region_name=region,
    )


def line_reader(stream: TextIO, write: Callable[[str], None]) -> Callable[[str], str]:
    """Return an ``input``-like callable reading from ``stream`` and echoing answers."""

    def read_line(prompt: str) -> str:
        line = stream.readline()
        if not line:
            raise EOFError
        answer = line.rstrip("\r\n")
        write(f"{prompt}{answer}")
        return answer

    return read_line


def load_input_file(path: str, *, remove: bool = False) -> TextIO:
    with open(path, encoding="utf-8") as handle:
        content = handle.read()
    if remove:
        os.unlink(path)
    return io.StringIO(content)


def stash_stdin(stdin: TextIO) -> str:
    """Copy piped standard input to a file the relaunched process can read."""

    with tempfile.NamedTemporaryFile(
        "w", encoding="utf-8", prefix="s3purge-", suffix=".input", delete=False
    ) as handle:
        handle.write(stdin.read())
    return handle.name


def relaunch_command(argv: Sequence[str], stashed_input: Optional[str] = None) -> list[str]:
    command = [sys.executable, "-m", "s3_purge", *argv]
    if stashed_input:
        command.extend(["--input-file", stashed_input, "--remove-input-file"])
    return command


def _run(
    args: argparse.Namespace,
    argv: Sequence[str],
    settings: AppSettings,
    session,
    session_name: str,
    write: Callable[[str], None],
) -> int:
    require_tools(session.required_tools)
    service = build_service(args)

    if args.input_file:
        read_line = line_reader(load_input_file(args.input_file, remove=args.remove_input_file), write)
    else:
        read_line = input

    cleaner = BucketCleaner(
        service,
        functools.partial(confirm, read_line=read_line, write=write),
        write=write,
        missing_bucket_policy=MissingBucketPolicy(args.missing_bucket or settings.missing_bucket_policy),
        preview_limit=args.preview_limit or settings.preview_limit,
    )
    orchestrator = RunOrchestrator(cleaner, session, session_name, read_line=read_line, write=write)

    if session.is_inside():
        return orchestrator.execute(argv)

    interactive = sys.stdin.isatty() and sys.stdout.isatty()
    if not interactive and session.has_session(session_name):
        write(
            f"Session '{session_name}' is already running; no new run was started. "
            f"Attach with: tmux attach -t {session_name}"
        )
        return EXIT_SESSION_BUSY
    stashed = None
    if not sys.stdin.isatty() and not args.input_file:
        stashed = stash_stdin(sys.stdin)
    return orchestrator.execute(relaunch_command(argv, stashed), detached=not interactive)


def main(argv: Sequence[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    args = build_parser().parse_args(argv)
    settings = SettingsStorage().load()
    configure_logging(verbose=args.verbose, log_file=args.log_file or settings.log_file)

    session_name = args.session_name or settings.session_name
    session = InlineSession() if args.no_session else TmuxSession()
    write = print
    trap = ErrorTrap(session, session_name, write=write)
    LOGGER.debug("Starting s3purge %s (session '%s')", package_version(), session_name)
    return trap.run(lambda: _run(args, argv, settings, session, session_name, write))


if __name__ == "__main__":
    sys.exit(main())
