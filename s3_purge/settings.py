from __future__ import annotations
"""Persistent defaults for purge runs."""

from dataclasses import dataclass
import json
import os
from pathlib import Path
from typing import Mapping

from .models import MissingBucketPolicy
from .session import DEFAULT_SESSION_NAME
from .ui_utils import DEFAULT_PREVIEW_LIMIT

SESSION_ENV_VAR = "S3PURGE_SESSION"


@dataclass
class AppSettings:
    """Simple container for persistent run settings."""

    session_name: str = DEFAULT_SESSION_NAME
    missing_bucket_policy: str = MissingBucketPolicy.SKIP.value
    preview_limit: int = DEFAULT_PREVIEW_LIMIT
    log_file: str = ""


def _coerce_positive_int(value: object, default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def _coerce_policy(value: object) -> str:
    try:
        return MissingBucketPolicy(value).value
    except ValueError:
        return AppSettings.missing_bucket_policy


class SettingsStorage:
    """Reads :class:`AppSettings` from a JSON file, falling back to defaults."""

    def __init__(self, storage_path: str | Path | None = None):
        if storage_path is None:
            storage_path = Path.home() / ".s3purge_settings.json"
        self._path = Path(storage_path)

    def load(self, environ: Mapping[str, str] | None = None) -> AppSettings:
        environ = os.environ if environ is None else environ
        settings = self._load_file()
        session_name = (environ.get(SESSION_ENV_VAR) or "").strip()
        if session_name:
            settings.session_name = session_name
        return settings

    def _load_file(self) -> AppSettings:
        if not self._path.exists():
            return AppSettings()
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return AppSettings()
        if not isinstance(data, dict):
            return AppSettings()
        session_name = data.get("session_name")
        log_file = data.get("log_file")
        return AppSettings(
            session_name=session_name.strip()
            if isinstance(session_name, str) and session_name.strip()
            else AppSettings.session_name,
            missing_bucket_policy=_coerce_policy(data.get("missing_bucket_policy")),
            preview_limit=_coerce_positive_int(data.get("preview_limit"), AppSettings.preview_limit),
            log_file=log_file if isinstance(log_file, str) else "",
        )
