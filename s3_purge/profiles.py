from __future__ import annotations
"""Saved storage connections with secrets kept in the OS keychain."""
from dataclasses import dataclass
import json
from pathlib import Path

import keyring
from keyring.errors import KeyringError

from .errors import ProfileNotFoundError


@dataclass
class ConnectionProfile:
    """Endpoint and credentials for an S3-compatible provider."""

    name: str
    endpoint_url: str
    access_key: str
    secret_key: str
    region: str = ""


class KeychainStore:
    """Encapsulates OS keychain access for secrets."""

    def __init__(self, service_name: str = "s3purge"):
        self._service_name = service_name

    def get_secret(self, profile_name: str) -> str:
        if not profile_name:
            return ""
        try:
            return keyring.get_password(self._service_name, profile_name) or ""
        except KeyringError:
            return ""

    def set_secret(self, profile_name: str, secret_key: str) -> None:
        if not profile_name or not secret_key:
            return
        try:
            keyring.set_password(self._service_name, profile_name, secret_key)
        except KeyringError:
            return


class ProfileStorage:
    """Read access to the JSON list of connection profiles.

    Plaintext ``secret_key`` entries are moved into the keychain and
    stripped from the file the first time it is loaded.
    """

    def __init__(self, storage_path: str | Path | None = None):
        if storage_path is None:
            storage_path = Path.home() / ".s3purge_connections.json"
        self._path = Path(storage_path)
        self._keychain = KeychainStore()

    def load(self) -> list[ConnectionProfile]:
        if not self._path.exists():
            return []
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return []

        profiles: list[ConnectionProfile] = []
        sanitized: list[dict[str, str]] = []
        saw_plaintext = False
        for entry in data:
            try:
                name = entry["name"]
                endpoint_url = entry.get("endpoint_url", "")
                access_key = entry["access_key"]
            except (KeyError, TypeError):
                continue
            region = entry.get("region", "")
            secret_key = entry.get("secret_key", "")
            if secret_key:
                saw_plaintext = True
                self._keychain.set_secret(name, secret_key)
            else:
                secret_key = self._keychain.get_secret(name)
            profiles.append(
                ConnectionProfile(
                    name=name,
                    endpoint_url=endpoint_url,
                    access_key=access_key,
                    secret_key=secret_key,
                    region=region,
                )
            )
            record = {"name": name, "endpoint_url": endpoint_url, "access_key": access_key}
            if region:
                record["region"] = region
            sanitized.append(record)
        if saw_plaintext:
            self._write_data(sanitized)
        return profiles

    def find(self, name: str) -> ConnectionProfile:
        for profile in self.load():
            if profile.name == name:
                return profile
        raise ProfileNotFoundError(name)

    def _write_data(self, data: list[dict[str, str]]) -> None:
        try:
            self._path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        except OSError:
            return
