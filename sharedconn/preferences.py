"""Shared database preference snapshot and its TOML persistence."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

import tomllib

from pydantic import BaseModel

from .models import ConnectionDescriptor
from .security import PasswordCipher

LOG = logging.getLogger(__name__)

PREFERENCES_FILE = Path.home() / ".config" / "sharedconn" / "preferences.toml"
SECTION = "shared_database"

_TEXT_KEYS = (
    "type",
    "host",
    "port",
    "name",
    "user",
    "password",
    "key_store_file",
    "server_timezone",
    "use_ssl",
    "folder",
)
_FLAG_KEYS = ("autosave", "remember_password")


class CredentialSnapshot(Protocol):
    """Read-only view of stored connection settings; every entry may be absent."""

    type: str | None
    host: str | None
    port: str | None
    name: str | None
    user: str | None
    password: str | None
    key_store_file: str | None
    server_timezone: str | None
    use_ssl: str | None


class SharedDatabasePreferences(BaseModel):
    """Persisted settings for the last shared database connection.

    ``password`` holds ciphertext, never the plain password.
    """

    type: str | None = None
    host: str | None = None
    port: str | None = None
    name: str | None = None
    user: str | None = None
    password: str | None = None
    key_store_file: str | None = None
    server_timezone: str | None = None
    use_ssl: str | None = None
    folder: str | None = None
    autosave: bool = False
    remember_password: bool = False

    def with_descriptor(
        self, descriptor: ConnectionDescriptor, cipher: PasswordCipher
    ) -> SharedDatabasePreferences:
        """Return a copy storing the descriptor's settings.

        The password is encrypted against the user name and only kept when
        ``remember_password`` is set.
        """

        password: str | None = None
        if self.remember_password and descriptor.password is not None and descriptor.user:
            password = cipher.encrypt(descriptor.password, descriptor.user)
        return self.model_copy(
            update={
                "type": descriptor.scheme.display_name if descriptor.scheme else None,
                "host": descriptor.host,
                "port": str(descriptor.port) if descriptor.port is not None else None,
                "name": descriptor.database,
                "user": descriptor.user,
                "password": password,
                "key_store_file": descriptor.key_store_path,
                "server_timezone": descriptor.server_timezone,
                "use_ssl": "true" if descriptor.use_tls else "false",
            }
        )

    def without_password(self) -> SharedDatabasePreferences:
        return self.model_copy(update={"password": None})

    def cleared(self) -> SharedDatabasePreferences:
        """Drop every stored entry."""

        return SharedDatabasePreferences()


def load_preferences(path: Path | None = None) -> SharedDatabasePreferences:
    """Load preferences from disk; fall back to an empty snapshot on errors."""

    target = path or PREFERENCES_FILE
    try:
        data = _read_preferences_file(target)
    except FileNotFoundError:
        return SharedDatabasePreferences()
    except (tomllib.TOMLDecodeError, OSError):
        LOG.warning("Ignoring unreadable preferences file", extra={"path": str(target)})
        return SharedDatabasePreferences()
    return SharedDatabasePreferences(**data)


def save_preferences(prefs: SharedDatabasePreferences, path: Path | None = None) -> None:
    """Persist preferences to disk."""

    target = path or PREFERENCES_FILE
    target.parent.mkdir(parents=True, exist_ok=True)
    lines: list[str] = [f"[{SECTION}]"]
    for key in _TEXT_KEYS:
        value = getattr(prefs, key)
        if value is not None:
            lines.append(f"{key} = {_quote(value)}")
    for key in _FLAG_KEYS:
        lines.append(f"{key} = {str(getattr(prefs, key)).lower()}")
    target.write_text("\n".join(lines) + "\n", encoding="utf-8")


def _read_preferences_file(path: Path) -> dict[str, object]:
    with path.open("rb") as handle:
        raw = tomllib.load(handle)
    data: dict[str, object] = {}
    section = raw.get(SECTION)
    if not isinstance(section, dict):
        return data
    for key in _TEXT_KEYS:
        value = section.get(key)
        if isinstance(value, bool):
            data[key] = str(value).lower()
        elif isinstance(value, (str, int)):
            data[key] = str(value)
    for key in _FLAG_KEYS:
        flag = section.get(key)
        if isinstance(flag, bool):
            data[key] = flag
    return data


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    escaped = "".join(
        f"\\u{ord(char):04x}" if ord(char) < 0x20 or ord(char) == 0x7F else char for char in escaped
    )
    return f'"{escaped}"'


__all__ = [
    "CredentialSnapshot",
    "PREFERENCES_FILE",
    "SharedDatabasePreferences",
    "load_preferences",
    "save_preferences",
]
