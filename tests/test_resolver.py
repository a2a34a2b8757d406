"""Tests for resolving descriptors from explicit values and snapshots."""

from __future__ import annotations

import logging

import pytest

from sharedconn.dbms import DBMSType
from sharedconn.preferences import SharedDatabasePreferences
from sharedconn.resolver import CredentialResolver, LoggingDiagnosticsSink
from sharedconn.security import DecryptionError, PasswordCipher


class _RecordingSink:
    def __init__(self) -> None:
        self.records: list[tuple[str, BaseException | None]] = []

    def error(self, message: str, cause: BaseException | None = None) -> None:
        self.records.append((message, cause))


class _FailingDecryptor:
    def decrypt(self, ciphertext: str | bytes, context: str) -> str:
        raise DecryptionError("boom")


def _snapshot(**overrides: object) -> SharedDatabasePreferences:
    values: dict[str, object] = {
        "type": "PostgreSQL",
        "host": "db.example.org",
        "port": "5432",
        "name": "refs",
        "user": "alice",
        "server_timezone": "UTC",
    }
    values.update(overrides)
    return SharedDatabasePreferences(**values)


def test_resolves_encrypted_password() -> None:
    cipher = PasswordCipher()
    resolver = CredentialResolver(cipher, diagnostics=_RecordingSink())

    result = resolver.resolve_from_snapshot(_snapshot(password=cipher.encrypt("hunter2", "alice")))

    descriptor = result.descriptor
    assert descriptor.password == "hunter2"
    assert descriptor.scheme is DBMSType.POSTGRESQL
    assert descriptor.port == 5432
    assert descriptor.database == "refs"
    assert descriptor.is_valid() is True
    assert result.degraded is False
    assert result.is_usable() is True


def test_decryption_failure_is_reported_once() -> None:
    sink = _RecordingSink()
    resolver = CredentialResolver(PasswordCipher(), diagnostics=sink)

    result = resolver.resolve_from_snapshot(_snapshot(password="%%% not ciphertext %%%"))

    assert result.descriptor.password is None
    assert result.descriptor.user == "alice"
    assert result.descriptor.is_valid() is False
    assert result.degraded is True
    assert result.is_usable() is False
    assert len(sink.records) == 1
    message, cause = sink.records[0]
    assert message == "Could not decrypt password"
    assert isinstance(cause, DecryptionError)
    assert result.diagnostics[0].cause is cause


def test_default_sink_logs_decryption_failure(caplog: pytest.LogCaptureFixture) -> None:
    resolver = CredentialResolver(_FailingDecryptor())

    with caplog.at_level(logging.ERROR, logger="sharedconn.resolver"):
        result = resolver.resolve_from_snapshot(_snapshot(password="anything"))

    errors = [record for record in caplog.records if record.levelno == logging.ERROR]
    assert len(errors) == 1
    assert errors[0].exc_info is not None
    assert "anything" not in caplog.text
    assert result.descriptor.password is None


def test_custom_logger_sink(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("tests.sharedconn.sink")
    resolver = CredentialResolver(_FailingDecryptor(), diagnostics=LoggingDiagnosticsSink(logger))

    with caplog.at_level(logging.ERROR, logger="tests.sharedconn.sink"):
        resolver.resolve_from_snapshot(_snapshot(password="anything"))

    assert [record.name for record in caplog.records] == ["tests.sharedconn.sink"]


def test_per_call_decryptor_overrides_default() -> None:
    cipher = PasswordCipher()
    resolver = CredentialResolver(_FailingDecryptor(), diagnostics=_RecordingSink())

    result = resolver.resolve_from_snapshot(_snapshot(password=cipher.encrypt("pw", "alice")), cipher)

    assert result.descriptor.password == "pw"


def test_absent_password_becomes_empty_string() -> None:
    result = CredentialResolver(_FailingDecryptor()).resolve_from_snapshot(_snapshot())

    assert result.descriptor.password == ""
    assert result.descriptor.is_valid() is True
    assert result.degraded is False


def test_password_without_user_stays_unset() -> None:
    sink = _RecordingSink()
    result = CredentialResolver(_FailingDecryptor(), diagnostics=sink).resolve_from_snapshot(
        _snapshot(user=None, password="cipher")
    )

    assert result.descriptor.user is None
    assert result.descriptor.password is None
    assert sink.records == []


def test_unknown_type_leaves_scheme_unset() -> None:
    result = CredentialResolver(PasswordCipher()).resolve_from_snapshot(_snapshot(type="sqlite"))

    assert result.descriptor.scheme is None
    assert result.descriptor.is_valid() is False


def test_non_numeric_port_leaves_port_unset() -> None:
    result = CredentialResolver(PasswordCipher()).resolve_from_snapshot(_snapshot(port="fifty"))

    assert result.descriptor.port is None
    assert result.descriptor.is_valid() is False
    assert result.degraded is False


def test_partial_snapshot_is_not_defaulted() -> None:
    result = CredentialResolver(PasswordCipher()).resolve_from_snapshot(SharedDatabasePreferences(host="localhost"))

    descriptor = result.descriptor
    assert descriptor.host == "localhost"
    assert descriptor.port is None
    assert descriptor.database is None
    assert descriptor.user is None
    assert descriptor.password == ""
    assert descriptor.is_valid() is False


@pytest.mark.parametrize(
    ("use_ssl", "expected"),
    [("true", True), ("TRUE", True), ("false", False), (None, False), ("maybe", False)],
)
def test_use_ssl_parsing(use_ssl: str | None, expected: bool) -> None:
    result = CredentialResolver(PasswordCipher()).resolve_from_snapshot(_snapshot(use_ssl=use_ssl))

    assert result.descriptor.use_tls is expected


def test_snapshot_copies_informational_fields() -> None:
    result = CredentialResolver(PasswordCipher()).resolve_from_snapshot(
        _snapshot(key_store_file="/keys/a.jks", server_timezone="Europe/Berlin")
    )

    assert result.descriptor.key_store_path == "/keys/a.jks"
    assert result.descriptor.server_timezone == "Europe/Berlin"


def test_resolve_wraps_explicit_values() -> None:
    result = CredentialResolver(PasswordCipher()).resolve(
        DBMSType.MYSQL, "localhost", 3306, "refs", "root", "", use_tls=True
    )

    assert result.is_usable() is True
    assert result.descriptor.as_connection_properties() == {"user": "root", "password": "", "ssl": "true"}


def test_preferences_round_trip_through_resolver() -> None:
    cipher = PasswordCipher()
    result = CredentialResolver(cipher).resolve(
        DBMSType.POSTGRESQL, "db.example.org", 5432, "refs", "alice", "pw", server_timezone="UTC"
    )
    stored = SharedDatabasePreferences(remember_password=True).with_descriptor(result.descriptor, cipher)

    restored = CredentialResolver(cipher).resolve_from_snapshot(stored)

    assert restored.descriptor == result.descriptor
    assert restored.descriptor.password == "pw"


def test_tampered_password_fails_closed() -> None:
    cipher = PasswordCipher()
    sink = _RecordingSink()
    token = cipher.encrypt("hunter2", "alice")
    tampered = token[:20] + ("A" if token[20] != "A" else "B") + token[21:]

    result = CredentialResolver(cipher, diagnostics=sink).resolve_from_snapshot(_snapshot(password=tampered))

    assert result.descriptor.password is None
    assert len(sink.records) == 1
    assert result.is_usable() is False


@pytest.mark.parametrize("port", ["5_432", "５４３２", "+5432", "-1", ""])
def test_non_ascii_digit_ports_are_rejected(port: str) -> None:
    result = CredentialResolver(PasswordCipher()).resolve_from_snapshot(_snapshot(port=port))

    assert result.descriptor.port is None


def test_port_surrounding_whitespace_is_ignored() -> None:
    result = CredentialResolver(PasswordCipher()).resolve_from_snapshot(_snapshot(port=" 5432 "))

    assert result.descriptor.port == 5432


class _FalsySink(_RecordingSink):
    def __len__(self) -> int:
        return 0


class _FalsyDecryptor:
    def __bool__(self) -> bool:
        return False

    def decrypt(self, ciphertext: str | bytes, context: str) -> str:
        return "from-falsy"


def test_falsy_collaborators_are_still_used() -> None:
    sink = _FalsySink()
    resolver = CredentialResolver(_FailingDecryptor(), diagnostics=sink)

    resolver.resolve_from_snapshot(_snapshot(password="cipher"))
    result = resolver.resolve_from_snapshot(_snapshot(password="cipher"), _FalsyDecryptor())

    assert len(sink.records) == 1
    assert result.descriptor.password == "from-falsy"
