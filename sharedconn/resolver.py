"""Resolve connection descriptors from explicit values or stored preferences."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Protocol

from .dbms import DBMSType
from .models import ConnectionDescriptor, DescriptorBuilder
from .preferences import CredentialSnapshot
from .security import DecryptionError, Decryptor

LOG = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ResolutionDiagnostic:
    """Problem met while resolving; carries no secret material."""

    message: str
    cause: BaseException | None = None


class DiagnosticsSink(Protocol):
    """Receives error-level diagnostics from the resolver."""

    def error(self, message: str, cause: BaseException | None = None) -> None: ...


class LoggingDiagnosticsSink:
    """Sink forwarding diagnostics to a standard library logger."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger if logger is not None else LOG

    def error(self, message: str, cause: BaseException | None = None) -> None:
        self._logger.error(message, exc_info=cause)


@dataclass(frozen=True, slots=True)
class ResolutionResult:
    """Descriptor plus whatever went wrong while building it."""

    descriptor: ConnectionDescriptor
    diagnostics: tuple[ResolutionDiagnostic, ...] = ()

    @property
    def degraded(self) -> bool:
        return bool(self.diagnostics)

    def is_usable(self) -> bool:
        """True when nothing failed and the descriptor is complete."""

        return not self.degraded and self.descriptor.is_valid()


class CredentialResolver:
    """Builds descriptors, decrypting remembered passwords on the way."""

    def __init__(self, decryptor: Decryptor, *, diagnostics: DiagnosticsSink | None = None) -> None:
        self._decryptor = decryptor
        self._diagnostics = diagnostics if diagnostics is not None else LoggingDiagnosticsSink()

    def resolve(
        self,
        scheme: DBMSType | None,
        host: str | None,
        port: int | None,
        database: str | None,
        user: str | None,
        password: str | None,
        use_tls: bool = False,
        server_timezone: str | None = None,
    ) -> ResolutionResult:
        """Wrap explicitly supplied values; nothing can fail here."""

        descriptor = ConnectionDescriptor.build(
            scheme, host, port, database, user, password, use_tls, server_timezone
        )
        return ResolutionResult(descriptor)

    def resolve_from_snapshot(
        self, snapshot: CredentialSnapshot, decryptor: Decryptor | None = None
    ) -> ResolutionResult:
        """Populate a descriptor from stored settings.

        Absent or malformed entries leave their field unset so the descriptor
        reports itself invalid. A password that fails to decrypt is reported
        as a diagnostic and left unset; it is never replaced by a guess.
        ``decryptor`` overrides the resolver's own for this call.
        """

        active = decryptor if decryptor is not None else self._decryptor
        scheme = DBMSType.from_string(snapshot.type)
        builder = (
            DescriptorBuilder()
            .scheme(scheme)
            .host(snapshot.host)
            .port(_parse_port(snapshot.port))
            .database(snapshot.name)
            .key_store_path(snapshot.key_store_file)
            .server_timezone(snapshot.server_timezone)
            .use_tls(_parse_flag(snapshot.use_ssl, scheme))
        )

        diagnostics: list[ResolutionDiagnostic] = []
        if snapshot.user is not None:
            builder.user(snapshot.user)
            if snapshot.password is not None:
                try:
                    builder.password(active.decrypt(snapshot.password, snapshot.user))
                except DecryptionError as exc:
                    diagnostic = ResolutionDiagnostic("Could not decrypt password", exc)
                    self._diagnostics.error(diagnostic.message, exc)
                    diagnostics.append(diagnostic)

        if snapshot.password is None:
            # Some DBMS reject a missing password but accept an empty one.
            builder.password("")

        return ResolutionResult(builder.build(), tuple(diagnostics))


def _parse_port(value: str | None) -> int | None:
    if value is None:
        return None
    stripped = value.strip()
    if not (stripped.isascii() and stripped.isdigit()):
        LOG.debug("Ignoring non-numeric port", extra={"port": value})
        return None
    return int(stripped)


def _parse_flag(value: str | None, scheme: DBMSType | None) -> bool:
    if value is not None:
        normalized = value.strip().lower()
        if normalized in ("true", "false"):
            return normalized == "true"
    return scheme.default_use_tls if scheme is not None else False


__all__ = [
    "CredentialResolver",
    "DiagnosticsSink",
    "LoggingDiagnosticsSink",
    "ResolutionDiagnostic",
    "ResolutionResult",
]
