"""Connection descriptor value shared by the resolver and its callers."""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from .dbms import DBMSType


class InvalidStateError(RuntimeError):
    """Raised when a descriptor lacks the fields an operation needs."""


@dataclass(frozen=True, slots=True, eq=False)
class ConnectionDescriptor:
    """Everything needed to address a shared database.

    Equality and hashing ignore the password and key store path, and compare
    hosts case-insensitively, so descriptors can be used as cache keys without
    the secret becoming part of their identity.
    """

    scheme: DBMSType | None = None
    host: str | None = None
    port: int | None = None
    database: str | None = None
    user: str | None = None
    password: str | None = field(default=None, repr=False)
    use_tls: bool = False
    server_timezone: str | None = None
    # Kept for a later login, not used to connect.
    key_store_path: str | None = None

    @classmethod
    def build(
        cls,
        scheme: DBMSType | None,
        host: str | None,
        port: int | None,
        database: str | None,
        user: str | None,
        password: str | None,
        use_tls: bool = False,
        server_timezone: str | None = None,
        key_store_path: str | None = None,
    ) -> ConnectionDescriptor:
        """Create a descriptor from explicit values without validating them."""

        return cls(
            scheme=scheme,
            host=host,
            port=port,
            database=database,
            user=user,
            password=password,
            use_tls=use_tls,
            server_timezone=server_timezone,
            key_store_path=key_store_path,
        )

    def is_valid(self) -> bool:
        """Return True when every field required to connect is present.

        An empty password counts as present; some backends insist on one.
        """

        return (
            self.scheme is not None
            and bool(self.host)
            and self.port is not None
            and bool(self.database)
            and bool(self.user)
            and self.password is not None
        )

    def connection_url(self) -> str:
        if self.scheme is None:
            raise InvalidStateError("Cannot build a connection URL without a DBMS type")
        if not self.host or self.port is None or not self.database:
            raise InvalidStateError(
                f"Cannot build a {self.scheme} connection URL without host, port and database"
            )
        return self.scheme.url_for(self.host, self.port, self.database)

    def as_connection_properties(self) -> dict[str, str]:
        """Return the credential bundle handed to the connection layer.

        Contains the secret; never log the result.
        """

        if self.user is None or self.password is None:
            raise InvalidStateError("Connection properties need both user and password")
        props = {"user": self.user, "password": self.password}
        if self.server_timezone is not None:
            props["serverTimezone"] = self.server_timezone
        if self.use_tls:
            props["ssl"] = "true"
        return props

    def with_password(self, password: str | None) -> ConnectionDescriptor:
        return replace(self, password=password)

    def _identity(self) -> tuple[object, ...]:
        host = self.host.casefold() if self.host is not None else None
        return (
            self.scheme,
            host,
            self.port,
            self.database,
            self.user,
            self.use_tls,
            self.server_timezone,
        )

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, ConnectionDescriptor):
            return NotImplemented
        return self._identity() == other._identity()

    def __hash__(self) -> int:
        return hash(self._identity())


class DescriptorBuilder:
    """Mutable staging area that yields a single immutable descriptor."""

    def __init__(self) -> None:
        self._values: dict[str, object] = {}

    def scheme(self, scheme: DBMSType | None) -> DescriptorBuilder:
        return self._set("scheme", scheme)

    def host(self, host: str | None) -> DescriptorBuilder:
        return self._set("host", host)

    def port(self, port: int | None) -> DescriptorBuilder:
        return self._set("port", port)

    def database(self, database: str | None) -> DescriptorBuilder:
        return self._set("database", database)

    def user(self, user: str | None) -> DescriptorBuilder:
        return self._set("user", user)

    def password(self, password: str | None) -> DescriptorBuilder:
        return self._set("password", password)

    def use_tls(self, enabled: bool) -> DescriptorBuilder:
        return self._set("use_tls", enabled)

    def server_timezone(self, server_timezone: str | None) -> DescriptorBuilder:
        return self._set("server_timezone", server_timezone)

    def key_store_path(self, path: str | None) -> DescriptorBuilder:
        return self._set("key_store_path", path)

    def build(self) -> ConnectionDescriptor:
        return ConnectionDescriptor(**self._values)  # type: ignore[arg-type]

    def _set(self, name: str, value: object) -> DescriptorBuilder:
        self._values[name] = value
        return self


__all__ = ["ConnectionDescriptor", "DescriptorBuilder", "InvalidStateError"]
