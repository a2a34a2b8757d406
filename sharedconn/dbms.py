"""Supported DBMS kinds and their connection URL rules."""

from __future__ import annotations

from enum import Enum


class DBMSType(Enum):
    """Database backends a shared library can live in."""

    MYSQL = ("MySQL", "mysql://{host}:{port}/{database}", 3306)
    ORACLE = ("Oracle", "oracle://{host}:{port}/?service_name={database}", 1521)
    POSTGRESQL = ("PostgreSQL", "postgresql://{host}:{port}/{database}", 5432)

    def __init__(self, display_name: str, url_template: str, default_port: int) -> None:
        self.display_name = display_name
        self.url_template = url_template
        self.default_port = default_port

    @property
    def default_use_tls(self) -> bool:
        """TLS policy applied when a snapshot does not say otherwise."""

        return False

    def url_for(self, host: str, port: int, database: str) -> str:
        if ":" in host and not host.startswith("["):
            host = f"[{host}]"
        return self.url_template.format(host=host, port=port, database=database)

    @classmethod
    def from_string(cls, name: str | None) -> DBMSType | None:
        """Parse a stored type name; unknown names yield ``None``."""

        if not name:
            return None
        wanted = name.strip().casefold()
        for member in cls:
            if wanted in (member.display_name.casefold(), member.name.casefold()):
                return member
        return None

    def __str__(self) -> str:
        return self.display_name


__all__ = ["DBMSType"]
