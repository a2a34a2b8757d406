"""Shared database connection descriptors and credential resolution."""

from __future__ import annotations

from .dbms import DBMSType
from .models import ConnectionDescriptor, DescriptorBuilder, InvalidStateError
from .preferences import (
    CredentialSnapshot,
    SharedDatabasePreferences,
    load_preferences,
    save_preferences,
)
from .resolver import (
    CredentialResolver,
    DiagnosticsSink,
    LoggingDiagnosticsSink,
    ResolutionDiagnostic,
    ResolutionResult,
)
from .security import DecryptionError, Decryptor, PasswordCipher

__all__ = [
    "ConnectionDescriptor",
    "CredentialResolver",
    "CredentialSnapshot",
    "DBMSType",
    "DecryptionError",
    "Decryptor",
    "DescriptorBuilder",
    "DiagnosticsSink",
    "InvalidStateError",
    "LoggingDiagnosticsSink",
    "PasswordCipher",
    "ResolutionDiagnostic",
    "ResolutionResult",
    "SharedDatabasePreferences",
    "load_preferences",
    "save_preferences",
]
