"""Exception types raised across credaudit."""

from __future__ import annotations


class CredAuditError(Exception):
    """Base class for credaudit errors."""


class ConfigurationError(CredAuditError):
    """Required configuration is missing or invalid (e.g. no API key)."""


class PersistenceError(CredAuditError):
    """A write to the record store failed and was rolled back."""
