"""Error taxonomy shared by the l10nsync components."""
from __future__ import annotations

__all__ = [
    "AuthError",
    "L10nSyncError",
    "ParseError",
    "ProviderError",
    "TransportError",
    "ValidationError",
]


class L10nSyncError(RuntimeError):
    """Base error raised by l10nsync operations."""


class ParseError(L10nSyncError):
    """Raised when the local localization file is missing or malformed."""


class TransportError(L10nSyncError):
    """Raised when a remote service cannot be reached or rejects a request."""


class AuthError(L10nSyncError):
    """Raised when OAuth credentials are missing, invalid or revoked."""


class ProviderError(L10nSyncError):
    """Raised when the translation provider rejects a call or returns unusable content."""


class ValidationError(L10nSyncError):
    """Raised when a required configuration value is missing or unresolvable."""
