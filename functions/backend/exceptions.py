"""
Exception classes for content loading and syncing.

Read-path failures are absorbed by the sync store; write-path failures are
raised to the caller.
"""

from __future__ import annotations


class ContentSyncError(Exception):
    """Base exception for all content sync errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ConfigurationError(ContentSyncError):
    """No document identifier is bound for a content domain."""


class SourceUnavailableError(ContentSyncError):
    """The remote document source is not reachable or not configured."""


class TransportError(ContentSyncError):
    """Network or authentication failure while talking to the source."""


class ParseError(ContentSyncError):
    """Document content is not valid JSON or not in the domain's shape."""


class ContentValidationError(ContentSyncError):
    """Content submitted by an administrator failed validation."""


class UnknownDomainError(ContentSyncError):
    """Raised when a content domain name is not registered."""
