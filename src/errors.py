"""
Defines custom exceptions so callers can tell transport, channel, security and
installation failures apart.
"""
from typing import Optional


class PearlinkError(Exception):
    """Base exception for all application-specific errors."""


class TransportError(PearlinkError):
    """Raised when a remote request fails or answers with an error status."""

    def __init__(self, url: str, status_code: Optional[int] = None, reason: str = ""):
        self.url = url
        self.status_code = status_code
        self.reason = reason
        detail = f"HTTP {status_code}" if status_code else "connection error"
        if reason:
            detail = f"{detail}: {reason}"
        super().__init__(f"Request to {url} failed ({detail})")


class NotFoundError(TransportError):
    """Raised for a 404 answer where the caller has no fallback."""


class ChannelError(PearlinkError):
    """Raised when a PEAR channel answers with empty or unparseable content."""


class DescriptorSecurityError(PearlinkError):
    """Raised when a dependency descriptor contains serialized objects."""


class PackageValidationError(PearlinkError, ValueError):
    """Raised when package data is rejected by the loader."""


class InvalidStateError(PearlinkError):
    """Raised when an operation needs a package the repository does not hold."""


class ConfigurationError(PearlinkError):
    """Raised for issues related to configuration loading or validation."""
