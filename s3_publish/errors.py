"""Error types raised by the publishing helper."""

from __future__ import annotations

__all__ = ["ConfigurationError", "PublishError", "UploadError"]


class PublishError(RuntimeError):
    """Base class for failures raised by the publishing helper."""


class ConfigurationError(PublishError):
    """Raised when the publisher configuration is missing or invalid."""


class UploadError(PublishError):
    """Raised by storage clients when a single object upload fails."""
