"""Error taxonomy for the storage layer.

Each class also derives from the closest builtin so callers that only know
about ``ValueError`` / ``OSError`` / ``EOFError`` still catch them.
"""

from __future__ import annotations


class StoreError(Exception):
    pass


class ConfigurationError(StoreError, ValueError):
    pass


class InvalidKey(ConfigurationError):
    """Encryption key rejected by the cipher (wrong type or length)."""


class InvalidPath(ConfigurationError):
    """Namespace id or key would resolve outside the store root."""


class NotFound(StoreError, FileNotFoundError):
    pass


class IOFailure(StoreError, OSError):
    pass


class TruncatedStream(StoreError, EOFError):
    """Stream ended before a full IV could be read."""
