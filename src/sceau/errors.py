"""Error taxonomy for signing and verification.

Configuration and temporal errors abort an operation immediately.
Per-file manifest mismatches are never raised: they are returned as
verification results (see ``sceau.manifest``).
"""

from __future__ import annotations


class SceauError(Exception):
    """Base class for all sceau errors."""
    pass


class ConfigurationError(SceauError):
    """Malformed key, URL, schema or other input, detected before any I/O."""

    def __init__(self, message: str, errors: list[str] | None = None):
        super().__init__(message)
        self.errors = errors or []


class ValidationError(ConfigurationError):
    """Signing input failed validation."""
    pass


class SecurityError(ConfigurationError):
    """Unsafe path or resource limit exceeded."""
    pass


class TemporalError(SceauError):
    """Document timestamp is later than the verification time."""
    pass


class KeyMismatchError(SceauError):
    """Pinned public key differs from the key embedded in the document."""

    def __init__(self, expected: str, embedded: str):
        super().__init__(
            "The package was signed using a different private key "
            "than the one you are expecting"
        )
        self.expected = expected
        self.embedded = embedded
