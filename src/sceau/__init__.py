"""sceau - signed provenance documents for published packages.

Signs a set of files with Ed25519ph multipart signatures and verifies them
against the files on disk, reporting every drifted file.
"""

from __future__ import annotations

__version__ = "1.0.0"

from sceau.core import (
    SceauVerificationFailure,
    SceauVerificationResult,
    SceauVerificationSuccess,
    sign,
    verify,
)
from sceau.document import SCHEMA_V1, Sceau, read_sceau, write_sceau
from sceau.errors import (
    ConfigurationError,
    KeyMismatchError,
    SceauError,
    SecurityError,
    TemporalError,
    ValidationError,
)
from sceau.files import list_package_files
from sceau.keys import KeyPair, generate_key_pair
from sceau.manifest import (
    ManifestEntry,
    ManifestEntryVerificationFailure,
    ManifestEntryVerificationResult,
    ManifestEntryVerificationSuccess,
    MismatchKind,
)

__all__ = [
    "__version__",
    "SCHEMA_V1",
    "ConfigurationError",
    "KeyMismatchError",
    "KeyPair",
    "ManifestEntry",
    "ManifestEntryVerificationFailure",
    "ManifestEntryVerificationResult",
    "ManifestEntryVerificationSuccess",
    "MismatchKind",
    "Sceau",
    "SceauError",
    "SceauVerificationFailure",
    "SceauVerificationResult",
    "SceauVerificationSuccess",
    "SecurityError",
    "TemporalError",
    "ValidationError",
    "generate_key_pair",
    "list_package_files",
    "read_sceau",
    "sign",
    "verify",
    "write_sceau",
]
