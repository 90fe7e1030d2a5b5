"""Per-file manifest entries: hashing, signing and verification."""

from __future__ import annotations

import hashlib
import hmac
import logging
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Iterable, TypeVar

from sceau.codec import encode_u32_le
from sceau.errors import SecurityError, ValidationError
from sceau.keys import SIGNATURE_BYTES
from sceau.security import SecurityLimits, resolve_package_file
from sceau.signature import multipart_signature, verify_multipart_signature

logger = logging.getLogger(__name__)

HASH_BYTES = 64
DEFAULT_WORKERS = 8

T = TypeVar("T")
R = TypeVar("R")


def content_hash(contents: bytes) -> bytes:
    """BLAKE2b-512 of the contents (no key, default parameters)."""
    return hashlib.blake2b(contents, digest_size=HASH_BYTES).digest()


def entry_items(path: str, file_hash: bytes, size_bytes: int) -> tuple[bytes, bytes, bytes]:
    """Items covered by an entry signature. The order is part of the format."""
    return (path.encode("utf-8"), file_hash, encode_u32_le(size_bytes))


def manifest_sort_key(path: str) -> bytes:
    """Sort key for manifest paths: UTF-16 code unit order.

    Differs from plain ``str`` ordering when a path mixes characters above
    U+FFFF with characters in U+E000..U+FFFF.
    """
    return path.encode("utf-16-be", "surrogatepass")


@dataclass(frozen=True)
class ManifestEntry:
    """Signed record of a single file."""

    path: str
    hash: str
    size_bytes: int
    signature: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "path": self.path,
            "hash": self.hash,
            "sizeBytes": self.size_bytes,
            "signature": self.signature,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ManifestEntry:
        """Create from dictionary."""
        return cls(
            path=data["path"],
            hash=data["hash"],
            size_bytes=data["sizeBytes"],
            signature=data["signature"],
        )


class MismatchKind(Enum):
    """What differed between a manifest entry and the file on disk."""

    PRESENCE = "presence"
    SIZE = "size"
    HASH = "hash"
    SIGNATURE = "signature"


@dataclass(frozen=True)
class ManifestEntryVerificationSuccess:
    path: str

    outcome = "success"
    ok = True

    def to_dict(self) -> dict[str, Any]:
        return {"outcome": self.outcome, "path": self.path}


@dataclass(frozen=True)
class ManifestEntryVerificationFailure:
    """A manifest entry that does not match the file on disk.

    ``expected`` and ``received`` depend on ``mismatch``:
    - presence: both None
    - size: recorded and actual byte counts
    - hash: recorded and actual hex hashes
    - signature: recorded signature hex, None
    """

    path: str
    mismatch: MismatchKind
    message: str
    expected: str | int | None = None
    received: str | int | None = None

    outcome = "failure"
    ok = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "outcome": self.outcome,
            "path": self.path,
            "mismatchOn": self.mismatch.value,
            "message": self.message,
            "expected": self.expected,
            "received": self.received,
        }


ManifestEntryVerificationResult = ManifestEntryVerificationSuccess | ManifestEntryVerificationFailure


def _fan_out(func: Callable[[T], R], items: Iterable[T], workers: int | None) -> list[R]:
    """Apply func to every item, preserving input order in the result."""
    items = list(items)
    workers = DEFAULT_WORKERS if workers is None else workers
    if workers <= 1 or len(items) <= 1:
        return [func(item) for item in items]
    with ThreadPoolExecutor(max_workers=min(workers, len(items))) as executor:
        return list(executor.map(func, items))


def sign_manifest_entry(
    package_dir: Path,
    relative_path: str,
    private_key: bytes,
    limits: SecurityLimits | None = None,
) -> ManifestEntry:
    """Hash and sign one file.

    Raises:
        OSError: If the file cannot be read
        SecurityError: If the path escapes package_dir or the file is too large
    """
    limits = limits or SecurityLimits()
    file_path = resolve_package_file(package_dir, relative_path)
    size_on_disk = file_path.stat().st_size
    if size_on_disk > limits.max_file_size:
        raise SecurityError(
            f"File too large: {relative_path} ({size_on_disk} bytes > {limits.max_file_size})"
        )

    contents = file_path.read_bytes()
    file_hash = content_hash(contents)
    signature = multipart_signature(
        private_key, *entry_items(relative_path, file_hash, len(contents))
    )
    logger.debug("Signed %s (%d bytes)", relative_path, len(contents))
    return ManifestEntry(
        path=relative_path,
        hash=file_hash.hex(),
        size_bytes=len(contents),
        signature=signature.hex(),
    )


def verify_manifest_entry(
    package_dir: Path,
    entry: ManifestEntry,
    public_key: bytes,
) -> ManifestEntryVerificationResult:
    """Check one entry against the file currently on disk."""
    try:
        file_path = resolve_package_file(package_dir, entry.path)
    except SecurityError as e:
        return ManifestEntryVerificationFailure(
            path=entry.path,
            mismatch=MismatchKind.PRESENCE,
            message=str(e),
        )

    if not file_path.is_file():
        return ManifestEntryVerificationFailure(
            path=entry.path,
            mismatch=MismatchKind.PRESENCE,
            message="File not found",
        )

    try:
        contents = file_path.read_bytes()
    except OSError as e:
        return ManifestEntryVerificationFailure(
            path=entry.path,
            mismatch=MismatchKind.PRESENCE,
            message=f"File not readable: {e.strerror or e}",
        )

    size_bytes = len(contents)
    if size_bytes != entry.size_bytes:
        return ManifestEntryVerificationFailure(
            path=entry.path,
            mismatch=MismatchKind.SIZE,
            message="Contents differ (mismatching file size)",
            expected=entry.size_bytes,
            received=size_bytes,
        )

    file_hash = content_hash(contents)
    actual_hex = file_hash.hex()
    if not hmac.compare_digest(actual_hex.encode("ascii"), entry.hash.lower().encode("utf-8")):
        return ManifestEntryVerificationFailure(
            path=entry.path,
            mismatch=MismatchKind.HASH,
            message="Contents differ (mismatching hash)",
            expected=entry.hash,
            received=actual_hex,
        )

    try:
        signature = bytes.fromhex(entry.signature)
    except ValueError:
        signature = b""
    if len(signature) != SIGNATURE_BYTES or not verify_multipart_signature(
        public_key, signature, *entry_items(entry.path, file_hash, size_bytes)
    ):
        return ManifestEntryVerificationFailure(
            path=entry.path,
            mismatch=MismatchKind.SIGNATURE,
            message="Invalid signature",
            expected=entry.signature,
        )

    return ManifestEntryVerificationSuccess(path=entry.path)


def sign_manifest(
    package_dir: Path,
    files: Iterable[str],
    private_key: bytes,
    workers: int | None = None,
    limits: SecurityLimits | None = None,
) -> list[ManifestEntry]:
    """Sign every file and return the entries sorted by ``manifest_sort_key``.

    Raises:
        ValidationError: If a path appears more than once
        OSError: If any file cannot be read (nothing is returned)
    """
    files = list(files)
    duplicates = sorted(path for path, count in Counter(files).items() if count > 1)
    if duplicates:
        raise ValidationError("Duplicate paths in file list", errors=duplicates)

    entries = _fan_out(
        lambda relative_path: sign_manifest_entry(package_dir, relative_path, private_key, limits),
        files,
        workers,
    )
    return sorted(entries, key=lambda e: manifest_sort_key(e.path))


def verify_manifest(
    package_dir: Path,
    manifest: Iterable[ManifestEntry],
    public_key: bytes,
    workers: int | None = None,
) -> list[ManifestEntryVerificationFailure]:
    """Verify all entries and return every failure, in manifest order."""
    results = _fan_out(
        lambda entry: verify_manifest_entry(package_dir, entry, public_key),
        manifest,
        workers,
    )
    failures = [r for r in results if isinstance(r, ManifestEntryVerificationFailure)]
    for failure in failures:
        logger.warning("%s: %s", failure.path, failure.message)
    return failures
