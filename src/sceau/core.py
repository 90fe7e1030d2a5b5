"""Sign a set of package files into a sceau, and verify one.

The top-level signature covers, in order: the schema identifier, the
timestamp string, the source URL, the build URL, then the raw hash of every
manifest entry in manifest order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable

from sceau.document import (
    SCHEMA_V1,
    SUPPORTED_SCHEMAS,
    Sceau,
    format_timestamp,
    is_valid_url,
    parse_timestamp,
)
from sceau.errors import ConfigurationError, KeyMismatchError, TemporalError, ValidationError
from sceau.keys import (
    PUBLIC_KEY_BYTES,
    SIGNATURE_BYTES,
    SecretKey,
    decode_hex_key,
    decode_private_key,
    public_key_from_private,
    zero_bytes,
)
from sceau.manifest import (
    ManifestEntry,
    ManifestEntryVerificationFailure,
    sign_manifest,
    verify_manifest,
)
from sceau.security import SecurityLimits
from sceau.signature import multipart_signature, verify_multipart_signature

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SceauVerificationSuccess:
    timestamp: str
    source_url: str
    build_url: str

    outcome = "success"
    ok = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "outcome": self.outcome,
            "timestamp": self.timestamp,
            "sourceURL": self.source_url,
            "buildURL": self.build_url,
        }


@dataclass(frozen=True)
class SceauVerificationFailure:
    """Verification failed.

    ``signature_verified`` and ``manifest_errors`` are independent: a valid
    top-level signature over drifted files and an invalid signature over
    intact files are both reported as they are.
    """

    signature_verified: bool
    manifest_errors: tuple[ManifestEntryVerificationFailure, ...]

    outcome = "failure"
    ok = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "outcome": self.outcome,
            "signatureVerified": self.signature_verified,
            "manifestErrors": [e.to_dict() for e in self.manifest_errors],
        }


SceauVerificationResult = SceauVerificationSuccess | SceauVerificationFailure


def _signed_items(
    schema: str,
    timestamp: str,
    source_url: str,
    build_url: str,
    manifest: Iterable[ManifestEntry],
) -> list[bytes]:
    items = [
        schema.encode("utf-8"),
        timestamp.encode("utf-8"),
        source_url.encode("utf-8"),
        build_url.encode("utf-8"),
    ]
    items.extend(bytes.fromhex(entry.hash) for entry in manifest)
    return items


def _validate_sign_input(
    private_key: str | bytes,
    source_url: str,
    build_url: str,
    timestamp: datetime,
) -> bytearray:
    errors = []
    raw_key = bytearray()
    try:
        raw_key = decode_private_key(private_key)
    except ConfigurationError as e:
        errors.append(str(e))
    if not is_valid_url(source_url):
        errors.append(f"Invalid source URL: {source_url!r}")
    if not is_valid_url(build_url):
        errors.append(f"Invalid build URL: {build_url!r}")
    if not isinstance(timestamp, datetime):
        errors.append(f"Timestamp must be a datetime, got {type(timestamp).__name__}")
    if errors:
        zero_bytes(raw_key)
        raise ValidationError("Invalid signing input", errors=errors)
    return raw_key


def sign(
    package_dir: Path,
    files: Iterable[str],
    private_key: str | bytes,
    source_url: str,
    build_url: str,
    timestamp: datetime,
    ignore_files: Iterable[str] = (),
    workers: int | None = None,
    limits: SecurityLimits | None = None,
) -> Sceau:
    """Sign package files and assemble a sceau.

    Args:
        package_dir: Directory the relative file paths are resolved against
        files: Relative paths to include
        private_key: 64-byte Ed25519 private key, raw or hex
        source_url: Permalink to the source code
        build_url: Permalink to the CI/CD run
        timestamp: Signature time (never read from the clock here)
        ignore_files: Paths to leave out, which must include the sceau file
            itself when it lives inside package_dir
        workers: Thread pool width for per-file work (1 = sequential)
        limits: Security limits for file reads

    Returns:
        Sceau

    Raises:
        ValidationError: If the key, URLs or timestamp are malformed (before any I/O)
        OSError: If a file cannot be read
    """
    raw_key = _validate_sign_input(private_key, source_url, build_url, timestamp)
    package_dir = Path(package_dir)
    ignored = set(ignore_files)
    selected = [f for f in files if f not in ignored]

    with SecretKey(raw_key) as secret:
        try:
            public_key = public_key_from_private(secret.value)
        except ConfigurationError as e:
            raise ValidationError(str(e)) from e

        manifest = sign_manifest(package_dir, selected, secret.value, workers=workers, limits=limits)
        iso_timestamp = format_timestamp(timestamp)
        signature = multipart_signature(
            secret.value,
            *_signed_items(SCHEMA_V1, iso_timestamp, source_url, build_url, manifest),
        )

    logger.info("Signed %d files in %s", len(manifest), package_dir)
    return Sceau(
        schema=SCHEMA_V1,
        signature=signature.hex(),
        public_key=public_key.hex(),
        timestamp=iso_timestamp,
        source_url=source_url,
        build_url=build_url,
        manifest=tuple(manifest),
    )


def verify(
    sceau: Sceau,
    package_dir: Path,
    public_key: str | bytes | None = None,
    now: datetime | None = None,
    workers: int | None = None,
) -> SceauVerificationResult:
    """Verify a sceau against the files in package_dir.

    Args:
        sceau: Document to verify
        package_dir: Directory to check the manifest against
        public_key: Pinned 32-byte public key (raw or hex); defaults to the
            key embedded in the document
        now: Verification time (default: current UTC time)
        workers: Thread pool width for per-file work (1 = sequential)

    Returns:
        SceauVerificationSuccess or SceauVerificationFailure

    Raises:
        ConfigurationError: Unsupported schema or malformed keys
        TemporalError: If the document is dated after ``now``
        KeyMismatchError: If the pinned key differs from the embedded key
    """
    if sceau.schema not in SUPPORTED_SCHEMAS:
        raise ConfigurationError(f"Unsupported sceau schema: {sceau.schema!r}")

    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    if parse_timestamp(sceau.timestamp) > now:
        raise TemporalError(f"Signature timestamp is in the future: {sceau.timestamp}")

    embedded_key = decode_hex_key(sceau.public_key, PUBLIC_KEY_BYTES, "embedded public key")
    if public_key is not None:
        pinned_key = decode_hex_key(public_key, PUBLIC_KEY_BYTES, "public key")
        if pinned_key != embedded_key:
            raise KeyMismatchError(expected=pinned_key.hex(), embedded=embedded_key.hex())

    package_dir = Path(package_dir)
    manifest_errors = verify_manifest(package_dir, sceau.manifest, embedded_key, workers=workers)

    try:
        signature = bytes.fromhex(sceau.signature)
        items = _signed_items(
            sceau.schema, sceau.timestamp, sceau.source_url, sceau.build_url, sceau.manifest
        )
    except ValueError:
        signature_verified = False
    else:
        signature_verified = len(signature) == SIGNATURE_BYTES and verify_multipart_signature(
            embedded_key, signature, *items
        )

    if manifest_errors or not signature_verified:
        logger.warning(
            "Verification failed: signature %s, %d manifest error(s)",
            "valid" if signature_verified else "invalid",
            len(manifest_errors),
        )
        return SceauVerificationFailure(
            signature_verified=signature_verified,
            manifest_errors=tuple(manifest_errors),
        )

    logger.info("Verified %d files in %s", len(sceau.manifest), package_dir)
    return SceauVerificationSuccess(
        timestamp=sceau.timestamp,
        source_url=sceau.source_url,
        build_url=sceau.build_url,
    )
