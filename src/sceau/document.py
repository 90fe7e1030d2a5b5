"""Sceau document model and JSON serialization.

A sceau is a JSON object validated against ``schemas/v1.schema.json``.
Its ``$schema`` field doubles as the format version: documents carrying any
other value are rejected before signatures are looked at.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

import jsonschema

from sceau.errors import ConfigurationError
from sceau.manifest import ManifestEntry, manifest_sort_key

SCHEMA_V1 = "https://raw.githubusercontent.com/47ng/sceau/main/src/schemas/v1.schema.json"
SUPPORTED_SCHEMAS = (SCHEMA_V1,)

SCHEMAS_DIR = Path(__file__).parent / "schemas"

_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*$")


def format_timestamp(ts: datetime) -> str:
    """Format as UTC ISO-8601 with millisecond precision.

    Naive datetimes are treated as UTC.
    Format: 2026-01-31T10:00:00.000Z
    """
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    else:
        ts = ts.astimezone(timezone.utc)
    return ts.strftime("%Y-%m-%dT%H:%M:%S.") + f"{ts.microsecond // 1000:03d}Z"


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp into an aware UTC datetime."""
    try:
        ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise ConfigurationError(f"Invalid timestamp: {value!r}") from e
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def is_valid_url(value: str) -> bool:
    """Check a URL has a scheme and something after it, with no whitespace."""
    if not isinstance(value, str) or not value or any(c.isspace() for c in value):
        return False
    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    if not parts.scheme or not _SCHEME_RE.match(parts.scheme):
        return False
    return bool(parts.netloc or parts.path)


@lru_cache(maxsize=None)
def load_schema(version: str = SCHEMA_V1) -> dict[str, Any]:
    """Load the bundled JSON schema for a document version."""
    if version not in SUPPORTED_SCHEMAS:
        raise ConfigurationError(f"Unsupported sceau schema: {version}")
    with open(SCHEMAS_DIR / "v1.schema.json", "r", encoding="utf-8") as f:
        return json.load(f)


def validate_document(data: Any) -> None:
    """Validate a decoded sceau document.

    Raises:
        ConfigurationError: With every violation listed in ``errors``
    """
    if not isinstance(data, dict):
        raise ConfigurationError("Sceau document must be a JSON object")

    version = data.get("$schema")
    if version not in SUPPORTED_SCHEMAS:
        raise ConfigurationError(f"Unsupported sceau schema: {version!r}")

    validator = jsonschema.Draft7Validator(load_schema(version))
    errors = [
        f"{'/'.join(str(p) for p in error.absolute_path) or '<root>'}: {error.message}"
        for error in sorted(validator.iter_errors(data), key=lambda e: list(e.absolute_path))
    ]

    if not errors:
        for key in ("sourceURL", "buildURL"):
            if not is_valid_url(data[key]):
                errors.append(f"{key}: invalid URL {data[key]!r}")
        try:
            parse_timestamp(data["timestamp"])
        except ConfigurationError as e:
            errors.append(f"timestamp: {e}")
        paths = [entry["path"] for entry in data["manifest"]]
        if paths != sorted(paths, key=manifest_sort_key):
            errors.append("manifest: entries must be sorted by path")
        if len(set(paths)) != len(paths):
            errors.append("manifest: duplicate paths")

    if errors:
        raise ConfigurationError("Invalid sceau document", errors=errors)


@dataclass(frozen=True)
class Sceau:
    """Signed provenance document for a set of files."""

    signature: str
    public_key: str
    timestamp: str
    source_url: str
    build_url: str
    manifest: tuple[ManifestEntry, ...] = field(default_factory=tuple)
    schema: str = SCHEMA_V1

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary (JSON field names)."""
        return {
            "$schema": self.schema,
            "signature": self.signature,
            "publicKey": self.public_key,
            "timestamp": self.timestamp,
            "sourceURL": self.source_url,
            "buildURL": self.build_url,
            "manifest": [entry.to_dict() for entry in self.manifest],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Sceau:
        """Validate and create from dictionary."""
        validate_document(data)
        return cls(
            schema=data["$schema"],
            signature=data["signature"],
            public_key=data["publicKey"],
            timestamp=data["timestamp"],
            source_url=data["sourceURL"],
            build_url=data["buildURL"],
            manifest=tuple(ManifestEntry.from_dict(e) for e in data["manifest"]),
        )

    def to_json(self, indent: int | None = None) -> str:
        """Serialize to JSON text."""
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    @classmethod
    def from_json(cls, text: str) -> Sceau:
        """Parse and validate JSON text."""
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid sceau JSON: {e}") from e
        return cls.from_dict(data)


def write_sceau(path: Path, sceau: Sceau, indent: int | None = None) -> None:
    """Write a sceau document to a JSON file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(sceau.to_json(indent=indent))


def read_sceau(path: Path) -> Sceau:
    """Load a sceau document from a JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        return Sceau.from_json(f.read())
