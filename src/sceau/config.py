"""Environment configuration.

Environment variables:
    SCEAU_PRIVATE_KEY: 64-byte Ed25519 private key, hex (optional)
    SCEAU_PUBLIC_KEY: 32-byte Ed25519 public key to pin, hex (optional)
    SCEAU_SOURCE_URL: Permalink to the source code (default: unknown://local)
    SCEAU_BUILD_URL: Permalink to the CI/CD run (default: unknown://local)
    SCEAU_WORKERS: Thread pool width for per-file work (default: 8)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from sceau.document import is_valid_url
from sceau.errors import ConfigurationError
from sceau.keys import PRIVATE_KEY_BYTES, PUBLIC_KEY_BYTES, decode_hex_key
from sceau.manifest import DEFAULT_WORKERS

DEFAULT_URL = "unknown://local"
SCEAU_FILE_NAME = "sceau.json"


@dataclass
class SceauConfig:
    """Settings for signing and verification, usually loaded from the environment."""

    private_key: str | None = None
    public_key: str | None = None
    source_url: str = DEFAULT_URL
    build_url: str = DEFAULT_URL
    workers: int = DEFAULT_WORKERS

    def __post_init__(self):
        """Validate configuration after initialization."""
        errors = []
        if self.private_key is not None:
            try:
                decode_hex_key(self.private_key, PRIVATE_KEY_BYTES, "SCEAU_PRIVATE_KEY")
            except ConfigurationError as e:
                errors.append(str(e))
        if self.public_key is not None:
            try:
                decode_hex_key(self.public_key, PUBLIC_KEY_BYTES, "SCEAU_PUBLIC_KEY")
            except ConfigurationError as e:
                errors.append(str(e))
        if not is_valid_url(self.source_url):
            errors.append(f"SCEAU_SOURCE_URL: invalid URL {self.source_url!r}")
        if not is_valid_url(self.build_url):
            errors.append(f"SCEAU_BUILD_URL: invalid URL {self.build_url!r}")
        if self.workers < 1:
            errors.append(f"SCEAU_WORKERS must be >= 1, got {self.workers}")
        if errors:
            raise ConfigurationError("Invalid configuration", errors=errors)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> SceauConfig:
        """Create configuration from environment variables."""
        env = os.environ if environ is None else environ

        workers_str = env.get("SCEAU_WORKERS", str(DEFAULT_WORKERS))
        try:
            workers = int(workers_str)
        except ValueError:
            raise ConfigurationError(f"SCEAU_WORKERS must be an integer, got {workers_str!r}")

        return cls(
            private_key=env.get("SCEAU_PRIVATE_KEY") or None,
            public_key=env.get("SCEAU_PUBLIC_KEY") or None,
            source_url=env.get("SCEAU_SOURCE_URL") or DEFAULT_URL,
            build_url=env.get("SCEAU_BUILD_URL") or DEFAULT_URL,
            workers=workers,
        )
