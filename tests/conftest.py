"""Shared fixtures for sceau tests."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from sceau.keys import KeyPair, generate_key_pair

SEED = bytes(range(32)).hex()
OTHER_SEED = bytes(range(32, 64)).hex()
FIXED_TIMESTAMP = datetime(2026, 1, 31, 10, 0, 0, 123000, tzinfo=timezone.utc)
SOURCE_URL = "https://github.com/example/package/tree/0123abcd"
BUILD_URL = "https://github.com/example/package/actions/runs/42"


@pytest.fixture
def key_pair() -> KeyPair:
    return generate_key_pair(SEED)


@pytest.fixture
def other_key_pair() -> KeyPair:
    return generate_key_pair(OTHER_SEED)


@pytest.fixture
def package_dir(tmp_path: Path) -> Path:
    """A small package with nested files."""
    root = tmp_path / "package"
    (root / "dist" / "lib").mkdir(parents=True)
    (root / "package.json").write_text('{"name": "example", "version": "1.0.0"}')
    (root / "README.md").write_text("# Example\n")
    (root / "dist" / "index.js").write_text("module.exports = 42\n")
    (root / "dist" / "lib" / "util.js").write_bytes(b"\x00\x01\x02binary\xff")
    return root


PACKAGE_FILES = ["README.md", "dist/index.js", "dist/lib/util.js", "package.json"]

# U+1F600 is stored as the surrogate pair D83D DE00, so in UTF-16 code unit
# order it sorts before U+FF21 even though its code point is higher.
EMOJI_PATH = "\U0001F600.txt"
FULLWIDTH_PATH = "Ａ.txt"
