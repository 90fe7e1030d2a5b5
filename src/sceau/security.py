"""Limits on what a package may contain, and containment of manifest paths."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from sceau.errors import SecurityError

# Entry sizes are signed as u32
DEFAULT_MAX_FILE_SIZE = 0xFFFFFFFF
DEFAULT_MAX_FILES = 100_000


@dataclass(frozen=True)
class SecurityLimits:
    """Upper bounds applied when listing and signing package files."""

    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    max_files: int = DEFAULT_MAX_FILES


def resolve_package_file(package_dir: Path, relative_path: str) -> Path:
    """Resolve a manifest path to a location inside package_dir.

    Symlinks are followed before the containment check, so a link pointing
    out of the package is rejected like a ``..`` path. The file itself does
    not have to exist.

    Raises:
        SecurityError: If the path is empty, absolute or escapes package_dir
    """
    if not relative_path or Path(relative_path).is_absolute():
        raise SecurityError(f"Manifest paths must be relative: {relative_path!r}")

    root = Path(package_dir).resolve()
    resolved = (root / relative_path).resolve()
    if not resolved.is_relative_to(root):
        raise SecurityError(f"Path escapes the package directory: {relative_path!r}")
    return resolved
