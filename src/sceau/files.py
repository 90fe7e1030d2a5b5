"""Select the files of a package directory to include in a sceau."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Iterable

from sceau.errors import ConfigurationError, SecurityError
from sceau.manifest import manifest_sort_key
from sceau.security import SecurityLimits

# Directories never published as part of a package
SKIPPED_DIRS = frozenset({".git", ".hg", ".svn", "node_modules", "__pycache__"})


def compile_ignore_patterns(patterns: Iterable[str]) -> list[re.Pattern[str]]:
    """Compile ignore regular expressions.

    Raises:
        ConfigurationError: If a pattern is not a valid regular expression
    """
    compiled = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern))
        except re.error as e:
            raise ConfigurationError(f"Invalid ignore pattern {pattern!r}: {e}") from e
    return compiled


def is_ignored(relative_path: str, exact: set[str], patterns: list[re.Pattern[str]]) -> bool:
    if relative_path in exact:
        return True
    return any(p.search(relative_path) for p in patterns)


def list_package_files(
    package_dir: Path,
    exclude: Iterable[str] = (),
    ignore: Iterable[str] = (),
    limits: SecurityLimits | None = None,
) -> list[str]:
    """List regular files under package_dir as sorted POSIX relative paths.

    Directories in SKIPPED_DIRS are pruned from the walk and never entered.
    Symlinked directories are not followed.

    Args:
        package_dir: Package root
        exclude: Exact relative paths to leave out (the sceau file itself)
        ignore: Regular expressions, searched in each relative path
        limits: Security limits (max_files)

    Returns:
        Relative paths, deduplicated and in manifest order

    Raises:
        ConfigurationError: If an ignore pattern is invalid
        SecurityError: If the package holds more than limits.max_files files
    """
    limits = limits or SecurityLimits()
    package_dir = Path(package_dir).resolve()
    exact = set(exclude)
    patterns = compile_ignore_patterns(ignore)

    files: set[str] = set()
    for dirpath, dirnames, filenames in os.walk(package_dir, followlinks=False):
        dirnames[:] = [d for d in dirnames if d not in SKIPPED_DIRS]
        for name in filenames:
            file_path = Path(dirpath) / name
            if not file_path.is_file():
                continue

            rel_path = file_path.relative_to(package_dir).as_posix()
            if is_ignored(rel_path, exact, patterns):
                continue

            files.add(rel_path)
            if len(files) > limits.max_files:
                raise SecurityError(
                    f"Too many files in package: {len(files)} > {limits.max_files}"
                )

    return sorted(files, key=manifest_sort_key)
