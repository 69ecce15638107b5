"""
Build artifact discovery.

Backends leave executables and libraries in their output directories
next to a lot of bookkeeping files. This module picks out the files
worth running or installing.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional

from tapkit.core.filesystem import is_native_binary

logger = logging.getLogger(__name__)

# Backend bookkeeping directories never hold installable outputs
IGNORED_DIRS = frozenset(
    {
        "CMakeFiles",
        "meson-private",
        "meson-logs",
        "meson-info",
        "__pycache__",
        "Testing",
    }
)

_LIBRARY_PATTERN = re.compile(r".+\.(so(\.\d+)*|a|dylib)$")


class ArtifactKind(Enum):
    """Install destination subdirectory."""

    BINARY = "bin"
    LIBRARY = "lib"


@dataclass(frozen=True)
class Artifact:
    """A build output that can be installed."""

    path: Path
    kind: ArtifactKind

    @property
    def name(self) -> str:
        return self.path.name


def is_library(path: Path) -> bool:
    """Check whether ``path`` names a static or shared library."""
    return bool(_LIBRARY_PATTERN.match(path.name)) and path.is_file()


def _walk(directory: Path, recursive: bool) -> Iterable[Path]:
    for entry in sorted(directory.iterdir()):
        if entry.is_dir() and not entry.is_symlink():
            if recursive and entry.name not in IGNORED_DIRS and not entry.name.startswith("."):
                yield from _walk(entry, recursive)
        else:
            yield entry


def scan_artifacts(directory: Path, recursive: bool = True) -> List[Artifact]:
    """
    Enumerate executables and libraries under ``directory``.

    Libraries are recognized by name, executables by their binary header,
    so shell scripts and sources are never picked up. The result is sorted
    by path relative to ``directory``.

    Args:
        directory: Build output directory
        recursive: Descend into subdirectories

    Returns:
        List of Artifacts in stable order
    """
    directory = Path(directory)
    if not directory.is_dir():
        logger.debug(f"No build outputs at {directory}")
        return []

    artifacts = []
    for path in _walk(directory, recursive):
        if is_library(path):
            artifacts.append(Artifact(path, ArtifactKind.LIBRARY))
        elif is_native_binary(path):
            artifacts.append(Artifact(path, ArtifactKind.BINARY))

    artifacts.sort(key=lambda a: a.path.relative_to(directory).as_posix())
    logger.debug(f"Found {len(artifacts)} artifact(s) under {directory}")
    return artifacts


def find_executable(directory: Path, name: str, recursive: bool = True) -> Optional[Path]:
    """
    Locate a built executable by file name.

    A direct child of ``directory`` wins over nested matches; nested
    matches are taken in sorted order.

    Args:
        directory: Build output directory
        name: Executable file name
        recursive: Also look in subdirectories

    Returns:
        Path to the executable, or None
    """
    directory = Path(directory)
    if not directory.is_dir():
        return None

    candidate = directory / name
    if candidate.is_file() and not candidate.is_symlink() and _is_executable(candidate):
        return candidate

    if not recursive:
        return None

    for path in _walk(directory, recursive):
        if path.name == name and _is_executable(path):
            return path
    return None


def _is_executable(path: Path) -> bool:
    # Windows executables are found by name; POSIX ones by header
    if path.suffix.lower() == ".exe":
        return path.is_file()
    return is_native_binary(path)


def declared_artifacts(root: Path, paths: Iterable[str], kind: ArtifactKind) -> List[Artifact]:
    """
    Turn configured artifact paths into Artifacts.

    Args:
        root: Project root that relative paths are anchored to
        paths: Configured paths
        kind: Kind to assign

    Returns:
        Artifacts for every configured path that exists
    """
    result = []
    for entry in paths:
        path = Path(entry)
        if not path.is_absolute():
            path = root / path
        if path.is_file():
            result.append(Artifact(path, kind))
        else:
            logger.warning(f"Declared artifact not found: {path}")
    return result
