"""
File system utilities for tapkit.

This module provides the file operations the adapters and the installer
build on:
- Safe directory removal confined to a project root
- Atomic writes (temp file + rename)
- Artifact copies that replace existing files and keep permission bits
- Writability checks for paths that may not exist yet
- Native binary detection by file header
"""

import os
import shutil
import sys
import tempfile
from pathlib import Path
from typing import Optional, Union

from tapkit.core.exceptions import FilesystemError

IS_WINDOWS = os.name == "nt"

# Header bytes of native executables and shared objects
_BINARY_MAGICS = (
    b"\x7fELF",  # ELF
    b"\xfe\xed\xfa\xce",  # Mach-O 32-bit
    b"\xfe\xed\xfa\xcf",  # Mach-O 64-bit
    b"\xce\xfa\xed\xfe",  # Mach-O 32-bit, little endian
    b"\xcf\xfa\xed\xfe",  # Mach-O 64-bit, little endian
    b"\xca\xfe\xba\xbe",  # Mach-O universal
    b"MZ",  # PE
)


# ============================================================================
# Path Utilities
# ============================================================================


def normalize_path(path: Union[str, Path]) -> Path:
    """
    Normalize a path for consistent comparison.

    Args:
        path: Path to normalize

    Returns:
        Normalized absolute path
    """
    return Path(path).expanduser().resolve()


def nearest_existing_parent(path: Union[str, Path]) -> Path:
    """
    Find the closest ancestor of ``path`` (or ``path`` itself) that exists.

    Args:
        path: Absolute path, possibly not yet created

    Returns:
        First existing path walking toward the filesystem root
    """
    path = Path(path)
    while not path.exists() and path.parent != path:
        path = path.parent
    return path


def is_writable_location(path: Union[str, Path]) -> bool:
    """
    Check whether ``path`` can be written or created by the current user.

    If the path does not exist, the nearest existing ancestor must be a
    writable directory.

    Args:
        path: Directory or file path

    Returns:
        True if writes under ``path`` are expected to succeed

    Example:
        >>> is_writable_location(Path.home() / ".local" / "bin")
        True
    """
    existing = nearest_existing_parent(path)
    if existing.is_dir():
        return os.access(existing, os.W_OK | os.X_OK)
    # An existing regular file where a directory is expected
    return False


def ensure_directory(path: Union[str, Path]) -> Path:
    """
    Ensure a directory exists (idempotent).

    Args:
        path: Directory path

    Returns:
        Path object (resolved)
    """
    path = Path(path)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FilesystemError(f"Could not create directory {path}: {e}")
    return path.resolve()


# ============================================================================
# Safe File Operations
# ============================================================================


def atomic_write(
    file_path: Union[str, Path], content: Union[str, bytes], encoding: str = "utf-8"
) -> None:
    """
    Write file atomically using temp file + rename.

    The file is never observed in a partially-written state.

    Args:
        file_path: Path to write to
        content: Content to write (string or bytes)
        encoding: Text encoding (used only for string content)
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    temp_fd, temp_path_str = tempfile.mkstemp(
        dir=file_path.parent, prefix=f".{file_path.name}.", suffix=".tmp"
    )
    temp_path = Path(temp_path_str)

    try:
        if isinstance(content, str):
            with open(temp_fd, "w", encoding=encoding) as f:
                f.write(content)
        else:
            with open(temp_fd, "wb") as f:
                f.write(content)

        temp_path.replace(file_path)

    except Exception:
        temp_path.unlink(missing_ok=True)
        raise


def safe_rmtree(
    path: Union[str, Path], require_prefix: Optional[Union[str, Path]] = None
) -> bool:
    """
    Safely remove a directory tree.

    Args:
        path: Directory to remove
        require_prefix: If specified, path must be strictly under this directory

    Returns:
        True if something was removed, False if the path did not exist

    Raises:
        ValueError: If path is not under require_prefix
        FilesystemError: If deletion fails

    Example:
        >>> safe_rmtree(project / "build" / "debug", require_prefix=project)
        True
    """
    path = Path(path).resolve()

    if require_prefix is not None:
        require_prefix = Path(require_prefix).resolve()
        if path == require_prefix or not path.is_relative_to(require_prefix):
            raise ValueError(
                f"Refusing to delete '{path}': not under required prefix '{require_prefix}'"
            )

    if not path.exists():
        return False

    if not path.is_dir():
        raise FilesystemError(f"Path is not a directory: {path}")

    try:
        if IS_WINDOWS:

            def handle_remove_readonly(func, path, exc):
                """Error handler for Windows read-only files."""
                if not os.access(path, os.W_OK):
                    os.chmod(path, 0o777)
                    func(path)
                else:
                    raise

            if sys.version_info >= (3, 12):
                shutil.rmtree(path, onexc=handle_remove_readonly)
            else:
                shutil.rmtree(path, onerror=handle_remove_readonly)
        else:
            shutil.rmtree(path)

    except Exception as e:
        raise FilesystemError(f"Failed to remove directory '{path}': {e}")

    return True


def replace_file(source: Union[str, Path], destination: Union[str, Path]) -> Path:
    """
    Copy ``source`` over ``destination``, replacing any existing file.

    The copy lands in a temp file next to the destination first and is then
    renamed into place, so a read-only file of the same name is replaced
    too. Permission bits and timestamps are preserved.

    Args:
        source: File to copy
        destination: Target file path

    Returns:
        Destination path

    Raises:
        FilesystemError: If the copy fails
    """
    source = Path(source)
    destination = Path(destination)

    temp_fd, temp_path_str = tempfile.mkstemp(
        dir=destination.parent, prefix=f".{destination.name}.", suffix=".tmp"
    )
    os.close(temp_fd)
    temp_path = Path(temp_path_str)

    try:
        shutil.copy2(source, temp_path)
        os.replace(temp_path, destination)
    except OSError as e:
        temp_path.unlink(missing_ok=True)
        raise FilesystemError(f"Failed to copy {source} to {destination}: {e}")

    return destination


# ============================================================================
# Binary Detection
# ============================================================================


def is_native_binary(path: Union[str, Path]) -> bool:
    """
    Check whether ``path`` is an executable native binary.

    Scripts with the executable bit are not binaries.

    Args:
        path: File to inspect

    Returns:
        True for executable ELF, Mach-O or PE files
    """
    path = Path(path)
    if not path.is_file() or path.is_symlink():
        return False
    if not IS_WINDOWS and not os.access(path, os.X_OK):
        return False

    try:
        with open(path, "rb") as f:
            header = f.read(4)
    except OSError:
        return False

    return any(header.startswith(magic) for magic in _BINARY_MAGICS)
