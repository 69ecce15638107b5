"""
Install-prefix resolution and artifact installation.

Resolution order for the install prefix:
1. An explicit prefix (``--prefix`` or ``install.prefix`` in tap.yaml)
2. Elevated privilege: the system-wide prefix (``/usr/local``)
3. Normal privilege: the parent of the user's personal executable
   directory (``~/.local/bin`` -> ``~/.local``)

Privilege is detected once per invocation and passed in explicitly, so
the resolution functions never consult global state themselves.

Example:
    >>> from tapkit.core.installer import Installer, PrivilegeLevel, resolve_prefix
    >>> prefix = resolve_prefix(None, PrivilegeLevel.NORMAL)
    >>> Installer().install(artifacts, prefix)
"""

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Mapping, Optional, Sequence, Tuple, Union

from tapkit.core.artifacts import Artifact, ArtifactKind
from tapkit.core.exceptions import InstallPermissionDenied
from tapkit.core.filesystem import (
    ensure_directory,
    is_writable_location,
    nearest_existing_parent,
    replace_file,
)

logger = logging.getLogger(__name__)

IS_WINDOWS = os.name == "nt"


class PrivilegeLevel(Enum):
    """Privilege of the invoking user."""

    ELEVATED = "elevated"
    NORMAL = "normal"


def detect_privilege() -> PrivilegeLevel:
    """
    Detect whether the current process runs with elevated privileges.

    Returns:
        ELEVATED for root (POSIX) or an administrator (Windows)
    """
    if IS_WINDOWS:
        import ctypes

        try:
            elevated = bool(ctypes.windll.shell32.IsUserAnAdmin())
        except (AttributeError, OSError):
            elevated = False
    else:
        elevated = os.geteuid() == 0

    level = PrivilegeLevel.ELEVATED if elevated else PrivilegeLevel.NORMAL
    logger.debug(f"Detected privilege level: {level.value}")
    return level


def system_prefix() -> Path:
    """System-wide install prefix for this platform."""
    if IS_WINDOWS:
        return Path(os.environ.get("ProgramFiles", r"C:\Program Files"))
    return Path("/usr/local")


def user_bin_dir(
    environ: Optional[Mapping[str, str]] = None, home: Optional[Path] = None
) -> Path:
    """
    Get the user's personal executable directory.

    Args:
        environ: Environment mapping (default: os.environ)
        home: Home directory (default: Path.home())

    Returns:
        ``$XDG_BIN_HOME`` if set, otherwise ``~/.local/bin``
    """
    if environ is None:
        environ = os.environ
    xdg_bin = environ.get("XDG_BIN_HOME")
    if xdg_bin:
        return Path(xdg_bin).expanduser()
    if home is None:
        home = Path.home()
    return Path(home) / ".local" / "bin"


def resolve_prefix(
    explicit_override: Optional[Union[str, Path]],
    privilege: PrivilegeLevel,
    user_bin: Optional[Path] = None,
    cwd: Optional[Path] = None,
) -> Path:
    """
    Resolve the install prefix.

    Args:
        explicit_override: Prefix given by the user, wins unconditionally
        privilege: Privilege level detected at invocation start
        user_bin: User executable directory (default: user_bin_dir())
        cwd: Directory relative overrides are anchored to (default: cwd)

    Returns:
        Absolute prefix path

    Example:
        >>> resolve_prefix(None, PrivilegeLevel.ELEVATED)
        PosixPath('/usr/local')
        >>> resolve_prefix(None, PrivilegeLevel.NORMAL, Path('/home/me/.local/bin'))
        PosixPath('/home/me/.local')
    """
    if explicit_override is not None:
        prefix = Path(explicit_override).expanduser()
        if not prefix.is_absolute():
            prefix = (cwd or Path.cwd()) / prefix
        source = "explicit"
    elif privilege is PrivilegeLevel.ELEVATED:
        prefix = system_prefix()
        source = "system"
    else:
        prefix = (user_bin or user_bin_dir()).parent
        source = "user"

    prefix = Path(os.path.abspath(prefix))
    logger.debug(f"Resolved install prefix ({source}): {prefix}")
    return prefix


def install_destination(prefix: Path, artifact: Artifact) -> Path:
    """Path ``artifact`` is installed to under ``prefix``."""
    return Path(prefix) / artifact.kind.value / artifact.name


def plan_destinations(
    artifacts: Sequence[Artifact], prefix: Path
) -> List[Tuple[Artifact, Path]]:
    """
    Pair artifacts with their destinations under ``prefix``.

    Artifacts are flattened into ``bin/`` and ``lib/``, so two outputs with
    the same file name would land on the same path. The first one wins and
    the others are skipped with a warning.
    """
    planned = {}
    for artifact in artifacts:
        destination = install_destination(prefix, artifact)
        kept = planned.get(destination)
        if kept is not None:
            logger.warning(
                f"Skipping {artifact.path}: {kept.path} is already installed "
                f"as {destination}"
            )
            continue
        planned[destination] = artifact
    return [(artifact, destination) for destination, artifact in planned.items()]


@dataclass
class InstallTarget:
    """Where and what to install."""

    prefix: Path
    privilege: PrivilegeLevel
    artifacts: List[Artifact] = field(default_factory=list)

    @property
    def has_libraries(self) -> bool:
        return any(a.kind is ArtifactKind.LIBRARY for a in self.artifacts)


@dataclass
class InstallResult:
    """Files written by an install."""

    prefix: Path
    installed: List[Path] = field(default_factory=list)


class Installer:
    """Copies artifacts under ``prefix/bin`` and ``prefix/lib``."""

    def __init__(self, dry_run: bool = False):
        self.dry_run = dry_run

    def check_writable(
        self, prefix: Path, kinds: Sequence[ArtifactKind] = (ArtifactKind.BINARY,)
    ) -> None:
        """
        Verify every destination directory can be written.

        Args:
            prefix: Absolute install prefix
            kinds: Artifact kinds that will be installed

        Raises:
            InstallPermissionDenied: If any destination is not writable
        """
        if not Path(prefix).is_absolute():
            raise ValueError(f"Install prefix must be absolute: {prefix}")

        for kind in dict.fromkeys(kinds):
            subdir = Path(prefix) / kind.value
            if not is_writable_location(subdir):
                denied = nearest_existing_parent(subdir)
                logger.debug(f"Install destination not writable: {denied}")
                raise InstallPermissionDenied(denied, prefix)

    def install(self, artifacts: Sequence[Artifact], prefix: Path) -> InstallResult:
        """
        Install artifacts under ``prefix``.

        Writability of every destination is checked before the first copy.
        Existing files of the same name are replaced. Artifacts sharing a
        file name with an earlier one are skipped with a warning.

        Args:
            artifacts: Artifacts to install
            prefix: Absolute install prefix

        Returns:
            InstallResult listing the written files

        Raises:
            InstallPermissionDenied: If a destination is not writable
            FilesystemError: If a copy fails
        """
        prefix = Path(prefix)
        result = InstallResult(prefix=prefix)

        if not artifacts:
            logger.warning("No artifacts to install")
            return result

        planned = plan_destinations(artifacts, prefix)
        self.check_writable(prefix, [a.kind for a, _ in planned])

        for artifact, destination in planned:
            if self.dry_run:
                print(f"   install {artifact.path} -> {destination}")
                result.installed.append(destination)
                continue

            ensure_directory(destination.parent)
            replace_file(artifact.path, destination)
            logger.info(f"   Installed {destination}")
            result.installed.append(destination)

        return result
