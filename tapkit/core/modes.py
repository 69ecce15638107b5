"""
Build mode resolution.

A build mode is either one of the two standard modes (``debug``,
``release``) or a custom mode declared in ``tap.yaml``. Custom modes are
built on top of a standard mode and get their own build directory.

Usage:
    from tapkit.core.modes import ModeResolver

    resolver = ModeResolver({"profile": "release"})
    resolver.resolve(None)        # BuildMode('debug')
    resolver.resolve("profile")   # BuildMode('profile', base=RELEASE)
    resolver.resolve("Debug")     # raises InvalidMode (names are case-sensitive)
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Mapping, Optional

from tapkit.core.exceptions import ConfigurationError, InvalidMode

logger = logging.getLogger(__name__)


class ModeKind(Enum):
    """Standard build configurations every backend understands."""

    DEBUG = "debug"
    RELEASE = "release"


@dataclass(frozen=True)
class BuildMode:
    """
    A named build configuration.

    Attributes:
        name: Mode name as typed on the command line
        base: Standard configuration the backends build with
    """

    name: str
    base: ModeKind

    @property
    def is_custom(self) -> bool:
        """True for modes declared in configuration."""
        return self.name != self.base.value

    @property
    def is_release(self) -> bool:
        return self.base is ModeKind.RELEASE

    def __str__(self) -> str:
        return self.name


DEBUG = BuildMode("debug", ModeKind.DEBUG)
RELEASE = BuildMode("release", ModeKind.RELEASE)
DEFAULT_MODE = DEBUG

STANDARD_MODES: Dict[str, BuildMode] = {DEBUG.name: DEBUG, RELEASE.name: RELEASE}


def parse_custom_modes(data: Optional[Mapping]) -> Dict[str, BuildMode]:
    """
    Parse the ``modes`` mapping from configuration.

    Args:
        data: Mapping of custom mode name to base mode name (or None)

    Returns:
        Dictionary of custom BuildMode objects by name

    Raises:
        ConfigurationError: If a name or base is invalid

    Example:
        >>> parse_custom_modes({"profile": "release"})
        {'profile': BuildMode(name='profile', base=<ModeKind.RELEASE: 'release'>)}
    """
    modes: Dict[str, BuildMode] = {}
    if not data:
        return modes

    if not isinstance(data, Mapping):
        raise ConfigurationError("'modes' must be a mapping of mode name to base mode")

    for name, base in data.items():
        if not isinstance(name, str) or not name or "/" in name or name.startswith("."):
            raise ConfigurationError(f"Invalid custom mode name: {name!r}")
        if name in STANDARD_MODES:
            raise ConfigurationError(f"Custom mode '{name}' shadows a standard mode")

        base_name = base or ModeKind.DEBUG.value
        try:
            kind = ModeKind(base_name)
        except ValueError:
            raise ConfigurationError(
                f"Custom mode '{name}' has unknown base mode {base_name!r} "
                "(expected 'debug' or 'release')"
            )
        modes[name] = BuildMode(name, kind)

    return modes


class ModeResolver:
    """Validates requested mode names against the known set."""

    def __init__(self, custom_modes: Optional[Mapping[str, BuildMode]] = None):
        self._modes: Dict[str, BuildMode] = dict(STANDARD_MODES)
        self._modes.update(custom_modes or {})

    @property
    def known_modes(self) -> List[str]:
        return list(self._modes)

    def resolve(self, requested: Optional[str]) -> BuildMode:
        """
        Resolve a mode name.

        Args:
            requested: Mode name, or None for the default

        Returns:
            The matching BuildMode (debug when nothing is requested)

        Raises:
            InvalidMode: If the name matches no known mode exactly
        """
        if requested is None:
            return DEFAULT_MODE

        mode = self._modes.get(requested)
        if mode is None:
            raise InvalidMode(requested, self.known_modes)

        logger.debug(f"Resolved build mode: {mode.name} (base {mode.base.value})")
        return mode


def resolve_mode(
    requested: Optional[str], custom_modes: Optional[Mapping[str, BuildMode]] = None
) -> BuildMode:
    """Resolve ``requested`` with a one-off ModeResolver."""
    return ModeResolver(custom_modes).resolve(requested)
