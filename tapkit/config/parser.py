"""YAML configuration parser for tapkit.

This module provides parsing and validation for the optional ``tap.yaml``
file in a project root. Every key is optional:

    backend: cmake            # skip marker detection
    default_mode: release     # mode used when -m is not given
    modes:                    # custom modes and the standard mode they build on
      profile: release
    jobs: 8                   # parallel build jobs
    build_dir: out            # root of per-mode build directories
    install:
      prefix: /opt/myapp      # used when --prefix is not given
      libraries:              # extra library files to install
        - vendor/libfoo.so
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import yaml

from tapkit.core.exceptions import ConfigurationError
from tapkit.core.modes import BuildMode, parse_custom_modes

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "tap.yaml"


@dataclass
class InstallConfig:
    """Install settings."""

    prefix: Optional[str] = None
    libraries: List[str] = field(default_factory=list)


@dataclass
class ProjectConfig:
    """Complete tap.yaml configuration."""

    backend: Optional[str] = None
    default_mode: Optional[str] = None
    modes: Dict[str, BuildMode] = field(default_factory=dict)
    jobs: Optional[int] = None
    build_dir: Optional[str] = None
    install: InstallConfig = field(default_factory=InstallConfig)
    source: Optional[Path] = None


def load_project_config(
    config_path: Path, required: bool = False
) -> ProjectConfig:
    """
    Load and validate a tap.yaml file.

    Args:
        config_path: Path to tap.yaml
        required: If True, a missing file is an error

    Returns:
        Parsed configuration (defaults if the file is absent and optional)

    Raises:
        ConfigurationError: If the file is required but missing, is not
            valid YAML, or has values of the wrong type
    """
    config_path = Path(config_path)

    if not config_path.exists():
        if required:
            raise ConfigurationError(f"Configuration file not found: {config_path}")
        logger.debug(f"Config file not found (optional): {config_path}")
        return ProjectConfig()

    logger.debug(f"Loading configuration from {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}")
    except OSError as e:
        raise ConfigurationError(f"Could not read {config_path}: {e}")

    if data is None:
        data = {}

    config = _parse_and_validate(data)
    config.source = config_path
    return config


def _parse_and_validate(data) -> ProjectConfig:
    if not isinstance(data, dict):
        raise ConfigurationError("Configuration must be a mapping")

    unknown = set(data) - {
        "backend",
        "default_mode",
        "modes",
        "jobs",
        "build_dir",
        "install",
    }
    if unknown:
        logger.warning(f"Ignoring unknown configuration keys: {', '.join(sorted(unknown))}")

    config = ProjectConfig(
        backend=_optional_str(data, "backend"),
        default_mode=_optional_str(data, "default_mode"),
        modes=parse_custom_modes(data.get("modes")),
        jobs=_parse_jobs(data.get("jobs")),
        build_dir=_optional_str(data, "build_dir"),
        install=_parse_install(data.get("install")),
    )

    if config.build_dir is not None and Path(config.build_dir) in (Path("."), Path("")):
        raise ConfigurationError("'build_dir' must not be the project root")

    return config


def _optional_str(data: dict, key: str) -> Optional[str]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigurationError(f"'{key}' must be a string, got {type(value).__name__}")
    return value


def _parse_jobs(value) -> Optional[int]:
    if value is None:
        return None
    # bool is an int subclass
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigurationError(f"'jobs' must be a positive integer, got {value!r}")
    return value


def _parse_install(data) -> InstallConfig:
    if data is None:
        return InstallConfig()
    if not isinstance(data, dict):
        raise ConfigurationError("'install' must be a mapping")

    prefix = _optional_str(data, "prefix")
    libraries = data.get("libraries") or []
    if not isinstance(libraries, list) or not all(isinstance(p, str) for p in libraries):
        raise ConfigurationError("'install.libraries' must be a list of paths")

    return InstallConfig(prefix=prefix, libraries=libraries)
