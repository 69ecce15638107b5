"""
Project configuration for tapkit.
"""

from tapkit.config.parser import (
    CONFIG_FILE_NAME,
    InstallConfig,
    ProjectConfig,
    load_project_config,
)

__all__ = [
    "CONFIG_FILE_NAME",
    "InstallConfig",
    "ProjectConfig",
    "load_project_config",
]
