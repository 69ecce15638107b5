"""Test fixtures for tapkit tests.

This package provides reusable pytest fixtures for testing tapkit components.
Fixtures are organized by type:

- projects: Project roots for make, CMake and Meson, plus fake build outputs
- runners: Process runner doubles that record commands instead of spawning

Import fixtures in your tests using:
    from tests.fixtures.projects import make_project
    from tests.fixtures.runners import recording_runner
"""

__all__ = [
    "projects",
    "runners",
]
