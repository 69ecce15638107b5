"""
Project fixtures for testing.

Provides project roots for each supported build system, a project that
carries markers of several build systems, and helpers that fake the
outputs a real build would leave behind.

Usage:
    from tests.fixtures.projects import make_project, write_fake_binary

    def test_something(make_project):
        assert (make_project / "Makefile").exists()
"""

import os
import stat
from pathlib import Path

import pytest

# Smallest header is_native_binary() accepts, padded to look like a file
ELF_HEADER = b"\x7fELF" + b"\x02\x01\x01" + b"\x00" * 57


def write_fake_binary(path: Path) -> Path:
    """
    Create an executable file with an ELF header.

    Args:
        path: File to create (parents are created)

    Returns:
        The created path
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(ELF_HEADER)
    mode = os.stat(path).st_mode
    os.chmod(path, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


def write_script(path: Path, content: str = "#!/bin/sh\necho hi\n") -> Path:
    """Create an executable shell script (never an artifact)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    os.chmod(path, 0o755)
    return path


@pytest.fixture
def make_project(tmp_path: Path) -> Path:
    """
    Create a Makefile project.

    Example:
        def test_build(make_project):
            assert (make_project / "Makefile").exists()
    """
    project_root = tmp_path / "make_project"
    project_root.mkdir()
    (project_root / "Makefile").write_text(
        "all: hello\n\nhello: hello.c\n\t$(CC) $(CFLAGS) -o $@ $<\n\n"
        "clean:\n\trm -f hello\n"
    )
    (project_root / "hello.c").write_text(
        '#include <stdio.h>\nint main(void) { puts("hello"); return 0; }\n'
    )
    return project_root


@pytest.fixture
def cmake_project(tmp_path: Path) -> Path:
    """Create a minimal CMake project."""
    project_root = tmp_path / "cmake_project"
    project_root.mkdir()
    (project_root / "CMakeLists.txt").write_text(
        "cmake_minimum_required(VERSION 3.20)\n"
        "project(Hello C)\n"
        "add_executable(hello main.c)\n"
    )
    (project_root / "main.c").write_text("int main(void) { return 0; }\n")
    return project_root


@pytest.fixture
def meson_project(tmp_path: Path) -> Path:
    """Create a minimal Meson project."""
    project_root = tmp_path / "meson_project"
    project_root.mkdir()
    (project_root / "meson.build").write_text(
        "project('hello', 'c')\nexecutable('hello', 'main.c')\n"
    )
    (project_root / "main.c").write_text("int main(void) { return 0; }\n")
    return project_root


@pytest.fixture
def mixed_project(tmp_path: Path) -> Path:
    """
    Create a project carrying markers of all three build systems.

    Common in projects migrating from one build system to another.
    """
    project_root = tmp_path / "mixed_project"
    project_root.mkdir()
    (project_root / "Makefile").write_text("all:\n\t@true\n")
    (project_root / "CMakeLists.txt").write_text("project(Mixed C)\n")
    (project_root / "meson.build").write_text("project('mixed', 'c')\n")
    return project_root


@pytest.fixture
def empty_project(tmp_path: Path) -> Path:
    """Create a directory without any build file."""
    project_root = tmp_path / "empty_project"
    project_root.mkdir()
    (project_root / "README.md").write_text("# nothing to build\n")
    return project_root
