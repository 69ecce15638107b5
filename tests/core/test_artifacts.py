"""
Tests for build artifact discovery.
"""

import sys

import pytest

from tapkit.core.artifacts import (
    Artifact,
    ArtifactKind,
    declared_artifacts,
    find_executable,
    is_library,
    scan_artifacts,
)
from tests.fixtures.projects import write_fake_binary, write_script

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="POSIX exec bits")


class TestIsLibrary:
    """Tests for library name matching."""

    @pytest.mark.parametrize(
        "name", ["libfoo.so", "libfoo.so.1", "libfoo.so.1.2.3", "libfoo.a", "libfoo.dylib"]
    )
    def test_library_names(self, tmp_path, name):
        """Test static and shared library names."""
        path = tmp_path / name
        path.write_bytes(b"")
        assert is_library(path)

    @pytest.mark.parametrize("name", ["foo.c", "libfoo.so.x", "Makefile", ".so", "libfoo.sox"])
    def test_non_library_names(self, tmp_path, name):
        """Test names that only look similar."""
        path = tmp_path / name
        path.write_bytes(b"")
        assert not is_library(path)


class TestScanArtifacts:
    """Tests for scan_artifacts."""

    def test_missing_directory(self, tmp_path):
        """Test a build dir that does not exist yet."""
        assert scan_artifacts(tmp_path / "build") == []

    @posix_only
    def test_finds_binaries_and_libraries(self, tmp_path):
        """Test executables and libraries are picked, sources are not."""
        write_fake_binary(tmp_path / "app")
        (tmp_path / "libcore.a").write_bytes(b"!<arch>\n")
        (tmp_path / "main.c").write_text("int main;")
        write_script(tmp_path / "run.sh")

        artifacts = scan_artifacts(tmp_path)

        assert artifacts == [
            Artifact(tmp_path / "app", ArtifactKind.BINARY),
            Artifact(tmp_path / "libcore.a", ArtifactKind.LIBRARY),
        ]

    def test_sorted_by_relative_path(self, tmp_path):
        """Test results are in stable order across subdirectories."""
        write_fake_binary(tmp_path / "zeta")
        write_fake_binary(tmp_path / "sub" / "alpha")
        write_fake_binary(tmp_path / "beta")

        names = [a.path.relative_to(tmp_path).as_posix() for a in scan_artifacts(tmp_path)]

        assert names == ["beta", "sub/alpha", "zeta"]

    def test_ignores_bookkeeping_dirs(self, tmp_path):
        """Test backend internals are skipped."""
        write_fake_binary(tmp_path / "CMakeFiles" / "3.28" / "CompilerIdC" / "a.out")
        write_fake_binary(tmp_path / "meson-private" / "sanitycheckc.exe")
        write_fake_binary(tmp_path / ".cache" / "tool")
        write_fake_binary(tmp_path / "app")

        assert [a.name for a in scan_artifacts(tmp_path)] == ["app"]

    def test_non_recursive(self, tmp_path):
        """Test only direct children are considered."""
        write_fake_binary(tmp_path / "app")
        write_fake_binary(tmp_path / "sub" / "nested")

        assert [a.name for a in scan_artifacts(tmp_path, recursive=False)] == ["app"]


class TestFindExecutable:
    """Tests for find_executable."""

    def test_direct_child(self, tmp_path):
        """Test an executable directly in the directory."""
        path = write_fake_binary(tmp_path / "app")
        assert find_executable(tmp_path, "app") == path

    def test_direct_child_wins(self, tmp_path):
        """Test the top-level match beats nested ones."""
        write_fake_binary(tmp_path / "a" / "app")
        top = write_fake_binary(tmp_path / "app")
        assert find_executable(tmp_path, "app") == top

    def test_nested(self, tmp_path):
        """Test multi-config layouts such as build/debug/Debug/app."""
        path = write_fake_binary(tmp_path / "Debug" / "app")
        assert find_executable(tmp_path, "app") == path

    def test_nested_not_searched_when_not_recursive(self, tmp_path):
        """Test non-recursive lookup."""
        write_fake_binary(tmp_path / "bin" / "app")
        assert find_executable(tmp_path, "app", recursive=False) is None

    @posix_only
    def test_scripts_do_not_match(self, tmp_path):
        """Test a script with the right name is not launched."""
        write_script(tmp_path / "app")
        assert find_executable(tmp_path, "app") is None

    def test_missing(self, tmp_path):
        """Test no match."""
        assert find_executable(tmp_path, "app") is None
        assert find_executable(tmp_path / "nope", "app") is None

    def test_windows_exe_by_name(self, tmp_path):
        """Test .exe files are recognized by suffix."""
        path = tmp_path / "app.exe"
        path.write_bytes(b"MZ")
        assert find_executable(tmp_path, "app.exe") == path


class TestDeclaredArtifacts:
    """Tests for artifacts listed in configuration."""

    def test_relative_and_absolute(self, tmp_path):
        """Test both relative and absolute entries."""
        (tmp_path / "vendor").mkdir()
        (tmp_path / "vendor" / "libfoo.so").write_bytes(b"")
        absolute = tmp_path / "libbar.a"
        absolute.write_bytes(b"")

        artifacts = declared_artifacts(
            tmp_path, ["vendor/libfoo.so", str(absolute)], ArtifactKind.LIBRARY
        )

        assert [a.path for a in artifacts] == [tmp_path / "vendor" / "libfoo.so", absolute]
        assert all(a.kind is ArtifactKind.LIBRARY for a in artifacts)

    def test_missing_entries_are_skipped(self, tmp_path, caplog):
        """Test a missing file is warned about, not fatal."""
        artifacts = declared_artifacts(tmp_path, ["libgone.so"], ArtifactKind.LIBRARY)

        assert artifacts == []
        assert "Declared artifact not found" in caplog.text
