"""
Tests for the verb commands, driven through CLI.run().

Backend processes are intercepted at ProcessRunner.run so the tests do not
need make, cmake or meson installed.
"""

from unittest.mock import patch

import pytest

from tapkit.cli.parser import CLI, main
from tapkit.core.exceptions import ToolNotFound
from tapkit.core.installer import PrivilegeLevel
from tapkit.core.process import InvocationResult, ProcessRunner
from tests.fixtures.projects import (
    cmake_project,
    empty_project,
    make_project,
    write_fake_binary,
)


class FakeBackend:
    """Side effect for ProcessRunner.run recording argv lists."""

    def __init__(self, returncodes=None, on_build=None):
        self.argvs = []
        self.returncodes = returncodes or {}
        self.on_build = on_build

    def __call__(self, command):
        self.argvs.append(command.argv)
        if command.description == "build" and self.on_build is not None:
            self.on_build()
        return InvocationResult(self.returncodes.get(command.description, 0), command)


@pytest.fixture
def fake_backend():
    backend = FakeBackend()
    with patch.object(ProcessRunner, "run", side_effect=backend):
        yield backend


class TestBuildCommand:
    """Test 'tap build'."""

    def test_build_success(self, make_project, fake_backend):
        """Test a successful build exits 0."""
        result = CLI().run(["--project-root", str(make_project), "build"])

        assert result == 0
        assert fake_backend.argvs == [["make"]]

    def test_release_with_jobs(self, make_project, fake_backend):
        """Test mode and jobs reach the backend."""
        result = CLI().run(
            ["--project-root", str(make_project), "b", "-m", "release", "-j", "4"]
        )

        assert result == 0
        assert fake_backend.argvs == [["make", "-j", "4", "CFLAGS=-O3", "CXXFLAGS=-O3"]]

    def test_invalid_mode_exit_code(self, make_project, fake_backend, capsys):
        """Test an invalid mode exits with the validation code and spawns nothing."""
        result = CLI().run(["--project-root", str(make_project), "build", "-m", "Release"])

        assert result == 125
        assert fake_backend.argvs == []
        err = capsys.readouterr().err
        assert "ERROR: Invalid build mode: 'Release'" in err
        assert "while running 'tap build'" in err

    def test_unsupported_project(self, empty_project, fake_backend, capsys):
        """Test a directory without build files."""
        result = CLI().run(["--project-root", str(empty_project), "build"])

        assert result == 125
        assert "Could not detect the build system" in capsys.readouterr().err

    def test_backend_failure_exit_code(self, make_project):
        """Test the backend's exit code becomes tap's exit code."""
        backend = FakeBackend(returncodes={"build": 2})
        with patch.object(ProcessRunner, "run", side_effect=backend):
            result = CLI().run(["--project-root", str(make_project), "build"])

        assert result == 2

    def test_tool_not_found(self, cmake_project, capsys):
        """Test a missing build tool exits 127."""
        with patch.object(ProcessRunner, "run", side_effect=ToolNotFound("cmake")):
            result = CLI().run(["--project-root", str(cmake_project), "build"])

        assert result == 127
        assert "cmake not found in PATH" in capsys.readouterr().err

    def test_interrupted(self, make_project):
        """Test Ctrl-C while building exits 130."""
        with patch.object(ProcessRunner, "run", side_effect=KeyboardInterrupt):
            result = CLI().run(["--project-root", str(make_project), "build"])

        assert result == 130

    def test_project_root_from_subdirectory(self, cmake_project, fake_backend, monkeypatch):
        """Test the project is found from a nested working directory."""
        nested = cmake_project / "src"
        nested.mkdir()
        monkeypatch.chdir(nested)

        assert CLI().run(["build"]) == 0
        assert fake_backend.argvs[0][:3] == ["cmake", "-S", str(cmake_project.resolve())]

    def test_config_file(self, make_project, fake_backend):
        """Test tap.yaml in the project root is honoured."""
        (make_project / "tap.yaml").write_text("default_mode: release\njobs: 3\n")

        CLI().run(["--project-root", str(make_project), "build"])

        assert fake_backend.argvs == [["make", "-j", "3", "CFLAGS=-O3", "CXXFLAGS=-O3"]]

    def test_explicit_config_missing(self, make_project, fake_backend, tmp_path):
        """Test a missing --config file is a validation error."""
        result = CLI().run(
            [
                "--project-root",
                str(make_project),
                "--config",
                str(tmp_path / "missing.yaml"),
                "build",
            ]
        )
        assert result == 125

    def test_dry_run(self, make_project, capsys):
        """Test --dry-run prints the command and spawns nothing."""
        with patch("tapkit.core.process.subprocess.Popen") as mock_popen:
            result = CLI().run(["--dry-run", "--project-root", str(make_project), "build"])

        assert result == 0
        mock_popen.assert_not_called()
        assert "make" in capsys.readouterr().out


class TestRunCommand:
    """Test 'tap run'."""

    def test_passthrough(self, make_project):
        """Test arguments after -- reach the executable untouched."""
        backend = FakeBackend(on_build=lambda: write_fake_binary(make_project / "hello"))
        with patch.object(ProcessRunner, "run", side_effect=backend):
            result = CLI().run(
                [
                    "--project-root",
                    str(make_project),
                    "run",
                    "hello",
                    "--",
                    "--name",
                    "two words",
                    "-m",
                ]
            )

        assert result == 0
        assert backend.argvs[-1] == [
            str(make_project.resolve() / "hello"),
            "--name",
            "two words",
            "-m",
        ]

    def test_executable_failure(self, make_project):
        """Test the executable's exit code is tap's exit code."""
        backend = FakeBackend(
            returncodes={"run": 7},
            on_build=lambda: write_fake_binary(make_project / "hello"),
        )
        with patch.object(ProcessRunner, "run", side_effect=backend):
            result = CLI().run(["--project-root", str(make_project), "r", "hello"])

        assert result == 7

    def test_missing_executable(self, make_project, fake_backend, capsys):
        """Test an executable that was not built."""
        result = CLI().run(["--project-root", str(make_project), "run", "nope"])

        assert result == 125
        assert "Executable not found" in capsys.readouterr().err


class TestCleanCommand:
    """Test 'tap clean'."""

    def test_clean_all(self, cmake_project, fake_backend):
        """Test clean without a mode."""
        (cmake_project / "build" / "debug").mkdir(parents=True)

        assert CLI().run(["--project-root", str(cmake_project), "clean"]) == 0
        assert not (cmake_project / "build").exists()
        assert fake_backend.argvs == []

    def test_clean_mode(self, cmake_project, fake_backend):
        """Test clean with a mode."""
        (cmake_project / "build" / "debug").mkdir(parents=True)
        (cmake_project / "build" / "release").mkdir(parents=True)

        assert CLI().run(["--project-root", str(cmake_project), "c", "-m", "debug"]) == 0
        assert (cmake_project / "build" / "release").exists()
        assert not (cmake_project / "build" / "debug").exists()


class TestInstallCommand:
    """Test 'tap install'."""

    @pytest.fixture(autouse=True)
    def normal_privilege(self):
        with patch(
            "tapkit.dispatcher.detect_privilege", return_value=PrivilegeLevel.NORMAL
        ):
            yield

    def test_install(self, make_project, tmp_path, capsys):
        """Test build and copy under --prefix."""
        prefix = tmp_path / "prefix"
        backend = FakeBackend(on_build=lambda: write_fake_binary(make_project / "hello"))

        with patch.object(ProcessRunner, "run", side_effect=backend):
            result = CLI().run(
                ["--project-root", str(make_project), "install", "--prefix", str(prefix)]
            )

        assert result == 0
        assert (prefix / "bin" / "hello").is_file()
        out = capsys.readouterr().out
        assert out.strip().splitlines()[-1] == (
            f"Install complete: 1 file to {prefix} (debug)"
        )

    def test_quiet(self, make_project, tmp_path, capsys):
        """Test --quiet suppresses the summary."""
        backend = FakeBackend(on_build=lambda: write_fake_binary(make_project / "hello"))

        with patch.object(ProcessRunner, "run", side_effect=backend):
            result = CLI().run(
                [
                    "--quiet",
                    "--project-root",
                    str(make_project),
                    "i",
                    "--prefix",
                    str(tmp_path / "prefix"),
                ]
            )

        assert result == 0
        assert "Install complete" not in capsys.readouterr().out

    def test_build_failure(self, make_project, tmp_path):
        """Test nothing is installed when the build fails."""
        write_fake_binary(make_project / "hello")
        prefix = tmp_path / "prefix"
        backend = FakeBackend(returncodes={"build": 5})

        with patch.object(ProcessRunner, "run", side_effect=backend):
            result = CLI().run(
                ["--project-root", str(make_project), "install", "--prefix", str(prefix)]
            )

        assert result == 5
        assert not prefix.exists()

    def test_nothing_built(self, make_project, fake_backend, tmp_path, capsys):
        """Test an install with no artifacts warns and succeeds."""
        result = CLI().run(
            [
                "--project-root",
                str(make_project),
                "install",
                "--prefix",
                str(tmp_path / "prefix"),
            ]
        )

        assert result == 0
        assert "Nothing was installed" in capsys.readouterr().err


class TestMain:
    """Test the console entry point."""

    def test_main_exits_with_code(self, make_project, fake_backend, monkeypatch):
        """Test main() passes the exit code to sys.exit."""
        monkeypatch.setattr(
            "sys.argv", ["tap", "--project-root", str(make_project), "build", "-m", "x"]
        )

        with pytest.raises(SystemExit) as exc_info:
            main()

        assert exc_info.value.code == 125
