"""End-to-end tests for the command-line interface."""

import os
import signal
import sys

import pytest
from typer.testing import CliRunner

from repo_concat import __version__, concatenator
from repo_concat.cli import app

runner = CliRunner()


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """Run each test from an empty directory so no stray config is picked up."""
    work = tmp_path / "work"
    work.mkdir()
    monkeypatch.chdir(work)
    return work


@pytest.fixture
def project(tmp_path, make_tree):
    """Create a small project outside the working directory."""
    return make_tree(
        tmp_path / "project",
        {
            "main.py": "print('hello')\n",
            "README.md": "# Title\n",
            "docs/notes.txt": "notes\n",
        },
    )


class TestLocalRun:
    """Tests for concatenating a local directory."""

    def test_writes_artifact(self, workdir, project, tmp_path):
        """Test a successful run over a local directory."""
        out = tmp_path / "out.txt"
        result = runner.invoke(app, [str(project), "-o", str(out)])

        assert result.exit_code == 0, result.output
        assert out.read_text(encoding="utf-8") == (
            "*** README.md\n# Title\n\n"
            "*** docs/notes.txt\nnotes\n\n"
            "*** main.py\nprint('hello')\n\n"
        )
        assert "Included 3 files" in result.output

    def test_default_output_in_current_directory(self, workdir, project):
        """Test that the artifact defaults to concatenated_output.txt in the cwd."""
        result = runner.invoke(app, [str(project)])

        assert result.exit_code == 0, result.output
        assert (workdir / "concatenated_output.txt").is_file()

    def test_output_inside_root_is_not_included(self, workdir, project):
        """Test that a second run does not pick up the first run's artifact."""
        out = project / "concatenated_output.txt"

        first = runner.invoke(app, [str(project), "-o", str(out)])
        first_text = out.read_text(encoding="utf-8")
        second = runner.invoke(app, [str(project), "-o", str(out)])

        assert first.exit_code == 0
        assert second.exit_code == 0
        assert out.read_text(encoding="utf-8") == first_text
        assert "*** concatenated_output.txt" not in first_text

    def test_include_ext(self, workdir, project, tmp_path):
        """Test that --include-ext replaces the default allowlist."""
        out = tmp_path / "out.txt"
        result = runner.invoke(app, [str(project), "-o", str(out), "--include-ext", "py"])

        assert result.exit_code == 0, result.output
        assert out.read_text(encoding="utf-8") == "*** main.py\nprint('hello')\n\n"

    def test_include_ext_drops_known_names(self, workdir, project, tmp_path):
        """Test that --include-ext also leaves out Makefile and LICENSE."""
        (project / "Makefile").write_text("all:\n")
        (project / "LICENSE").write_text("MIT\n")
        out = tmp_path / "out.txt"

        default = runner.invoke(app, [str(project), "-o", str(out)])
        assert default.exit_code == 0, default.output
        assert "*** Makefile\n" in out.read_text(encoding="utf-8")

        result = runner.invoke(app, [str(project), "-o", str(out), "-i", "py"])

        assert result.exit_code == 0, result.output
        assert out.read_text(encoding="utf-8") == "*** main.py\nprint('hello')\n\n"

    def test_compact(self, workdir, tmp_path, make_tree):
        """Test that --compact strips blank lines and trailing whitespace."""
        root = make_tree(tmp_path / "loose", {"a.py": "x = 1   \n\n\ny = 2\n"})
        out = tmp_path / "out.txt"

        result = runner.invoke(app, [str(root), "-o", str(out), "--compact"])

        assert result.exit_code == 0, result.output
        assert out.read_text(encoding="utf-8") == "*** a.py\nx = 1\ny = 2\n\n"

    def test_parallel_jobs(self, workdir, project, tmp_path):
        """Test that --jobs gives the same artifact as a serial run."""
        serial = tmp_path / "serial.txt"
        parallel = tmp_path / "parallel.txt"

        runner.invoke(app, [str(project), "-o", str(serial)])
        result = runner.invoke(app, [str(project), "-o", str(parallel), "-j", "4"])

        assert result.exit_code == 0, result.output
        assert serial.read_bytes() == parallel.read_bytes()

    def test_no_matching_files(self, workdir, project, tmp_path):
        """Test that an empty selection still succeeds with a warning."""
        out = tmp_path / "out.txt"
        result = runner.invoke(app, [str(project), "-o", str(out), "-i", "zig"])

        assert result.exit_code == 0
        assert out.read_text() == ""
        assert "No files found" in result.output

    def test_unreadable_file_warns(self, workdir, tmp_path, make_tree, monkeypatch):
        """Test that an unreadable file is reported and the run still succeeds."""
        root = make_tree(tmp_path / "ten", {f"f{i}.py": f"v = {i}\n" for i in range(10)})
        original = concatenator.read_entry

        def flaky(entry):
            if entry.relative_path == "f7.py":
                raise PermissionError(13, "Permission denied")
            return original(entry)

        monkeypatch.setattr(concatenator, "read_entry", flaky)
        out = tmp_path / "out.txt"

        result = runner.invoke(app, [str(root), "-o", str(out)])

        assert result.exit_code == 0, result.output
        assert out.read_text(encoding="utf-8").count("*** ") == 9
        assert "f7.py: Permission denied" in result.output

    def test_verbose_lists_files(self, workdir, project, tmp_path):
        """Test that --verbose prints each included path."""
        result = runner.invoke(app, [str(project), "-o", str(tmp_path / "o.txt"), "--verbose"])

        assert result.exit_code == 0, result.output
        assert "docs/notes.txt" in result.output


class TestConfig:
    """Tests for config file handling through the CLI."""

    def test_config_in_current_directory(self, workdir, project, tmp_path):
        """Test that a repo-concat.toml in the cwd is applied."""
        (workdir / "repo-concat.toml").write_text('include_extensions = ["md"]\n')
        out = tmp_path / "out.txt"

        result = runner.invoke(app, [str(project), "-o", str(out)])

        assert result.exit_code == 0, result.output
        assert out.read_text(encoding="utf-8") == "*** README.md\n# Title\n\n"

    def test_explicit_json_config(self, workdir, project, tmp_path):
        """Test --config with a JSON file."""
        config = tmp_path / "config.json"
        config.write_text('{"file_extensions": [".txt"], "output": "from-config.txt"}')

        result = runner.invoke(app, [str(project), "--config", str(config)])

        assert result.exit_code == 0, result.output
        artifact = workdir / "from-config.txt"
        assert artifact.read_text(encoding="utf-8") == "*** docs/notes.txt\nnotes\n\n"

    def test_malformed_config_fails(self, workdir, project, tmp_path):
        """Test that a broken config exits with status 1 before writing anything."""
        (workdir / "repo-concat.toml").write_text("hidden = [\n")
        out = tmp_path / "out.txt"

        result = runner.invoke(app, [str(project), "-o", str(out)])

        assert result.exit_code == 1
        assert "Error loading config" in result.output
        assert not out.exists()


class TestFailures:
    """Tests for fatal errors."""

    def test_invalid_remote_reference(self, workdir, tmp_path):
        """Test that a malformed URL fails without creating an artifact."""
        out = tmp_path / "out.txt"
        result = runner.invoke(app, ["https://github.com/onlyowner", "-o", str(out)])

        assert result.exit_code == 1
        assert "Error resolving input" in result.output
        assert not out.exists()

    def test_missing_local_path(self, workdir, tmp_path):
        """Test that a missing directory fails with status 1."""
        out = tmp_path / "out.txt"
        result = runner.invoke(app, [str(tmp_path / "nope"), "-o", str(out)])

        assert result.exit_code == 1
        assert not out.exists()

    def test_interrupt_exits_130_without_artifact(self, workdir, project, tmp_path, monkeypatch):
        """Test that Ctrl-C mid-run exits 130 and removes the partial artifact."""
        original = concatenator.read_entry

        def interrupted(entry):
            if entry.relative_path == "main.py":
                raise KeyboardInterrupt
            return original(entry)

        monkeypatch.setattr(concatenator, "read_entry", interrupted)
        out = tmp_path / "out.txt"

        result = runner.invoke(app, [str(project), "-o", str(out)])

        assert result.exit_code == 130
        assert "Interrupted" in result.output
        assert not out.exists()

    @pytest.mark.skipif(sys.platform == "win32", reason="SIGTERM cannot be handled")
    def test_sigterm_exits_143_and_removes_clone(self, workdir, tmp_path, fake_git, monkeypatch):
        """Test that SIGTERM mid-run exits 143 with no artifact and no temp dir."""

        def terminated(entry):
            os.kill(os.getpid(), signal.SIGTERM)
            return b"unreachable\n"

        monkeypatch.setattr(concatenator, "read_entry", terminated)
        out = tmp_path / "out.txt"
        before = signal.getsignal(signal.SIGTERM)

        result = runner.invoke(app, ["https://github.com/owner/repo", "-o", str(out)])

        assert result.exit_code == 143
        assert not out.exists()
        assert not fake_git.paths[0].parent.exists()
        assert signal.getsignal(signal.SIGTERM) == before

    def test_unwritable_output(self, workdir, project, tmp_path):
        """Test that an unopenable output path fails with status 1."""
        out = tmp_path / "no-such-dir" / "out.txt"
        result = runner.invoke(app, [str(project), "-o", str(out)])

        assert result.exit_code == 1
        assert "Error writing output" in result.output


class TestRemote:
    """Tests for remote inputs with git replaced by a fake."""

    def test_clone_and_cleanup(self, workdir, tmp_path, fake_git):
        """Test that a cloned repository is concatenated and then removed."""
        out = tmp_path / "out.txt"
        result = runner.invoke(app, ["https://github.com/owner/repo", "-o", str(out)])

        assert result.exit_code == 0, result.output
        assert out.read_text(encoding="utf-8") == "*** main.py\nprint('cloned')\n\n"
        assert not fake_git.paths[0].parent.exists()

    def test_clone_failure(self, workdir, tmp_path, fake_git):
        """Test that a failed clone exits 1, writes nothing and removes the temp dir."""
        fake_git.fail = fake_git.git.GitCommandError("clone", 128, "repository not found")
        out = tmp_path / "out.txt"

        result = runner.invoke(app, ["https://github.com/owner/missing", "-o", str(out)])

        assert result.exit_code == 1
        assert not out.exists()
        assert not fake_git.paths[0].parent.exists()

    def test_ref_option(self, workdir, tmp_path, fake_git):
        """Test that --ref is checked out after cloning."""
        out = tmp_path / "out.txt"
        result = runner.invoke(
            app, ["https://github.com/owner/repo", "-o", str(out), "--ref", "v2"]
        )

        assert result.exit_code == 0, result.output
        assert fake_git.checkouts == ["v2"]


def test_version():
    """Test --version output."""
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output
