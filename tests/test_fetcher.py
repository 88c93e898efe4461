"""Tests for the fetcher module."""

import io
import signal
from pathlib import Path

import pytest
from rich.console import Console

from repo_concat.cli import _raise_on_sigterm

from repo_concat.exceptions import (
    CloneError,
    InvalidReferenceError,
    PathNotFoundError,
    ResolveError,
)
from repo_concat.fetcher import (
    LocalPath,
    RemoteRepo,
    WorkingRoot,
    is_remote_reference,
    parse_input,
    parse_repo_url,
    resolve,
    validate_local_path,
)


class TestParseRepoUrl:
    """Tests for repository URL parsing."""

    def test_simple_https_url(self):
        """Test parsing simple HTTPS URL."""
        repo = parse_repo_url("https://github.com/owner/repo")

        assert repo.name == "repo"
        assert repo.clone_url == "https://github.com/owner/repo.git"
        assert repo.ref is None

    def test_https_url_with_git_suffix(self):
        """Test parsing HTTPS URL with .git suffix."""
        repo = parse_repo_url("https://github.com/owner/repo.git")

        assert repo.name == "repo"
        assert repo.clone_url == "https://github.com/owner/repo.git"

    def test_url_with_branch(self):
        """Test parsing URL with branch."""
        repo = parse_repo_url("https://github.com/owner/repo/tree/develop")

        assert repo.name == "repo"
        assert repo.ref == "develop"
        assert repo.clone_url == "https://github.com/owner/repo.git"

    def test_www_host(self):
        """Test that a www. prefix is normalized away."""
        repo = parse_repo_url("https://www.github.com/owner/repo")

        assert repo.clone_url == "https://github.com/owner/repo.git"

    def test_ssh_url(self):
        """Test parsing scp-like SSH URL."""
        repo = parse_repo_url("git@github.com:owner/repo.git")

        assert repo.name == "repo"
        assert repo.clone_url == "https://github.com/owner/repo.git"

    def test_gitlab_subgroup_with_ref(self):
        """Test parsing a GitLab URL with subgroups and a tree ref."""
        repo = parse_repo_url("https://gitlab.com/group/sub/project/-/tree/main")

        assert repo.name == "project"
        assert repo.ref == "main"
        assert repo.clone_url == "https://gitlab.com/group/sub/project.git"

    def test_unknown_host_is_cloned_as_given(self):
        """Test that self-hosted URLs are passed to git unchanged."""
        url = "https://git.example.org/team/tool.git"
        repo = parse_repo_url(url)

        assert repo.name == "tool"
        assert repo.clone_url == url

    def test_incomplete_url(self):
        """Test that incomplete URL raises error."""
        with pytest.raises(InvalidReferenceError):
            parse_repo_url("https://github.com/owner")

    def test_missing_host(self):
        """Test that a URL without a host raises error."""
        with pytest.raises(InvalidReferenceError):
            parse_repo_url("https:///owner/repo")

    def test_invalid_reference_is_resolve_error(self):
        """Test the error taxonomy."""
        with pytest.raises(ResolveError):
            parse_repo_url("https://github.com/")


class TestParseInput:
    """Tests for classifying raw input."""

    def test_remote_detection(self):
        """Test which inputs count as remote."""
        assert is_remote_reference("https://github.com/owner/repo")
        assert is_remote_reference("ssh://git@host.example/owner/repo.git")
        assert is_remote_reference("git@github.com:owner/repo.git")
        assert not is_remote_reference("./some/dir")
        assert not is_remote_reference("/abs/path")
        assert not is_remote_reference("relative")

    def test_local_path(self):
        """Test that plain paths become LocalPath."""
        assert parse_input("some/dir") == LocalPath(Path("some/dir"))

    def test_remote_repo(self):
        """Test that URLs become RemoteRepo."""
        assert isinstance(parse_input("https://github.com/owner/repo"), RemoteRepo)


class TestValidateLocalPath:
    """Tests for local path validation."""

    def test_valid_directory(self, tmp_path):
        """Test validating existing directory."""
        result = validate_local_path(tmp_path)

        assert result == tmp_path.resolve()

    def test_nonexistent_path(self):
        """Test that nonexistent path raises error."""
        with pytest.raises(PathNotFoundError) as exc_info:
            validate_local_path(Path("/nonexistent/path"))

        assert "does not exist" in str(exc_info.value)

    def test_file_instead_of_directory(self, tmp_path):
        """Test that file path raises error."""
        file_path = tmp_path / "test.txt"
        file_path.write_text("test")

        with pytest.raises(PathNotFoundError) as exc_info:
            validate_local_path(file_path)

        assert "not a directory" in str(exc_info.value)


class TestResolve:
    """Tests for resolve and WorkingRoot."""

    def test_local_path_passes_through(self, tmp_path):
        """Test that local directories are not copied or cleaned up."""
        root = resolve(str(tmp_path))

        assert root.path == tmp_path.resolve()
        assert not root.is_temporary
        with root:
            pass
        assert tmp_path.exists()

    def test_missing_local_path(self, tmp_path):
        """Test that a missing directory is a resolve error."""
        with pytest.raises(PathNotFoundError):
            resolve(str(tmp_path / "nope"))

    def test_invalid_remote_fails_before_clone(self, fake_git):
        """Test that a malformed URL never reaches git."""
        with pytest.raises(InvalidReferenceError):
            resolve("https://github.com/owner")

        assert fake_git.urls == []

    def test_clone_is_removed_after_context(self, fake_git):
        """Test that the temporary clone exists inside the context only."""
        with resolve("https://github.com/owner/repo") as root:
            assert root.is_temporary
            assert (root.path / "main.py").exists()
            assert root.path.name == "repo"
            temp_dir = root.temp_dir

        assert fake_git.urls == ["https://github.com/owner/repo.git"]
        assert not temp_dir.exists()

    def test_clone_is_removed_when_body_raises(self, fake_git):
        """Test that cleanup happens on error paths too."""
        with pytest.raises(RuntimeError):
            with resolve("https://github.com/owner/repo") as root:
                temp_dir = root.temp_dir
                raise RuntimeError("boom")

        assert not temp_dir.exists()

    def test_clone_is_removed_on_interrupt(self, fake_git):
        """Test that cleanup happens on KeyboardInterrupt."""
        with pytest.raises(KeyboardInterrupt):
            with resolve("https://github.com/owner/repo") as root:
                temp_dir = root.temp_dir
                raise KeyboardInterrupt

        assert not temp_dir.exists()

    def test_failed_clone_removes_temp_dir(self, fake_git):
        """Test that a failed clone raises CloneError and leaves nothing behind."""
        fake_git.fail = fake_git.git.GitCommandError("clone", 128, "repository not found")

        with pytest.raises(CloneError):
            resolve("https://github.com/owner/missing")

        temp_dir = fake_git.paths[0].parent
        assert temp_dir.name.startswith("repo-concat-")
        assert not temp_dir.exists()

    def test_clone_is_removed_on_sigterm(self, fake_git):
        """Test that the SIGTERM handler unwinds the context and removes the clone."""
        with pytest.raises(SystemExit) as exc_info:
            with resolve("https://github.com/owner/repo") as root:
                temp_dir = root.temp_dir
                _raise_on_sigterm(signal.SIGTERM, None)

        assert exc_info.value.code == 143
        assert not temp_dir.exists()

    def test_clone_messages_use_given_console(self, fake_git):
        """Test that clone progress goes to the console passed by the caller."""
        buffer = io.StringIO()
        console = Console(file=buffer, width=200)

        with resolve("https://github.com/owner/repo", console=console) as root:
            repo_path = root.path

        output = buffer.getvalue()
        assert "Cloning https://github.com/owner/repo.git" in output
        assert f"Cloned to {repo_path}" in output

    def test_ref_is_checked_out(self, fake_git):
        """Test that an explicit ref overrides the URL and is checked out."""
        with resolve("https://github.com/owner/repo/tree/main", ref="v1.0") as root:
            assert root.reference.ref == "v1.0"

        assert fake_git.checkouts == ["v1.0"]

    def test_cleanup_is_idempotent(self, tmp_path):
        """Test that cleanup removes the temporary directory exactly once."""
        temp_dir = tmp_path / "clone"
        (temp_dir / "repo").mkdir(parents=True)
        root = WorkingRoot(temp_dir / "repo", temp_dir=temp_dir)

        root.cleanup()
        assert not temp_dir.exists()

        temp_dir.mkdir()
        root.cleanup()
        assert temp_dir.exists()
