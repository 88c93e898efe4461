"""Shared fixtures for repo-concat tests."""

from pathlib import Path
from types import SimpleNamespace

import pytest


@pytest.fixture(autouse=True)
def isolated_git_config(tmp_path_factory, monkeypatch):
    """Point git's global config home at an empty directory."""
    xdg = tmp_path_factory.mktemp("xdg")
    monkeypatch.setenv("XDG_CONFIG_HOME", str(xdg))
    return xdg


@pytest.fixture
def make_tree():
    """Create files from a `{relative_path: content}` mapping under a root."""

    def _make(root: Path, files: dict) -> Path:
        for rel, content in files.items():
            path = root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                path.write_bytes(content)
            else:
                path.write_text(content, encoding="utf-8")
        return root

    return _make


@pytest.fixture
def fake_git(monkeypatch):
    """Replace `git.Repo.clone_from` with a recorder that writes a tiny repo."""
    git = pytest.importorskip("git")
    calls = SimpleNamespace(urls=[], paths=[], checkouts=[], fail=None, git=git)

    def fake_clone_from(url, to_path, **kwargs):
        calls.urls.append(url)
        calls.paths.append(Path(to_path))
        Path(to_path).mkdir(parents=True)
        if calls.fail is not None:
            raise calls.fail
        (Path(to_path) / "main.py").write_text("print('cloned')\n")
        return SimpleNamespace(git=SimpleNamespace(checkout=calls.checkouts.append))

    monkeypatch.setattr(git.Repo, "clone_from", fake_clone_from)
    return calls
