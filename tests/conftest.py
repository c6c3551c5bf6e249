"""Shared fixtures: throwaway git repositories acting as remotes."""

import shutil
import subprocess

import pytest

GIT_IDENTITY = [
    "-c", "user.name=Test",
    "-c", "user.email=test@example.com",
    "-c", "commit.gpgsign=false",
    "-c", "tag.gpgsign=false",
]


def _run_git(cwd, *args) -> str:
    """Run git in cwd and return its stdout."""
    proc = subprocess.run(
        ["git", *GIT_IDENTITY, *args],
        cwd=str(cwd), check=True, capture_output=True,
    )
    return proc.stdout.decode('utf-8').strip()


@pytest.fixture
def run_git(git_available):
    """Runs git in a directory and returns its stdout."""
    return _run_git


@pytest.fixture
def git_available():
    if shutil.which("git") is None:
        pytest.skip("git not installed")


@pytest.fixture
def make_remote(tmp_path, git_available):
    """
    Factory for bare remotes under tmp_path/remotes.

    make_remote("Icinga/iw2-mod-foo", [({"README": "x"}, "v1.0.0"), ...])
    creates one commit per entry, tagging it when a tag is given, and
    returns the path of the bare repository. `make_remote.prefix` turns
    `owner/name` into its URL when followed by `.git`.
    """
    root = tmp_path / "remotes"

    def make(full_name, commits):
        work = tmp_path / "work" / full_name
        work.mkdir(parents=True)
        _run_git(work, "init", "-q")
        for i, (files, tag) in enumerate(commits):
            for name, content in files.items():
                (work / name).write_text(content)
            _run_git(work, "add", "-A")
            _run_git(work, "commit", "-q", "--allow-empty", "-m", f"commit {i}")
            if tag:
                _run_git(work, "tag", tag)

        bare = root / f"{full_name}.git"
        bare.parent.mkdir(parents=True, exist_ok=True)
        _run_git(tmp_path, "clone", "-q", "--bare", str(work), str(bare))
        return bare

    make.prefix = f"{root}/"
    return make
