import os
import shutil
import subprocess
from pathlib import Path

import pytest

PARENT_BODY = (
    b"tree 4b825dc642cb6eb9a060e54bf8d69288fbee4904\n"
    b"author A U Thor <author@example.com> 1700000000 +0000\n"
    b"committer A U Thor <author@example.com> 1700000000 +0000\n"
    b"\n"
    b"I am the parent of ${CHILD_SHA1}\n"
)

CHILD_BODY = (
    b"tree 4b825dc642cb6eb9a060e54bf8d69288fbee4904\n"
    b"parent 0000000000000000000000000000000000000000\n"
    b"author A U Thor <author@example.com> 1700000001 +0000\n"
    b"committer A U Thor <author@example.com> 1700000001 +0000\n"
    b"\n"
    b"I am the child\n"
)

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


@pytest.fixture
def parent_body() -> bytes:
    return PARENT_BODY


@pytest.fixture
def child_body() -> bytes:
    return CHILD_BODY


@pytest.fixture
def git_env(tmp_path):
    env = dict(os.environ)
    env.update({
        "HOME": str(tmp_path),
        "GIT_CONFIG_NOSYSTEM": "1",
        "GIT_AUTHOR_NAME": "A U Thor",
        "GIT_AUTHOR_EMAIL": "author@example.com",
        "GIT_COMMITTER_NAME": "A U Thor",
        "GIT_COMMITTER_EMAIL": "author@example.com",
    })
    return env


def git(repo: Path, env: dict, *args: str) -> str:
    r = subprocess.run(["git", *args], cwd=repo, env=env, check=True, capture_output=True, text=True)
    return r.stdout.strip()


@pytest.fixture
def git_repo(tmp_path, git_env):
    """Repository with base <- parent <- child, HEAD on child."""
    repo = tmp_path / "repo"
    repo.mkdir()
    git(repo, git_env, "init", "-q")
    git(repo, git_env, "config", "commit.gpgsign", "false")
    for name, msg in [
        ("base.txt", "base"),
        ("parent.txt", "I am the parent of ${CHILD_SHA1}"),
        ("child.txt", "I am the child"),
    ]:
        (repo / name).write_text(name + "\n", encoding="utf-8")
        git(repo, git_env, "add", name)
        git(repo, git_env, "commit", "-q", "-m", msg)
    return repo
