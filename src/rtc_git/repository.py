"""git plumbing used around the search: read, write and check out commits."""
from __future__ import annotations

import subprocess
from pathlib import Path

from loguru import logger

from rtc_core.errors import CollaboratorError
from rtc_core.protocol import COMMIT_KIND
from rtc_search.evaluator import Match


class GitRepository:
    def __init__(self, path: Path | str = ".", git: str = "git"):
        self.path = Path(path)
        self.git = git

    def _run(self, *args: str, stdin: bytes | None = None) -> bytes:
        cmd = [self.git, *args]
        logger.debug(f"Running {' '.join(cmd)} in {self.path}")
        try:
            proc = subprocess.run(
                cmd,
                cwd=self.path,
                input=stdin,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                check=False,
            )
        except OSError as e:
            raise CollaboratorError("E_GIT", f"'{' '.join(cmd)}': {e}") from e
        if proc.returncode != 0:
            output = proc.stdout.decode("utf-8", errors="replace").strip()
            raise CollaboratorError("E_GIT", f"'git {args[0]}' failed: {output}")
        return proc.stdout

    def resolve(self, ref: str) -> str:
        return self._run("rev-parse", "--verify", f"{ref}^{{commit}}").decode("ascii").strip()

    def fetch_object_body(self, ref: str) -> bytes:
        """Raw commit body exactly as stored, i.e. the bytes git hashes."""
        return self._run("cat-file", COMMIT_KIND, ref)

    def store_object(self, kind: str, data: bytes) -> str:
        # --literally: git's fsck rejects a commit with a header between
        # author and committer, which is where the extra header goes.
        out = self._run("hash-object", "-t", kind, "-w", "--literally", "--stdin", stdin=data)
        return out.decode("ascii").strip()

    def move_position(self, ref: str) -> None:
        """Point HEAD at ``ref``, discarding local changes."""
        self._run("reset", "--hard", ref)


def persist_match(repo: GitRepository, match: Match) -> str:
    """Write both commits, then move HEAD to the new child.

    HEAD is only touched once both objects are stored under the hashes the
    search computed.
    """
    for body, expected in ((match.parent, match.parent_sha), (match.child, match.child_sha)):
        stored = repo.store_object(COMMIT_KIND, body)
        if stored != expected:
            raise CollaboratorError("E_HASH_DISAGREEMENT", f"expected {expected}, git wrote {stored}")
        logger.debug(f"Stored commit {stored}")
    repo.move_position(match.child_sha)
    return match.child_sha
