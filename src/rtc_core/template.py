"""refer-to-child - Commit Body Templating.

Two narrow text scans over raw commit bodies:

- the parent body is split at its ``committer`` line; the placeholder is
  substituted after that point and an optional extra header is spliced in
  right before it;
- the child body has the hash of its first ``parent`` line replaced.

Bodies are never mutated; every call returns fresh bytes.
"""
from __future__ import annotations

import re

from .errors import PreconditionError
from .protocol import COMMITTER_ANCHOR, HASH_HEX_LEN, PARENT_FIELD, PLACEHOLDER

_PARENT_LINE = re.compile(
    rb"^" + re.escape(PARENT_FIELD) + rb"([0-9a-f]{%d})$" % HASH_HEX_LEN, re.MULTILINE
)
_HASH = re.compile(r"[0-9a-f]{%d}" % HASH_HEX_LEN)


def _line_start(body: bytes, token: bytes) -> int:
    """Offset of the first line beginning with ``token``, or -1."""
    if body.startswith(token):
        return 0
    idx = body.find(b"\n" + token)
    return idx + 1 if idx != -1 else -1


def extra_header_line(name: str, value: int) -> bytes:
    if not name:
        return b""
    return f"{name} {value:x}\n".encode("utf-8")


class ParentTemplate:
    """Parent body split once at its ``committer`` line."""

    def __init__(self, body: bytes):
        idx = _line_start(body, COMMITTER_ANCHOR)
        if idx == -1:
            raise PreconditionError("E_ANCHOR_MISSING")
        self.head = body[:idx]
        self.tail = body[idx:]

    def pieces(self, prefix: str, extra_header: str = "", extra_value: int = 0) -> tuple[bytes, bytes, bytes]:
        """(header region, extra header line, rewritten field/message region)."""
        return (
            self.head,
            extra_header_line(extra_header, extra_value),
            self.tail.replace(PLACEHOLDER, prefix.encode("ascii")),
        )

    def render(self, prefix: str, extra_header: str = "", extra_value: int = 0) -> bytes:
        return b"".join(self.pieces(prefix, extra_header, extra_value))


class ChildTemplate:
    """Child body split once around the hash of its first ``parent`` line."""

    def __init__(self, body: bytes):
        m = _PARENT_LINE.search(body)
        if m is None:
            raise PreconditionError("E_PARENT_MISSING")
        start, end = m.span(1)
        self.head = body[:start]
        self.current = body[start:end].decode("ascii")
        self.tail = body[end:]

    @property
    def length(self) -> int:
        return len(self.head) + HASH_HEX_LEN + len(self.tail)

    def render(self, parent_sha: str) -> bytes:
        if not _HASH.fullmatch(parent_sha):
            raise PreconditionError("E_BAD_HASH", parent_sha)
        return self.head + parent_sha.encode("ascii") + self.tail


def render(parent_body: bytes, prefix: str, extra_header: str = "", extra_value: int = 0) -> bytes:
    """Candidate parent body for one placeholder prefix and extra header value."""
    return ParentTemplate(parent_body).render(prefix, extra_header, extra_value)


def rewrite_predecessor(child_body: bytes, new_sha: str) -> bytes:
    """Point the child's ``parent`` line at ``new_sha``; other bytes unchanged."""
    return ChildTemplate(child_body).render(new_sha)


def find_predecessor(child_body: bytes) -> str:
    return ChildTemplate(child_body).current
