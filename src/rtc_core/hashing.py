"""refer-to-child - Content-Address Hashing.

Git names an object by the SHA-1 of ``"<kind> <len>\\0" + body``.
"""
from __future__ import annotations

import hashlib

from .protocol import COMMIT_KIND


def object_header(kind: str, length: int) -> bytes:
    """Frame header for an object body of ``length`` bytes."""
    return f"{kind} {length}\x00".encode("ascii")


def object_hash(kind: str, body: bytes) -> str:
    """Compute the 40-hex git object name of ``body``."""
    h = hashlib.sha1(object_header(kind, len(body)))
    h.update(body)
    return h.hexdigest()


def commit_hash(body: bytes) -> str:
    return object_hash(COMMIT_KIND, body)


class FramedHasher:
    """SHA-1 state pre-seeded with a frame header and a constant body prefix.

    For bodies whose total length is known up front and whose leading bytes
    never change, only the varying tail has to be hashed per call.
    """

    def __init__(self, kind: str, length: int, prefix: bytes = b""):
        self.length = length
        self._state = hashlib.sha1(object_header(kind, length))
        self._state.update(prefix)
        self._remaining = length - len(prefix)

    def hexdigest(self, *tail: bytes) -> str:
        h = self._state.copy()
        n = 0
        for piece in tail:
            h.update(piece)
            n += len(piece)
        if n != self._remaining:
            raise ValueError(f"FATAL: framed length mismatch ({n} != {self._remaining})")
        return h.hexdigest()
