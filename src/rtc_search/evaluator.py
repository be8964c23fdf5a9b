"""refer-to-child - Candidate Evaluation.

One candidate integer ``i`` decides both the placeholder text
(``i mod 16**L`` as ``L`` hex digits) and, when an extra header is enabled,
that header's value (``i`` itself). The candidate matches when the child,
re-pointed at the rewritten parent, hashes to a name starting with the
placeholder text.
"""
from __future__ import annotations

from dataclasses import dataclass

from rtc_core.errors import PreconditionError
from rtc_core.hashing import FramedHasher, commit_hash
from rtc_core.protocol import COMMIT_KIND, MAX_PREFIX_LENGTH
from rtc_core.template import ChildTemplate, ParentTemplate


@dataclass(frozen=True)
class Match:
    parent: bytes
    child: bytes
    candidate: int
    parent_sha: str
    child_sha: str


def check_prefix_length(prefix_length: int) -> None:
    if not 1 <= prefix_length <= MAX_PREFIX_LENGTH:
        raise PreconditionError("E_PREFIX_LENGTH", str(prefix_length))


def candidate_prefix(candidate: int, prefix_length: int) -> str:
    return format(candidate % (1 << (4 * prefix_length)), f"0{prefix_length}x")


class CandidateEvaluator:
    """Callable ``evaluator(candidate) -> Match | None`` over fixed bodies.

    Both bodies are parsed once here, so malformed input fails before any
    hashing. The child's bytes in front of its parent hash never change, so
    they are folded into a pre-seeded SHA-1 state.
    """

    def __init__(self, parent_body: bytes, child_body: bytes, prefix_length: int, extra_header: str = ""):
        check_prefix_length(prefix_length)
        self.parent = ParentTemplate(parent_body)
        self.child = ChildTemplate(child_body)
        self.prefix_length = prefix_length
        self.extra_header = extra_header
        self._child_hasher = FramedHasher(COMMIT_KIND, self.child.length, self.child.head)

    def __call__(self, candidate: int) -> Match | None:
        prefix = candidate_prefix(candidate, self.prefix_length)
        parent = b"".join(self.parent.pieces(prefix, self.extra_header, candidate))
        parent_sha = commit_hash(parent)
        child_sha = self._child_hasher.hexdigest(parent_sha.encode("ascii"), self.child.tail)
        if not child_sha.startswith(prefix):
            return None
        return Match(
            parent=parent,
            child=self.child.render(parent_sha),
            candidate=candidate,
            parent_sha=parent_sha,
            child_sha=child_sha,
        )


def evaluate_candidate(
    parent_body: bytes,
    child_body: bytes,
    prefix_length: int,
    extra_header: str,
    candidate: int,
) -> Match | None:
    """Test a single candidate. Pure: same inputs, same output."""
    return CandidateEvaluator(parent_body, child_body, prefix_length, extra_header)(candidate)
