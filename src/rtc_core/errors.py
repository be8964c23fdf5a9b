"""Error codes for refer-to-child. Every failure is terminal for the run."""
from __future__ import annotations

ERRORS = {
    "E_ANCHOR_MISSING": "Parent body has no 'committer' line",
    "E_PARENT_MISSING": "Child body has no 'parent <sha1>' line",
    "E_BAD_HASH": "Predecessor hash must be 40 lower-case hex characters",
    "E_PREFIX_LENGTH": "Prefix length must be between 1 and 40",
    "E_PARALLELISM": "Parallelism must be a positive integer",
    "E_PARTITION": "Parallelism must evenly divide the generation width",
    "E_EXTRA_HEADER": "Extra header name must be a single word that is not a commit header git parses",
    "E_GENERATION_LIMIT": "Search stopped at its generation limit without a match",
    "E_EXHAUSTED": (
        "Did not succeed just by updating the parent message. Specify "
        "--extra-header to add an extra header to the parent and give the "
        "search more text to play with"
    ),
    "E_TIMEOUT": "Search generation exceeded its time budget",
    "E_GIT": "git command failed",
    "E_HASH_DISAGREEMENT": "git stored an object under an unexpected hash",
}


class RtcError(Exception):
    """Base error. ``str()`` is ``"<code>: <message> (<detail>)"``."""

    def __init__(self, code: str, detail: str | None = None):
        self.code = code
        self.detail = detail
        msg = f"{code}: {ERRORS[code]}"
        if detail:
            msg += f" ({detail})"
        super().__init__(msg)

    def __reduce__(self):
        # Rebuilt from (code, detail) when crossing a process boundary.
        return (self.__class__, (self.code, self.detail))


class PreconditionError(RtcError, ValueError):
    """Malformed input or configuration. Raised before any hashing."""


class SearchExhausted(RtcError):
    """Every generation allowed by the configuration came back empty."""


class SearchTimeout(RtcError):
    """A generation ran past its time budget."""


class CollaboratorError(RtcError):
    """git failed; ``detail`` carries its output verbatim."""
