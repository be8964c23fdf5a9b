"""refer-to-child protocol constants.

Single source of truth for the textual anchors of a git commit body.
Keep this file stable. Templater, rewriter and git adapter must agree.
"""

# Object framing
COMMIT_KIND = "commit"
HASH_HEX_LEN = 40  # SHA-1

# Parent body anchors
PLACEHOLDER = b"${CHILD_SHA1}"
COMMITTER_ANCHOR = b"committer "

# Child body anchor: "parent <40 hex>\n"
PARENT_FIELD = b"parent "

# Search defaults
DEFAULT_PREFIX_LENGTH = 6
DEFAULT_PARALLELISM = 8
MAX_PREFIX_LENGTH = HASH_HEX_LEN

# Candidates evaluated between checks of the stop event
STOP_POLL_INTERVAL = 4096

# Commit headers git parses; an extra header must not shadow them
RESERVED_HEADERS = frozenset(
    {"tree", "parent", "author", "committer", "encoding", "mergetag", "gpgsig", "gpgsig-sha256"}
)
