"""refer-to-child core - Hashing and commit body templating."""
from .hashing import object_hash, commit_hash, object_header, FramedHasher
from .template import render, rewrite_predecessor, find_predecessor, ParentTemplate, ChildTemplate

__all__ = [
    "object_hash",
    "commit_hash",
    "object_header",
    "FramedHasher",
    "render",
    "rewrite_predecessor",
    "find_predecessor",
    "ParentTemplate",
    "ChildTemplate",
]
