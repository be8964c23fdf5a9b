"""refer-to-child git adapter and CLI."""
from .repository import GitRepository, persist_match

__all__ = ["GitRepository", "persist_match"]
