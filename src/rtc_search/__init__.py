"""refer-to-child search - Parallel fixed-point search over commit hashes."""
from .evaluator import Match, CandidateEvaluator, evaluate_candidate, candidate_prefix
from .worker import search_range
from .coordinator import Generation, SearchConfig, SearchCoordinator, find_match, next_generation

__all__ = [
    "Match",
    "CandidateEvaluator",
    "evaluate_candidate",
    "candidate_prefix",
    "search_range",
    "Generation",
    "SearchConfig",
    "SearchCoordinator",
    "find_match",
    "next_generation",
]
