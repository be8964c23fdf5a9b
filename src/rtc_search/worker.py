"""Range worker: exhaustive scan of one contiguous candidate range.

Runs in a pool worker, so it must stay a picklable top-level function with
plain arguments.
"""
from __future__ import annotations

from typing import Any, Callable

from rtc_core.protocol import STOP_POLL_INTERVAL

from .evaluator import CandidateEvaluator, Match

# Stop event installed by the process pool initializer.
_pool_stop: Any = None


def install_stop_event(stop: Any) -> None:
    global _pool_stop
    _pool_stop = stop


def search_range(
    parent_body: bytes,
    child_body: bytes,
    prefix_length: int,
    begin: int,
    end: int,
    extra_header: str = "",
    make_evaluator: Callable[..., Callable[[int], Match | None]] = CandidateEvaluator,
    stop: Any = None,
) -> Match | None:
    """Try every candidate in ``[begin, end)`` in order; first match wins.

    Returns None after ``end - begin`` evaluations, or earlier once ``stop``
    is set. The coordinator only sets ``stop`` after it has stopped reading
    results, so an early None is never taken as exhaustion.
    """
    evaluate = make_evaluator(parent_body, child_body, prefix_length, extra_header)
    for candidate in range(begin, end):
        if stop is not None and (candidate - begin) % STOP_POLL_INTERVAL == 0 and stop.is_set():
            return None
        match = evaluate(candidate)
        if match is not None:
            return match
    return None


def search_range_in_pool(*args: Any) -> Match | None:
    """``search_range`` bound to the stop event of the current pool process."""
    return search_range(*args, stop=_pool_stop)
