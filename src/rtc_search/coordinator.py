"""refer-to-child - Search Coordinator.

PARTITION -> DISPATCH -> COLLECT -> MATCHED | EXHAUSTED.
EXHAUSTED either expands into the next generation (extra header enabled) or
fails: without the extra header every generation would repeat the same
prefixes over the same bytes.

One pool of ``parallelism`` workers serves the whole search. When the search
ends for any reason the stop event is set and the pool is joined, so no
worker keeps burning CPU on a range whose result will never be read.
"""
from __future__ import annotations

import multiprocessing
import threading
from concurrent import futures
from dataclasses import dataclass
from typing import Any, Callable

from loguru import logger

from rtc_core.errors import PreconditionError, SearchExhausted, SearchTimeout
from rtc_core.protocol import DEFAULT_PARALLELISM, DEFAULT_PREFIX_LENGTH, RESERVED_HEADERS

from .evaluator import CandidateEvaluator, Match, check_prefix_length
from .worker import install_stop_event, search_range, search_range_in_pool


@dataclass(frozen=True)
class Generation:
    """One full pass over ``[start, start + width)``."""

    index: int
    start: int
    width: int

    @classmethod
    def first(cls, prefix_length: int) -> "Generation":
        return cls(index=0, start=0, width=1 << (4 * prefix_length))

    @property
    def end(self) -> int:
        return self.start + self.width

    def next(self) -> "Generation":
        return Generation(index=self.index + 1, start=self.end, width=self.width)

    def partition(self, parallelism: int) -> list[tuple[int, int]]:
        """Split into ``parallelism`` contiguous equal ``(begin, end)`` ranges."""
        if parallelism < 1:
            raise PreconditionError("E_PARALLELISM", str(parallelism))
        if self.width % parallelism:
            raise PreconditionError(
                "E_PARTITION", f"{parallelism} does not divide {self.width}"
            )
        step = self.width // parallelism
        return [(self.start + i * step, self.start + (i + 1) * step) for i in range(parallelism)]


def next_generation(generation: Generation, expand: bool) -> Generation | None:
    """EXHAUSTED transition: the next generation, or None to fail."""
    return generation.next() if expand else None


@dataclass(frozen=True)
class SearchConfig:
    prefix_length: int = DEFAULT_PREFIX_LENGTH
    parallelism: int = DEFAULT_PARALLELISM
    extra_header: str = ""
    timeout: float | None = None
    max_generations: int | None = None

    def __post_init__(self) -> None:
        check_prefix_length(self.prefix_length)
        Generation.first(self.prefix_length).partition(self.parallelism)
        if self.extra_header and (
            self.extra_header.split() != [self.extra_header] or self.extra_header in RESERVED_HEADERS
        ):
            raise PreconditionError("E_EXTRA_HEADER", repr(self.extra_header))

    @property
    def expand(self) -> bool:
        return bool(self.extra_header)


class SearchCoordinator:
    """Runs generations over a worker pool until a match or a terminal failure.

    ``executor`` is ``"process"`` (default, true parallelism) or ``"thread"``
    (shares the interpreter; lets callers inject unpicklable evaluators).
    """

    def __init__(
        self,
        config: SearchConfig,
        make_evaluator: Callable[..., Callable[[int], Match | None]] = CandidateEvaluator,
        executor: str = "process",
    ):
        if executor not in ("process", "thread"):
            raise ValueError(f"unknown executor {executor!r}")
        self.config = config
        self.make_evaluator = make_evaluator
        self.executor = executor

    def _open_pool(self) -> tuple[futures.Executor, Any]:
        workers = self.config.parallelism
        if self.executor == "thread":
            return futures.ThreadPoolExecutor(max_workers=workers), threading.Event()
        # Synchronization primitives reach pool processes only by inheritance.
        ctx = multiprocessing.get_context()
        stop = ctx.Event()
        pool = futures.ProcessPoolExecutor(
            max_workers=workers,
            mp_context=ctx,
            initializer=install_stop_event,
            initargs=(stop,),
        )
        return pool, stop

    def _submit(self, pool: futures.Executor, stop: Any, *args: Any) -> futures.Future:
        if self.executor == "process":
            return pool.submit(search_range_in_pool, *args)
        return pool.submit(search_range, *args, stop=stop)

    def _run_generation(
        self,
        pool: futures.Executor,
        stop: Any,
        generation: Generation,
        parent_body: bytes,
        child_body: bytes,
    ) -> Match | None:
        cfg = self.config
        ranges = generation.partition(cfg.parallelism)
        logger.info(
            f"Generation {generation.index}: candidates [{generation.start:#x}, {generation.end:#x}) "
            f"across {len(ranges)} workers"
        )
        pending = {
            self._submit(
                pool, stop, parent_body, child_body, cfg.prefix_length,
                begin, end, cfg.extra_header, self.make_evaluator,
            ): (begin, end)
            for begin, end in ranges
        }
        try:
            for future in futures.as_completed(pending, timeout=cfg.timeout):
                match = future.result()
                begin, end = pending[future]
                if match is not None:
                    logger.debug(f"Worker [{begin:#x}, {end:#x}) matched candidate {match.candidate:#x}")
                    return match
                logger.debug(f"Worker [{begin:#x}, {end:#x}) reported no match")
        except futures.TimeoutError:
            raise SearchTimeout(
                "E_TIMEOUT", f"generation {generation.index} exceeded {cfg.timeout}s"
            ) from None
        return None

    def run(self, parent_body: bytes, child_body: bytes) -> Match:
        cfg = self.config
        # Malformed bodies fail here, before any worker starts.
        self.make_evaluator(parent_body, child_body, cfg.prefix_length, cfg.extra_header)

        pool, stop = self._open_pool()
        generation: Generation | None = Generation.first(cfg.prefix_length)
        try:
            while True:
                match = self._run_generation(pool, stop, generation, parent_body, child_body)
                if match is not None:
                    logger.info(
                        f"Match in generation {generation.index}: parent {match.parent_sha} "
                        f"child {match.child_sha}"
                    )
                    return match
                logger.info(f"Generation {generation.index} exhausted")
                generation = next_generation(generation, cfg.expand)
                if generation is None:
                    raise SearchExhausted("E_EXHAUSTED", f"prefix length {cfg.prefix_length}")
                if cfg.max_generations is not None and generation.index >= cfg.max_generations:
                    raise SearchExhausted("E_GENERATION_LIMIT", f"{cfg.max_generations} generations")
        finally:
            stop.set()
            pool.shutdown(wait=True, cancel_futures=True)


def find_match(parent_body: bytes, child_body: bytes, config: SearchConfig | None = None, **kwargs: Any) -> Match:
    """Search with a fresh coordinator; see ``SearchCoordinator`` for kwargs."""
    return SearchCoordinator(config or SearchConfig(), **kwargs).run(parent_body, child_body)
