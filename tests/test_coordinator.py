import threading
import time

import pytest

from rtc_core.errors import PreconditionError, SearchExhausted, SearchTimeout
from rtc_core.hashing import commit_hash
from rtc_core.template import find_predecessor
from rtc_search.coordinator import (
    Generation,
    SearchConfig,
    SearchCoordinator,
    find_match,
    next_generation,
)
from rtc_search.evaluator import Match


def _stub(calls, match_at=None, lock=threading.Lock()):
    def make_evaluator(parent, child, prefix_length, extra_header):
        def evaluate(candidate):
            with lock:
                calls.append(candidate)
            if candidate == match_at:
                return Match(b"p", b"c", candidate, "0" * 40, "1" * 40)
            return None
        return evaluate
    return make_evaluator


def test_generation_partition_is_contiguous_and_even():
    gen = Generation.first(2)
    assert gen.width == 256
    ranges = gen.partition(4)
    assert ranges == [(0, 64), (64, 128), (128, 192), (192, 256)]


def test_later_generation_partition_is_offset():
    gen = Generation.first(1).next().next()
    assert (gen.index, gen.start, gen.end) == (2, 32, 48)
    assert gen.partition(2) == [(32, 40), (40, 48)]


def test_partition_must_divide_width():
    with pytest.raises(PreconditionError) as exc:
        Generation.first(1).partition(3)
    assert exc.value.code == "E_PARTITION"


def test_next_generation_decision():
    gen = Generation.first(3)
    assert next_generation(gen, expand=False) is None
    nxt = next_generation(gen, expand=True)
    assert nxt == Generation(index=1, start=4096, width=4096)


def test_config_validation():
    with pytest.raises(PreconditionError):
        SearchConfig(prefix_length=2, parallelism=3)
    with pytest.raises(PreconditionError):
        SearchConfig(parallelism=0)
    with pytest.raises(PreconditionError):
        SearchConfig(prefix_length=0)
    with pytest.raises(PreconditionError):
        SearchConfig(extra_header="two words")
    assert SearchConfig().expand is False
    assert SearchConfig(extra_header="nonce").expand is True


def test_exhaustion_without_expansion_tries_one_generation():
    calls = []
    coord = SearchCoordinator(SearchConfig(prefix_length=2, parallelism=4), make_evaluator=_stub(calls), executor="thread")
    with pytest.raises(SearchExhausted) as exc:
        coord.run(b"p", b"c")
    assert exc.value.code == "E_EXHAUSTED"
    assert "--extra-header" in str(exc.value)
    assert sorted(calls) == list(range(256))


def test_expansion_reaches_match_in_later_generation():
    calls = []
    target = 2 * 16 + 5
    coord = SearchCoordinator(
        SearchConfig(prefix_length=1, parallelism=4, extra_header="nonce"),
        make_evaluator=_stub(calls, match_at=target),
        executor="thread",
    )
    match = coord.run(b"p", b"c")
    assert match.candidate == target
    assert set(range(32)) <= set(calls)


def test_generation_limit():
    calls = []
    coord = SearchCoordinator(
        SearchConfig(prefix_length=1, parallelism=2, extra_header="nonce", max_generations=3),
        make_evaluator=_stub(calls),
        executor="thread",
    )
    with pytest.raises(SearchExhausted) as exc:
        coord.run(b"p", b"c")
    assert exc.value.code == "E_GENERATION_LIMIT"
    assert sorted(calls) == list(range(48))


def test_timeout_stops_generation():
    def make_evaluator(parent, child, prefix_length, extra_header):
        def evaluate(candidate):
            time.sleep(0.5)
            return None
        return evaluate

    coord = SearchCoordinator(
        SearchConfig(prefix_length=1, parallelism=16, timeout=0.05),
        make_evaluator=make_evaluator,
        executor="thread",
    )
    with pytest.raises(SearchTimeout):
        coord.run(b"p", b"c")


def test_worker_errors_propagate():
    def make_evaluator(parent, child, prefix_length, extra_header):
        def evaluate(candidate):
            if candidate == 3:
                raise RuntimeError("boom")
            return None
        return evaluate

    coord = SearchCoordinator(SearchConfig(prefix_length=1, parallelism=4), make_evaluator=make_evaluator, executor="thread")
    with pytest.raises(RuntimeError, match="boom"):
        coord.run(b"p", b"c")


def test_malformed_parent_fails_before_dispatch(parent_body, child_body):
    body = parent_body.replace(b"committer ", b"")
    coord = SearchCoordinator(SearchConfig(prefix_length=2, parallelism=4))
    with pytest.raises(PreconditionError) as exc:
        coord.run(body, child_body)
    assert exc.value.code == "E_ANCHOR_MISSING"


def test_unknown_executor_rejected():
    with pytest.raises(ValueError):
        SearchCoordinator(SearchConfig(), executor="fiber")


def test_end_to_end_in_process_pool(parent_body, child_body):
    config = SearchConfig(prefix_length=2, parallelism=4, extra_header="nonce")
    match = find_match(parent_body, child_body, config)

    prefix = match.child_sha[:2]
    assert match.child_sha == commit_hash(match.child)
    assert match.parent_sha == commit_hash(match.parent)
    assert find_predecessor(match.child) == match.parent_sha
    assert b"I am the parent of " + prefix.encode() + b"\n" in match.parent
    assert b"${CHILD_SHA1}" not in match.parent


def _counting_stub(counter, lock, match_at=None, delay=0.0):
    def make_evaluator(parent, child, prefix_length, extra_header):
        def evaluate(candidate):
            with lock:
                counter[0] += 1
            if delay:
                time.sleep(delay)
            if candidate == match_at:
                return Match(b"p", b"c", candidate, "0" * 40, "1" * 40)
            return None
        return evaluate
    return make_evaluator


def test_match_stops_sibling_workers():
    counter, lock = [0], threading.Lock()
    coord = SearchCoordinator(
        SearchConfig(prefix_length=6, parallelism=2),
        make_evaluator=_counting_stub(counter, lock, match_at=0),
        executor="thread",
    )
    match = coord.run(b"p", b"c")
    assert match.candidate == 0
    # The sibling owns 2**23 candidates; it must notice the stop event long before.
    assert counter[0] < 2 ** 20


def test_timeout_stops_all_workers():
    counter, lock = [0], threading.Lock()
    coord = SearchCoordinator(
        SearchConfig(prefix_length=6, parallelism=2, timeout=0.2),
        make_evaluator=_counting_stub(counter, lock, delay=0.0001),
        executor="thread",
    )
    with pytest.raises(SearchTimeout):
        coord.run(b"p", b"c")
    assert counter[0] < 2 ** 20


@pytest.mark.parametrize("name", ["parent", "tree", "author", "committer", "encoding", "gpgsig"])
def test_extra_header_cannot_shadow_commit_headers(name):
    with pytest.raises(PreconditionError) as exc:
        SearchConfig(prefix_length=1, parallelism=1, extra_header=name)
    assert exc.value.code == "E_EXTRA_HEADER"
