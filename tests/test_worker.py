"""Tests for the threaded synthesis queue and pooled chunk streaming."""
import threading
import time

import numpy as np
import pytest

from terrain_streamer.chunks import ChunkStore, active_window
from terrain_streamer.worker import ChunkSynthesisQueue

from test_chunks import stub_chunk


class GatedSynthesis:
    """Blocks every synthesis until the gate opens; counts calls per key."""

    def __init__(self):
        self.gate = threading.Event()
        self.calls = {}
        self._lock = threading.Lock()

    def __call__(self, key):
        with self._lock:
            self.calls[key] = self.calls.get(key, 0) + 1
        assert self.gate.wait(timeout=10)
        return stub_chunk(key)


@pytest.fixture
def gated():
    synthesis = GatedSynthesis()
    queue = ChunkSynthesisQueue(synthesis, workers=2)
    yield synthesis, queue
    synthesis.gate.set()
    queue.close()


def test_submit_is_at_most_once_per_key(gated):
    synthesis, queue = gated
    assert queue.submit((0, 0)) is True
    assert queue.submit((0, 0)) is False
    assert queue.in_flight() == {(0, 0)}
    synthesis.gate.set()
    queue.wait()
    assert [key for key, _ in queue.poll()] == [(0, 0)]
    assert synthesis.calls == {(0, 0): 1}
    assert queue.in_flight() == frozenset()


def test_cancelled_results_are_discarded(gated):
    synthesis, queue = gated
    queue.submit((1, 1))
    queue.submit((2, 2))
    queue.cancel((1, 1))
    assert queue.in_flight() == {(2, 2)}
    synthesis.gate.set()
    queue.wait()
    assert [key for key, _ in queue.poll()] == [(2, 2)]


def test_resubmitting_cancelled_key_revives_it(gated):
    synthesis, queue = gated
    queue.submit((3, 3))
    queue.cancel((3, 3))
    assert queue.submit((3, 3)) is False
    synthesis.gate.set()
    queue.wait()
    assert [key for key, _ in queue.poll()] == [(3, 3)]
    assert synthesis.calls == {(3, 3): 1}


def test_worker_exceptions_propagate():
    def broken(key):
        raise RuntimeError(f"cannot build {key}")

    with ChunkSynthesisQueue(broken, workers=1) as queue:
        queue.submit((0, 0))
        queue.wait()
        with pytest.raises(RuntimeError, match="cannot build"):
            queue.poll()


def test_failed_synthesis_keeps_finished_results():
    def half_broken(key):
        if key == (1, 1):
            raise RuntimeError(f"cannot build {key}")
        return stub_chunk(key)

    with ChunkSynthesisQueue(half_broken, workers=2) as queue:
        queue.submit((0, 0))
        queue.submit((1, 1))
        queue.wait()
        with pytest.raises(RuntimeError, match="cannot build"):
            queue.poll()
        assert queue.in_flight() == {(0, 0)}
        assert [key for key, _ in queue.poll()] == [(0, 0)]
        assert queue.in_flight() == frozenset()


def test_wait_timeout_bounds_the_total_wait(gated):
    synthesis, queue = gated
    for key in [(0, 0), (1, 0), (2, 0), (3, 0)]:
        queue.submit(key)
    started = time.monotonic()
    queue.wait(timeout=0.25)
    assert time.monotonic() - started < 0.75
    assert len(queue.in_flight()) == 4


def test_evicting_pending_window_key_keeps_its_synthesis(gated):
    synthesis, queue = gated
    store = ChunkStore(synthesis, render_radius=0, queue=queue)
    store.update(0, 0)
    assert store.evict((0, 0)) is False
    assert store.pending == {(0, 0)}
    synthesis.gate.set()
    assert store.flush(timeout=10) == [(0, 0)]


def test_pooled_store_keeps_window_invariant(gated):
    synthesis, queue = gated
    store = ChunkStore(synthesis, render_radius=1, queue=queue)

    report = store.update(0, 0)
    assert report.created == ()
    assert set(report.pending) == active_window((0, 0), 1)
    assert len(store) == 0

    # Move before anything finished: the old column is cancelled, the new one queued.
    report = store.update(1, 0)
    assert store.pending == active_window((1, 0), 1)

    synthesis.gate.set()
    created = store.flush(timeout=10)
    assert set(created) == active_window((1, 0), 1)
    assert store.keys() == active_window((1, 0), 1)
    assert store.pending == frozenset()
    assert all(count == 1 for count in synthesis.calls.values())


def test_returning_observer_reuses_in_flight_synthesis(gated):
    synthesis, queue = gated
    store = ChunkStore(synthesis, render_radius=0, queue=queue)
    store.update(0, 0)
    store.update(1, 0)
    store.update(0, 0)
    synthesis.gate.set()
    store.flush(timeout=10)
    assert store.keys() == {(0, 0)}
    assert synthesis.calls[(0, 0)] == 1


def test_pooled_world_matches_inline_world(small_world, pooled_world):
    small_world.update_chunks(0, 0)
    pooled_world.update_chunks(0, 0)
    pooled_world.chunks.flush(timeout=30)
    assert pooled_world.chunks.keys() == small_world.chunks.keys()
    for key in small_world.chunks:
        inline, pooled = small_world.chunks[key], pooled_world.chunks[key]
        assert np.array_equal(inline.heightmap, pooled.heightmap)
        assert inline.decorations == pooled.decorations
