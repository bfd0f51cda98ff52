# terrain_streamer/worker.py

"""
================================================================================
CHUNK SYNTHESIS QUEUE
================================================================================
Moves chunk synthesis off the interactive path. Keys are submitted, synthesised
on a pool of worker threads, and handed back by poll() once ready.

Rules the queue enforces:
    - At most one synthesis is in flight per key. Re-submitting a key that is
      already running is a no-op.
    - A cancelled key's result is discarded when it arrives, never returned.
      Re-submitting a cancelled key that is still running simply revives it,
      since synthesis is deterministic per key.
    - Exceptions raised by a worker are re-raised from poll(); results that
      finished cleanly are kept for the next poll.

Workers share the sampler and feature index read-only; they never touch the
chunk store, so the store needs no locking.
================================================================================
"""
import logging
import threading
import time
from multiprocessing.pool import ThreadPool


class ChunkSynthesisQueue:
    def __init__(self, synthesize, workers: int, logger: logging.Logger = None):
        """
        Args:
            synthesize: callable key -> Chunk. Must be safe to call from any thread.
            workers (int): Number of worker threads.
            logger (logging.Logger): The logger instance for all output.
        """
        self.synthesize = synthesize
        self.logger = logger or logging.getLogger(__name__)
        self._pool = ThreadPool(processes=workers)
        self._results = {}
        self._cancelled = set()
        self._lock = threading.Lock()
        self.logger.debug(f"Chunk synthesis pool started with {workers} workers.")

    def submit(self, key) -> bool:
        """Queues a key. Returns False if a synthesis for it is already running."""
        with self._lock:
            if key in self._results:
                self._cancelled.discard(key)
                return False
            self._results[key] = self._pool.apply_async(self.synthesize, (key,))
            return True

    def cancel(self, key):
        """Marks a running synthesis so its result is discarded. Unknown keys are ignored."""
        with self._lock:
            if key in self._results:
                self._cancelled.add(key)

    def in_flight(self) -> frozenset:
        """Submitted, uncancelled keys whose results have not been polled yet."""
        with self._lock:
            return frozenset(key for key in self._results if key not in self._cancelled)

    def poll(self) -> list:
        """
        Returns (key, chunk) for every finished, uncancelled synthesis.

        If a worker raised, its exception is re-raised here and the failed key
        is dropped. Other finished keys stay in flight for the next poll.
        """
        with self._lock:
            ready = sorted(key for key, result in self._results.items() if result.ready())
            failed = None
            for key in ready:
                if key in self._cancelled:
                    del self._results[key]
                    self._cancelled.discard(key)
                    self.logger.debug(f"Dropped cancelled synthesis for {key}.")
                elif failed is None and not self._results[key].successful():
                    failed = (key, self._results.pop(key))
            if failed is not None:
                key, result = failed
                self.logger.error(f"Synthesis for {key} failed.")
                # get() re-raises the worker's exception.
                result.get()
            finished = []
            for key in ready:
                # Further failures wait for the next poll.
                if key in self._results and self._results[key].successful():
                    finished.append((key, self._results.pop(key).get()))
            return finished

    def wait(self, timeout: float = None):
        """Blocks until every submitted synthesis has finished, or until `timeout` seconds in total."""
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._lock:
            results = list(self._results.values())
        for result in results:
            if deadline is None:
                result.wait()
            else:
                result.wait(max(0.0, deadline - time.monotonic()))

    def close(self):
        self._pool.close()
        self._pool.join()
        self.logger.debug("Chunk synthesis pool stopped.")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
