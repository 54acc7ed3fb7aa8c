"""
Randomness, pacing and timing spans shared by all virtual users.
"""

from __future__ import annotations

import logging
import random
import threading
import time
from contextlib import contextmanager
from typing import Callable, Iterator, Optional, Sequence, TypeVar

from scenario_models import SpanRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SafeRandom:
    """
    Seedable random source that is safe to share between threads.

    Each virtual user should take its own child via spawn() so that the
    sequences of different users stay independent and reproducible.
    """

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self._random = random.Random(seed)
        self._lock = threading.Lock()

    def next(self, low: int, high: int) -> int:
        """Integer drawn uniformly from [low, high)."""
        with self._lock:
            return self._random.randrange(low, high)

    def uniform(self, a: float, b: float) -> float:
        with self._lock:
            return self._random.uniform(a, b)

    def choice(self, items: Sequence[T]) -> T:
        with self._lock:
            return self._random.choice(items)

    def spawn(self) -> "SafeRandom":
        """Derive an independent child source."""
        with self._lock:
            child_seed = self._random.getrandbits(64)
        return SafeRandom(child_seed)


class Pacer:
    """Human-like pauses between UI interactions."""

    def __init__(self, rng: SafeRandom, think_delay: float = 1.0,
                 entry_delay: float = 0.0, max_delay: float = 5.0,
                 sleep: Callable[[float], None] = time.sleep):
        self.rng = rng
        self.think_delay = think_delay
        self.entry_delay = entry_delay
        self.max_delay = max_delay
        self._sleep = sleep

    def _pause(self, base: float) -> float:
        if base <= 0:
            return 0.0
        delay = min(self.rng.uniform(0.5 * base, 1.5 * base), self.max_delay)
        self._sleep(delay)
        return delay

    def think(self) -> float:
        """Operator dwell time, e.g. looking at a line before the next one."""
        return self._pause(self.think_delay)

    def entry(self) -> float:
        """Short pause emulating typing a value."""
        return self._pause(self.entry_delay)


class SpanRecorder:
    """Collects named timing spans; optionally forwards each to a sink."""

    def __init__(self, sink: Optional[Callable[[SpanRecord], None]] = None):
        self.sink = sink
        self._spans: list[SpanRecord] = []
        self._lock = threading.Lock()

    @contextmanager
    def span(self, name: str, scenario: str = "") -> Iterator[None]:
        """
        Time the enclosed block.

        The span is recorded on every exit path; an exception marks it
        as unsuccessful and is re-raised.
        """
        started_at = time.time()
        start = time.perf_counter()
        success = False
        try:
            yield
            success = True
        finally:
            record = SpanRecord(
                name=name,
                scenario=scenario,
                started_at=started_at,
                ended_at=time.time(),
                duration_seconds=time.perf_counter() - start,
                success=success,
            )
            self.add(record)

    def add(self, record: SpanRecord) -> None:
        with self._lock:
            self._spans.append(record)
        logger.debug(f"Span {record.name}: {record.duration_seconds:.3f}s "
                     f"({'ok' if record.success else 'failed'})")
        if self.sink is not None:
            self.sink(record)

    @property
    def spans(self) -> list[SpanRecord]:
        with self._lock:
            return list(self._spans)
