"""Clock and memory probe backends for benchmark measurement.

The clock is chosen once from a prioritized list of timers in the
:mod:`time` module.  Resolution is a property of the backend as reported
by :func:`time.get_clock_info`; it is never measured at runtime.  When no
high-resolution timer can be used, the coarse ``process_time`` CPU clock
is returned instead and a single advisory warning is logged on first use.

Memory is measured with :mod:`tracemalloc`: a full collection is forced,
the traced size is recorded, the peak is reset, the function runs, and
the peak growth over the starting size is reported in kilobytes.
"""

from __future__ import annotations

import gc
import logging
import math
import time
import tracemalloc
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Iterator, Sequence

log = logging.getLogger("calibench")

# Candidate timers, best first.  Each entry maps the timer name to the
# name understood by time.get_clock_info().
DEFAULT_CLOCKS: tuple[str, ...] = (
    "perf_counter_ns",
    "perf_counter",
    "monotonic_ns",
    "monotonic",
)

_CLOCK_INFO_NAMES: dict[str, str] = {
    "perf_counter_ns": "perf_counter",
    "perf_counter": "perf_counter",
    "monotonic_ns": "monotonic",
    "monotonic": "monotonic",
    "process_time": "process_time",
}

FALLBACK_CLOCK = "process_time"


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------


@dataclass
class Clock:
    """A monotonic time source with a known resolution."""

    name: str
    now: Callable[[], float]
    resolution: float  # seconds
    high_resolution: bool = True
    _warned: bool = field(default=False, init=False, repr=False, compare=False)

    @property
    def precision(self) -> int:
        """Number of meaningful decimal digits of a reading in seconds."""
        if self.resolution <= 0:
            return 9
        return max(0, round(-math.log10(self.resolution)))

    def min_time(self, factor: float) -> float:
        """Smallest batch duration that clears the clock's noise floor."""
        return self.resolution * factor

    def warn_if_coarse(self) -> None:
        """Log a one-time warning when this clock is a low-resolution fallback."""
        if self.high_resolution or self._warned:
            return
        self._warned = True
        log.warning(
            "calibench: using %s (resolution %gs); no high-resolution clock "
            "is available, results for fast functions will be noisy.",
            self.name,
            self.resolution,
        )


def _make_reader(name: str) -> Callable[[], float] | None:
    """Return a seconds-valued reader for a ``time`` module timer, or None."""
    func = getattr(time, name, None)
    if func is None:
        return None
    if name.endswith("_ns"):

        def read_ns() -> float:
            return func() / 1e9

        return read_ns
    return func


def _resolution_of(name: str) -> float | None:
    info_name = _CLOCK_INFO_NAMES.get(name, name)
    try:
        info = time.get_clock_info(info_name)
    except ValueError:
        return None
    if name.endswith("_ns"):
        # The integer variants never report below one nanosecond.
        return max(info.resolution, 1e-9)
    return info.resolution


def build_clock(name: str, *, high_resolution: bool = True) -> Clock | None:
    """Build a :class:`Clock` for the named ``time`` timer.

    Returns None if the timer does not exist on this platform.
    """
    reader = _make_reader(name)
    resolution = _resolution_of(name)
    if reader is None or resolution is None:
        return None
    return Clock(
        name=name,
        now=reader,
        resolution=resolution,
        high_resolution=high_resolution,
    )


def select_clock(candidates: Sequence[str] = DEFAULT_CLOCKS) -> Clock:
    """Pick the first available clock from *candidates*.

    Falls back to the coarse ``process_time`` clock (flagged as not
    high-resolution) when none of the candidates can be used.
    """
    for name in candidates:
        clock = build_clock(name)
        if clock is not None:
            log.debug("Selected clock %s (resolution %gs)", name, clock.resolution)
            return clock
        log.debug("Clock %s unavailable", name)

    fallback = build_clock(FALLBACK_CLOCK, high_resolution=False)
    if fallback is None:
        fallback = Clock(
            name="time",
            now=time.time,
            resolution=time.get_clock_info("time").resolution,
            high_resolution=False,
        )
    return fallback


# ---------------------------------------------------------------------------
# Memory probe
# ---------------------------------------------------------------------------


class MemoryProbe:
    """Measures the peak heap growth of a call with :mod:`tracemalloc`.

    Every measurement forces a full garbage collection first so that
    deltas stay comparable between calls.  Negative deltas are
    measurement noise and are reported as zero.
    """

    name = "tracemalloc"
    unit = "kb"

    def measure(self, fn: Callable[[], object]) -> float:
        """Return the peak memory growth of ``fn()`` in kilobytes."""
        with self.session():
            gc.collect()
            before, _ = tracemalloc.get_traced_memory()
            tracemalloc.reset_peak()
            fn()
            _, peak = tracemalloc.get_traced_memory()
        return max(peak - before, 0) / 1024

    @contextmanager
    def session(self) -> Iterator[None]:
        """Keep tracing active for the duration of the block.

        Tracing is only stopped on exit if this block started it, so
        nested sessions and callers that already trace are left alone.
        """
        started = not tracemalloc.is_tracing()
        if started:
            tracemalloc.start()
        try:
            yield
        finally:
            if started:
                tracemalloc.stop()


# ---------------------------------------------------------------------------
# Manual timer
# ---------------------------------------------------------------------------


class Timer:
    """A stopwatch that accumulates time over several start/stop sections.

    Usage::

        timer = Timer()
        timer.start()
        work()
        timer.stop()
        total = timer.elapsed()
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or select_clock()
        self._start: float | None = None
        self._total = 0.0

    @property
    def running(self) -> bool:
        return self._start is not None

    def start(self) -> None:
        if self._start is not None:
            raise RuntimeError("timer.start() called while already running")
        self._start = self._clock.now()

    def stop(self) -> float:
        """Stop the current section and return its duration in seconds."""
        if self._start is None:
            raise RuntimeError("timer.stop() called without start()")
        section = self._clock.now() - self._start
        self._start = None
        self._total += section
        return section

    def elapsed(self) -> float:
        """Total time of all completed sections."""
        if self._start is not None:
            raise RuntimeError("timer still running (missing stop())")
        return self._total

    def reset(self) -> None:
        self._start = None
        self._total = 0.0
