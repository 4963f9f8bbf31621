"""Measurement rounds for one benchmark target.

Lifecycle of one (function, parameter combination) pair:

1. ``setup(params)`` runs once; its return value is the shared context.
2. Time benchmarks calibrate the number of calls per round.
3. One unrecorded warmup batch.
4. Measured rounds until the budget is spent.  Time rounds run with the
   garbage collector disabled (when configured); memory rounds keep it
   enabled because they measure allocation, not pause time.
5. ``teardown(ctx, params)`` runs once.

If the benchmarked function raises, the collector is restored, teardown
is still attempted, and the original exception propagates.  A failing
teardown only propagates when the benchmark itself succeeded.
"""

from __future__ import annotations

import gc
import inspect
import itertools
import logging
import math
from contextlib import contextmanager, nullcontext
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Callable, Iterator

from calibench.calibrate import CALIBRATION_PRECISION, calibrate
from calibench.config import Settings

log = logging.getLogger("calibench")

TIME_MODE = "time"
MEMORY_MODE = "memory"

MAX_ROUNDS = 100  # cap for the automatic budget
DEFAULT_TIME = 1.0  # seconds targeted by the automatic budget
MAX_TOTAL_ROUNDS = 10_000  # safety valve when rounds is not explicit
TIME_BUDGET_ROUNDS = 1000  # rounds a time budget is spread over


# ---------------------------------------------------------------------------
# Targets
# ---------------------------------------------------------------------------


def positional_arity(fn: Callable[..., Any], limit: int) -> int:
    """Number of required positional arguments *fn* takes, capped at *limit*.

    Parameters with a default are left to their default, so ``list`` or
    ``def work(n=10)`` are called with no arguments.  Callables without an
    inspectable signature are called with no arguments too.
    """
    try:
        sig = inspect.signature(fn)
    except (TypeError, ValueError):
        return 0
    count = 0
    for p in sig.parameters.values():
        if p.kind is inspect.Parameter.VAR_POSITIONAL:
            return limit
        if (
            p.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
            and p.default is inspect.Parameter.empty
        ):
            count += 1
    return min(count, limit)


@dataclass(frozen=True)
class Call:
    """A user callable paired with how many of ``(ctx, params)`` it takes."""

    fn: Callable[..., Any]
    nargs: int

    @classmethod
    def of(cls, fn: Callable[..., Any], limit: int = 2) -> Call:
        return cls(fn, positional_arity(fn, limit))

    def __call__(self, *args: Any) -> Any:
        return self.fn(*args[: self.nargs])

    def bind(self, *args: Any) -> Callable[[], Any]:
        """Zero-argument callable with the accepted arguments pre-applied."""
        args = args[: self.nargs]
        return partial(self.fn, *args) if args else self.fn


@dataclass(frozen=True)
class Target:
    """A benchmarked function resolved with its hooks.

    ``before``/``after`` run around every call; ``setup``/``teardown``
    run once per parameter combination.
    """

    name: str
    fn: Call
    before: Call | None = None
    after: Call | None = None
    setup: Call | None = None
    teardown: Call | None = None
    baseline: bool = False

    @property
    def has_hooks(self) -> bool:
        return self.before is not None or self.after is not None


def make_batch(target: Target, ctx: Any, params: dict[str, Any]) -> Callable[[int], None]:
    """Build a function that runs the target *n* times back to back.

    Without per-iteration hooks the call is pre-bound and dispatched with
    no hook overhead.  With hooks, ``before(ctx, params)`` derives a
    per-iteration context (None keeps the shared one), which is passed to
    the function and to ``after`` and then dropped.
    """
    if not target.has_hooks:
        call = target.fn.bind(ctx, params)

        def run_plain(n: int) -> None:
            for _ in itertools.repeat(None, n):
                call()

        return run_plain

    fn, before, after = target.fn, target.before, target.after

    def run_hooked(n: int) -> None:
        for _ in itertools.repeat(None, n):
            iteration_ctx = ctx
            if before is not None:
                derived = before(ctx, params)
                if derived is not None:
                    iteration_ctx = derived
            fn(iteration_ctx, params)
            if after is not None:
                after(iteration_ctx, params)

    return run_hooked


# ---------------------------------------------------------------------------
# Garbage collector control
# ---------------------------------------------------------------------------


@contextmanager
def gc_suppressed(enabled: bool = True) -> Iterator[None]:
    """Disable the garbage collector for the block, restoring it on exit."""
    was_enabled = gc.isenabled()
    if enabled:
        gc.collect()
        gc.disable()
    try:
        yield
    finally:
        if enabled and was_enabled:
            gc.enable()


# ---------------------------------------------------------------------------
# Stopping rule
# ---------------------------------------------------------------------------


def auto_rounds(first_duration: float) -> int:
    """Round count that keeps a run near ``DEFAULT_TIME``, capped at ``MAX_ROUNDS``."""
    if first_duration <= 0:
        return MAX_ROUNDS
    return min(MAX_ROUNDS, max(1, math.ceil(DEFAULT_TIME / first_duration)))


class RoundBudget:
    """Decides when the round loop stops.

    - Explicit rounds: stop after exactly that many rounds.
    - Explicit time: stop once the wall time since the first measured
      round reaches it (overshooting by at most one round).
    - Neither: derive a round count from the first round's duration.

    Without explicit rounds the loop never exceeds ``MAX_TOTAL_ROUNDS``.
    """

    def __init__(self, rounds: int | None = None, time: float | None = None) -> None:
        self.rounds = rounds
        self.time = time
        self.auto = rounds is None and time is None
        self.limit = rounds if rounds is not None else MAX_TOTAL_ROUNDS

    @classmethod
    def from_settings(cls, settings: Settings) -> RoundBudget:
        return cls(rounds=settings.rounds, time=settings.time)

    def observe_first(self, duration: float) -> None:
        if self.auto:
            self.limit = auto_rounds(duration)
            log.debug("First round took %.3gs; targeting %d rounds", duration, self.limit)

    def done(self, completed: int, elapsed: float) -> bool:
        if completed >= self.limit:
            return True
        return self.time is not None and elapsed >= self.time


# ---------------------------------------------------------------------------
# Round loop
# ---------------------------------------------------------------------------


@dataclass
class RoundsOutcome:
    """Raw output of the round loop for one target."""

    samples: list[float] = field(default_factory=list)
    iterations: int = 1
    total_time: float = 0.0  # measured seconds across all rounds


def _probe_session(probe: Any) -> Any:
    session = getattr(probe, "session", None)
    return session() if session is not None else nullcontext()


def run_rounds(
    batch: Callable[[int], None],
    iterations: int,
    *,
    settings: Settings,
    mode: str = TIME_MODE,
    budget: RoundBudget | None = None,
) -> RoundsOutcome:
    """Run the warmup batch and the measured rounds.

    Each time sample is the round's elapsed seconds divided by
    *iterations*; each memory sample is the probe's kilobytes divided by
    *iterations*.  A time budget is checked against wall time, so loop
    overhead between rounds counts towards it.
    """
    clock = settings.clock
    budget = budget or RoundBudget.from_settings(settings)
    outcome = RoundsOutcome(iterations=iterations)
    samples = outcome.samples

    if mode == TIME_MODE:
        batch(iterations)
        with gc_suppressed(settings.disable_gc):
            loop_start = clock.now()
            while True:
                start = clock.now()
                batch(iterations)
                end = clock.now()
                elapsed = end - start
                samples.append(elapsed / iterations)
                outcome.total_time += elapsed
                if len(samples) == 1:
                    budget.observe_first(elapsed)
                if budget.done(len(samples), end - loop_start):
                    break
    else:
        probe = settings.probe
        run_once = partial(batch, iterations)
        with _probe_session(probe):
            batch(iterations)
            loop_start = clock.now()
            while True:
                start = clock.now()
                used = probe.measure(run_once)
                end = clock.now()
                elapsed = end - start
                samples.append(max(used, 0.0) / iterations)
                outcome.total_time += elapsed
                if len(samples) == 1:
                    budget.observe_first(elapsed)
                if budget.done(len(samples), end - loop_start):
                    break

    log.debug(
        "Completed %d round(s) x %d iteration(s) in %.3gs",
        len(samples),
        iterations,
        outcome.total_time,
    )
    return outcome


def round_min_time(settings: Settings) -> float:
    """Shortest round duration calibration should aim for.

    Normally the clock's precision floor.  With a time budget and no
    explicit round count, rounds are also made long enough that the
    budget is spent in about ``TIME_BUDGET_ROUNDS`` rounds, well before
    the ``MAX_TOTAL_ROUNDS`` valve.
    """
    floor = settings.clock.min_time(CALIBRATION_PRECISION)
    if settings.time is not None and settings.rounds is None:
        return max(floor, settings.time / TIME_BUDGET_ROUNDS)
    return floor


def execute(
    target: Target,
    params: dict[str, Any],
    settings: Settings,
    mode: str = TIME_MODE,
) -> RoundsOutcome:
    """Run the full setup/calibrate/measure/teardown lifecycle for a target.

    Memory benchmarks use one call per round: allocation peaks do not
    add up across a batch, so they cannot be divided back down.
    """
    ctx = target.setup(params) if target.setup is not None else None
    try:
        batch = make_batch(target, ctx, params)
        if mode == TIME_MODE:
            iterations = calibrate(
                batch,
                settings.clock,
                min_time=round_min_time(settings),
                max_iterations=settings.max_iterations,
            )
        else:
            iterations = 1
        outcome = run_rounds(batch, iterations, settings=settings, mode=mode)
    except BaseException:
        if target.teardown is not None:
            try:
                target.teardown(ctx, params)
            except Exception:  # noqa: BLE001
                log.warning(
                    "Teardown of '%s' also failed after the benchmark raised",
                    target.name,
                    exc_info=True,
                )
        raise

    if target.teardown is not None:
        target.teardown(ctx, params)
    return outcome
