"""Benchmark orchestration: the public measurement API.

Orchestrates, for each function and parameter combination:
1. Input validation (before anything runs)
2. Configuration snapshot
3. Setup, calibration, measured rounds, teardown
4. Statistical reduction
5. Ranking within each parameter combination

Usage::

    stats = measure_time(lambda: sorted(data), rounds=50)
    results = compare_time(
        {"sorted": lambda ctx: sorted(ctx), "heap": heap_sort},
        params={"n": [100, 1000]},
        setup=lambda p: make_data(p["n"]),
    )
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Union

from calibench.config import (
    SINGLE_OPTIONS,
    SUITE_OPTIONS,
    Config,
    ConfigError,
    Settings,
    validate_options,
)
from calibench.params import expand_params, format_params, validate_params
from calibench.rank import rank_results
from calibench.results import MEMORY_UNIT, TIME_UNIT, Result, Stats
from calibench.rounds import MEMORY_MODE, TIME_MODE, Call, Target, execute
from calibench.stats import summarize

log = logging.getLogger("calibench")

# The process-wide configuration instance.
config = Config()

_UNITS = {TIME_MODE: TIME_UNIT, MEMORY_MODE: MEMORY_UNIT}

SPEC_KEYS = frozenset({"fn", "before", "after", "baseline"})


# ---------------------------------------------------------------------------
# Benchmark specs
# ---------------------------------------------------------------------------


@dataclass
class BenchSpec:
    """A benchmarked function with its own per-iteration hooks.

    ``before(ctx, params)`` returns the context for one call (None keeps
    the shared one); ``after(ctx, params)`` runs after each call.
    ``baseline`` marks the result every other result is relative to.
    """

    fn: Callable[..., Any]
    before: Callable[..., Any] | None = None
    after: Callable[..., Any] | None = None
    baseline: bool = False


BenchFunc = Union[Callable[..., Any], BenchSpec, Mapping[str, Any]]


def _spec_from_mapping(name: str, data: Mapping[str, Any]) -> BenchSpec:
    for key in data:
        if key not in SPEC_KEYS:
            raise ConfigError(f"Unknown option in '{name}': {key}", f"funcs['{name}'].{key}")
    if "fn" not in data:
        raise ConfigError(f"funcs['{name}'] is missing 'fn'", f"funcs['{name}'].fn")
    return BenchSpec(
        fn=data["fn"],
        before=data.get("before"),
        after=data.get("after"),
        baseline=data.get("baseline", False),
    )


def _resolve_target(name: str, func: BenchFunc, options: Mapping[str, Any]) -> Target:
    """Resolve a plain callable or spec object into a :class:`Target`."""
    field = f"funcs['{name}']"
    if isinstance(func, BenchSpec):
        spec = func
    elif isinstance(func, Mapping):
        spec = _spec_from_mapping(name, func)
    elif callable(func):
        spec = BenchSpec(fn=func)
    else:
        raise ConfigError(
            f"{field} must be a function or a spec with 'fn', got {type(func).__name__}",
            field,
        )

    if not callable(spec.fn):
        raise ConfigError(f"{field}.fn must be a function", f"{field}.fn")
    for hook_name in ("before", "after"):
        hook = getattr(spec, hook_name)
        if hook is not None and not callable(hook):
            raise ConfigError(f"{field}.{hook_name} must be a function", f"{field}.{hook_name}")
    if not isinstance(spec.baseline, bool):
        raise ConfigError(f"{field}.baseline must be a bool", f"{field}.baseline")

    setup = options.get("setup")
    teardown = options.get("teardown")
    return Target(
        name=name,
        fn=Call.of(spec.fn),
        before=Call.of(spec.before) if spec.before is not None else None,
        after=Call.of(spec.after) if spec.after is not None else None,
        setup=Call.of(setup, 1) if setup is not None else None,
        teardown=Call.of(teardown) if teardown is not None else None,
        baseline=spec.baseline,
    )


# ---------------------------------------------------------------------------
# Core driver
# ---------------------------------------------------------------------------


def _begin(config_obj: Config | None, options: Mapping[str, Any]) -> Settings:
    settings = (config_obj or config).snapshot().with_options(options)
    settings.clock.warn_if_coarse()
    return settings


def _measure(
    target: Target,
    params: dict[str, Any],
    settings: Settings,
    mode: str,
) -> Stats:
    outcome = execute(target, params, settings, mode)
    return summarize(
        outcome.samples,
        unit=_UNITS[mode],
        iterations=outcome.iterations,
        rng=settings.make_rng(),
    )


def _run_single(fn: Any, options: dict[str, Any], config_obj: Config | None, mode: str) -> Stats:
    api = "measure_time" if mode == TIME_MODE else "measure_memory"
    if not callable(fn):
        raise ConfigError(f"'fn' must be a function, got {type(fn).__name__}", "fn")
    checked = validate_options(options, SINGLE_OPTIONS, api=api)
    spec = BenchSpec(fn=fn, before=checked.get("before"), after=checked.get("after"))
    target = _resolve_target(getattr(fn, "__name__", "fn"), spec, checked)

    settings = _begin(config_obj, checked)
    log.debug("%s: benchmarking %s", api, target.name)
    return _measure(target, {}, settings, mode)


def _run_suite(
    funcs: Any,
    options: dict[str, Any],
    config_obj: Config | None,
    mode: str,
) -> list[Result]:
    if not isinstance(funcs, Mapping):
        raise ConfigError(f"'funcs' must be a mapping, got {type(funcs).__name__}", "funcs")
    if not funcs:
        raise ConfigError("'funcs' must not be empty", "funcs")
    for name in funcs:
        if not isinstance(name, str):
            raise ConfigError(
                f"'funcs' keys must be strings, got {type(name).__name__}. "
                "Use named keys: {name: fn}",
                "funcs",
            )

    api = "compare_time" if mode == TIME_MODE else "compare_memory"
    checked = validate_options(options, SUITE_OPTIONS, api=api)
    params = validate_params(checked["params"]) if "params" in checked else {}
    targets = [_resolve_target(name, func, checked) for name, func in funcs.items()]
    baselines = [t.name for t in targets if t.baseline]
    if len(baselines) > 1:
        raise ConfigError(
            f"Only one baseline is allowed, got: {', '.join(baselines)}",
            "baseline",
        )

    settings = _begin(config_obj, checked)
    combinations = expand_params(params)
    log.debug(
        "%s: %d function(s) x %d parameter combination(s)",
        api,
        len(targets),
        len(combinations),
    )

    results: list[Result] = []
    for combo in combinations:
        for target in targets:
            if combo:
                log.debug("Benchmarking %s [%s]", target.name, format_params(combo))
            else:
                log.debug("Benchmarking %s", target.name)
            stats = _measure(target, combo, settings, mode)
            results.append(
                Result.from_stats(stats, name=target.name, params=combo, baseline=target.baseline)
            )

    return rank_results(results)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def measure_time(fn: Callable[..., Any], *, config: Config | None = None, **options: Any) -> Stats:
    """Benchmark the execution time of a single function.

    Args:
        fn: The function to time. It may accept the setup context.
        config: Configuration to use instead of the process-wide one.
        **options: ``rounds``, ``time``, ``setup``, ``teardown``,
            ``before``, ``after``.

    Returns:
        Stats in seconds per call.

    Raises:
        ConfigError: If *fn* or any option is invalid (nothing runs).
    """
    return _run_single(fn, options, config, TIME_MODE)


def measure_memory(
    fn: Callable[..., Any], *, config: Config | None = None, **options: Any
) -> Stats:
    """Benchmark the peak memory allocated by a single function.

    Same options as :func:`measure_time`; returns Stats in kilobytes
    without ``ops``.
    """
    return _run_single(fn, options, config, MEMORY_MODE)


def compare_time(
    funcs: Mapping[str, BenchFunc],
    *,
    config: Config | None = None,
    **options: Any,
) -> list[Result]:
    """Benchmark and rank the execution time of several named functions.

    Args:
        funcs: Mapping of name to function, :class:`BenchSpec` or dict
            with ``fn`` and optional ``before``, ``after``, ``baseline``.
        config: Configuration to use instead of the process-wide one.
        **options: ``rounds``, ``time``, ``setup``, ``teardown``, ``params``.

    Returns:
        One ranked Result per function and parameter combination.
    """
    return _run_suite(funcs, options, config, TIME_MODE)


def compare_memory(
    funcs: Mapping[str, BenchFunc],
    *,
    config: Config | None = None,
    **options: Any,
) -> list[Result]:
    """Benchmark and rank the peak memory of several named functions."""
    return _run_suite(funcs, options, config, MEMORY_MODE)
