"""Benchmark configuration and option validation.

Handles:
- The process-wide :class:`Config` (default rounds/time budget, iteration
  ceiling, GC policy, clock and memory probe), validated on assignment.
- Snapshotting that configuration into an immutable :class:`Settings`
  at the start of each benchmark call.
- Validating per-call options before anything is measured.
- Loading suite profiles from YAML files.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Callable, Mapping

from calibench.calibrate import MAX_ITERATIONS
from calibench.clock import Clock, MemoryProbe, select_clock

log = logging.getLogger("calibench")


class ConfigError(ValueError):
    """Invalid benchmark configuration, raised before any measurement."""

    def __init__(self, message: str, field: str = "") -> None:
        super().__init__(message)
        self.field = field


# ---------------------------------------------------------------------------
# Field validators
# ---------------------------------------------------------------------------


def _check_number(name: str, value: Any, *, integer: bool = False) -> float | int:
    """Validate a strictly positive number option."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(
            f"Option '{name}' should be number, got {type(value).__name__}",
            name,
        )
    if integer and not float(value).is_integer():
        raise ConfigError(f"Option '{name}' must be an integer", name)
    if not value > 0:
        raise ConfigError(f"'{name}' must be > 0.", name)
    return int(value) if integer else float(value)


def _check_callable(name: str, value: Any) -> Callable[..., Any]:
    if not callable(value):
        raise ConfigError(
            f"Option '{name}' should be callable, got {type(value).__name__}",
            name,
        )
    return value


def _check_bool(name: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(f"Option '{name}' should be bool, got {type(value).__name__}", name)
    return value


def _check_seed(name: str, value: Any) -> int | None:
    if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
        raise ConfigError(f"Option '{name}' should be an integer or None", name)
    return value


def _check_clock(name: str, value: Any) -> Clock:
    if not isinstance(value, Clock):
        raise ConfigError(f"Option '{name}' should be a Clock, got {type(value).__name__}", name)
    return value


def _check_probe(name: str, value: Any) -> Any:
    if not callable(getattr(value, "measure", None)):
        raise ConfigError(f"Option '{name}' should provide a measure(fn) method", name)
    return value


# ---------------------------------------------------------------------------
# Settings snapshot
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Settings:
    """Configuration frozen at the start of one benchmark call."""

    rounds: int | None
    time: float | None
    max_iterations: int
    disable_gc: bool
    clock: Clock
    probe: Any
    seed: int | None = None

    @property
    def has_budget(self) -> bool:
        """True if rounds or a time budget was configured explicitly."""
        return self.rounds is not None or self.time is not None

    def with_options(self, options: Mapping[str, Any]) -> Settings:
        """Return a copy with per-call ``rounds``/``time`` applied."""
        overrides = {k: options[k] for k in ("rounds", "time") if k in options}
        return replace(self, **overrides) if overrides else self

    def make_rng(self) -> random.Random:
        """Random source for bootstrap resampling."""
        return random.Random(self.seed)


# ---------------------------------------------------------------------------
# Process-wide configuration
# ---------------------------------------------------------------------------


class Config:
    """Benchmark defaults shared by every call in the process.

    ``rounds`` and ``time`` start out as None, meaning "derive the budget
    automatically"; once assigned they must be positive numbers.  Unknown
    attributes and invalid values raise :class:`ConfigError`.

    Example::

        import calibench
        calibench.config.rounds = 50
    """

    __slots__ = ("rounds", "time", "max_iterations", "disable_gc", "clock", "probe", "seed")

    _validators: dict[str, Callable[[str, Any], Any]] = {
        "rounds": lambda name, value: _check_number(name, value, integer=True),
        "time": _check_number,
        "max_iterations": lambda name, value: _check_number(name, value, integer=True),
        "disable_gc": _check_bool,
        "clock": _check_clock,
        "probe": _check_probe,
        "seed": _check_seed,
    }

    def __init__(self, **overrides: Any) -> None:
        self.reset()
        for name, value in overrides.items():
            setattr(self, name, value)

    def __setattr__(self, name: str, value: Any) -> None:
        validator = self._validators.get(name)
        if validator is None:
            raise ConfigError(f"Unknown option: {name}", name)
        object.__setattr__(self, name, validator(name, value))

    def reset(self) -> None:
        """Restore every setting to its default."""
        object.__setattr__(self, "rounds", None)
        object.__setattr__(self, "time", None)
        object.__setattr__(self, "max_iterations", MAX_ITERATIONS)
        object.__setattr__(self, "disable_gc", True)
        object.__setattr__(self, "clock", select_clock())
        object.__setattr__(self, "probe", MemoryProbe())
        object.__setattr__(self, "seed", None)

    def snapshot(self) -> Settings:
        return Settings(
            rounds=self.rounds,
            time=self.time,
            max_iterations=self.max_iterations,
            disable_gc=self.disable_gc,
            clock=self.clock,
            probe=self.probe,
            seed=self.seed,
        )

    def __repr__(self) -> str:
        fields = ", ".join(f"{name}={getattr(self, name)!r}" for name in self.__slots__)
        return f"Config({fields})"


# ---------------------------------------------------------------------------
# Per-call option validation
# ---------------------------------------------------------------------------

SINGLE_OPTIONS = frozenset({"rounds", "time", "setup", "teardown", "before", "after"})
SUITE_OPTIONS = frozenset({"rounds", "time", "setup", "teardown", "params"})

_CALLABLE_OPTIONS = ("setup", "teardown", "before", "after")


def validate_options(
    options: Mapping[str, Any],
    allowed: frozenset[str],
    *,
    api: str,
) -> dict[str, Any]:
    """Validate per-call benchmark options.

    ``params`` is checked separately by :func:`calibench.params.validate_params`.

    Returns:
        A new dict with normalized values.

    Raises:
        ConfigError: On the first invalid option.
    """
    checked: dict[str, Any] = {}
    for key, value in options.items():
        if key == "params" and "params" not in allowed:
            raise ConfigError(
                f"'params' is not supported in {api}; use compare_time/compare_memory",
                "params",
            )
        if key not in allowed:
            raise ConfigError(f"Unknown option: {key}", key)
        if key == "rounds":
            checked[key] = _check_number(key, value, integer=True)
        elif key == "time":
            checked[key] = _check_number(key, value)
        elif key in _CALLABLE_OPTIONS:
            checked[key] = _check_callable(key, value)
        else:
            checked[key] = value
    return checked


# ---------------------------------------------------------------------------
# YAML profile loading
# ---------------------------------------------------------------------------

PROFILE_KEYS = frozenset({"rounds", "time", "params", "memory"})


def load_profile(profile_path: Path) -> dict[str, Any]:
    """Load a suite profile from a YAML file.

    Profile format::

        rounds: 50          # optional
        time: 2.0           # optional, seconds
        memory: false       # measure memory instead of time
        params:
          n: [10, 100, 1000]
          sorted: [true, false]

    Returns:
        The parsed YAML as a dict.
    """
    import yaml

    if not profile_path.exists():
        raise FileNotFoundError(f"Profile not found: {profile_path}")

    data = yaml.safe_load(profile_path.read_text())
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Profile must be a YAML mapping, got {type(data).__name__}")
    return data


def options_from_profile(
    profile_data: Mapping[str, Any],
    *,
    cli_overrides: Mapping[str, Any] | None = None,
) -> tuple[dict[str, Any], bool]:
    """Build suite options from a parsed profile.

    CLI overrides (``rounds``, ``time``, ``memory``) take precedence over
    profile values; None overrides are ignored.

    Returns:
        Tuple of (options for compare_time/compare_memory, memory flag).
    """
    from calibench.params import validate_params

    for key in profile_data:
        if key not in PROFILE_KEYS:
            raise ConfigError(
                f"Unknown profile key: {key}. Valid keys: {', '.join(sorted(PROFILE_KEYS))}",
                key,
            )

    merged = dict(profile_data)
    for key, value in (cli_overrides or {}).items():
        if value is not None:
            merged[key] = value

    options: dict[str, Any] = {}
    if merged.get("rounds") is not None:
        options["rounds"] = _check_number("rounds", merged["rounds"], integer=True)
    if merged.get("time") is not None:
        options["time"] = _check_number("time", merged["time"])
    if merged.get("params"):
        options["params"] = validate_params(merged["params"])
    memory = _check_bool("memory", merged.get("memory", False))
    return options, memory
