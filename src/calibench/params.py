"""Benchmark parameter validation and expansion.

A ``params`` option maps parameter names to lists of scalar values.
It expands to the cartesian product of those lists, iterating names in
sorted order and values in the order given, so runs are reproducible.
"""

from __future__ import annotations

import itertools
import math
from typing import Any, Mapping

from calibench.config import ConfigError
from calibench.results import ParamValue

MAX_PARAM_COMBINATIONS = 100

_SCALAR_TYPES = (str, int, float, bool)


def validate_params(params: Any) -> dict[str, list[ParamValue]]:
    """Check a ``params`` option and return it as a plain dict of lists.

    Raises:
        ConfigError: On non-string names, non-list values, empty lists,
            non-scalar values, or too many combinations.
    """
    if not isinstance(params, Mapping):
        raise ConfigError(
            f"'params' must be a mapping, got {type(params).__name__}",
            "params",
        )

    checked: dict[str, list[ParamValue]] = {}
    for name, values in params.items():
        if not isinstance(name, str):
            raise ConfigError(
                f"params key must be a string, got {type(name).__name__}",
                "params",
            )
        field = f"params['{name}']"
        if not isinstance(values, (list, tuple)):
            raise ConfigError(
                f"{field} must be a list, got {type(values).__name__}",
                field,
            )
        if not values:
            raise ConfigError(f"{field} must not be empty", field)
        for i, value in enumerate(values):
            if not isinstance(value, _SCALAR_TYPES):
                raise ConfigError(
                    f"{field}[{i}] must be str, int, float, or bool, got {type(value).__name__}",
                    field,
                )
        checked[name] = list(values)

    total = math.prod(len(v) for v in checked.values())
    if total > MAX_PARAM_COMBINATIONS:
        raise ConfigError(
            f"Too many parameter combinations ({total}); the limit is {MAX_PARAM_COMBINATIONS}.",
            "params",
        )
    return checked


def expand_params(params: Mapping[str, list[ParamValue]] | None) -> list[dict[str, ParamValue]]:
    """Expand parameter lists into their cartesian product.

    An empty or missing ``params`` yields a single empty combination.
    """
    if not params:
        return [{}]
    names = sorted(params)
    return [
        dict(zip(names, combo)) for combo in itertools.product(*(params[name] for name in names))
    ]


def format_param_value(value: ParamValue) -> str:
    """Render a parameter value the way it is written in a profile."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def format_params(params: Mapping[str, ParamValue]) -> str:
    """Format a combination as ``"flag=true, n=1"`` (names sorted)."""
    return ", ".join(f"{name}={format_param_value(params[name])}" for name in sorted(params))
