"""calibench: calibrated micro-benchmarks with bootstrap confidence intervals.

``calibench.config`` is the process-wide :class:`Config` instance, not the
``calibench.config`` submodule::

    import calibench
    calibench.config.rounds = 50

Import names from the submodule with ``from calibench.config import ...``;
``import calibench.config as m`` binds the instance.
"""

__version__ = "0.1.0"

from calibench.clock import Clock, MemoryProbe, Timer, select_clock  # noqa: E402
from calibench.config import Config, ConfigError, Settings  # noqa: E402
from calibench.display import format_stats, render  # noqa: E402
from calibench.formatting import humanize_memory, humanize_time  # noqa: E402
from calibench.results import Result, Stats  # noqa: E402
from calibench.runner import (  # noqa: E402
    BenchSpec,
    compare_memory,
    compare_time,
    config,
    measure_memory,
    measure_time,
)

__all__ = [
    "BenchSpec",
    "Clock",
    "Config",
    "ConfigError",
    "MemoryProbe",
    "Result",
    "Settings",
    "Stats",
    "Timer",
    "__version__",
    "compare_memory",
    "compare_time",
    "config",
    "format_stats",
    "humanize_memory",
    "humanize_time",
    "measure_memory",
    "measure_time",
    "render",
    "select_clock",
]
