"""Command-line interface for calibench.

Subcommands:
    calibench run     Benchmark the functions defined in a Python file
    calibench show    Display a saved benchmark run
    calibench clock   Print the selected clock and its resolution
"""

from __future__ import annotations

import importlib.util
import inspect
import logging
import time
from pathlib import Path
from types import ModuleType
from typing import Any

import click

from calibench import __version__
from calibench.display import DEFAULT_TERM_WIDTH, FORMATS
from calibench.logging import setup_logging

log = logging.getLogger("calibench")

BENCH_PREFIX = "bench_"


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """calibench: calibrated micro-benchmarks with confidence intervals."""


# ---------------------------------------------------------------------------
# Benchmark file loading
# ---------------------------------------------------------------------------


def load_bench_module(path: Path) -> ModuleType:
    """Import a benchmark file as a standalone module."""
    spec = importlib.util.spec_from_file_location(f"calibench_bench_{path.stem}", path)
    if spec is None or spec.loader is None:
        raise ValueError(f"Cannot import benchmark file: {path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def collect_benchmarks(module: ModuleType) -> tuple[dict[str, Any], dict[str, Any]]:
    """Collect benchmark functions and suite options from a loaded module.

    A ``BENCHMARKS`` mapping is used as-is. Otherwise every function
    named ``bench_*`` is collected in definition order, with the prefix
    stripped from its name. Module-level ``setup``, ``teardown`` and
    ``PARAMS`` become suite options.

    Returns:
        Tuple of (funcs, options).

    Raises:
        ValueError: If the module defines no benchmarks.
    """
    source = getattr(module, "__file__", module.__name__)
    funcs = getattr(module, "BENCHMARKS", None)
    if funcs is None:
        funcs = {
            name[len(BENCH_PREFIX) :]: obj
            for name, obj in vars(module).items()
            if name.startswith(BENCH_PREFIX) and inspect.isfunction(obj)
        }
    if not funcs:
        raise ValueError(
            f"No benchmarks found in {source}: define bench_* functions or a BENCHMARKS mapping"
        )

    options: dict[str, Any] = {}
    for hook in ("setup", "teardown"):
        fn = getattr(module, hook, None)
        if fn is not None:
            options[hook] = fn
    params = getattr(module, "PARAMS", None)
    if params:
        options["params"] = params
    return dict(funcs), options


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------


@main.command("run")
@click.argument("bench_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--memory", is_flag=True, help="Measure peak memory instead of time.")
@click.option("--rounds", type=int, default=None, help="Exact number of measured rounds.")
@click.option("--time", "time_budget", type=float, default=None, help="Time budget in seconds.")
@click.option(
    "--profile",
    "profile_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML profile with rounds, time, params and memory.",
)
@click.option(
    "--format",
    "fmt",
    type=click.Choice(FORMATS),
    default="plain",
    show_default=True,
)
@click.option(
    "--width",
    type=int,
    default=DEFAULT_TERM_WIDTH,
    show_default=True,
    help="Maximum line width for plain and compact output.",
)
@click.option(
    "--output",
    "output_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory to save bench_meta.json and bench_results.jsonl.",
)
@click.option("-v", "--verbose", is_flag=True, help="Show detailed output.")
@click.option("-q", "--quiet", is_flag=True, help="Only show warnings and errors.")
@click.option("--log-file", type=click.Path(path_type=Path), default=None)
def run_cmd(
    bench_file: Path,
    memory: bool,
    rounds: int | None,
    time_budget: float | None,
    profile_path: Path | None,
    fmt: str,
    width: int,
    output_dir: Path | None,
    verbose: bool,
    quiet: bool,
    log_file: Path | None,
) -> None:
    """Benchmark the functions defined in BENCH_FILE."""
    setup_logging(verbose=verbose, quiet=quiet, log_file=log_file)

    from calibench.config import load_profile, options_from_profile
    from calibench.results import RunMeta, save_run
    from calibench.runner import compare_memory, compare_time, config

    cli_overrides = {"rounds": rounds, "time": time_budget, "memory": True if memory else None}
    start_time = time.strftime("%Y-%m-%dT%H:%M:%S%z")
    try:
        module = load_bench_module(bench_file)
        funcs, options = collect_benchmarks(module)
        profile_data = load_profile(profile_path) if profile_path else {}
        profile_options, use_memory = options_from_profile(
            profile_data, cli_overrides=cli_overrides
        )
        options.update(profile_options)

        log.info("Benchmarking %d function(s) from %s", len(funcs), bench_file)
        compare = compare_memory if use_memory else compare_time
        results = compare(funcs, **options)
    except ValueError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc
    except KeyboardInterrupt:
        click.echo("\nBenchmark interrupted.", err=True)
        raise SystemExit(130)  # noqa: B904

    from calibench.display import render

    click.echo(render(results, fmt, width))

    if output_dir is not None:
        clock = config.clock
        meta = RunMeta(
            source=str(bench_file),
            mode="memory" if use_memory else "time",
            clock=clock.name,
            clock_resolution=clock.resolution,
            options={k: v for k, v in options.items() if k in ("rounds", "time", "params")},
            start_time=start_time,
            end_time=time.strftime("%Y-%m-%dT%H:%M:%S%z"),
            version=__version__,
        )
        save_run(output_dir, meta, results)
        click.echo()
        click.echo(f"Results saved to: {output_dir}")


# ---------------------------------------------------------------------------
# show
# ---------------------------------------------------------------------------


@main.command("show")
@click.argument("run_dir", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option(
    "--format",
    "fmt",
    type=click.Choice(FORMATS),
    default="plain",
    show_default=True,
)
@click.option("--width", type=int, default=DEFAULT_TERM_WIDTH, show_default=True)
def show(run_dir: Path, fmt: str, width: int) -> None:
    """Display a saved benchmark run.

    RUN_DIR is a directory containing bench_meta.json and
    bench_results.jsonl, as written by ``calibench run --output``.
    """
    from calibench.display import format_run
    from calibench.results import load_run

    try:
        meta, results = load_run(run_dir)
    except (FileNotFoundError, ValueError) as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc

    if fmt in ("markdown", "csv"):
        from calibench.display import render

        if not results:
            click.echo("No results.")
            return
        click.echo(render(results, fmt, width))
        return
    click.echo(format_run(meta, results, fmt, width))


# ---------------------------------------------------------------------------
# clock
# ---------------------------------------------------------------------------


@main.command("clock")
def clock_cmd() -> None:
    """Print the clock used for timing and its resolution."""
    from calibench.calibrate import CALIBRATION_PRECISION
    from calibench.formatting import humanize_time
    from calibench.runner import config

    clock = config.clock
    click.echo(f"Clock:            {clock.name}")
    click.echo(f"Resolution:       {humanize_time(clock.resolution)} ({clock.resolution:g}s)")
    click.echo(f"High resolution:  {'yes' if clock.high_resolution else 'no'}")
    click.echo(f"Min. batch time:  {humanize_time(clock.min_time(CALIBRATION_PRECISION))}")
