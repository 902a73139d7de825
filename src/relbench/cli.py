"""Command-line interface for relbench.

Subcommands:
    relbench run       Benchmark the candidates of a registry
    relbench show      Display a saved run
    relbench export    Export a saved run to CSV/Markdown/JSON
    relbench system    Print system characterization
"""

from __future__ import annotations

import importlib
import logging
import sys
from pathlib import Path
from typing import Any

import click

from relbench import __version__
from relbench.config import (
    FAILURE_POLICIES,
    BenchConfig,
    config_from_profile,
    load_profile,
    validate_config,
)
from relbench.errors import CandidateFailure, InvalidArgument, NoSuccessfulCandidates
from relbench.logging import setup_logging
from relbench.registry import CandidateRegistry
from relbench.report import Report, build_report
from relbench.results import BenchMeta, MeasurementSet
from relbench.stats import SUMMARY_STATISTICS

log = logging.getLogger("relbench")

OUTPUT_FORMATS = ("table", "markdown", "csv", "csv-summary", "json")


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """relbench: rank alternative implementations by relative speed."""


# ---------------------------------------------------------------------------
# Target loading
# ---------------------------------------------------------------------------


def load_registry(target: str) -> CandidateRegistry:
    """Resolve ``module:attribute`` to a CandidateRegistry.

    The attribute may be a registry or a zero-argument callable that
    returns one.

    Raises:
        click.BadParameter: If the target cannot be resolved.
    """
    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        raise click.BadParameter(
            f"expected 'module:attribute', got {target!r}", param_hint="TARGET"
        )

    # Let scripts in the working directory be imported by name.
    if "" not in sys.path and str(Path.cwd()) not in sys.path:
        sys.path.insert(0, str(Path.cwd()))

    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise click.BadParameter(
            f"cannot import module {module_name!r}: {exc}", param_hint="TARGET"
        ) from exc

    obj: Any = module
    for part in attr.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError as exc:
            raise click.BadParameter(
                f"module {module_name!r} has no attribute {attr!r}", param_hint="TARGET"
            ) from exc

    if not isinstance(obj, CandidateRegistry) and callable(obj):
        obj = obj()
    if not isinstance(obj, CandidateRegistry):
        raise click.BadParameter(
            f"{target!r} is not a CandidateRegistry (got {type(obj).__name__})",
            param_hint="TARGET",
        )
    return obj


def _render(fmt: str, report: Report, meta: BenchMeta | None, cv_threshold: float) -> str:
    """Render *report* in one of OUTPUT_FORMATS."""
    from relbench.display import format_bench_show, format_report
    from relbench.export import export_csv, export_csv_summary, export_json, export_markdown

    if fmt == "table":
        if meta is not None:
            return format_bench_show(meta, report)
        return format_report(report, cv_threshold=cv_threshold)
    if fmt == "markdown":
        return export_markdown(report, meta)
    if fmt == "csv":
        return export_csv(report)
    if fmt == "csv-summary":
        return export_csv_summary(report)
    return export_json(report, meta)


def _emit(text: str, output: str | None) -> None:
    if output:
        Path(output).write_text(text if text.endswith("\n") else text + "\n")
        click.echo(f"Wrote {output}", err=True)
    else:
        click.echo(text)


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------


@main.command()
@click.argument("target")
@click.option(
    "-n",
    "--replications",
    type=int,
    default=None,
    help="Timed replications per candidate (default: 10).",
)
@click.option("--warmup", type=int, default=None, help="Untimed warm-up runs (default: 0).")
@click.option(
    "--policy",
    "failure_policy",
    type=click.Choice(FAILURE_POLICIES),
    default=None,
    help="On a failing replication: record it and continue, or abort the run.",
)
@click.option(
    "--statistic",
    type=click.Choice(SUMMARY_STATISTICS),
    default=None,
    help="Summary statistic used for ranking (default: mean).",
)
@click.option(
    "--exclude-partial/--include-partial",
    default=None,
    help="Leave candidates with any failed replication out of the ranking.",
)
@click.option(
    "--ci",
    "ci_bootstrap_n",
    type=int,
    default=None,
    help="Bootstrap resamples for relative-value CIs (0 disables).",
)
@click.option("--seed", "ci_seed", type=int, default=None, help="Seed for bootstrap CIs.")
@click.option(
    "--gc/--no-gc",
    "gc_enabled",
    default=None,
    help="Keep the garbage collector enabled while timing.",
)
@click.option(
    "--profile",
    "profile_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="YAML profile with benchmark settings.",
)
@click.option("--name", type=str, default=None, help="Human-readable benchmark name.")
@click.option(
    "--save/--no-save",
    default=False,
    show_default=True,
    help="Save raw measurements under --results-dir.",
)
@click.option(
    "--results-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory for saved runs (default: results).",
)
@click.option(
    "--format",
    "fmt",
    type=click.Choice(OUTPUT_FORMATS),
    default="table",
    show_default=True,
    help="Report format.",
)
@click.option("-o", "--output", type=click.Path(dir_okay=False), default=None)
@click.option("--progress/--no-progress", default=True, show_default=True)
@click.option("-v", "--verbose", is_flag=True, help="Show debug output.")
@click.option("-q", "--quiet", is_flag=True, help="Only show warnings and errors.")
@click.option("--log-file", type=click.Path(dir_okay=False, path_type=Path), default=None)
def run(  # noqa: PLR0913
    target: str,
    replications: int | None,
    warmup: int | None,
    failure_policy: str | None,
    statistic: str | None,
    exclude_partial: bool | None,
    ci_bootstrap_n: int | None,
    ci_seed: int | None,
    gc_enabled: bool | None,
    profile_path: Path | None,
    name: str | None,
    save: bool,
    results_dir: Path | None,
    fmt: str,
    output: str | None,
    progress: bool,
    verbose: bool,
    quiet: bool,
    log_file: Path | None,
) -> None:
    """Benchmark the candidates registered in TARGET.

    TARGET is ``module:attribute`` naming a CandidateRegistry, or a
    zero-argument function returning one.

    Exits with status 1 when no candidate completes a replication, when
    a candidate fails under --policy abort, or when the configuration
    is invalid.

    \b
    Examples:
        relbench run relbench.demo:build_sqrt_registry -n 100
        relbench run mybench:registry --policy abort --format markdown
        relbench run mybench:make_registry --profile bench.yaml --save
    """
    from relbench.runner import BenchProgress, BenchRunner

    setup_logging(verbose=verbose, quiet=quiet, log_file=log_file)

    cli_overrides: dict[str, Any] = {
        "name": name,
        "replications": replications,
        "warmup": warmup,
        "failure_policy": failure_policy,
        "statistic": statistic,
        "exclude_partial": exclude_partial,
        "ci_bootstrap_n": ci_bootstrap_n,
        "ci_seed": ci_seed,
        "disable_gc": None if gc_enabled is None else not gc_enabled,
        "results_dir": results_dir,
    }

    try:
        profile_data = load_profile(profile_path) if profile_path else {}
        config: BenchConfig = config_from_profile(profile_data, cli_overrides=cli_overrides)
    except (ValueError, TypeError) as exc:
        click.echo(f"Error: invalid profile: {exc}", err=True)
        raise SystemExit(1) from exc
    config.cli_args = sys.argv[1:]

    fatal = [e for e in validate_config(config) if e.severity == "error"]
    if fatal:
        click.echo("Error: invalid configuration:", err=True)
        for e in fatal:
            click.echo(f"  {e.field}: {e.message}", err=True)
        raise SystemExit(1)

    registry = load_registry(target)

    total = len(registry) * (config.replications + max(config.warmup, 0))
    show_bar = progress and not quiet and total > 0

    try:
        if show_bar:
            with click.progressbar(
                length=total,
                label=f"Benchmarking {len(registry)} candidates",
                file=sys.stderr,
            ) as bar:

                def advance(_: BenchProgress) -> None:
                    bar.update(1)

                runner = BenchRunner(config, progress_callback=advance)
                report = runner.run(registry)
        else:
            runner = BenchRunner(config)
            report = runner.run(registry)
    except InvalidArgument as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc
    except CandidateFailure as exc:
        click.echo(f"Error: {exc}", err=True)
        if exc.partial is not None:
            click.echo(
                f"  {exc.partial.completed} of {exc.partial.requested} replications "
                f"completed before the failure.",
                err=True,
            )
        raise SystemExit(1) from exc
    except NoSuccessfulCandidates as exc:
        click.echo(f"Error: {exc}", err=True)
        for x in exc.excluded:
            click.echo(f"  {x.name}: {x.first_error}", err=True)
        raise SystemExit(1) from exc
    except KeyboardInterrupt:
        click.echo("\nBenchmark interrupted.", err=True)
        raise SystemExit(130)  # noqa: B904

    meta = runner.meta if fmt != "table" or save else None
    _emit(_render(fmt, report, meta, config.cv_threshold), output)

    if save:
        runner.save()
        click.echo(f"Results saved to: {config.output_dir}", err=True)


# ---------------------------------------------------------------------------
# show / export
# ---------------------------------------------------------------------------


def _load_saved(result_dir: str) -> tuple[BenchMeta, Report]:
    """Load a saved run and recompute its report."""
    from relbench.results import load_bench_run

    try:
        meta, measurement_sets = load_bench_run(Path(result_dir))
    except FileNotFoundError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc

    return meta, _report_from_saved(meta, measurement_sets)


def _report_from_saved(meta: BenchMeta, measurement_sets: list[MeasurementSet]) -> Report:
    cfg = meta.config
    try:
        return build_report(
            measurement_sets,
            statistic=cfg.get("statistic", "mean"),
            replications=cfg.get("replications"),
            exclude_partial=cfg.get("exclude_partial", False),
            ci_confidence=cfg.get("ci_confidence", 0.95),
            ci_bootstrap_n=cfg.get("ci_bootstrap_n", 0),
            ci_seed=cfg.get("ci_seed"),
        )
    except NoSuccessfulCandidates as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc


@main.command("show")
@click.argument("result_dir", type=click.Path(exists=True, file_okay=False))
def show(result_dir: str) -> None:
    """Display a saved run.

    RESULT_DIR is a run directory containing bench_meta.json and
    bench_measurements.jsonl.
    """
    meta, report = _load_saved(result_dir)
    click.echo(_render("table", report, meta, meta.config.get("cv_threshold", 0.10)))


@main.command("export")
@click.argument("result_dir", type=click.Path(exists=True, file_okay=False))
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["csv", "csv-summary", "markdown", "json"]),
    default="csv",
    show_default=True,
    help="Export format.",
)
@click.option("-o", "--output", type=click.Path(dir_okay=False), default=None)
def export(result_dir: str, fmt: str, output: str | None) -> None:
    """Export a saved run to CSV, Markdown or JSON.

    \b
    Examples:
        relbench export results/bench_001 --format csv > data.csv
        relbench export results/bench_001 --format markdown -o report.md
    """
    meta, report = _load_saved(result_dir)
    _emit(_render(fmt, report, meta, meta.config.get("cv_threshold", 0.10)), output)


# ---------------------------------------------------------------------------
# system
# ---------------------------------------------------------------------------


@main.command("system")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def system_cmd(as_json: bool) -> None:
    """Print system characterization for benchmark documentation."""
    from relbench.system import capture_system_profile, format_system_profile

    profile = capture_system_profile()
    if as_json:
        import json

        click.echo(json.dumps(profile.to_dict(), indent=2))
    else:
        click.echo(format_system_profile(profile))
