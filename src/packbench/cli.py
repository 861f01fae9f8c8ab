"""Command-line interface for packbench.

Subcommands:
    packbench run       Run every suite of a type and report the results
    packbench show      Display a saved run
    packbench export    Export a saved run to CSV/markdown
"""

from __future__ import annotations

import sys
from pathlib import Path

import click

from packbench import __version__
from packbench.bench.config import SUITE_TYPES, ConfigurationError
from packbench.logging import setup_logging

# Exit status when at least one suite failed every launch.
EXIT_SUITE_FAILED = 2


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """packbench: run benchmark suites in isolated workers and keep stable numbers."""


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------


@main.command()
@click.option(
    "--profile",
    "profile_path",
    type=click.Path(exists=True, path_type=Path),
    help="YAML profile with run settings (CLI options win).",
)
@click.option(
    "--type",
    "suite_type",
    type=click.Choice(SUITE_TYPES),
    default=None,
    help="Suite collection to run.",
)
@click.option("--depth", type=int, default=None, help="Nesting depth of suite discovery.")
@click.option("--launches", type=int, default=None, help="Launches per pack.")
@click.option(
    "--max-stdev",
    type=float,
    default=None,
    help="Retry a pack while its time stdev is above this value.",
)
@click.option("--retries", type=int, default=None, help="Maximum attempts per suite.")
@click.option(
    "--suites-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory holding one subdirectory per suite type.",
)
@click.option(
    "--cwd",
    "working_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Working directory passed to suites as BENCHMARK_CWD.",
)
@click.option("--python", type=str, default=None, help="Interpreter used to run suites.")
@click.option(
    "--env",
    "env_pairs",
    type=str,
    multiple=True,
    help="KEY=VALUE env var for every suite (repeatable).",
)
@click.option(
    "--results-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Save results under this directory.",
)
@click.option(
    "--retry-on-total-failure/--no-retry-on-total-failure",
    default=None,
    help="Also retry packs in which every launch failed.",
)
@click.option("-v", "--verbose", is_flag=True, help="Show every launch.")
@click.option("-q", "--quiet", is_flag=True, help="Only show warnings and results.")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Also write a DEBUG log to this file.",
)
def run(  # noqa: PLR0913
    profile_path: Path | None,
    suite_type: str | None,
    depth: int | None,
    launches: int | None,
    max_stdev: float | None,
    retries: int | None,
    suites_dir: Path | None,
    working_dir: Path | None,
    python: str | None,
    env_pairs: tuple[str, ...],
    results_dir: Path | None,
    retry_on_total_failure: bool | None,
    verbose: bool,
    quiet: bool,
    log_file: Path | None,
) -> None:
    """Run every suite of one type, retrying noisy packs.

    The type, depth, launches, max stdev and retries settings are
    required, from the options or from --profile.

    \b
    Examples:
        packbench run --type sync --depth 1 --launches 10 \\
            --max-stdev 3 --retries 5 --suites-dir benchmarks/suites

        packbench run --profile bench.yaml --launches 3 --results-dir results
    """
    from packbench.bench.config import config_from_profile, load_profile, parse_env_pairs
    from packbench.bench.display import format_pack_result
    from packbench.bench.results import PackResult
    from packbench.bench.runner import BenchRunner

    setup_logging(verbose=verbose, quiet=quiet, log_file=log_file)

    try:
        profile_data = load_profile(profile_path) if profile_path else {}
        config = config_from_profile(
            profile_data,
            cli_overrides={
                "type": suite_type,
                "depth": depth,
                "launches": launches,
                "max_stdev": max_stdev,
                "retries": retries,
                "suites_dir": suites_dir,
                "cwd": working_dir,
                "python": python,
                "env": parse_env_pairs(env_pairs),
                "results_dir": results_dir,
                "retry_on_total_failure": retry_on_total_failure,
            },
        )
    except ConfigurationError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc

    def report(result: PackResult) -> None:
        click.echo(format_pack_result(result))
        click.echo()

    runner = BenchRunner(config, report=report, cli_args=sys.argv[1:])
    try:
        meta, _ = runner.run()
    except ConfigurationError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc
    except KeyboardInterrupt:
        click.echo("\nBenchmark interrupted.", err=True)
        raise SystemExit(130)  # noqa: B904

    if config.output_dir is not None:
        click.echo(f"Results saved to: {config.output_dir}")

    if meta.suites_failed:
        click.echo(f"{meta.suites_failed} suite(s) failed every launch.", err=True)
        raise SystemExit(EXIT_SUITE_FAILED)


# ---------------------------------------------------------------------------
# show
# ---------------------------------------------------------------------------


@main.command("show")
@click.argument("result_dir", type=click.Path(exists=True, file_okay=False, path_type=Path))
def show(result_dir: Path) -> None:
    """Display results from a saved run.

    RESULT_DIR is a run output directory containing run_meta.json and
    pack_results.jsonl.
    """
    from packbench.bench.display import format_run_summary
    from packbench.bench.results import load_run

    try:
        meta, results = load_run(result_dir)
    except FileNotFoundError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc
    click.echo(format_run_summary(meta, results))


# ---------------------------------------------------------------------------
# export
# ---------------------------------------------------------------------------


@main.command("export")
@click.argument("result_dir", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["csv", "markdown"]),
    default="csv",
    help="Export format.",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Output file (default: stdout).",
)
def export(result_dir: Path, fmt: str, output: Path | None) -> None:
    """Export a saved run to CSV or Markdown.

    \b
    Examples:
        packbench export results/bench_001 --format csv > data.csv
        packbench export results/bench_001 --format markdown -o report.md
    """
    from packbench.bench.export import export_csv, export_markdown
    from packbench.bench.results import load_run

    try:
        meta, results = load_run(result_dir)
    except FileNotFoundError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc

    text = export_csv(meta, results) if fmt == "csv" else export_markdown(meta, results)

    if output:
        output.write_text(text)
        click.echo(f"Exported to {output}")
    else:
        click.echo(text, nl=False)
