"""
Balance Report Job for Gridiron Balance.

Command-line entry point that runs the complete balance pipeline over the
representative table set: statistical analysis, guardrail compliance, outlier
detection and report generation. The report is written to a file and a short
summary is printed to the console.

Exit Codes:
    0: System appears well-balanced
    1: More than 30% of tables violate guardrails, the configuration is
       invalid, no tables were found or the run failed
    2: At least one critical compliance table or critical outlier table

Usage:
    gridiron-balance
    gridiron-balance --verbose --sample-size 50000
    gridiron-balance --format json --output custom-report.json
    python -m gridiron_balance.jobs.balance_report -h

See Also:
    - gridiron_balance/services/simulation_runner.py: Batched orchestration
    - gridiron_balance/services/report_generator.py: Report content and export
"""

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import typer

from gridiron_balance.core.config import get_settings
from gridiron_balance.models.enums import ReportFormat
from gridiron_balance.models.schemas import BalanceReport, SimulationProgress
from gridiron_balance.services.outlier_detector import detect_outliers
from gridiron_balance.services.report_generator import (
    export_to_json,
    export_to_text,
    format_timestamp,
    generate_report,
)
from gridiron_balance.services.simulation_runner import (
    create_default_config,
    discover_tables,
    run_analysis,
    validate_config,
)


logger = logging.getLogger(__name__)

app = typer.Typer(
    add_completion=False,
    help="Analyze matchup tables against balance guardrails and write a balance report.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


# =============================================================================
# Constants
# =============================================================================

EXIT_OK: int = 0
EXIT_ISSUES: int = 1
EXIT_CRITICAL: int = 2

VIOLATION_SHARE_LIMIT: float = 0.3
PRIORITY_ACTIONS_SHOWN: int = 3

REPORT_EXTENSIONS = {
    ReportFormat.JSON: ".json",
    ReportFormat.TEXT: ".txt",
}


# =============================================================================
# Helper Functions
# =============================================================================


def default_report_filename(now: Optional[datetime] = None) -> str:
    """
    Timestamped report name without extension.

    Example:
        >>> default_report_filename(datetime(2025, 3, 1, 14, 5, 9, 123000, tzinfo=timezone.utc))
        'balance-report-2025-03-01T14-05-09-123Z'
    """
    moment = now or datetime.now(timezone.utc)
    stamp = format_timestamp(moment).replace(":", "-").replace(".", "-")
    return f"balance-report-{stamp}"


def resolve_output_path(output: Optional[str], fmt: ReportFormat, now: Optional[datetime] = None) -> Path:
    """Output path for the report, appending the format's extension when missing."""
    filename = output or default_report_filename(now)
    extension = REPORT_EXTENSIONS[fmt]
    if not filename.endswith(extension):
        filename = f"{filename}{extension}"
    return Path(filename)


def determine_exit_code(report: BalanceReport) -> int:
    """Map report severity to the process exit code."""
    summary = report.summary
    if summary.criticalTables > 0 or report.outliers.summary.criticalOutliers > 0:
        return EXIT_CRITICAL
    if summary.tablesWithViolations > summary.tablesAnalyzed * VIOLATION_SHARE_LIMIT:
        return EXIT_ISSUES
    return EXIT_OK


def format_progress(progress: SimulationProgress) -> str:
    """Single-line progress text: percent, counts, ETA and the table in flight."""
    percent = progress.completed / progress.total * 100 if progress.total else 0.0
    eta = (
        f"{progress.estimatedTimeRemaining / 1000:.0f}s"
        if progress.estimatedTimeRemaining is not None
        else "calculating..."
    )
    line = f"Progress: {percent:.1f}% ({progress.completed}/{progress.total}) - ETA: {eta}"
    if progress.current:
        line += f" - Analyzing: {progress.current}"
    return line


def print_progress(progress: SimulationProgress) -> None:
    typer.echo(f"\r{format_progress(progress)}", nl=False)


def print_summary(report: BalanceReport) -> None:
    summary = report.summary
    outliers = report.outliers.summary

    typer.echo("\nAnalysis Summary")
    typer.echo("================")
    typer.echo(f"Overall Health: {summary.overallHealth.value.upper()}")
    typer.echo(f"Compliance Score: {summary.complianceScore:.1f}/100")

    typer.echo("\nBreakdown:")
    typer.echo(f"  Compliant: {summary.compliantTables} tables")
    typer.echo(f"  Warnings:  {summary.tablesWithWarnings} tables")
    typer.echo(f"  Violations: {summary.tablesWithViolations} tables")
    typer.echo(f"  Critical:  {summary.criticalTables} tables")

    if outliers.tablesWithOutliers > 0:
        typer.echo("\nOutliers:")
        typer.echo(f"  Tables with outliers: {outliers.tablesWithOutliers}")
        typer.echo(f"  Critical outliers: {outliers.criticalOutliers}")
        typer.echo(f"  High severity: {outliers.highSeverityOutliers}")

    if report.recommendations.priority:
        typer.echo("\nPriority Actions:")
        for i, rec in enumerate(report.recommendations.priority[:PRIORITY_ACTIONS_SHOWN], start=1):
            typer.echo(f"  {i}. [{rec.level.value.upper()}] {rec.category}")


# =============================================================================
# Command
# =============================================================================


@app.command()
def main(
    sample_size: Optional[int] = typer.Option(
        None, "--sample-size", "-s", help="Sample size per table (default: 10000)."
    ),
    seed: Optional[int] = typer.Option(
        None, "--seed", help="Random seed for reproducible results (default: 12345)."
    ),
    concurrency: Optional[int] = typer.Option(
        None, "--concurrency", "-c", help="Tables analyzed per batch (default: 4)."
    ),
    output: Optional[str] = typer.Option(
        None, "--output", "-o", help="Output file (default: balance-report-<timestamp>.txt/.json)."
    ),
    fmt: ReportFormat = typer.Option(
        ReportFormat.TEXT, "--format", "-f", case_sensitive=False, help="Output format."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Print progress while tables are analyzed."),
) -> None:
    """Analyze every table against the GDD guardrails and write a balance report."""
    logging.basicConfig(
        level=get_settings().log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    typer.echo("Gridiron Strategy - Balance Analysis Tool")
    typer.echo("=========================================\n")

    config = create_default_config()
    overrides = {"sampleSize": sample_size, "seed": seed, "maxConcurrency": concurrency}
    config = config.model_copy(update={k: v for k, v in overrides.items() if v is not None})

    validation = validate_config(config)
    if not validation.valid:
        for error in validation.errors:
            typer.echo(f"Invalid configuration: {error}", err=True)
        raise typer.Exit(code=EXIT_ISSUES)

    tables = discover_tables()
    playbooks = {table.playbook for table in tables}
    typer.echo(f"Found {len(tables)} tables across {len(playbooks)} playbooks\n")
    if not tables:
        typer.echo("No tables found. Please check the data/tables_v1/ directory structure.", err=True)
        raise typer.Exit(code=EXIT_ISSUES)

    typer.echo(f"Starting analysis with sample size {config.sampleSize:,}...")
    try:
        result = asyncio.run(
            run_analysis(tables, config, progress_callback=print_progress if verbose else None)
        )
        typer.echo(f"\n\nAnalysis complete in {result.duration / 1000:.1f}s")

        typer.echo("Detecting statistical outliers...")
        outliers = detect_outliers(result.analyses)

        typer.echo("Generating balance report...")
        report = generate_report(
            result.analyses,
            result.compliance,
            outliers,
            result.duration,
            sample_size=config.sampleSize,
            seed=config.seed,
        )
    except Exception as e:
        logger.exception("Balance analysis failed")
        typer.echo(f"Analysis failed: {e}", err=True)
        raise typer.Exit(code=EXIT_ISSUES)

    for error in result.errors:
        typer.echo(f"Warning: {error}", err=True)

    path = resolve_output_path(output, fmt)
    rendered = export_to_json(report) if fmt == ReportFormat.JSON else export_to_text(report)
    path.write_text(rendered, encoding="utf-8")
    typer.echo(f"{fmt.value.upper()} report saved to: {path}")

    print_summary(report)

    exit_code = determine_exit_code(report)
    if exit_code == EXIT_CRITICAL:
        typer.echo("\nCritical balance issues detected. Review report for details.")
    elif exit_code == EXIT_ISSUES:
        typer.echo("\nSignificant balance issues detected. Review recommendations.")
    else:
        typer.echo("\nBalance analysis complete. System appears well-balanced.")
    raise typer.Exit(code=exit_code)


if __name__ == "__main__":  # pragma: no cover
    app()
