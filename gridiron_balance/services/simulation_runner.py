"""
Simulation Runner for automated balance playtesting.

Coordinates analysis of every matchup table: splits the tables into batches,
analyzes each batch with asyncio.gather, tracks progress and ETA, enforces the
overall timeout between batches and finally checks guardrail compliance.

Determinism:
    One seeded RNG is shared by every table in a run. The analyzer never
    suspends while sampling, so each gathered coroutine runs to completion in
    submission order and the RNG is consumed in table order. The same
    (tables, seed, sampleSize) therefore yields the same analyses for any
    maxConcurrency.

Error Handling:
    - A failing table is logged, recorded as "Failed to analyze <id>: <error>"
      and left out of the results
    - The timeout is checked between batches only; a running batch finishes
    - Configuration problems are reported by validate_config(), not raised

Usage:
    from gridiron_balance.services.simulation_runner import (
        create_default_config,
        discover_tables,
        run_analysis,
    )

    result = await run_analysis(discover_tables(), create_default_config())
"""

import asyncio
import logging
import time
from typing import Callable, List, Optional, Sequence

from gridiron_balance.core.config import get_settings
from gridiron_balance.models.enums import ComplianceStatus
from gridiron_balance.models.schemas import (
    ClusteringMetrics,
    ComplianceResult,
    ConfigValidation,
    SimulationConfig,
    SimulationProgress,
    SimulationResult,
    SimulationSummary,
    TableAnalysis,
    TableInfo,
)
from gridiron_balance.services.guardrail_checker import check_batch_compliance
from gridiron_balance.services.rng import RandomSource, create_rng
from gridiron_balance.services.statistical_analyzer import CLOCK_BUCKETS, analyze_table


logger = logging.getLogger(__name__)


ProgressCallback = Callable[[SimulationProgress], None]


# =============================================================================
# Configuration
# =============================================================================

MIN_SAMPLE_SIZE: int = 100
MAX_SAMPLE_SIZE: int = 100000
MIN_CONCURRENCY: int = 1
MAX_CONCURRENCY: int = 16
MIN_TIMEOUT_MS: int = 5000

TABLES_ROOT: str = 'data/tables_v1'

# Representative table set per playbook folder
PLAYBOOK_TABLE_FILES = {
    'air-raid': [
        'AIR_RAID_FOUR_VERTS_vs_COVER_4.json',
        'AIR_RAID_MILLS_vs_MAN_PRESS.json',
        'AIR_RAID_PA_DEEP_SHOT_vs_ZONE_BLITZ.json',
    ],
    'smashmouth': [
        'SMASHMOUTH_COUNTER_TREY_vs_MAN_FREE.json',
        'SMASHMOUTH_PA_DEEP_POST_vs_ZONE_BLITZ.json',
        'SMASHMOUTH_POWER_O_vs_COVER_2.json',
    ],
    'spread': [
        'SPREAD_FOUR_VERTS_vs_MAN_FREE.json',
        'SPREAD_MESH_vs_COVER_3.json',
        'SPREAD_ZONE_READ_vs_ZONE_BLITZ.json',
    ],
    'west-coast': [
        'WEST_COAST_CURL_vs_MAN_PRESS.json',
        'WEST_COAST_SLANT_vs_COVER_2.json',
        'WEST_COAST_STICK_vs_ZONE_BLITZ.json',
    ],
    'wide-zone': [
        'WIDE_ZONE_BOOT_FLOOD_vs_ZONE_BLITZ.json',
        'WIDE_ZONE_INSIDE_ZONE_vs_COVER_3.json',
        'WIDE_ZONE_OUTSIDE_ZONE_vs_MAN_PRESS.json',
    ],
}


def create_default_config() -> SimulationConfig:
    """
    Build the default run configuration from Settings.

    With no environment overrides this is sampleSize 10000, seed 12345,
    maxConcurrency 4, progress tracking on and a 30000ms timeout.
    """
    settings = get_settings()
    return SimulationConfig(
        sampleSize=settings.sample_size,
        seed=settings.seed,
        maxConcurrency=settings.max_concurrency,
        enableProgressTracking=settings.enable_progress_tracking,
        timeoutMs=settings.timeout_ms,
    )


def validate_config(config: SimulationConfig) -> ConfigValidation:
    """
    Check that run parameters are within safe limits.

    Returns:
        ConfigValidation listing every problem found; callers decide whether
        to refuse the run.
    """
    errors: List[str] = []

    if config.sampleSize < MIN_SAMPLE_SIZE:
        errors.append('Sample size must be at least 100 for meaningful analysis')
    if config.sampleSize > MAX_SAMPLE_SIZE:
        errors.append('Sample size over 100,000 may cause performance issues')
    if config.maxConcurrency < MIN_CONCURRENCY:
        errors.append('Concurrency must be at least 1')
    if config.maxConcurrency > MAX_CONCURRENCY:
        errors.append('Concurrency over 16 may cause system instability')
    if config.timeoutMs < MIN_TIMEOUT_MS:
        errors.append('Timeout must be at least 5 seconds')

    return ConfigValidation(valid=len(errors) == 0, errors=errors)


# =============================================================================
# Table Discovery
# =============================================================================


def parse_table_file(playbook: str, file_name: str) -> Optional[TableInfo]:
    """
    Build TableInfo from a ``<OFFENSE>_vs_<DEFENSE>.json`` file name.

    Underscores in the card segments become spaces. Returns None for names
    that do not split into exactly one offense and one defense segment.
    """
    stem = file_name[:-len('.json')] if file_name.endswith('.json') else file_name
    parts = stem.split('_vs_')
    if len(parts) != 2:
        return None
    offense, defense = parts
    return TableInfo(
        id=f"{playbook}/{file_name}",
        playbook=playbook,
        offenseCard=offense.replace('_', ' '),
        defenseCard=defense.replace('_', ' '),
        filePath=f"{TABLES_ROOT}/{playbook}/{file_name}",
    )


def discover_tables() -> List[TableInfo]:
    """Return the fixed representative table list (five playbooks, three tables each)."""
    tables: List[TableInfo] = []
    for playbook, files in PLAYBOOK_TABLE_FILES.items():
        for file_name in files:
            table = parse_table_file(playbook, file_name)
            if table is not None:
                tables.append(table)
    return tables


# =============================================================================
# Run Orchestration
# =============================================================================


def _failed_analysis(table: TableInfo) -> TableAnalysis:
    """Zero-valued stand-in for a table whose analysis raised."""
    return TableAnalysis(
        tableId=table.id,
        playbook=table.playbook,
        offenseCard=table.offenseCard,
        defenseCard=table.defenseCard,
        sampleSize=0,
        avgYards=0.0,
        yardsStdDev=0.0,
        turnoverRate=0.0,
        explosiveRate=0.0,
        sackRate=0.0,
        penaltyRate=0.0,
        passRate=0.0,
        clockDistribution={bucket: 0.0 for bucket in CLOCK_BUCKETS},
        clustering=ClusteringMetrics(),
        redZoneEfficiency=0.0,
    )


def summarize_compliance(compliance: Sequence[ComplianceResult]) -> SimulationSummary:
    """Counts by overall status and the mean score (0.0 for an empty run)."""
    scores = [c.score for c in compliance]
    return SimulationSummary(
        compliant=sum(1 for c in compliance if c.overall == ComplianceStatus.COMPLIANT),
        warning=sum(1 for c in compliance if c.overall == ComplianceStatus.WARNING),
        violation=sum(1 for c in compliance if c.overall == ComplianceStatus.VIOLATION),
        critical=sum(1 for c in compliance if c.overall == ComplianceStatus.CRITICAL),
        totalScore=sum(scores) / len(scores) if scores else 0.0,
    )


async def run_analysis(
    tables: Sequence[TableInfo],
    config: Optional[SimulationConfig] = None,
    *,
    progress_callback: Optional[ProgressCallback] = None,
    rng: Optional[RandomSource] = None,
    clock: Callable[[], float] = time.perf_counter,
) -> SimulationResult:
    """
    Run the complete balance analysis over `tables`.

    Args:
        tables: Tables to analyze, in analysis order.
        config: Run configuration; defaults to create_default_config().
        progress_callback: Called with the shared SimulationProgress at start,
            when each table starts and after every batch, when tracking is on.
        rng: Uniform source; defaults to a fresh RNG seeded with config.seed.
        clock: Monotonic clock in seconds, injectable for tests.

    Returns:
        SimulationResult with index-aligned analyses and compliance. Failed
        tables and the timeout are reported in `errors`.
    """
    config = config or create_default_config()
    rng = rng or create_rng(config.seed)
    start = clock()
    errors: List[str] = []

    logger.info(
        f"Starting balance analysis for {len(tables)} tables with sample size {config.sampleSize}"
    )

    progress = SimulationProgress(total=len(tables))
    tracking = config.enableProgressTracking and progress_callback is not None

    def notify() -> None:
        if tracking:
            progress_callback(progress)

    notify()

    async def analyze(table: TableInfo) -> TableAnalysis:
        try:
            progress.current = table.id
            notify()
            return await analyze_table(
                table.id,
                table.offenseCard,
                table.defenseCard,
                table.playbook,
                config.sampleSize,
                rng=rng,
                clock=clock,
            )
        except Exception as e:
            message = f"Failed to analyze {table.id}: {e}"
            logger.error(message)
            errors.append(message)
            progress.errors.append(message)
            return _failed_analysis(table)

    analyses: List[TableAnalysis] = []
    batch_size = max(MIN_CONCURRENCY, config.maxConcurrency)
    index = 0

    while index < len(tables):
        if index > 0 and (clock() - start) * 1000 > config.timeoutMs:
            message = f"Analysis timeout after {config.timeoutMs}ms"
            logger.warning(f"{message}; {len(tables) - index} tables not analyzed")
            errors.append(message)
            break

        batch = tables[index:index + batch_size]
        batch_results = await asyncio.gather(*(analyze(table) for table in batch))
        analyses.extend(a for a in batch_results if a.sampleSize > 0)
        index += len(batch)

        progress.completed = index
        elapsed_ms = (clock() - start) * 1000
        progress.estimatedTimeRemaining = elapsed_ms / index * (len(tables) - index)
        notify()

    compliance = await check_batch_compliance(analyses)
    summary = summarize_compliance(compliance)
    duration = (clock() - start) * 1000

    logger.info(
        f"Balance analysis complete: {summary.compliant} compliant, "
        f"{summary.violation} violations, {summary.critical} critical issues"
    )

    return SimulationResult(
        analyses=analyses,
        compliance=compliance,
        errors=errors,
        duration=max(0.0, duration),
        config=config,
        summary=summary,
    )
