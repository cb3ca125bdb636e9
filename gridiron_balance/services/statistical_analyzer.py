"""
Statistical Analyzer for Gridiron Strategy matchup tables.

Samples synthetic play outcomes for an offense/defense card pairing and
reduces them to the statistical profile (TableAnalysis) that the guardrail
checker and outlier detector consume.

Outcome Model:
    Outcomes are produced by a fast proxy model keyed on card-label keywords
    ("PASS", "RUN", "BLITZ", ...) rather than by the dice resolution engine.
    Each sample draws from the shared RNG in a fixed order:

        1. yards           two uniforms (Box-Muller)
        2. turnover        one uniform
        3. clock runoff    one uniform
        4. out of bounds   one uniform
        5. penalty gate    one uniform
        6. penalty type    one uniform, only when the gate fires

    Reproducibility of a whole run depends on this order, so new draws must
    only ever be appended after the existing ones.

Time Budget:
    Sampling stops early once PERFORMANCE_REQUIREMENTS.maxPerTableTime has
    elapsed. The returned sampleSize is the number of samples actually drawn.

Dependencies:
    - numpy: moment statistics, quartiles and rate computation

Usage:
    from gridiron_balance.services.rng import create_rng
    from gridiron_balance.services.statistical_analyzer import analyze_table

    analysis = await analyze_table(
        'spread/SPREAD_MESH_vs_COVER_3.json',
        'SPREAD MESH',
        'COVER 3',
        'spread',
        sample_size=10000,
        rng=create_rng(12345),
    )
"""

import logging
import math
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from gridiron_balance.models.enums import OutcomeTag, PenaltySide
from gridiron_balance.models.schemas import (
    AnalysisValidation,
    ClusteringMetrics,
    DistributionMetrics,
    Quartiles,
    TableAnalysis,
    ValueRange,
)
from gridiron_balance.services.guardrails import (
    DISTRIBUTION_GUARDRAILS,
    PERFORMANCE_REQUIREMENTS,
    STATISTICAL_THRESHOLDS,
)
from gridiron_balance.services.rng import RandomSource


logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

PASS_KEYWORDS: Tuple[str, ...] = ('PASS', 'AIR', 'VERT')
RUN_KEYWORDS: Tuple[str, ...] = ('RUN', 'ZONE')
PERIMETER_KEYWORDS: Tuple[str, ...] = ('BUBBLE', 'SWING', 'JET', 'TOSS')

# (mean, standard deviation) of yards per play type
PASS_YARDS: Tuple[float, float] = (7.5, 12.0)
RUN_YARDS: Tuple[float, float] = (4.2, 3.8)
MIXED_YARDS: Tuple[float, float] = (5.8, 8.5)

MIN_YARDS: float = -10.0
MAX_YARDS: float = 80.0

TURNOVER_PROBABILITY: float = 0.12
PENALTY_PROBABILITY: float = 0.125
OOB_PROBABILITY: float = 0.05
PERIMETER_OOB_PROBABILITY: float = 0.15

# Clock buckets in seconds with their selection weights, in draw order
DEFAULT_CLOCK_WEIGHTS: Tuple[Tuple[int, float], ...] = ((10, 0.25), (20, 0.35), (30, 0.40))
FAST_CLOCK_WEIGHTS: Tuple[Tuple[int, float], ...] = ((10, 0.45), (20, 0.35), (30, 0.20))
SLOW_CLOCK_WEIGHTS: Tuple[Tuple[int, float], ...] = ((10, 0.15), (20, 0.30), (30, 0.55))
CLOCK_BUCKETS: Tuple[int, ...] = (10, 20, 30)
FALLBACK_CLOCK: int = 30

EXPLOSIVE_YARDS: int = 20
SACK_YARDS: int = -5

RED_ZONE_ATTEMPTS: int = 100
RED_ZONE_CONVERSION: float = 0.7
RED_ZONE_OFFENSE: str = 'RED_ZONE_PLAY'
RED_ZONE_DEFENSE: str = 'GOAL_LINE'

# Rough footprint of one sampled outcome
BYTES_PER_OUTCOME: int = 100

# log(0) is undefined; a zero uniform is lifted to the smallest positive double
_MIN_UNIFORM: float = 5e-324


# =============================================================================
# Outcome Types
# =============================================================================


@dataclass(frozen=True)
class PenaltyOutcome:
    side: PenaltySide
    yards: int
    auto_first: bool = False
    loss_of_down: bool = False
    replay: bool = False


PENALTY_TYPES: Tuple[PenaltyOutcome, ...] = (
    PenaltyOutcome(PenaltySide.OFFENSE, -15, loss_of_down=True),
    PenaltyOutcome(PenaltySide.OFFENSE, -15),
    PenaltyOutcome(PenaltySide.OFFENSE, -10),
    PenaltyOutcome(PenaltySide.OFFENSE, -5, replay=True),
    PenaltyOutcome(PenaltySide.DEFENSE, 5, replay=True),
    PenaltyOutcome(PenaltySide.DEFENSE, 5),
    PenaltyOutcome(PenaltySide.DEFENSE, 10),
    PenaltyOutcome(PenaltySide.DEFENSE, 10, auto_first=True),
    PenaltyOutcome(PenaltySide.DEFENSE, 15, auto_first=True),
)


@dataclass
class PlayOutcome:
    """One sampled play."""
    yards: int
    turnover: bool
    clock: int
    oob: bool
    tags: List[OutcomeTag] = field(default_factory=list)
    penalty: Optional[PenaltyOutcome] = None


# =============================================================================
# Outcome Generation
# =============================================================================


def _contains_any(label: str, keywords: Sequence[str]) -> bool:
    return any(keyword in label for keyword in keywords)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def generate_yards(offense_card: str, defense_card: str, rng: RandomSource) -> int:
    """
    Draw a yardage result with the Box-Muller transform.

    The base distribution is chosen from the offense label (pass, run or
    mixed) and adjusted for blitz or coverage defenses. The result is clamped
    to [-10, 80] and rounded half up.

    Args:
        offense_card: Offense card label.
        defense_card: Defense card label.
        rng: Uniform source; exactly two values are drawn.

    Returns:
        Integer yards gained.

    Example:
        >>> generate_yards('POWER RUN', 'BASE', lambda: 0.5)
        0
    """
    offense = offense_card.upper()
    defense = defense_card.upper()

    if _contains_any(offense, PASS_KEYWORDS):
        mean, std_dev = PASS_YARDS
    elif _contains_any(offense, RUN_KEYWORDS):
        mean, std_dev = RUN_YARDS
    else:
        mean, std_dev = MIXED_YARDS

    if 'BLITZ' in defense:
        mean *= 0.85
        std_dev *= 1.1
    elif 'COVER' in defense:
        mean *= 0.95

    u1 = max(rng(), _MIN_UNIFORM)
    u2 = rng()
    z0 = math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)

    yards = max(MIN_YARDS, min(mean + std_dev * z0, MAX_YARDS))
    return _round_half_up(yards)


def generate_clock(yards: int, offense_card: str, rng: RandomSource) -> int:
    """
    Draw the clock runoff bucket (10, 20 or 30 seconds) for a play.

    Passes and long gains run less clock, runs more. The first bucket whose
    cumulative weight reaches the draw is returned; 30 is the fallback when
    float error leaves the draw above the final cumulative sum.
    """
    offense = offense_card.upper()
    if 'PASS' in offense or yards > 15:
        weights = FAST_CLOCK_WEIGHTS
    elif 'RUN' in offense:
        weights = SLOW_CLOCK_WEIGHTS
    else:
        weights = DEFAULT_CLOCK_WEIGHTS

    draw = rng()
    cumulative = 0.0
    for bucket, weight in weights:
        cumulative += weight
        if draw <= cumulative:
            return bucket
    return FALLBACK_CLOCK


def generate_oob(offense_card: str, rng: RandomSource) -> bool:
    """Perimeter plays (bubble, swing, jet, toss) go out of bounds three times as often."""
    offense = offense_card.upper()
    probability = PERIMETER_OOB_PROBABILITY if _contains_any(offense, PERIMETER_KEYWORDS) else OOB_PROBABILITY
    return rng() < probability


def generate_tags(
    yards: int,
    turnover: bool,
    offense_card: str,
    defense_card: str,
) -> List[OutcomeTag]:
    """Derive descriptive tags for a play. Draws nothing from the RNG."""
    offense = offense_card.upper()
    defense = defense_card.upper()
    is_pass_label = 'PASS' in offense
    tags: List[OutcomeTag] = []

    if turnover:
        tags.append(OutcomeTag.INTERCEPTION if is_pass_label else OutcomeTag.FUMBLE)
    if yards >= EXPLOSIVE_YARDS:
        tags.append(OutcomeTag.EXPLOSIVE)
    if yards <= SACK_YARDS and is_pass_label:
        tags.append(OutcomeTag.SACK)
    if is_pass_label and yards == 0:
        tags.append(OutcomeTag.INCOMPLETE)
    if 'BLITZ' in defense:
        tags.append(OutcomeTag.PRESSURE)

    # Play-type tag
    if _contains_any(offense, PASS_KEYWORDS):
        tags.append(OutcomeTag.PASS)
    elif _contains_any(offense, RUN_KEYWORDS):
        tags.append(OutcomeTag.RUN)

    return tags


def generate_penalty(rng: RandomSource) -> Optional[PenaltyOutcome]:
    """Gate at 12.5%, then pick one of the nine penalty archetypes uniformly."""
    if rng() > PENALTY_PROBABILITY:
        return None
    return PENALTY_TYPES[int(math.floor(rng() * len(PENALTY_TYPES)))]


def generate_outcome(offense_card: str, defense_card: str, rng: RandomSource) -> PlayOutcome:
    """Sample one complete play outcome in the fixed draw order."""
    yards = generate_yards(offense_card, defense_card, rng)
    turnover = rng() < TURNOVER_PROBABILITY
    clock = generate_clock(yards, offense_card, rng)
    oob = generate_oob(offense_card, rng)
    tags = generate_tags(yards, turnover, offense_card, defense_card)
    penalty = generate_penalty(rng)
    return PlayOutcome(
        yards=yards,
        turnover=turnover,
        clock=clock,
        oob=oob,
        tags=tags,
        penalty=penalty,
    )


# =============================================================================
# Distribution Statistics
# =============================================================================


def calculate_distribution_metrics(yards: Sequence[int]) -> DistributionMetrics:
    """
    Compute moment statistics over a yardage sample.

    Uses population moments (ddof=0). Quartiles are index lookups into the
    sorted sample at floor(n * 0.25) and floor(n * 0.75), not interpolated.
    Outlier fences are the classical 1.5 x IQR bounds.

    Args:
        yards: Sampled yardage values.

    Returns:
        DistributionMetrics. An empty sample yields all zeros; a constant
        sample yields zero skewness and kurtosis.

    Example:
        >>> metrics = calculate_distribution_metrics([0, 2, 4, 4, 10])
        >>> metrics.mean, metrics.median, metrics.mode
        (4.0, 4.0, [4])
    """
    n = len(yards)
    if n == 0:
        return DistributionMetrics()

    values = np.sort(np.asarray(yards, dtype=np.float64))

    mean_val = float(np.mean(values))
    median_val = float(np.median(values))
    std_val = float(np.std(values))  # Population std (ddof=0)

    if std_val > 0:
        z_scores = (values - mean_val) / std_val
        skewness = float(np.mean(z_scores ** 3))
        kurtosis = float(np.mean(z_scores ** 4)) - 3.0
    else:
        skewness = 0.0
        kurtosis = 0.0

    unique_values, counts = np.unique(values, return_counts=True)
    mode = [int(v) for v in unique_values[counts == counts.max()]]

    q1 = float(values[int(math.floor(n * 0.25))])
    q3 = float(values[int(math.floor(n * 0.75))])
    iqr = q3 - q1
    lower_fence = q1 - 1.5 * iqr
    upper_fence = q3 + 1.5 * iqr
    outlier_count = int(np.count_nonzero((values < lower_fence) | (values > upper_fence)))

    return DistributionMetrics(
        mean=mean_val,
        median=median_val,
        mode=mode,
        standardDeviation=std_val,
        skewness=skewness,
        kurtosis=kurtosis,
        quartiles=Quartiles(q1=q1, q2=median_val, q3=q3),
        range=ValueRange(min=float(values[0]), max=float(values[-1])),
        outlierBounds=ValueRange(min=lower_fence, max=upper_fence),
        outlierCount=outlier_count,
    )


def calculate_cluster_strength(counts: Sequence[int]) -> float:
    """
    Cluster strength of explosive counts across the yardage thresholds.

    Defined as ``max(0, 1 - CV)`` where CV is the coefficient of variation
    (population std / mean) of the counts. Returns 0 for empty input or when
    no sample reached any threshold.
    """
    if len(counts) == 0:
        return 0.0
    values = np.asarray(counts, dtype=np.float64)
    mean_val = float(np.mean(values))
    if mean_val == 0:
        return 0.0
    coefficient_of_variation = float(np.std(values)) / mean_val
    return max(0.0, 1.0 - coefficient_of_variation)


def calculate_red_zone_efficiency(rng: RandomSource, attempts: int = RED_ZONE_ATTEMPTS) -> float:
    """
    Percent of red zone trials that score.

    A trial scores on a 20+ yard gain, or on any positive gain with a 70%
    conversion draw. The conversion draw only happens below 20 yards.
    """
    scores = 0
    for _ in range(attempts):
        yards = generate_yards(RED_ZONE_OFFENSE, RED_ZONE_DEFENSE, rng)
        if yards >= EXPLOSIVE_YARDS or (rng() < RED_ZONE_CONVERSION and yards > 0):
            scores += 1
    return scores / attempts * 100 if attempts else 0.0


# =============================================================================
# Table Analysis
# =============================================================================


def _percent(count: int, total: int) -> float:
    return count / total * 100 if total else 0.0


def build_analysis(
    table_id: str,
    offense_card: str,
    defense_card: str,
    playbook: str,
    outcomes: Sequence[PlayOutcome],
    rng: RandomSource,
) -> TableAnalysis:
    """
    Reduce sampled outcomes to a TableAnalysis.

    Every rate uses the actual number of outcomes as its denominator. The red
    zone sub-simulation draws from `rng` after all samples.
    """
    sample_size = len(outcomes)
    yards = np.fromiter((o.yards for o in outcomes), dtype=np.int64, count=sample_size)
    turnovers = np.fromiter((o.turnover for o in outcomes), dtype=bool, count=sample_size)
    clocks = np.fromiter((o.clock for o in outcomes), dtype=np.int64, count=sample_size)

    distribution = calculate_distribution_metrics(yards.tolist())

    explosive_count = int(np.count_nonzero((yards >= EXPLOSIVE_YARDS) & ~turnovers))
    sack_count = sum(1 for o in outcomes if OutcomeTag.SACK in o.tags)
    penalty_count = sum(1 for o in outcomes if o.penalty is not None)
    pass_count = sum(1 for o in outcomes if OutcomeTag.PASS in o.tags)

    thresholds = list(DISTRIBUTION_GUARDRAILS.explosiveClustering.thresholds)
    explosive_counts = [int(np.count_nonzero(yards >= threshold)) for threshold in thresholds]

    return TableAnalysis(
        tableId=table_id,
        playbook=playbook,
        offenseCard=offense_card,
        defenseCard=defense_card,
        sampleSize=sample_size,
        avgYards=distribution.mean,
        yardsStdDev=distribution.standardDeviation,
        turnoverRate=_percent(int(np.count_nonzero(turnovers)), sample_size),
        explosiveRate=_percent(explosive_count, sample_size),
        sackRate=_percent(sack_count, sample_size),
        penaltyRate=_percent(penalty_count, sample_size),
        passRate=_percent(pass_count, sample_size),
        clockDistribution={
            bucket: _percent(int(np.count_nonzero(clocks == bucket)), sample_size)
            for bucket in CLOCK_BUCKETS
        },
        clustering=ClusteringMetrics(
            explosiveThresholds=thresholds,
            explosiveCounts=explosive_counts,
            clusterStrength=calculate_cluster_strength(explosive_counts),
        ),
        redZoneEfficiency=calculate_red_zone_efficiency(rng),
        memoryUsage=sample_size * BYTES_PER_OUTCOME,
        distribution=distribution,
    )


async def analyze_table(
    table_id: str,
    offense_card: str,
    defense_card: str,
    playbook: str,
    sample_size: int = STATISTICAL_THRESHOLDS.minSampleSize,
    *,
    rng: RandomSource,
    clock: Callable[[], float] = time.perf_counter,
    max_per_table_time_ms: float = PERFORMANCE_REQUIREMENTS.maxPerTableTime,
) -> TableAnalysis:
    """
    Sample a matchup table and compute its statistical profile.

    The sampling loop never awaits, so concurrent calls on one event loop run
    to completion one after another and consume the shared RNG in call order.

    Args:
        table_id: Table identifier.
        offense_card: Offense card label.
        defense_card: Defense card label.
        playbook: Playbook label used for peer grouping downstream.
        sample_size: Requested number of samples.
        rng: Shared uniform source.
        clock: Monotonic clock in seconds, injectable for tests.
        max_per_table_time_ms: Per-table sampling budget in milliseconds.

    Returns:
        TableAnalysis with the actual sample size, which is lower than
        `sample_size` when the budget ran out.
    """
    start = clock()
    outcomes: List[PlayOutcome] = []

    for _ in range(sample_size):
        outcomes.append(generate_outcome(offense_card, defense_card, rng))
        if (clock() - start) * 1000 >= max_per_table_time_ms:
            break

    if len(outcomes) < sample_size:
        logger.warning(
            f"Time budget of {max_per_table_time_ms}ms reached for {table_id}: "
            f"{len(outcomes)} of {sample_size} samples drawn"
        )

    analysis = build_analysis(table_id, offense_card, defense_card, playbook, outcomes, rng)
    elapsed_ms = (clock() - start) * 1000
    return analysis.model_copy(update={'analysisTime': elapsed_ms})


def validate_analysis(analysis: TableAnalysis) -> AnalysisValidation:
    """Flag analyses that are too small or took too long to trust."""
    issues: List[str] = []

    if analysis.sampleSize < STATISTICAL_THRESHOLDS.minSampleSize:
        issues.append(
            f"Sample size {analysis.sampleSize} below minimum {STATISTICAL_THRESHOLDS.minSampleSize}"
        )

    if analysis.analysisTime > PERFORMANCE_REQUIREMENTS.maxPerTableTime:
        issues.append(
            f"Analysis took {analysis.analysisTime}ms, exceeds recommended threshold"
        )

    return AnalysisValidation(valid=len(issues) == 0, issues=issues)
