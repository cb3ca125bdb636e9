"""
Outlier Detector for cross-table balance comparison.

Compares every table against the other tables of its playbook and against
fixed playbook identity targets, flagging metrics that deviate far enough to
suggest a balance problem.

Detection Methods (per table):
    Peer group = all analyses sharing the table's playbook, the table included.

    1. Small peer group (< 3 tables): absolute thresholds only
       (avgYards > 50, explosiveRate > 60, turnoverRate > 40, penaltyRate > 40),
       plus the playbook identity check.
    2. Z-score: peer mean/std exclude the table itself; flag |z| > 3.8.
    3. IQR: index quartiles of the other peers; flag outside
       [q1 - 2.0 * iqr, q3 + 2.0 * iqr].
    4. Playbook identity: |actual - center| > range.
    5. Clustering deviation (group >= 5): relative deviation of
       clusterStrength from the group average > 0.35.

Aggregated Severity:
    Evaluated top to bottom, first match wins:
        critical  high >= 3 or count >= 6
        high      high >= 2 or count >= 4
        high      high >= 1 or count >= 3
        medium    medium >= 2 or count >= 2
        low       otherwise

Dependencies:
    - numpy: peer means, standard deviations and sorted quartile lookups
"""

import logging
import math
from collections import Counter
from typing import Dict, List, NamedTuple, Sequence

import numpy as np

from gridiron_balance.models.enums import OutlierMethod, OutlierRisk, OutlierSeverity
from gridiron_balance.models.schemas import (
    MetricCount,
    OutlierAnalysis,
    OutlierResult,
    OutlierSummary,
    TableAnalysis,
)
from gridiron_balance.services.guardrails import normalize_playbook_name


logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

MIN_PEER_GROUP: int = 3
MIN_ZSCORE_PEERS: int = 2
MIN_IQR_PEERS: int = 3
MIN_CLUSTERING_GROUP: int = 5

ZSCORE_THRESHOLD: float = 3.8
IQR_MULTIPLIER: float = 2.0
IQR_HIGH_FRACTION: float = 0.75
CLUSTERING_THRESHOLD: float = 0.35
CLUSTERING_HIGH_THRESHOLD: float = 0.6

ZSCORE_METRICS: Dict[str, str] = {
    'avgYards': 'Average yards per play',
    'yardsStdDev': 'Yardage standard deviation',
    'turnoverRate': 'Turnover rate',
    'explosiveRate': 'Explosive play rate',
    'sackRate': 'Sack rate',
    'penaltyRate': 'Penalty rate',
}

IQR_METRICS: List[str] = ['avgYards', 'turnoverRate', 'explosiveRate']


class AbsoluteLimit(NamedTuple):
    metric: str
    limit: float
    severity: OutlierSeverity


ABSOLUTE_LIMITS: List[AbsoluteLimit] = [
    AbsoluteLimit('avgYards', 50.0, OutlierSeverity.HIGH),
    AbsoluteLimit('explosiveRate', 60.0, OutlierSeverity.HIGH),
    AbsoluteLimit('turnoverRate', 40.0, OutlierSeverity.HIGH),
    AbsoluteLimit('penaltyRate', 40.0, OutlierSeverity.MEDIUM),
]


class IdentityTarget(NamedTuple):
    center: float
    range: float


# Keyed by normalized playbook name ('air-raid' and 'Air Raid' both match)
PLAYBOOK_EXPECTED_METRICS: Dict[str, Dict[str, IdentityTarget]] = {
    'air raid': {
        'avgYards': IdentityTarget(10.0, 2.0),
        'explosiveRate': IdentityTarget(25.0, 5.0),
        'turnoverRate': IdentityTarget(15.0, 3.0),
    },
    'smashmouth': {
        'avgYards': IdentityTarget(6.0, 1.5),
        'explosiveRate': IdentityTarget(12.0, 3.0),
        'turnoverRate': IdentityTarget(12.0, 2.0),
    },
    'west coast': {
        'avgYards': IdentityTarget(7.5, 1.8),
        'explosiveRate': IdentityTarget(16.0, 5.0),
        'turnoverRate': IdentityTarget(20.0, 6.0),
    },
    'spread': {
        'avgYards': IdentityTarget(8.5, 2.0),
        'explosiveRate': IdentityTarget(20.0, 5.0),
    },
    'wide zone': {
        'avgYards': IdentityTarget(7.0, 1.8),
        'explosiveRate': IdentityTarget(14.0, 4.0),
    },
}

SEVERITY_RANK: Dict[OutlierSeverity, int] = {
    OutlierSeverity.LOW: 1,
    OutlierSeverity.MEDIUM: 2,
    OutlierSeverity.HIGH: 3,
}


# =============================================================================
# Helpers
# =============================================================================


def _metric_value(analysis: TableAnalysis, metric: str) -> float:
    return float(getattr(analysis, metric))


def normalize_table_id(table_id: str) -> str:
    """
    Reduce a table id to ``playbook/<offense segment>``.

    The segment after the first '/' is cut at the first '-vs-'. Ids without
    a '/' are returned unchanged.

    Example:
        >>> normalize_table_id('spread/mesh-vs-cover-3')
        'spread/mesh'
    """
    parts = table_id.split('/')
    if len(parts) < 2 or not parts[1]:
        return table_id
    playbook, rest = parts[0], parts[1]
    offense = rest.split('-vs-')[0] or rest
    return f"{playbook}/{offense}"


def group_by_playbook(analyses: Sequence[TableAnalysis]) -> Dict[str, List[int]]:
    """Indices of analyses per playbook label, in input order."""
    groups: Dict[str, List[int]] = {}
    for index, analysis in enumerate(analyses):
        groups.setdefault(analysis.playbook, []).append(index)
    return groups


def get_playbook_expected_metrics(playbook: str) -> Dict[str, IdentityTarget]:
    return PLAYBOOK_EXPECTED_METRICS.get(normalize_playbook_name(playbook), {})


def calculate_zscore_severity(z_score: float) -> OutlierSeverity:
    if z_score > 3.5:
        return OutlierSeverity.HIGH
    if z_score > 2.5:
        return OutlierSeverity.MEDIUM
    return OutlierSeverity.LOW


# =============================================================================
# Detection Methods
# =============================================================================


def detect_absolute_outliers(analysis: TableAnalysis) -> List[OutlierResult]:
    """Absolute threshold checks used when there are too few peers to compare."""
    outliers: List[OutlierResult] = []
    for limit in ABSOLUTE_LIMITS:
        value = _metric_value(analysis, limit.metric)
        if value > limit.limit:
            outliers.append(OutlierResult(
                tableId=analysis.tableId,
                metric=limit.metric,
                value=value,
                expected=limit.limit,
                deviation=abs(value - limit.limit),
                method=OutlierMethod.ISOLATION,
                severity=limit.severity,
                description=(
                    f"{limit.metric} extreme value ({value:.2f}) exceeds safe threshold "
                    f"({limit.limit:.2f})"
                ),
                recommendation=f"Review {limit.metric} distribution; value is outside plausible range",
            ))
    return outliers


def detect_zscore_outliers(analysis: TableAnalysis, peers: Sequence[TableAnalysis]) -> List[OutlierResult]:
    """
    Z-score outliers against the other tables of the playbook.

    Args:
        analysis: Table under test.
        peers: Other tables of the same playbook (the table itself excluded).

    Returns:
        One result per metric whose |z| exceeds 3.8. Metrics without peer
        variation are skipped. Deviation is the signed z-score.
    """
    outliers: List[OutlierResult] = []
    if len(peers) < MIN_ZSCORE_PEERS:
        return outliers

    for metric, label in ZSCORE_METRICS.items():
        values = np.array([_metric_value(p, metric) for p in peers], dtype=np.float64)
        mean_val = float(np.mean(values))
        std_val = float(np.std(values))  # Population std (ddof=0)
        if std_val == 0:
            continue

        value = _metric_value(analysis, metric)
        signed_z = (value - mean_val) / std_val
        z_score = abs(signed_z)
        if z_score > ZSCORE_THRESHOLD:
            outliers.append(OutlierResult(
                tableId=analysis.tableId,
                metric=metric,
                value=value,
                expected=mean_val,
                deviation=signed_z,
                method=OutlierMethod.ZSCORE,
                severity=calculate_zscore_severity(z_score),
                description=(
                    f"{label} ({value:.2f}) deviates significantly from peer average ({mean_val:.2f})"
                ),
                recommendation=(
                    f"Review {metric} distribution - may need adjustment to match similar "
                    f"{analysis.playbook} tables"
                ),
            ))
    return outliers


def detect_iqr_outliers(analysis: TableAnalysis, peers: Sequence[TableAnalysis]) -> List[OutlierResult]:
    """IQR outliers with 2.0 x IQR fences over the other peers' index quartiles."""
    outliers: List[OutlierResult] = []

    for metric in IQR_METRICS:
        values = np.sort(np.array([_metric_value(p, metric) for p in peers], dtype=np.float64))
        n = len(values)
        if n < MIN_IQR_PEERS:
            continue

        q1 = float(values[int(math.floor(n * 0.25))])
        q3 = float(values[int(math.floor(n * 0.75))])
        iqr = q3 - q1
        lower_bound = q1 - IQR_MULTIPLIER * iqr
        upper_bound = q3 + IQR_MULTIPLIER * iqr

        value = _metric_value(analysis, metric)
        if lower_bound <= value <= upper_bound:
            continue

        deviation = lower_bound - value if value < lower_bound else value - upper_bound
        outliers.append(OutlierResult(
            tableId=analysis.tableId,
            metric=metric,
            value=value,
            expected=(q1 + q3) / 2,
            deviation=deviation,
            method=OutlierMethod.IQR,
            severity=OutlierSeverity.HIGH if deviation > iqr * IQR_HIGH_FRACTION else OutlierSeverity.MEDIUM,
            description=f"{metric} falls outside IQR bounds [{lower_bound:.2f}, {upper_bound:.2f}]",
            recommendation=f"Consider if this {metric} deviation is intentional or needs correction",
        ))
    return outliers


def detect_playbook_outliers(analysis: TableAnalysis) -> List[OutlierResult]:
    """Deviation from the fixed identity targets of the table's playbook."""
    outliers: List[OutlierResult] = []

    for metric, target in get_playbook_expected_metrics(analysis.playbook).items():
        actual = _metric_value(analysis, metric)
        distance = abs(actual - target.center)
        if distance <= target.range:
            continue
        outliers.append(OutlierResult(
            tableId=analysis.tableId,
            metric=metric,
            value=actual,
            expected=target.center,
            deviation=distance,
            method=OutlierMethod.ISOLATION,
            severity=OutlierSeverity.HIGH if distance > target.range * 2 else OutlierSeverity.MEDIUM,
            description=(
                f"{metric} deviates from {analysis.playbook} identity "
                f"(expected: {target.center:.2f}, actual: {actual:.2f})"
            ),
            recommendation=f"Adjust {metric} to better align with {analysis.playbook} strategic identity",
        ))
    return outliers


def detect_distribution_outliers(analysis: TableAnalysis, group: Sequence[TableAnalysis]) -> List[OutlierResult]:
    """
    Clustering strength compared with the playbook average.

    `group` includes the table itself. Skipped when the average is 0.
    """
    average = float(np.mean([p.clustering.clusterStrength for p in group])) if group else 0.0
    if average <= 0:
        return []

    strength = analysis.clustering.clusterStrength
    relative_deviation = abs(strength - average) / average
    if relative_deviation <= CLUSTERING_THRESHOLD:
        return []

    return [OutlierResult(
        tableId=analysis.tableId,
        metric='clustering',
        value=strength,
        expected=average,
        deviation=relative_deviation,
        method=OutlierMethod.ISOLATION,
        severity=(
            OutlierSeverity.HIGH if relative_deviation > CLUSTERING_HIGH_THRESHOLD
            else OutlierSeverity.MEDIUM
        ),
        description=(
            f"Clustering strength ({strength:.3f}) deviates from peer average ({average:.3f})"
        ),
        recommendation='Review explosive play distribution for realistic clustering patterns',
    )]


def detect_table_outliers(
    analysis: TableAnalysis,
    group: Sequence[TableAnalysis],
    peers: Sequence[TableAnalysis],
) -> List[OutlierResult]:
    """
    Run every applicable method for one table.

    Args:
        analysis: Table under test.
        group: All tables of the playbook, including `analysis`.
        peers: `group` without `analysis`.
    """
    if len(group) < MIN_PEER_GROUP:
        return [*detect_absolute_outliers(analysis), *detect_playbook_outliers(analysis)]

    outliers = [
        *detect_zscore_outliers(analysis, peers),
        *detect_iqr_outliers(analysis, peers),
        *detect_playbook_outliers(analysis),
    ]
    if len(group) >= MIN_CLUSTERING_GROUP:
        outliers.extend(detect_distribution_outliers(analysis, group))
    return outliers


# =============================================================================
# Aggregation
# =============================================================================


def determine_table_severity(outliers: Sequence[OutlierResult]) -> OutlierRisk:
    """Ordered decision table; the first matching row wins."""
    high = sum(1 for o in outliers if o.severity == OutlierSeverity.HIGH)
    medium = sum(1 for o in outliers if o.severity == OutlierSeverity.MEDIUM)
    count = len(outliers)

    if high >= 3 or count >= 6:
        return OutlierRisk.CRITICAL
    if high >= 2 or count >= 4:
        return OutlierRisk.HIGH
    if high >= 1 or count >= 3:
        return OutlierRisk.HIGH
    if medium >= 2 or count >= 2:
        return OutlierRisk.MEDIUM
    return OutlierRisk.LOW


def generate_risk_assessment(severity: OutlierRisk, outliers: Sequence[OutlierResult]) -> str:
    issue_count = len(outliers)
    high_issues = sum(1 for o in outliers if o.severity == OutlierSeverity.HIGH)

    if severity == OutlierRisk.CRITICAL:
        return (
            f"Critical outlier profile: {issue_count} total outliers including {high_issues} "
            f"high-severity issues. This table likely needs significant rebalancing."
        )
    if severity == OutlierRisk.HIGH:
        return (
            f"High-risk outlier profile: {high_issues} high-severity outliers detected. "
            f"Review and adjustment recommended."
        )
    if severity == OutlierRisk.MEDIUM:
        return (
            f"Moderate outlier profile: {issue_count} outliers detected. "
            f"Monitor for potential balance issues."
        )
    return (
        f"Low-risk outlier profile: {issue_count} minor outliers detected. "
        f"Within acceptable variance."
    )


def analyze_outliers(table_id: str, outliers: Sequence[OutlierResult]) -> OutlierAnalysis:
    severity = determine_table_severity(outliers)
    # sorted() is stable, so ties keep detection order
    ranked = sorted(outliers, key=lambda o: abs(o.deviation), reverse=True)
    return OutlierAnalysis(
        tableId=normalize_table_id(table_id),
        outlierCount=len(outliers),
        severity=severity,
        primaryIssues=[o.metric for o in ranked[:3]],
        outlierDetails=list(outliers),
        riskAssessment=generate_risk_assessment(severity, outliers),
    )


def detect_outliers(analyses: Sequence[TableAnalysis]) -> List[OutlierAnalysis]:
    """
    Detect outliers for every table, one OutlierAnalysis per input in order.

    Args:
        analyses: Table analyses of one run.

    Returns:
        List of OutlierAnalysis, index-aligned with `analyses`. Tables with no
        findings get a low-risk entry with empty details.
    """
    groups = group_by_playbook(analyses)
    results: List[OutlierAnalysis] = []

    for index, analysis in enumerate(analyses):
        group_indices = groups[analysis.playbook]
        group = [analyses[i] for i in group_indices]
        peers = [analyses[i] for i in group_indices if i != index]
        outliers = detect_table_outliers(analysis, group, peers)
        results.append(analyze_outliers(analysis.tableId, outliers))

    flagged = sum(1 for r in results if r.outlierCount > 0)
    logger.info(f"Outlier detection complete: {flagged} of {len(results)} tables flagged")
    return results


def filter_by_severity(outliers: Sequence[OutlierResult], min_severity: OutlierSeverity) -> List[OutlierResult]:
    """Keep outliers at or above `min_severity`."""
    threshold = SEVERITY_RANK[OutlierSeverity(min_severity)]
    return [o for o in outliers if SEVERITY_RANK[o.severity] >= threshold]


def get_outlier_summary(outlier_analyses: Sequence[OutlierAnalysis]) -> OutlierSummary:
    """Cross-table rollup with the five most frequently flagged metrics."""
    metric_counts: Counter = Counter(
        detail.metric
        for analysis in outlier_analyses
        for detail in analysis.outlierDetails
    )
    return OutlierSummary(
        totalTables=len(outlier_analyses),
        tablesWithOutliers=sum(1 for a in outlier_analyses if a.outlierCount > 0),
        criticalTables=sum(1 for a in outlier_analyses if a.severity == OutlierRisk.CRITICAL),
        highSeverityTables=sum(1 for a in outlier_analyses if a.severity == OutlierRisk.HIGH),
        mostCommonIssues=[
            MetricCount(metric=metric, count=count)
            for metric, count in metric_counts.most_common(5)
        ],
    )
