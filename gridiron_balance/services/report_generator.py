"""
Report Generator for balance analysis runs.

Aggregates table analyses, compliance results and outlier analyses into a
BalanceReport and renders it as JSON or as a Markdown-like text summary.

Report Sections:
    - metadata: generation time, version, sample size, seed, duration
    - summary: mean compliance score, overall health grade, risk level text
    - compliance: per-playbook rollups, top issues, trend notes
    - outliers: per-playbook outlier rollups and review recommendations
    - recommendations: prioritized actions, per-playbook fixes, quick wins
    - detailedResults: one entry per table joining all three inputs
    - appendices: guardrail glossary, methodology, statistical notes

Joining Inputs:
    By default detailed results join compliance on tableId and outliers on
    the normalized table id, skipping tables missing from either. With
    ResultJoin.POSITION the inputs are zipped by index and truncated to the
    shortest list.

Dependencies:
    - pandas: per-playbook compliance rollups
"""

import logging
from collections import Counter, defaultdict, deque
from datetime import datetime, timezone
from typing import Deque, Dict, List, Optional, Sequence

import pandas as pd

from gridiron_balance.core.config import get_settings
from gridiron_balance.models.enums import (
    ComplianceStatus,
    OutlierRisk,
    OverallHealth,
    RecommendationLevel,
    ResultJoin,
    TrendDirection,
)
from gridiron_balance.models.schemas import (
    BalanceReport,
    ComplianceResult,
    ComplianceSection,
    DetailedResult,
    KeyMetrics,
    MetricTrend,
    OutlierAnalysis,
    OutlierCounts,
    OutliersSection,
    PlaybookCompliance,
    PlaybookOutliers,
    PriorityRecommendation,
    RecommendationsSection,
    ReportAppendices,
    ReportMetadata,
    ReportSummary,
    TableAnalysis,
    TopIssue,
)
from gridiron_balance.services.outlier_detector import normalize_table_id


logger = logging.getLogger(__name__)


# =============================================================================
# Static Report Content
# =============================================================================

GUARDRAIL_DESCRIPTIONS: Dict[str, str] = {
    'explosivePassRate': 'Explosive pass rate outside NFL analytics range',
    'sackRate': 'Sack rate deviates from realistic defensive pressure',
    'turnoverRate': 'Turnover rate affects possession balance',
    'penaltyRate': 'Penalty frequency impacts game flow',
    'clockBalance': 'Clock runoff distribution is unbalanced',
    'redZoneEfficiency': 'Red zone scoring rate is unrealistic',
}

COMPLIANCE_TRENDS: List[MetricTrend] = [
    MetricTrend(
        metric='Explosive Pass Rate',
        trend=TrendDirection.STABLE,
        description='Explosive play rates are within acceptable ranges across most tables',
    ),
    MetricTrend(
        metric='Turnover Rate',
        trend=TrendDirection.STABLE,
        description='Turnover rates show consistent balance across playbooks',
    ),
]

OUTLIER_RECOMMENDATIONS: List[str] = [
    'Review tables with high outlier counts for potential rebalancing',
    'Investigate playbook-specific outlier patterns',
    'Consider adjusting statistical thresholds if systematic issues are found',
]

QUICK_WINS: List[str] = [
    'Review and standardize explosive play thresholds across similar playbooks',
    'Check penalty rate distributions for consistency',
    'Validate clock runoff balance across all tables',
]

GUARDRAIL_DEFINITIONS: Dict[str, str] = {
    'explosivePassRate': 'Percentage of pass completions gaining 20+ yards (target: 15-25%)',
    'sackRate': 'Percentage of dropbacks resulting in sacks (target: 4-8%)',
    'turnoverRate': 'Percentage of drives ending in turnovers (target: 10-20%)',
    'penaltyRate': 'Percentage of plays with penalties (target: 8-15%)',
}

METHODOLOGY: str = (
    'Analysis uses statistical sampling with deterministic RNG for reproducible results. '
    'Guardrails based on NFL analytics and GDD requirements.'
)

STATISTICAL_NOTES: List[str] = [
    'All percentages calculated with 95% confidence intervals',
    'Outlier detection uses multiple methods (Z-score, IQR, playbook identity)',
    'Sample size of 10,000 provides <2% margin of error for percentage metrics',
]

TOP_ISSUE_LIMIT: int = 5
PLAYBOOK_ISSUE_LIMIT: int = 3
MULTIPLE_VIOLATION_THRESHOLD: int = 3


# =============================================================================
# Helpers
# =============================================================================


def playbook_of(table_id: str) -> str:
    """Playbook segment of a table id (text before the first '/')."""
    return table_id.split('/')[0] or 'unknown'


def get_guardrail_description(guardrail: str) -> str:
    """
    Human description for a guardrail name.

    Bucketed names such as ``clockBalance_10`` fall back to their base name.
    """
    if guardrail in GUARDRAIL_DESCRIPTIONS:
        return GUARDRAIL_DESCRIPTIONS[guardrail]
    base = guardrail.split('_')[0]
    if base in GUARDRAIL_DESCRIPTIONS:
        return GUARDRAIL_DESCRIPTIONS[base]
    return f"Guardrail {guardrail} violation detected"


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a 'Z' suffix."""
    return moment.astimezone(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


# =============================================================================
# Sections
# =============================================================================


def determine_health(average_score: float, violation: int, critical: int) -> OverallHealth:
    if average_score >= 90 and critical == 0:
        return OverallHealth.EXCELLENT
    if average_score >= 80 and violation == 0:
        return OverallHealth.GOOD
    if average_score >= 70 and critical < 3:
        return OverallHealth.FAIR
    if average_score >= 60:
        return OverallHealth.POOR
    return OverallHealth.CRITICAL


def generate_summary(analyses: Sequence[TableAnalysis], compliance: Sequence[ComplianceResult]) -> ReportSummary:
    """
    Headline summary.

    The mean score of an empty compliance list is reported as 0.0.
    """
    statuses = Counter(c.overall for c in compliance)
    compliant = statuses[ComplianceStatus.COMPLIANT]
    warning = statuses[ComplianceStatus.WARNING]
    violation = statuses[ComplianceStatus.VIOLATION]
    critical = statuses[ComplianceStatus.CRITICAL]
    average_score = _mean([c.score for c in compliance])

    risk_level = 'Low risk - system is well balanced'
    if critical > 0:
        risk_level = f"High risk - {critical} critical issues require immediate attention"
    elif violation > len(compliance) * 0.2:
        risk_level = f"Medium risk - {violation} tables have significant balance issues"
    elif warning > len(compliance) * 0.3:
        risk_level = f"Low-medium risk - {warning} tables need monitoring"

    return ReportSummary(
        overallHealth=determine_health(average_score, violation, critical),
        complianceScore=average_score,
        tablesAnalyzed=len(analyses),
        compliantTables=compliant,
        tablesWithWarnings=warning,
        tablesWithViolations=violation,
        criticalTables=critical,
        averageScore=average_score,
        riskLevel=risk_level,
    )


def summarize_compliance_by_playbook(compliance: Sequence[ComplianceResult]) -> Dict[str, PlaybookCompliance]:
    """
    Per-playbook status counts and mean score, in first-seen playbook order.

    Example:
        >>> rollup = summarize_compliance_by_playbook(results)
        >>> rollup['spread'].total, rollup['spread'].averageScore
        (3, 71.0)
    """
    if not compliance:
        return {}

    frame = pd.DataFrame({
        'playbook': [playbook_of(c.tableId) for c in compliance],
        'overall': [c.overall.value for c in compliance],
        'score': [c.score for c in compliance],
    })

    status_counts = (
        pd.crosstab(frame['playbook'], frame['overall'])
        .reindex(columns=[status.value for status in ComplianceStatus], fill_value=0)
    )
    scores = frame.groupby('playbook', sort=False)['score'].agg(['size', 'mean'])

    rollup: Dict[str, PlaybookCompliance] = {}
    for playbook, row in scores.iterrows():
        counts = status_counts.loc[playbook]
        rollup[str(playbook)] = PlaybookCompliance(
            total=int(row['size']),
            compliant=int(counts[ComplianceStatus.COMPLIANT.value]),
            warning=int(counts[ComplianceStatus.WARNING.value]),
            violation=int(counts[ComplianceStatus.VIOLATION.value]),
            critical=int(counts[ComplianceStatus.CRITICAL.value]),
            averageScore=float(row['mean']),
        )
    return rollup


def generate_compliance_section(compliance: Sequence[ComplianceResult]) -> ComplianceSection:
    """Per-playbook rollups, the five most frequent issues and trend notes."""
    issue_counts: Counter = Counter()
    first_severity = {}
    for result in compliance:
        for issue in [*result.violations, *result.warnings]:
            issue_counts[issue.guardrail] += 1
            first_severity.setdefault(issue.guardrail, issue.severity)

    top_issues = [
        TopIssue(
            guardrail=guardrail,
            violationCount=count,
            severity=first_severity[guardrail],
            description=get_guardrail_description(guardrail),
        )
        for guardrail, count in issue_counts.most_common(TOP_ISSUE_LIMIT)
    ]

    return ComplianceSection(
        byPlaybook=summarize_compliance_by_playbook(compliance),
        topIssues=top_issues,
        trends=[trend.model_copy() for trend in COMPLIANCE_TRENDS],
    )


def generate_outliers_section(outliers: Sequence[OutlierAnalysis]) -> OutliersSection:
    summary = OutlierCounts(
        tablesWithOutliers=sum(1 for o in outliers if o.outlierCount > 0),
        criticalOutliers=sum(1 for o in outliers if o.severity == OutlierRisk.CRITICAL),
        highSeverityOutliers=sum(1 for o in outliers if o.severity == OutlierRisk.HIGH),
    )

    by_playbook: Dict[str, PlaybookOutliers] = {}
    metric_counts: Dict[str, Counter] = defaultdict(Counter)
    for outlier in outliers:
        playbook = playbook_of(outlier.tableId)
        entry = by_playbook.setdefault(playbook, PlaybookOutliers())
        if outlier.outlierCount > 0:
            entry.outlierTables += 1
        entry.totalOutliers += outlier.outlierCount
        metric_counts[playbook].update(detail.metric for detail in outlier.outlierDetails)

    for playbook, entry in by_playbook.items():
        entry.mostCommonIssues = [
            metric for metric, _ in metric_counts[playbook].most_common(PLAYBOOK_ISSUE_LIMIT)
        ]

    return OutliersSection(
        summary=summary,
        byPlaybook=by_playbook,
        recommendations=list(OUTLIER_RECOMMENDATIONS),
    )


def generate_recommendations_section(
    compliance: Sequence[ComplianceResult],
    outliers: Sequence[OutlierAnalysis],
) -> RecommendationsSection:
    """
    Prioritized actions, most urgent first.

    Order: critical compliance tables, tables with three or more violations,
    then tables with a critical outlier profile. Each playbook also gets up to
    three distinct violation recommendations.
    """
    priority: List[PriorityRecommendation] = []

    critical_tables = [c for c in compliance if c.overall == ComplianceStatus.CRITICAL]
    if critical_tables:
        priority.append(PriorityRecommendation(
            level=RecommendationLevel.CRITICAL,
            category='Critical Compliance',
            description=(
                f"{len(critical_tables)} tables have critical compliance violations "
                f"requiring immediate attention"
            ),
            affectedTables=[c.tableId for c in critical_tables],
            estimatedImpact='High - these tables significantly impact game balance',
        ))

    multi_violation_tables = [c for c in compliance if len(c.violations) >= MULTIPLE_VIOLATION_THRESHOLD]
    if multi_violation_tables:
        priority.append(PriorityRecommendation(
            level=RecommendationLevel.HIGH,
            category='Multiple Violations',
            description=f"{len(multi_violation_tables)} tables have multiple simultaneous violations",
            affectedTables=[c.tableId for c in multi_violation_tables],
            estimatedImpact='Medium-high - multiple issues compound balance problems',
        ))

    outlier_hotspots = [o for o in outliers if o.severity == OutlierRisk.CRITICAL]
    if outlier_hotspots:
        priority.append(PriorityRecommendation(
            level=RecommendationLevel.HIGH,
            category='Statistical Outliers',
            description=f"{len(outlier_hotspots)} tables show critical statistical deviations",
            affectedTables=[o.tableId for o in outlier_hotspots],
            estimatedImpact='Medium - outliers may indicate systematic balance issues',
        ))

    by_playbook: Dict[str, List[str]] = {}
    for result in compliance:
        for violation in result.violations:
            fixes = by_playbook.setdefault(playbook_of(result.tableId), [])
            if violation.recommendation not in fixes and len(fixes) < PLAYBOOK_ISSUE_LIMIT:
                fixes.append(violation.recommendation)

    return RecommendationsSection(
        priority=priority,
        byPlaybook=by_playbook,
        quickWins=list(QUICK_WINS),
    )


def _detailed_result(
    analysis: TableAnalysis,
    compliance: ComplianceResult,
    outliers: OutlierAnalysis,
) -> DetailedResult:
    return DetailedResult(
        tableId=analysis.tableId,
        playbook=analysis.playbook,
        compliance=compliance,
        outliers=outliers,
        keyMetrics=KeyMetrics(
            avgYards=analysis.avgYards,
            turnoverRate=analysis.turnoverRate,
            explosiveRate=analysis.explosiveRate,
            balanceScore=compliance.score,
        ),
    )


def generate_detailed_results(
    analyses: Sequence[TableAnalysis],
    compliance: Sequence[ComplianceResult],
    outliers: Sequence[OutlierAnalysis],
    join: ResultJoin = ResultJoin.TABLE_ID,
) -> List[DetailedResult]:
    """
    Join the three inputs into one entry per table.

    Args:
        analyses: Table analyses, in report order.
        compliance: Compliance results.
        outliers: Outlier analyses (keyed by normalized table id).
        join: TABLE_ID matches by identifier, skipping tables missing from
            either side; POSITION zips by index and truncates to the
            shortest input.
    """
    if join == ResultJoin.POSITION:
        return [
            _detailed_result(analysis, result, outlier)
            for analysis, result, outlier in zip(analyses, compliance, outliers)
        ]

    # Queues keep duplicate ids paired in order
    compliance_by_id: Dict[str, Deque[ComplianceResult]] = defaultdict(deque)
    for result in compliance:
        compliance_by_id[result.tableId].append(result)
    outliers_by_id: Dict[str, Deque[OutlierAnalysis]] = defaultdict(deque)
    for outlier in outliers:
        outliers_by_id[outlier.tableId].append(outlier)

    results: List[DetailedResult] = []
    for analysis in analyses:
        matched_compliance = compliance_by_id.get(analysis.tableId)
        matched_outliers = outliers_by_id.get(normalize_table_id(analysis.tableId))
        if not matched_compliance or not matched_outliers:
            logger.debug(f"Skipping detailed result for {analysis.tableId}: missing join partner")
            continue
        results.append(_detailed_result(analysis, matched_compliance.popleft(), matched_outliers.popleft()))
    return results


def generate_appendices() -> ReportAppendices:
    return ReportAppendices(
        guardrailDefinitions=dict(GUARDRAIL_DEFINITIONS),
        methodology=METHODOLOGY,
        statisticalNotes=list(STATISTICAL_NOTES),
    )


# =============================================================================
# Report Assembly and Export
# =============================================================================


def generate_report(
    analyses: Sequence[TableAnalysis],
    compliance: Sequence[ComplianceResult],
    outliers: Sequence[OutlierAnalysis],
    duration: float,
    *,
    sample_size: int,
    seed: int,
    join: ResultJoin = ResultJoin.TABLE_ID,
    generated_at: Optional[datetime] = None,
) -> BalanceReport:
    """
    Build the balance report for one run.

    Args:
        analyses: Table analyses from the run.
        compliance: Compliance results for the analyses.
        outliers: Outlier analyses for the analyses.
        duration: Run duration in milliseconds.
        sample_size: Requested samples per table.
        seed: Seed the run used.
        join: How detailed results pair the inputs.
        generated_at: Generation time; defaults to now (UTC).

    Returns:
        BalanceReport. The inputs are not modified.
    """
    moment = generated_at or datetime.now(timezone.utc)

    report = BalanceReport(
        metadata=ReportMetadata(
            generatedAt=format_timestamp(moment),
            analysisVersion=get_settings().analysis_version,
            sampleSize=sample_size,
            seed=seed,
            totalTables=len(analyses),
            analysisDuration=duration,
        ),
        summary=generate_summary(analyses, compliance),
        compliance=generate_compliance_section(compliance),
        outliers=generate_outliers_section(outliers),
        recommendations=generate_recommendations_section(compliance, outliers),
        detailedResults=generate_detailed_results(analyses, compliance, outliers, join),
        appendices=generate_appendices(),
    )

    logger.info(
        f"Generated balance report: {report.summary.overallHealth.value} health, "
        f"score {report.summary.complianceScore:.1f}/100"
    )
    return report


def export_to_json(report: BalanceReport) -> str:
    """Serialize the report as JSON with 2-space indentation."""
    return report.model_dump_json(indent=2)


def export_to_text(report: BalanceReport) -> str:
    """Render the report as Markdown-like text."""
    metadata = report.metadata
    summary = report.summary

    lines = [
        '# Gridiron Strategy - Balance Analysis Report',
        '',
        f"Generated: {metadata.generatedAt}",
        f"Version: {metadata.analysisVersion}",
        f"Sample Size: {metadata.sampleSize:,}",
        f"Analysis Time: {metadata.analysisDuration / 1000:.1f}s",
        '',
        '## Summary',
        '',
        f"Overall Health: {summary.overallHealth.value.upper()}",
        f"Compliance Score: {summary.complianceScore:.1f}/100",
        f"Risk Level: {summary.riskLevel}",
        '',
        f"Tables Analyzed: {summary.tablesAnalyzed}",
        f"- Compliant: {summary.compliantTables}",
        f"- Warnings: {summary.tablesWithWarnings}",
        f"- Violations: {summary.tablesWithViolations}",
        f"- Critical: {summary.criticalTables}",
        '',
    ]

    if report.recommendations.priority:
        lines.extend(['## Priority Recommendations', ''])
        for rec in report.recommendations.priority:
            lines.extend([
                f"### {rec.level.value.upper()}: {rec.category}",
                rec.description,
                f"Estimated Impact: {rec.estimatedImpact}",
                f"Affected Tables: {len(rec.affectedTables)}",
                '',
            ])

    return '\n'.join(lines) + '\n'
