"""
Guardrail Checker for table compliance validation.

Compares a TableAnalysis against the guardrail catalog and produces a
ComplianceResult with violations, warnings, a 0-100 score and a summary.

Guardrail Kinds:
    Each check is an explicit GuardrailCheck record carrying the metric it
    reads, its [min, max] range, the ratios that grade severity and the
    text used in findings. Three families apply to a table:

    - Global balance: explosivePassRate, sackRate, turnoverRate, penaltyRate,
      redZoneEfficiency and one clockBalance_<bucket> per clock bucket
    - Playbook identity: pass rate, average gain and explosive rate for
      playbooks that resolve to an identity guardrail
    - Distribution shape: explosive clustering for every table, run
      consistency for run playbooks, pass volatility for pass playbooks

Severity Rules:
    Out of range values are violations graded by distance / range width:
        ratio > critical_ratio -> critical
        ratio > high_ratio     -> high
        otherwise              -> medium
    In range values within warning_margin x width of a bound are warnings
    with severity low.

Scoring:
    score = max(0, 100 - 25*critical - 15*high - 5*medium - 2*low)

    overall = critical   if any critical violation or score < 40
              violation  if any violation
              warning    if any warning
              compliant  otherwise
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, NamedTuple, Optional, Sequence

from gridiron_balance.models.enums import ComplianceStatus, IssueSeverity
from gridiron_balance.models.schemas import (
    ComplianceIssue,
    ComplianceResult,
    GuardrailRange,
    TableAnalysis,
)
from gridiron_balance.services.guardrails import (
    BALANCE_GUARDRAILS,
    DISTRIBUTION_GUARDRAILS,
    PASS_PLAYBOOKS,
    RUN_PLAYBOOKS,
    resolve_playbook_identity,
)
from gridiron_balance.services.statistical_analyzer import CLOCK_BUCKETS


logger = logging.getLogger(__name__)


# =============================================================================
# Scoring Constants
# =============================================================================

SEVERITY_PENALTIES = {
    IssueSeverity.CRITICAL: 25,
    IssueSeverity.HIGH: 15,
    IssueSeverity.MEDIUM: 5,
    IssueSeverity.LOW: 2,
}

# Scores below this are critical even without a critical violation
CRITICAL_SCORE_THRESHOLD: int = 40

BALANCE_HIGH_RATIO: float = 0.5
IDENTITY_HIGH_RATIO: float = 0.3
DEFAULT_WARNING_MARGIN: float = 0.1

CLUSTER_STRENGTH_RANGE = GuardrailRange(min=0.3, max=1.0)
PASS_VOLATILITY_RANGE = GuardrailRange(min=8.0, max=15.0)


def _format_bound(value: float) -> str:
    return f"{value:g}"


# =============================================================================
# Guardrail Check Records
# =============================================================================


class Finding(NamedTuple):
    is_violation: bool
    issue: ComplianceIssue


@dataclass(frozen=True)
class GuardrailCheck:
    """
    One named guardrail bound to the TableAnalysis metric it constrains.

    Attributes:
        name: Guardrail name reported in findings.
        label: Human readable metric name used in descriptions.
        metric: Reads the checked value from an analysis.
        bounds: Acceptable inclusive range.
        context: Why the metric matters, appended to descriptions.
        recommendation: Fixed recommendation text; when empty the
            recommendation is derived from the direction of the miss.
        unit: Suffix printed after values ('%' for rates).
        precision: Decimal places used when printing the actual value.
        high_ratio: Distance / width above which a violation is high.
        critical_ratio: Distance / width above which a violation is critical.
        warning_margin: Fraction of the width treated as near-boundary;
            None disables near-boundary warnings.
    """
    name: str
    label: str
    metric: Callable[[TableAnalysis], float]
    bounds: GuardrailRange
    context: str
    recommendation: str = ""
    unit: str = "%"
    precision: int = 1
    high_ratio: float = BALANCE_HIGH_RATIO
    critical_ratio: float = 1.0
    warning_margin: Optional[float] = DEFAULT_WARNING_MARGIN

    def grade(self, distance: float) -> IssueSeverity:
        width = self.bounds.width
        ratio = distance / width if width > 0 else float('inf')
        if ratio > self.critical_ratio:
            return IssueSeverity.CRITICAL
        if ratio > self.high_ratio:
            return IssueSeverity.HIGH
        return IssueSeverity.MEDIUM

    def evaluate(self, analysis: TableAnalysis) -> Optional[Finding]:
        """Return a violation, a near-boundary warning, or None when comfortably in range."""
        actual = float(self.metric(analysis))
        low, high = self.bounds.min, self.bounds.max
        shown = f"{actual:.{self.precision}f}{self.unit}"
        expected = GuardrailRange(min=low, max=high)

        if actual < low or actual > high:
            below = actual < low
            distance = low - actual if below else actual - high
            direction = (
                f"below minimum {_format_bound(low)}{self.unit}" if below
                else f"above maximum {_format_bound(high)}{self.unit}"
            )
            recommendation = self.recommendation or (
                f"{'Increase' if below else 'Decrease'} {self.label.lower()} "
                f"by adjusting outcome distributions"
            )
            return Finding(True, ComplianceIssue(
                guardrail=self.name,
                severity=self.grade(distance),
                actual=actual,
                expected=expected,
                deviation=-distance if below else distance,
                description=f"{self.label} is {shown}, {direction} ({self.context})",
                recommendation=recommendation,
            ))

        if self.warning_margin is None:
            return None

        margin = self.bounds.width * self.warning_margin
        to_low, to_high = actual - low, high - actual
        if min(to_low, to_high) <= margin:
            near_low = to_low <= to_high
            bound = low if near_low else high
            return Finding(False, ComplianceIssue(
                guardrail=self.name,
                severity=IssueSeverity.LOW,
                actual=actual,
                expected=expected,
                deviation=min(to_low, to_high),
                description=(
                    f"{self.label} is {shown}, close to the "
                    f"{'minimum' if near_low else 'maximum'} {_format_bound(bound)}{self.unit} "
                    f"({self.context})"
                ),
                recommendation=f"Monitor {self.label.lower()} to keep it inside the target range",
            ))

        return None


# =============================================================================
# Guardrail Registry
# =============================================================================


def _balance_check(name: str, metric: Callable[[TableAnalysis], float], context: str) -> GuardrailCheck:
    guardrail = BALANCE_GUARDRAILS[name]
    return GuardrailCheck(
        name=name,
        label=guardrail.name,
        metric=metric,
        bounds=GuardrailRange(min=guardrail.min, max=guardrail.max),
        context=context,
    )


def _clock_checks() -> List[GuardrailCheck]:
    clock_range = BALANCE_GUARDRAILS['clockRunoffBalance']
    return [
        GuardrailCheck(
            name=f"clockBalance_{bucket}",
            label=f"{bucket}-second clock runoff rate",
            metric=lambda a, bucket=bucket: a.clockDistribution.get(bucket, 0.0),
            bounds=GuardrailRange(min=clock_range.min, max=clock_range.max),
            context="Clock runoff should be balanced across 10/20/30 second plays",
            recommendation='Redistribute clock runoff to achieve 25-40% distribution across 10"/20"/30"',
        )
        for bucket in CLOCK_BUCKETS
    ]


def _global_checks() -> List[GuardrailCheck]:
    return [
        _balance_check(
            'explosivePassRate',
            lambda a: a.explosiveRate,
            'Explosive pass rate significantly impacts scoring balance',
        ),
        _balance_check(
            'sackRate',
            lambda a: a.sackRate,
            'Sack rate affects defensive effectiveness and game flow',
        ),
        _balance_check(
            'turnoverRate',
            lambda a: a.turnoverRate,
            'Turnover rate dramatically affects possession balance',
        ),
        _balance_check(
            'penaltyRate',
            lambda a: a.penaltyRate,
            'Penalty rate affects game flow and strategic decision-making',
        ),
        *_clock_checks(),
        _balance_check(
            'redZoneEfficiency',
            lambda a: a.redZoneEfficiency,
            'Red zone efficiency affects scoring balance in critical situations',
        ),
    ]


def _identity_checks(playbook: str) -> List[GuardrailCheck]:
    resolved = resolve_playbook_identity(playbook)
    if resolved is None:
        return []
    name, identity = resolved
    return [
        GuardrailCheck(
            name=f"playbookPassRate_{name}",
            label=f"{name} pass rate",
            metric=lambda a: a.passRate,
            bounds=identity.passRate,
            context=f"Playbook pass rate affects {name} strategic identity",
            recommendation=f"Adjust play mix to better reflect {name} philosophy",
            high_ratio=IDENTITY_HIGH_RATIO,
        ),
        GuardrailCheck(
            name=f"playbookAvgGain_{name}",
            label=f"{name} average gain",
            metric=lambda a: a.avgYards,
            bounds=identity.avgGain,
            context=f"Average gain should match {name} offensive efficiency",
            recommendation=f"Tune yardage distributions to match {name} style",
            unit=" yards",
            high_ratio=IDENTITY_HIGH_RATIO,
        ),
        GuardrailCheck(
            name=f"playbookExplosiveRate_{name}",
            label=f"{name} explosive rate",
            metric=lambda a: a.explosiveRate,
            bounds=identity.explosiveRate,
            context=f"Explosive play rate should match {name} risk profile",
            recommendation=f"Adjust explosive thresholds to match {name} identity",
            high_ratio=IDENTITY_HIGH_RATIO,
        ),
    ]


def _shape_checks(playbook: str) -> List[GuardrailCheck]:
    checks = [
        GuardrailCheck(
            name='explosiveClustering',
            label='Explosive clustering strength',
            metric=lambda a: a.clustering.clusterStrength,
            bounds=CLUSTER_STRENGTH_RANGE,
            context='Explosive outcomes should cluster around key thresholds',
            recommendation='Redistribute explosive gains to cluster around key thresholds (20, 25, 30, etc.)',
            unit='',
            precision=2,
            warning_margin=None,
        ),
    ]

    resolved = resolve_playbook_identity(playbook)
    canonical = resolved[0] if resolved else None

    if canonical in RUN_PLAYBOOKS:
        checks.append(GuardrailCheck(
            name='runConsistency',
            label='Run yardage standard deviation',
            metric=lambda a: a.yardsStdDev,
            bounds=DISTRIBUTION_GUARDRAILS.runConsistency.stdDev,
            context='Ground-based attacks should gain consistent yardage',
            recommendation='Reduce variance in run play outcomes to improve consistency',
            unit=' yards',
        ))
    elif canonical in PASS_PLAYBOOKS:
        checks.append(GuardrailCheck(
            name='passVolatility',
            label='Pass yardage standard deviation',
            metric=lambda a: a.yardsStdDev,
            bounds=PASS_VOLATILITY_RANGE,
            context='Pass game should show boom-bust volatility',
            recommendation='Increase variance in pass outcomes to create more dramatic plays',
            unit=' yards',
        ))

    return checks


def build_guardrail_checks(playbook: str) -> List[GuardrailCheck]:
    """All checks that apply to tables of `playbook`, in reporting order."""
    return [*_global_checks(), *_identity_checks(playbook), *_shape_checks(playbook)]


def get_applicable_guardrails(playbook: str) -> List[str]:
    """
    Names of the guardrails checked for a playbook.

    Example:
        >>> 'playbookAvgGain_West Coast' in get_applicable_guardrails('west-coast')
        True
    """
    return [check.name for check in build_guardrail_checks(playbook)]


# =============================================================================
# Compliance Evaluation
# =============================================================================


def calculate_score(violations: Sequence[ComplianceIssue], warnings: Sequence[ComplianceIssue]) -> int:
    penalty = sum(SEVERITY_PENALTIES[issue.severity] for issue in [*violations, *warnings])
    return max(0, 100 - penalty)


def determine_overall(
    violations: Sequence[ComplianceIssue],
    warnings: Sequence[ComplianceIssue],
    score: int,
) -> ComplianceStatus:
    if any(v.severity == IssueSeverity.CRITICAL for v in violations) or score < CRITICAL_SCORE_THRESHOLD:
        return ComplianceStatus.CRITICAL
    if violations:
        return ComplianceStatus.VIOLATION
    if warnings:
        return ComplianceStatus.WARNING
    return ComplianceStatus.COMPLIANT


def generate_summary(
    overall: ComplianceStatus,
    violations: Sequence[ComplianceIssue],
    warnings: Sequence[ComplianceIssue],
    score: int,
) -> str:
    critical_count = sum(1 for v in violations if v.severity == IssueSeverity.CRITICAL)
    high_count = sum(1 for v in violations if v.severity == IssueSeverity.HIGH)
    issue_count = len(violations) + len(warnings)

    if overall == ComplianceStatus.COMPLIANT:
        return f"Table is fully compliant with all GDD guardrails (score: {score}/100)"
    if overall == ComplianceStatus.CRITICAL:
        if critical_count:
            return (
                f"Critical compliance issues detected: {critical_count} critical violations. "
                f"Immediate attention required."
            )
        return (
            f"Critical compliance issues detected: score {score}/100 is below "
            f"{CRITICAL_SCORE_THRESHOLD}. Immediate attention required."
        )

    issue_text = 'issue' if issue_count == 1 else 'issues'
    return (
        f"Compliance {overall.value}: {issue_count} {issue_text} detected "
        f"({high_count} high priority). Score: {score}/100"
    )


def check_compliance(analysis: TableAnalysis) -> ComplianceResult:
    """
    Check one table analysis against every applicable guardrail.

    Args:
        analysis: Statistical profile of the table.

    Returns:
        ComplianceResult with violations and warnings in check order.
    """
    violations: List[ComplianceIssue] = []
    warnings: List[ComplianceIssue] = []

    for check in build_guardrail_checks(analysis.playbook):
        finding = check.evaluate(analysis)
        if finding is None:
            continue
        (violations if finding.is_violation else warnings).append(finding.issue)

    score = calculate_score(violations, warnings)
    overall = determine_overall(violations, warnings, score)

    return ComplianceResult(
        tableId=analysis.tableId,
        overall=overall,
        violations=violations,
        warnings=warnings,
        score=score,
        summary=generate_summary(overall, violations, warnings, score),
    )


async def check_batch_compliance(analyses: Sequence[TableAnalysis]) -> List[ComplianceResult]:
    """Check every analysis, preserving input order and length."""
    results = [check_compliance(analysis) for analysis in analyses]
    logger.info(f"Checked guardrail compliance for {len(results)} tables")
    return results
