"""
Test suite for the Guardrail Checker.

The tests verify:
1. A table centered in every range is fully compliant
2. Violation severity grading by distance / range width
3. Near-boundary warnings and their low severity
4. Scoring, overall status and summary text
5. Playbook identity and distribution shape checks
6. Score monotonicity as a metric moves away from its range
"""

import pytest

from gridiron_balance.models.enums import ComplianceStatus, IssueSeverity
from gridiron_balance.models.schemas import ClusteringMetrics, GuardrailRange
from gridiron_balance.services.guardrail_checker import (
    calculate_score,
    check_batch_compliance,
    check_compliance,
    get_applicable_guardrails,
)
from gridiron_balance.tests.conftest import make_analysis


def _issue(result, guardrail):
    return next(i for i in [*result.violations, *result.warnings] if i.guardrail == guardrail)


# =============================================================================
# COMPLIANT BASELINE
# =============================================================================


class TestCompliantTable:

    def test_baseline_is_fully_compliant(self, baseline_analysis):
        result = check_compliance(baseline_analysis)
        assert result.overall == ComplianceStatus.COMPLIANT
        assert result.score == 100
        assert result.violations == []
        assert result.warnings == []
        assert result.summary == 'Table is fully compliant with all GDD guardrails (score: 100/100)'

    def test_result_keeps_table_id(self):
        assert check_compliance(make_analysis(table_id='spread/MESH')).tableId == 'spread/MESH'


# =============================================================================
# VIOLATIONS
# =============================================================================


class TestViolations:

    def test_west_coast_explosive_rate(self):
        analysis = make_analysis(table_id='west-coast/SLANT', playbook='west-coast', explosiveRate=35.0)
        result = check_compliance(analysis)

        issue = next(v for v in result.violations if v.guardrail == 'explosivePassRate')
        assert issue.actual == 35
        # distance 10 over width 10 is exactly the critical ratio, so high
        assert issue.severity == IssueSeverity.HIGH
        assert issue.expected == GuardrailRange(min=15, max=25)
        assert issue.deviation == pytest.approx(10.0)
        assert issue.description == (
            'Explosive Pass Rate is 35.0%, above maximum 25% '
            '(Explosive pass rate significantly impacts scoring balance)'
        )
        assert issue.recommendation == 'Decrease explosive pass rate by adjusting outcome distributions'

        identity = next(v for v in result.violations if v.guardrail == 'playbookExplosiveRate_West Coast')
        assert identity.expected == GuardrailRange(min=12, max=20)

    def test_below_minimum_has_negative_deviation(self):
        result = check_compliance(make_analysis(sackRate=2.0))
        issue = _issue(result, 'sackRate')
        assert issue.deviation == pytest.approx(-2.0)
        assert 'below minimum 4%' in issue.description
        assert issue.recommendation.startswith('Increase sack rate')

    @pytest.mark.parametrize('turnover,severity', [
        (22.0, IssueSeverity.MEDIUM),   # ratio 0.2
        (25.0, IssueSeverity.MEDIUM),   # ratio 0.5 is not above the high ratio
        (26.0, IssueSeverity.HIGH),     # ratio 0.6
        (30.0, IssueSeverity.HIGH),     # ratio 1.0
        (31.0, IssueSeverity.CRITICAL),
    ])
    def test_severity_grading(self, turnover, severity):
        result = check_compliance(make_analysis(turnoverRate=turnover))
        assert _issue(result, 'turnoverRate').severity == severity

    def test_clock_buckets_are_checked_individually(self):
        analysis = make_analysis(clockDistribution={10: 10.0, 20: 30.0, 30: 60.0})
        names = [v.guardrail for v in check_compliance(analysis).violations]
        assert 'clockBalance_10' in names
        assert 'clockBalance_30' in names
        assert 'clockBalance_20' not in names

    def test_missing_clock_bucket_counts_as_zero(self):
        analysis = make_analysis(clockDistribution={10: 32.0, 20: 33.0})
        issue = _issue(check_compliance(analysis), 'clockBalance_30')
        assert issue.actual == 0.0

    def test_red_zone_efficiency(self):
        issue = _issue(check_compliance(make_analysis(redZoneEfficiency=50.0)), 'redZoneEfficiency')
        assert issue.severity == IssueSeverity.CRITICAL


# =============================================================================
# WARNINGS
# =============================================================================


class TestWarnings:

    def test_near_upper_bound_is_low_warning(self):
        result = check_compliance(make_analysis(turnoverRate=19.5))
        assert result.violations == []
        assert len(result.warnings) == 1

        warning = result.warnings[0]
        assert warning.guardrail == 'turnoverRate'
        assert warning.severity == IssueSeverity.LOW
        assert 'close to the maximum 20%' in warning.description
        assert result.score == 98
        assert result.overall == ComplianceStatus.WARNING

    def test_exact_bound_is_warning_not_violation(self):
        result = check_compliance(make_analysis(sackRate=4.0))
        assert _issue(result, 'sackRate') in result.warnings

    def test_clustering_has_no_near_boundary_warning(self):
        result = check_compliance(make_analysis(cluster_strength=0.31))
        assert result.overall == ComplianceStatus.COMPLIANT

    def test_weak_clustering_is_violation(self):
        result = check_compliance(make_analysis(cluster_strength=0.1))
        issue = _issue(result, 'explosiveClustering')
        assert issue in result.violations
        assert issue.description.startswith('Explosive clustering strength is 0.10,')


# =============================================================================
# SCORING AND STATUS
# =============================================================================


class TestScoring:

    def test_score_penalties(self):
        result = check_compliance(make_analysis(turnoverRate=31.0, sackRate=9.0, penaltyRate=15.0))
        # critical 25 + medium 5 + low warning 2
        assert result.score == 68
        assert result.overall == ComplianceStatus.CRITICAL

    def test_low_score_without_critical_violation_is_critical(self):
        analysis = make_analysis(
            sackRate=11.0,
            turnoverRate=26.0,
            penaltyRate=19.0,
            explosiveRate=31.0,
            redZoneEfficiency=94.0,
        )
        result = check_compliance(analysis)
        assert all(v.severity == IssueSeverity.HIGH for v in result.violations)
        assert result.score == 25
        assert result.overall == ComplianceStatus.CRITICAL
        assert result.summary == (
            'Critical compliance issues detected: score 25/100 is below 40. Immediate attention required.'
        )

    def test_violation_summary(self):
        result = check_compliance(make_analysis(turnoverRate=26.0))
        assert result.overall == ComplianceStatus.VIOLATION
        assert result.summary == 'Compliance violation: 1 issue detected (1 high priority). Score: 85/100'

    def test_score_floor(self):
        result = check_compliance(make_analysis(
            sackRate=40.0, turnoverRate=60.0, penaltyRate=50.0, explosiveRate=70.0, redZoneEfficiency=0.0,
        ))
        assert result.score == 0

    def test_calculate_score_empty(self):
        assert calculate_score([], []) == 100

    @pytest.mark.parametrize('playbook,metric,values', [
        ('Test Playbook', 'turnoverRate', [15.0, 19.5, 20.5, 25.0, 30.0, 45.0]),
        ('Test Playbook', 'sackRate', [6.0, 7.8, 8.5, 10.5, 12.0, 20.0]),
        ('Test Playbook', 'penaltyRate', [11.5, 14.5, 16.0, 19.0, 23.0, 40.0]),
        ('Test Playbook', 'redZoneEfficiency', [77.5, 71.0, 68.0, 60.0, 50.0, 20.0]),
        ('West Coast', 'explosiveRate', [18.0, 22.0, 26.0, 35.0, 50.0, 70.0]),
    ])
    def test_score_never_rises_as_metric_moves_away(self, playbook, metric, values):
        scores = [
            check_compliance(make_analysis(playbook=playbook, **{metric: value})).score
            for value in values
        ]
        assert scores == sorted(scores, reverse=True)
        assert scores[0] == 100
        assert scores[-1] < scores[0]


# =============================================================================
# PLAYBOOK-SPECIFIC CHECKS
# =============================================================================


class TestPlaybookChecks:

    def test_applicable_guardrails_for_pass_playbook(self):
        names = get_applicable_guardrails('west-coast')
        assert names[:4] == ['explosivePassRate', 'sackRate', 'turnoverRate', 'penaltyRate']
        assert 'clockBalance_20' in names
        assert 'playbookPassRate_West Coast' in names
        assert 'playbookAvgGain_West Coast' in names
        assert 'passVolatility' in names
        assert 'runConsistency' not in names
        assert len(names) == 13

    def test_applicable_guardrails_for_run_playbook(self):
        names = get_applicable_guardrails('Smashmouth')
        assert 'runConsistency' in names
        assert 'passVolatility' not in names

    def test_unknown_playbook_gets_global_checks_only(self):
        names = get_applicable_guardrails('Test Playbook')
        assert len(names) == 9
        assert names[-1] == 'explosiveClustering'

    def test_identity_pass_rate_reads_measured_share(self):
        analysis = make_analysis(playbook='west-coast', passRate=90.0, explosiveRate=70.0)
        issue = _issue(check_compliance(analysis), 'playbookPassRate_West Coast')
        assert issue.actual == 90.0
        assert issue.expected == GuardrailRange(min=65, max=80)
        assert issue.deviation == pytest.approx(10.0)

    def test_pass_rate_penalty_grows_with_distance(self):
        scores = [
            check_compliance(make_analysis(playbook='West Coast', explosiveRate=18.0, passRate=value)).score
            for value in (72.0, 82.0, 85.0, 90.0, 100.0)
        ]
        assert scores == sorted(scores, reverse=True)
        assert scores[0] == 100
        assert scores[-1] < scores[0]

    def test_identity_avg_gain_units(self):
        analysis = make_analysis(playbook='air-raid', avgYards=4.0, explosiveRate=25.0, yardsStdDev=12.0)
        issue = _issue(check_compliance(analysis), 'playbookAvgGain_Air Raid')
        assert issue.description.startswith('Air Raid average gain is 4.0 yards, below minimum 8 yards')
        # distance 4 over width 4 is above the 0.3 identity high ratio
        assert issue.severity == IssueSeverity.HIGH
        assert issue.recommendation == 'Tune yardage distributions to match Air Raid style'

    def test_run_consistency(self):
        analysis = make_analysis(playbook='smashmouth', yardsStdDev=6.0)
        issue = _issue(check_compliance(analysis), 'runConsistency')
        assert issue.expected == GuardrailRange(min=2.0, max=4.0)


class TestBatchCompliance:

    @pytest.mark.asyncio
    async def test_preserves_order_and_length(self):
        analyses = [make_analysis(table_id=f"t/{i}", turnoverRate=15.0 + i * 5) for i in range(4)]
        results = await check_batch_compliance(analyses)
        assert [r.tableId for r in results] == ['t/0', 't/1', 't/2', 't/3']

    @pytest.mark.asyncio
    async def test_empty_batch(self):
        assert await check_batch_compliance([]) == []
