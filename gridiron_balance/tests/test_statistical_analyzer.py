"""
Test suite for the Statistical Analyzer.

The tests verify:
1. Box-Muller yardage and clock bucket selection on known uniforms
2. Tag derivation and penalty gating
3. Distribution statistics on small hand-checked samples
4. Per-table aggregation and the per-table time budget
5. Reproducibility for a fixed seed
"""

import pytest

from gridiron_balance.models.enums import OutcomeTag, PenaltySide
from gridiron_balance.services.rng import SeededRandom, create_rng
from gridiron_balance.services.statistical_analyzer import (
    BYTES_PER_OUTCOME,
    PENALTY_TYPES,
    analyze_table,
    calculate_cluster_strength,
    calculate_distribution_metrics,
    calculate_red_zone_efficiency,
    generate_clock,
    generate_oob,
    generate_outcome,
    generate_penalty,
    generate_tags,
    generate_yards,
    validate_analysis,
)
from gridiron_balance.tests.conftest import constant_rng, make_analysis, scripted_rng, stepping_clock


# =============================================================================
# OUTCOME GENERATION TESTS
# =============================================================================


class TestGenerateYards:
    """Tests for Box-Muller yardage sampling."""

    def test_run_card_with_half_uniforms_gains_zero(self):
        # z0 = sqrt(-2 ln 0.5) * cos(pi) = -1.1774; 4.2 + 3.8 * z0 = -0.274
        assert generate_yards('POWER RUN', 'BASE', constant_rng(0.5)) == 0

    def test_draws_exactly_two_uniforms(self):
        rng = scripted_rng([0.5, 0.5])
        generate_yards('POWER RUN', 'BASE', rng)
        with pytest.raises(StopIteration):
            rng()

    def test_pass_card_uses_pass_distribution(self):
        # u2 = 0.25 makes cos(pi/2) ~ 0, leaving the mean
        assert generate_yards('FOUR VERTS', 'BASE', scripted_rng([0.5, 0.25])) == 8

    def test_blitz_reduces_mean(self):
        # 7.5 * 0.85 = 6.375
        assert generate_yards('FOUR VERTS', 'ZONE BLITZ', scripted_rng([0.5, 0.25])) == 6

    def test_coverage_reduces_mean(self):
        # 7.5 * 0.95 = 7.125
        assert generate_yards('FOUR VERTS', 'COVER 2', scripted_rng([0.5, 0.25])) == 7

    def test_result_is_clamped(self):
        # u1 near zero gives a huge z0
        assert generate_yards('FOUR VERTS', 'BASE', scripted_rng([1e-300, 0.0])) == 80
        assert generate_yards('FOUR VERTS', 'BASE', scripted_rng([1e-300, 0.5])) == -10

    def test_zero_uniform_does_not_fail(self):
        assert generate_yards('POWER RUN', 'BASE', scripted_rng([0.0, 0.0])) == 80


class TestGenerateClock:
    """Tests for clock runoff bucket selection."""

    def test_run_card_half_draw_is_thirty(self):
        # cumulative 0.15, 0.45, 1.00
        assert generate_clock(5, 'POWER RUN', constant_rng(0.5)) == 30

    def test_pass_card_favors_short_runoff(self):
        assert generate_clock(5, 'QUICK PASS', constant_rng(0.3)) == 10

    def test_long_gain_uses_fast_weights(self):
        assert generate_clock(16, 'POWER RUN', constant_rng(0.3)) == 10

    def test_default_weights(self):
        assert generate_clock(5, 'OPTION', constant_rng(0.25)) == 10
        assert generate_clock(5, 'OPTION', constant_rng(0.5)) == 20

    def test_draw_above_total_falls_back_to_thirty(self):
        assert generate_clock(5, 'OPTION', constant_rng(1.5)) == 30


class TestGenerateTags:
    """Tests for descriptive tag derivation."""

    def test_pass_interception_and_incompletion(self):
        tags = generate_tags(0, True, 'QUICK PASS', 'COVER 2')
        assert tags == [OutcomeTag.INTERCEPTION, OutcomeTag.INCOMPLETE, OutcomeTag.PASS]

    def test_run_fumble(self):
        assert generate_tags(3, True, 'POWER RUN', 'BASE') == [OutcomeTag.FUMBLE, OutcomeTag.RUN]

    def test_sack_requires_pass_label(self):
        assert OutcomeTag.SACK in generate_tags(-6, False, 'PLAY ACTION PASS', 'BASE')
        assert OutcomeTag.SACK not in generate_tags(-6, False, 'AIR RAID MILLS', 'BASE')

    def test_explosive_and_pressure(self):
        tags = generate_tags(25, False, 'FOUR VERTS', 'ZONE BLITZ')
        assert tags == [OutcomeTag.EXPLOSIVE, OutcomeTag.PRESSURE, OutcomeTag.PASS]


class TestGeneratePenalty:
    """Tests for penalty gating and archetype selection."""

    def test_no_penalty_above_gate(self):
        assert generate_penalty(constant_rng(0.5)) is None

    def test_gate_is_inclusive(self):
        assert generate_penalty(scripted_rng([0.125, 0.0])) == PENALTY_TYPES[0]

    def test_last_archetype(self):
        penalty = generate_penalty(scripted_rng([0.1, 0.99]))
        assert penalty == PENALTY_TYPES[-1]
        assert penalty.side == PenaltySide.DEFENSE
        assert penalty.yards == 15
        assert penalty.auto_first is True


class TestGenerateOutcome:
    """Tests for the full outcome draw order."""

    def test_constant_half_run_outcome(self):
        outcome = generate_outcome('POWER RUN', 'BASE', constant_rng(0.5))
        assert outcome.yards == 0
        assert outcome.turnover is False
        assert outcome.clock == 30
        assert outcome.oob is False
        assert outcome.tags == [OutcomeTag.RUN]
        assert outcome.penalty is None

    def test_perimeter_plays_go_out_of_bounds_more(self):
        assert generate_oob('BUBBLE SCREEN', constant_rng(0.1)) is True
        assert generate_oob('POWER RUN', constant_rng(0.1)) is False


# =============================================================================
# DISTRIBUTION STATISTICS TESTS
# =============================================================================


class TestDistributionMetrics:
    """Tests for moment statistics over yardage samples."""

    def test_small_sample(self):
        metrics = calculate_distribution_metrics([0, 2, 4, 4, 10])
        assert metrics.mean == pytest.approx(4.0)
        assert metrics.median == pytest.approx(4.0)
        assert metrics.mode == [4]
        assert metrics.quartiles.q1 == 2
        assert metrics.quartiles.q3 == 4
        assert metrics.range.min == 0
        assert metrics.range.max == 10
        # fences [-1, 7] leave 10 outside
        assert metrics.outlierCount == 1

    def test_multimodal_sample(self):
        assert calculate_distribution_metrics([1, 1, 3, 3]).mode == [1, 3]

    def test_empty_sample_is_all_zero(self):
        metrics = calculate_distribution_metrics([])
        assert metrics.mean == 0
        assert metrics.standardDeviation == 0
        assert metrics.mode == []
        assert metrics.outlierCount == 0

    def test_constant_sample_has_zero_shape(self):
        metrics = calculate_distribution_metrics([5, 5, 5])
        assert metrics.standardDeviation == 0
        assert metrics.skewness == 0
        assert metrics.kurtosis == 0

    def test_symmetric_sample_has_zero_skew(self):
        assert calculate_distribution_metrics([1, 2, 3, 4, 5]).skewness == pytest.approx(0.0)


class TestClusterStrength:

    def test_even_counts_are_fully_clustered(self):
        assert calculate_cluster_strength([5, 5, 5]) == pytest.approx(1.0)

    def test_degenerate_inputs(self):
        assert calculate_cluster_strength([]) == 0.0
        assert calculate_cluster_strength([0, 0, 0]) == 0.0

    def test_high_variation_floors_at_zero(self):
        assert calculate_cluster_strength([100, 0, 0, 0, 0, 0]) == 0.0


class TestRedZoneEfficiency:

    def test_zero_gain_never_scores(self):
        assert calculate_red_zone_efficiency(constant_rng(0.5)) == 0.0

    def test_explosive_gain_always_scores(self):
        # u1 near zero with u2 = 0 clamps the gain to 80; no conversion draw follows
        assert calculate_red_zone_efficiency(scripted_rng([1e-300, 0.0] * 10), attempts=10) == 100.0


# =============================================================================
# TABLE ANALYSIS TESTS
# =============================================================================


class TestAnalyzeTable:
    """Tests for per-table aggregation."""

    @pytest.mark.asyncio
    async def test_constant_rng_profile(self):
        analysis = await analyze_table(
            'smashmouth/POWER_RUN_vs_BASE.json', 'POWER RUN', 'BASE', 'smashmouth', 200,
            rng=constant_rng(0.5),
        )
        assert analysis.sampleSize == 200
        assert analysis.avgYards == 0
        assert analysis.yardsStdDev == 0
        assert analysis.turnoverRate == 0
        assert analysis.explosiveRate == 0
        assert analysis.penaltyRate == 0
        assert analysis.passRate == 0
        assert analysis.clockDistribution == {10: 0.0, 20: 0.0, 30: 100.0}
        assert analysis.redZoneEfficiency == 0.0
        assert analysis.memoryUsage == 200 * BYTES_PER_OUTCOME
        assert analysis.clustering.explosiveCounts == [0] * 10
        assert analysis.clustering.clusterStrength == 0.0

    @pytest.mark.asyncio
    async def test_same_seed_is_reproducible(self):
        first = await analyze_table('spread/MESH', 'SPREAD MESH', 'COVER 3', 'spread', 500, rng=create_rng(7))
        second = await analyze_table('spread/MESH', 'SPREAD MESH', 'COVER 3', 'spread', 500, rng=create_rng(7))
        assert first.model_dump(exclude={'analysisTime'}) == second.model_dump(exclude={'analysisTime'})

    @pytest.mark.asyncio
    async def test_different_seeds_differ(self):
        first = await analyze_table('spread/MESH', 'SPREAD MESH', 'COVER 3', 'spread', 500, rng=create_rng(1))
        second = await analyze_table('spread/MESH', 'SPREAD MESH', 'COVER 3', 'spread', 500, rng=create_rng(2))
        assert first.avgYards != second.avgYards

    @pytest.mark.asyncio
    async def test_time_budget_stops_sampling_early(self):
        # Each clock call advances one second; the 5th sample reaches the budget
        analysis = await analyze_table(
            'spread/MESH', 'SPREAD MESH', 'COVER 3', 'spread', 1000,
            rng=create_rng(3),
            clock=stepping_clock(1.0),
            max_per_table_time_ms=5000,
        )
        assert analysis.sampleSize == 5
        assert analysis.memoryUsage == 5 * BYTES_PER_OUTCOME
        assert analysis.analysisTime >= 5000

    @pytest.mark.asyncio
    async def test_rates_are_percentages(self):
        analysis = await analyze_table(
            'air-raid/FOUR_VERTS', 'AIR RAID FOUR VERTS', 'COVER 4', 'air-raid', 2000, rng=create_rng(12345),
        )
        assert 0 <= analysis.turnoverRate <= 100
        assert 0 <= analysis.explosiveRate <= 100
        assert sum(analysis.clockDistribution.values()) == pytest.approx(100.0)
        assert analysis.distribution is not None
        assert analysis.avgYards == pytest.approx(analysis.distribution.mean)

    @pytest.mark.asyncio
    async def test_pass_rate_counts_pass_tagged_plays(self):
        analysis = await analyze_table(
            'air-raid/FOUR_VERTS', 'AIR RAID FOUR VERTS', 'COVER 4', 'air-raid', 50, rng=constant_rng(0.5),
        )
        assert analysis.passRate == 100.0
        assert analysis.explosiveRate == 0

    @pytest.mark.asyncio
    async def test_zero_samples(self):
        analysis = await analyze_table('t', 'POWER RUN', 'BASE', 'x', 0, rng=constant_rng(0.5))
        assert analysis.sampleSize == 0
        assert analysis.avgYards == 0
        assert analysis.clockDistribution == {10: 0.0, 20: 0.0, 30: 0.0}


class TestSeededRandom:

    def test_sequence_independent_of_block_size(self):
        small = SeededRandom(99, block_size=3)
        large = SeededRandom(99)
        assert [small() for _ in range(10)] == [large() for _ in range(10)]

    def test_counts_draws(self):
        rng = create_rng(1)
        for _ in range(5):
            rng()
        assert rng.draws == 5

    def test_rejects_empty_blocks(self):
        with pytest.raises(ValueError):
            SeededRandom(1, block_size=0)


class TestValidateAnalysis:

    def test_valid_analysis(self):
        assert validate_analysis(make_analysis()).valid is True

    def test_small_sample_and_slow_analysis(self):
        result = validate_analysis(make_analysis(sampleSize=500, analysisTime=6000.0))
        assert result.valid is False
        assert result.issues[0] == 'Sample size 500 below minimum 1000'
        assert 'exceeds recommended threshold' in result.issues[1]
