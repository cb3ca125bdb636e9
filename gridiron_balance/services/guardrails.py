"""
Guardrail Catalog for Gridiron Strategy balance analysis.

Static configuration describing the acceptable ranges for game balance
metrics. Ranges come from NFL analytics and the game design document's
"Game Balance Metrics" targets.

Catalog contents:
    - BALANCE_GUARDRAILS: nine global metrics (explosive pass rate, sack rate,
      turnover rate, penalty rate, clock runoff balance, ...)
    - PLAYBOOK_IDENTITY_GUARDRAILS: pass rate, average gain and explosive rate
      ranges that keep each playbook recognisable
    - DISTRIBUTION_GUARDRAILS: explosive clustering thresholds and run/pass
      variance targets
    - STATISTICAL_THRESHOLDS: minimum sample size and significance settings
    - PERFORMANCE_REQUIREMENTS: time and memory budgets for an analysis run

Usage:
    from gridiron_balance.services.guardrails import (
        BALANCE_GUARDRAILS,
        resolve_playbook_identity,
    )

    sack_range = BALANCE_GUARDRAILS['sackRate']
    name, identity = resolve_playbook_identity('west-coast')
"""

from typing import Dict, Optional, Tuple

from gridiron_balance.models.schemas import (
    BalanceGuardrail,
    DistributionGuardrails,
    ExplosiveClusteringGuardrail,
    GuardrailCatalog,
    GuardrailRange,
    PassVolatilityGuardrail,
    PerformanceRequirements,
    PlaybookIdentityGuardrail,
    RunConsistencyGuardrail,
    StatisticalThresholds,
)


# =============================================================================
# Global Balance Guardrails
# =============================================================================

BALANCE_GUARDRAILS: Dict[str, BalanceGuardrail] = {
    'explosivePassRate': BalanceGuardrail(
        name='Explosive Pass Rate',
        description='Percentage of pass completions that gain 20+ yards',
        min=15,
        max=25,
        source='NFL Analytics - Explosive plays drive scoring',
    ),
    'sackRate': BalanceGuardrail(
        name='Sack Rate',
        description='Percentage of dropbacks that result in sacks',
        min=4,
        max=8,
        source='NFL Analytics - Realistic pressure rates',
    ),
    'deepAttemptRate': BalanceGuardrail(
        name='Deep Attempt Rate',
        description='Percentage of passes that are deep attempts (20+ yards)',
        min=8,
        max=15,
        source='NFL Analytics - Realistic deep ball frequency',
    ),
    'turnoverRate': BalanceGuardrail(
        name='Turnover Rate',
        description='Percentage of drives ending in turnovers',
        min=10,
        max=20,
        source='NFL Analytics - Realistic turnover frequency',
    ),
    'smashmouthRunRate': BalanceGuardrail(
        name='Smashmouth Run Rate',
        description='Percentage of Smashmouth plays that are runs',
        min=40,
        max=60,
        source='Smashmouth Playbook - Ground and pound identity',
    ),
    'airRaidPassRate': BalanceGuardrail(
        name='Air Raid Pass Rate',
        description='Percentage of Air Raid plays that are passes',
        min=60,
        max=80,
        source='Air Raid Playbook - Vertical passing attack',
    ),
    'clockRunoffBalance': BalanceGuardrail(
        name='Clock Runoff Balance',
        description='Distribution of clock runoff times (10/20/30 seconds)',
        min=25,
        max=40,
        source='NFL Analytics - Realistic play duration mix',
    ),
    'redZoneEfficiency': BalanceGuardrail(
        name='Red Zone Efficiency',
        description='Scoring rate when inside opponent 20-yard line',
        min=70,
        max=85,
        source='NFL Analytics - Realistic red zone conversion',
    ),
    'penaltyRate': BalanceGuardrail(
        name='Penalty Rate',
        description='Percentage of plays with penalties',
        min=8,
        max=15,
        source='NFL Analytics - Realistic penalty frequency',
    ),
}


# =============================================================================
# Distribution Shape Guardrails
# =============================================================================

DISTRIBUTION_GUARDRAILS = DistributionGuardrails(
    explosiveClustering=ExplosiveClusteringGuardrail(
        thresholds=[20, 25, 30, 35, 40, 45, 50, 60, 70, 80],
        tolerance=0.15,
    ),
    runConsistency=RunConsistencyGuardrail(
        avgGain=GuardrailRange(min=3.5, max=5.5),
        stdDev=GuardrailRange(min=2.0, max=4.0),
    ),
    # Pass yardage spread should be 1.3-2x the run spread
    passVolatility=PassVolatilityGuardrail(
        stdDevRatio=GuardrailRange(min=1.3, max=2.0),
    ),
)


# =============================================================================
# Playbook Identity Guardrails
# =============================================================================

PLAYBOOK_IDENTITY_GUARDRAILS: Dict[str, PlaybookIdentityGuardrail] = {
    'West Coast': PlaybookIdentityGuardrail(
        passRate=GuardrailRange(min=65, max=80),
        avgGain=GuardrailRange(min=6.0, max=9.0),
        explosiveRate=GuardrailRange(min=12, max=20),
        description='Rhythm, timing, YAC focus with balanced attack',
    ),
    'Spread': PlaybookIdentityGuardrail(
        passRate=GuardrailRange(min=55, max=75),
        avgGain=GuardrailRange(min=7.0, max=10.0),
        explosiveRate=GuardrailRange(min=15, max=25),
        description='Spacing, tempo, mismatches with creative plays',
    ),
    'Air Raid': PlaybookIdentityGuardrail(
        passRate=GuardrailRange(min=70, max=85),
        avgGain=GuardrailRange(min=8.0, max=12.0),
        explosiveRate=GuardrailRange(min=20, max=30),
        description='Vertical volume, deep seams with high risk-reward',
    ),
    'Smashmouth': PlaybookIdentityGuardrail(
        passRate=GuardrailRange(min=25, max=45),
        avgGain=GuardrailRange(min=4.5, max=7.0),
        explosiveRate=GuardrailRange(min=8, max=15),
        description='Downhill, clock drain with power running focus',
    ),
    'Wide Zone': PlaybookIdentityGuardrail(
        passRate=GuardrailRange(min=35, max=55),
        avgGain=GuardrailRange(min=5.5, max=8.5),
        explosiveRate=GuardrailRange(min=10, max=18),
        description='Zone & boots with motion and play-action',
    ),
}

RUN_PLAYBOOKS: Tuple[str, ...] = ('Smashmouth', 'Wide Zone')
PASS_PLAYBOOKS: Tuple[str, ...] = ('Air Raid', 'Spread', 'West Coast')


# =============================================================================
# Statistical and Performance Thresholds
# =============================================================================

STATISTICAL_THRESHOLDS = StatisticalThresholds(
    minSampleSize=1000,
    confidenceLevel=0.95,
    maxStandardError=0.02,
    minEffectSize=0.05,
)

PERFORMANCE_REQUIREMENTS = PerformanceRequirements(
    maxAnalysisTime=30000,
    maxPerTableTime=5000,
    maxMemoryUsage=100 * 1024 * 1024,
)


# =============================================================================
# Lookups
# =============================================================================


def normalize_playbook_name(playbook: str) -> str:
    """
    Lower-case a playbook label and treat '-' and '_' as spaces.

    Example:
        >>> normalize_playbook_name('WEST_COAST')
        'west coast'
    """
    return ' '.join(playbook.replace('-', ' ').replace('_', ' ').lower().split())


_IDENTITY_KEYS: Dict[str, str] = {
    normalize_playbook_name(name): name for name in PLAYBOOK_IDENTITY_GUARDRAILS
}


def resolve_playbook_identity(
    playbook: str,
) -> Optional[Tuple[str, PlaybookIdentityGuardrail]]:
    """
    Resolve a playbook label to its canonical name and identity guardrail.

    Table discovery labels playbooks by folder name ('west-coast'), while the
    catalog uses display names ('West Coast'); both resolve to the same entry.

    Args:
        playbook: Playbook label in any casing, with spaces, hyphens or underscores.

    Returns:
        Tuple of (canonical name, guardrail), or None for unknown playbooks.
    """
    canonical = _IDENTITY_KEYS.get(normalize_playbook_name(playbook))
    if canonical is None:
        return None
    return canonical, PLAYBOOK_IDENTITY_GUARDRAILS[canonical]


def get_guardrail_catalog() -> GuardrailCatalog:
    """Bundle the whole static catalog into one serializable model."""
    return GuardrailCatalog(
        balance=BALANCE_GUARDRAILS,
        playbookIdentity=PLAYBOOK_IDENTITY_GUARDRAILS,
        distribution=DISTRIBUTION_GUARDRAILS,
        statistical=STATISTICAL_THRESHOLDS,
        performance=PERFORMANCE_REQUIREMENTS,
    )
