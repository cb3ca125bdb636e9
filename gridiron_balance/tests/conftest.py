"""
Pytest Configuration and Shared Fixtures for Gridiron Balance Tests.

This module provides fixtures and factories for all tests, supporting:
- Async test execution with pytest-asyncio
- Table analysis factories whose default values sit comfortably inside every
  global guardrail, so tests can move one metric at a time
- Deterministic random sources (constant and scripted sequences)
- Settings cache isolation between tests

Dependencies:
- pytest
- pytest-asyncio
"""

from typing import Any, Callable, Dict, Iterable, Iterator, List

import pytest

from gridiron_balance.core.config import get_settings
from gridiron_balance.models.schemas import ClusteringMetrics, TableAnalysis, TableInfo


# ============================================================
# PYTEST HOOKS
# ============================================================

def pytest_configure(config) -> None:
    """
    Configure custom pytest markers for test organization.

    Custom markers defined:
    - slow: Marks tests that sample full-size tables
    - integration: Marks tests that run the whole pipeline end to end
    """
    config.addinivalue_line(
        'markers',
        'slow: marks tests as slow (deselect with -m "not slow")'
    )
    config.addinivalue_line(
        'markers',
        'integration: marks tests exercising the full analysis pipeline'
    )


# ============================================================
# SETTINGS ISOLATION
# ============================================================

@pytest.fixture(autouse=True)
def clear_settings_cache() -> Iterator[None]:
    """Drop cached Settings so environment overrides in one test never leak."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ============================================================
# RANDOM SOURCES
# ============================================================

def constant_rng(value: float) -> Callable[[], float]:
    """Random source that always returns `value`."""
    return lambda: value


def scripted_rng(values: Iterable[float]) -> Callable[[], float]:
    """Random source that replays `values` in order and fails when exhausted."""
    iterator = iter(values)
    return lambda: next(iterator)


def stepping_clock(step_seconds: float) -> Callable[[], float]:
    """Fake monotonic clock advancing by `step_seconds` on every call."""
    state = {'now': -step_seconds}

    def clock() -> float:
        state['now'] += step_seconds
        return state['now']

    return clock


# ============================================================
# ANALYSIS FACTORIES
# ============================================================

BASELINE_METRICS: Dict[str, Any] = {
    'sampleSize': 10000,
    'avgYards': 7.0,
    'yardsStdDev': 10.0,
    'turnoverRate': 15.0,
    'explosiveRate': 20.0,
    'sackRate': 6.0,
    'penaltyRate': 11.5,
    'passRate': 70.0,
    'clockDistribution': {10: 32.0, 20: 33.0, 30: 35.0},
    'redZoneEfficiency': 77.5,
}


def make_analysis(
    table_id: str = 'test/TABLE_A',
    playbook: str = 'Test Playbook',
    cluster_strength: float = 0.6,
    **overrides: Any,
) -> TableAnalysis:
    """
    Build a TableAnalysis with metrics centered in the global guardrails.

    The default playbook has no identity guardrail, so only the global checks
    and explosive clustering apply.
    """
    values = {
        **BASELINE_METRICS,
        'tableId': table_id,
        'playbook': playbook,
        'offenseCard': 'TEST OFFENSE',
        'defenseCard': 'TEST DEFENSE',
        'clustering': ClusteringMetrics(
            explosiveThresholds=[20, 25, 30],
            explosiveCounts=[30, 20, 10],
            clusterStrength=cluster_strength,
        ),
    }
    values.update(overrides)
    return TableAnalysis(**values)


def make_table(table_id: str, playbook: str = 'spread', offense: str = 'MESH', defense: str = 'COVER 3') -> TableInfo:
    return TableInfo(id=table_id, playbook=playbook, offenseCard=offense, defenseCard=defense)


@pytest.fixture
def baseline_analysis() -> TableAnalysis:
    return make_analysis()


@pytest.fixture
def sample_tables() -> List[TableInfo]:
    """Six tables across two playbooks with run and pass offense labels."""
    return [
        make_table('spread/MESH_vs_COVER_3.json', 'spread', 'SPREAD MESH', 'COVER 3'),
        make_table('spread/FOUR_VERTS_vs_MAN_FREE.json', 'spread', 'SPREAD FOUR VERTS', 'MAN FREE'),
        make_table('spread/ZONE_READ_vs_ZONE_BLITZ.json', 'spread', 'SPREAD ZONE READ', 'ZONE BLITZ'),
        make_table('smashmouth/POWER_O_vs_COVER_2.json', 'smashmouth', 'SMASHMOUTH POWER O', 'COVER 2'),
        make_table('smashmouth/COUNTER_TREY_vs_MAN_FREE.json', 'smashmouth', 'SMASHMOUTH COUNTER TREY', 'MAN FREE'),
        make_table('smashmouth/PA_DEEP_POST_vs_ZONE_BLITZ.json', 'smashmouth', 'SMASHMOUTH PA DEEP POST', 'ZONE BLITZ'),
    ]
