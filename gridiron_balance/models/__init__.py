"""
Package initialization for Gridiron Balance models.

Re-exports the enumerations and Pydantic schemas so callers can import them
from gridiron_balance.models directly.

Usage:
    from gridiron_balance.models import (
        TableInfo,
        TableAnalysis,
        ComplianceResult,
        BalanceReport,
    )
"""

# =============================================================================
# Enums
# =============================================================================

from gridiron_balance.models.enums import (
    ComplianceStatus,
    IssueSeverity,
    OutcomeTag,
    OutlierMethod,
    OutlierRisk,
    OutlierSeverity,
    OverallHealth,
    PenaltySide,
    RecommendationLevel,
    ReportFormat,
    ResultJoin,
    TrendDirection,
)

# =============================================================================
# Schemas
# =============================================================================

from gridiron_balance.models.schemas import (
    # Guardrail catalog
    GuardrailRange,
    BalanceGuardrail,
    PlaybookIdentityGuardrail,
    ExplosiveClusteringGuardrail,
    RunConsistencyGuardrail,
    PassVolatilityGuardrail,
    DistributionGuardrails,
    StatisticalThresholds,
    PerformanceRequirements,
    GuardrailCatalog,
    # Tables and analyses
    TableInfo,
    ClusteringMetrics,
    Quartiles,
    ValueRange,
    DistributionMetrics,
    TableAnalysis,
    AnalysisValidation,
    # Compliance
    ComplianceIssue,
    ComplianceResult,
    # Outliers
    OutlierResult,
    OutlierAnalysis,
    MetricCount,
    OutlierSummary,
    # Simulation
    SimulationConfig,
    ConfigValidation,
    SimulationProgress,
    SimulationSummary,
    SimulationResult,
    # Report
    ReportMetadata,
    ReportSummary,
    PlaybookCompliance,
    TopIssue,
    MetricTrend,
    ComplianceSection,
    OutlierCounts,
    PlaybookOutliers,
    OutliersSection,
    PriorityRecommendation,
    RecommendationsSection,
    KeyMetrics,
    DetailedResult,
    ReportAppendices,
    BalanceReport,
)

__all__ = [
    "ComplianceStatus",
    "IssueSeverity",
    "OutcomeTag",
    "OutlierMethod",
    "OutlierRisk",
    "OutlierSeverity",
    "OverallHealth",
    "PenaltySide",
    "RecommendationLevel",
    "ReportFormat",
    "ResultJoin",
    "TrendDirection",
    "GuardrailRange",
    "BalanceGuardrail",
    "PlaybookIdentityGuardrail",
    "ExplosiveClusteringGuardrail",
    "RunConsistencyGuardrail",
    "PassVolatilityGuardrail",
    "DistributionGuardrails",
    "StatisticalThresholds",
    "PerformanceRequirements",
    "GuardrailCatalog",
    "TableInfo",
    "ClusteringMetrics",
    "Quartiles",
    "ValueRange",
    "DistributionMetrics",
    "TableAnalysis",
    "AnalysisValidation",
    "ComplianceIssue",
    "ComplianceResult",
    "OutlierResult",
    "OutlierAnalysis",
    "MetricCount",
    "OutlierSummary",
    "SimulationConfig",
    "ConfigValidation",
    "SimulationProgress",
    "SimulationSummary",
    "SimulationResult",
    "ReportMetadata",
    "ReportSummary",
    "PlaybookCompliance",
    "TopIssue",
    "MetricTrend",
    "ComplianceSection",
    "OutlierCounts",
    "PlaybookOutliers",
    "OutliersSection",
    "PriorityRecommendation",
    "RecommendationsSection",
    "KeyMetrics",
    "DetailedResult",
    "ReportAppendices",
    "BalanceReport",
]
