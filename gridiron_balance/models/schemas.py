"""
Pydantic models for the Gridiron Balance pipeline.

This module defines every record that flows between the pipeline stages:
table identities, per-table statistical analyses, compliance results, outlier
findings, simulation run results and the final balance report.

Field names are camelCase because they double as the JSON contract of the
exported report and the HTTP API. All models use Pydantic v2 syntax.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from gridiron_balance.models.enums import (
    ComplianceStatus,
    IssueSeverity,
    OutlierMethod,
    OutlierRisk,
    OutlierSeverity,
    OverallHealth,
    RecommendationLevel,
    TrendDirection,
)


# =============================================================================
# Guardrail Catalog Models
# =============================================================================


class GuardrailRange(BaseModel):
    """Inclusive numeric range used by guardrails and compliance issues."""
    model_config = ConfigDict(frozen=True)

    min: float = Field(..., description="Lower bound (inclusive)")
    max: float = Field(..., description="Upper bound (inclusive)")

    @property
    def width(self) -> float:
        return self.max - self.min


class BalanceGuardrail(GuardrailRange):
    """
    A named global balance metric with its acceptable range.

    Example:
        explosivePassRate: 15-25% sourced from NFL analytics.
    """
    name: str = Field(..., description="Human readable guardrail name")
    description: str = Field(..., description="What the metric measures")
    unit: str = Field(default="percentage", description="Unit of the range")
    source: str = Field(..., description="Where the target range comes from")


class PlaybookIdentityGuardrail(BaseModel):
    """Identity ranges that keep a playbook recognisable."""
    model_config = ConfigDict(frozen=True)

    passRate: GuardrailRange
    avgGain: GuardrailRange
    explosiveRate: GuardrailRange
    description: str


class ExplosiveClusteringGuardrail(BaseModel):
    model_config = ConfigDict(frozen=True)

    thresholds: List[int]
    tolerance: float


class RunConsistencyGuardrail(BaseModel):
    model_config = ConfigDict(frozen=True)

    avgGain: GuardrailRange
    stdDev: GuardrailRange


class PassVolatilityGuardrail(BaseModel):
    model_config = ConfigDict(frozen=True)

    stdDevRatio: GuardrailRange


class DistributionGuardrails(BaseModel):
    """Distribution-shape targets for explosive clustering and run/pass variance."""
    model_config = ConfigDict(frozen=True)

    explosiveClustering: ExplosiveClusteringGuardrail
    runConsistency: RunConsistencyGuardrail
    passVolatility: PassVolatilityGuardrail


class StatisticalThresholds(BaseModel):
    model_config = ConfigDict(frozen=True)

    minSampleSize: int
    confidenceLevel: float
    maxStandardError: float
    minEffectSize: float


class PerformanceRequirements(BaseModel):
    """Time budgets are in milliseconds, memory in bytes."""
    model_config = ConfigDict(frozen=True)

    maxAnalysisTime: int
    maxPerTableTime: int
    maxMemoryUsage: int


class GuardrailCatalog(BaseModel):
    """The complete static catalog, as served by the API."""
    balance: Dict[str, BalanceGuardrail]
    playbookIdentity: Dict[str, PlaybookIdentityGuardrail]
    distribution: DistributionGuardrails
    statistical: StatisticalThresholds
    performance: PerformanceRequirements


# =============================================================================
# Table Identity and Analysis Models
# =============================================================================


class TableInfo(BaseModel):
    """
    Identity of one offense/defense matchup table.

    `filePath` is not read by the synthetic sampler; it is kept so the real
    table files can be wired in later.
    """
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "id": "air-raid/AIR_RAID_MILLS_vs_MAN_PRESS.json",
                "playbook": "air-raid",
                "offenseCard": "AIR RAID MILLS",
                "defenseCard": "MAN PRESS",
                "filePath": "data/tables_v1/air-raid/AIR_RAID_MILLS_vs_MAN_PRESS.json",
            }
        },
    )

    id: str = Field(..., description="Unique table identifier", min_length=1)
    playbook: str = Field(..., description="Playbook the offense card belongs to")
    offenseCard: str = Field(..., description="Offense card label")
    defenseCard: str = Field(..., description="Defense card label")
    filePath: str = Field(default="", description="Path of the source table file")


class ClusteringMetrics(BaseModel):
    """Explosive-play clustering across the yardage thresholds."""
    explosiveThresholds: List[int] = Field(
        default_factory=list,
        description="Yardage thresholds the counts were taken at"
    )
    explosiveCounts: List[int] = Field(
        default_factory=list,
        description="Number of samples gaining at least each threshold"
    )
    clusterStrength: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="1 - coefficient of variation of the counts, floored at 0"
    )


class Quartiles(BaseModel):
    q1: float
    q2: float
    q3: float


class ValueRange(BaseModel):
    min: float
    max: float


class DistributionMetrics(BaseModel):
    """
    Moment statistics over the sampled yardage.

    Quartiles are index lookups into the sorted sample, not interpolated.
    Kurtosis is excess kurtosis (normal distribution = 0).
    """
    mean: float = 0.0
    median: float = 0.0
    mode: List[int] = Field(default_factory=list)
    standardDeviation: float = 0.0
    skewness: float = 0.0
    kurtosis: float = 0.0
    quartiles: Quartiles = Field(default_factory=lambda: Quartiles(q1=0, q2=0, q3=0))
    range: ValueRange = Field(default_factory=lambda: ValueRange(min=0, max=0))
    outlierBounds: ValueRange = Field(
        default_factory=lambda: ValueRange(min=0, max=0),
        description="1.5 x IQR fences"
    )
    outlierCount: int = Field(default=0, description="Samples outside the fences")


class TableAnalysis(BaseModel):
    """
    Statistical profile of a single matchup table.

    All rates are percentages (0-100) of the actual `sampleSize`, which may be
    lower than the requested size when the per-table time budget ran out.
    """
    model_config = ConfigDict(frozen=True)

    tableId: str
    playbook: str
    offenseCard: str
    defenseCard: str
    sampleSize: int = Field(..., ge=0, description="Samples actually drawn")

    avgYards: float = Field(..., description="Mean yards per play")
    yardsStdDev: float = Field(..., description="Population standard deviation of yards")
    turnoverRate: float = Field(..., description="Percent of plays with a turnover")
    explosiveRate: float = Field(..., description="Percent of non-turnover plays gaining 20+ yards")
    sackRate: float = Field(..., description="Percent of plays tagged SACK")
    penaltyRate: float = Field(..., description="Percent of plays with a penalty")
    passRate: float = Field(..., description="Percent of plays tagged PASS")

    clockDistribution: Dict[int, float] = Field(
        ...,
        description="Percent of plays per clock runoff bucket (10/20/30 seconds)"
    )
    clustering: ClusteringMetrics
    redZoneEfficiency: float = Field(..., description="Percent of red zone trials that scored")

    analysisTime: float = Field(default=0.0, description="Wall time spent in milliseconds")
    memoryUsage: int = Field(default=0, description="Estimated bytes held by sampled outcomes")

    distribution: Optional[DistributionMetrics] = Field(
        default=None,
        description="Full yardage distribution statistics"
    )


class AnalysisValidation(BaseModel):
    valid: bool
    issues: List[str] = Field(default_factory=list)


# =============================================================================
# Compliance Models
# =============================================================================


class ComplianceIssue(BaseModel):
    """A single guardrail violation or warning."""
    guardrail: str = Field(..., description="Guardrail name, e.g. explosivePassRate")
    severity: IssueSeverity
    actual: float
    expected: GuardrailRange
    deviation: float = Field(
        ...,
        description="Signed distance outside the range (negative below min); "
                    "for warnings, the distance to the nearest bound"
    )
    description: str
    recommendation: str


class ComplianceResult(BaseModel):
    """Guardrail compliance verdict for one table."""
    tableId: str
    overall: ComplianceStatus
    violations: List[ComplianceIssue] = Field(default_factory=list)
    warnings: List[ComplianceIssue] = Field(default_factory=list)
    score: int = Field(..., ge=0, le=100)
    summary: str


# =============================================================================
# Outlier Models
# =============================================================================


class OutlierResult(BaseModel):
    """One flagged deviation for a table metric."""
    tableId: str
    metric: str
    value: float
    expected: float
    deviation: float
    method: OutlierMethod
    severity: OutlierSeverity
    description: str
    recommendation: str


class OutlierAnalysis(BaseModel):
    """Outlier profile of one table, keyed by its normalized table id."""
    tableId: str = Field(..., description="Normalized playbook/offense id")
    outlierCount: int = 0
    severity: OutlierRisk = OutlierRisk.LOW
    primaryIssues: List[str] = Field(
        default_factory=list,
        description="Up to three metrics with the largest absolute deviation"
    )
    outlierDetails: List[OutlierResult] = Field(default_factory=list)
    riskAssessment: str = ""


class MetricCount(BaseModel):
    metric: str
    count: int


class OutlierSummary(BaseModel):
    totalTables: int
    tablesWithOutliers: int
    criticalTables: int
    highSeverityTables: int
    mostCommonIssues: List[MetricCount] = Field(default_factory=list)


# =============================================================================
# Simulation Models
# =============================================================================


class SimulationConfig(BaseModel):
    """
    Run parameters for a balance analysis.

    Use `simulation_runner.validate_config()` before running; out-of-range
    values are reported there rather than rejected here.
    """
    sampleSize: int = Field(default=10000, description="Samples per table")
    seed: int = Field(default=12345, description="Seed for the shared RNG")
    maxConcurrency: int = Field(default=4, description="Tables per batch")
    enableProgressTracking: bool = Field(default=True)
    timeoutMs: int = Field(default=30000, description="Overall timeout in milliseconds")


class ConfigValidation(BaseModel):
    valid: bool
    errors: List[str] = Field(default_factory=list)


class SimulationProgress(BaseModel):
    """
    Mutable progress record shared with the progress callback.

    The runner updates one instance in place and hands the same object to
    every callback invocation.
    """
    total: int
    completed: int = 0
    current: Optional[str] = None
    estimatedTimeRemaining: Optional[float] = Field(
        default=None,
        description="Estimated milliseconds until the run completes"
    )
    errors: List[str] = Field(default_factory=list)


class SimulationSummary(BaseModel):
    compliant: int = 0
    warning: int = 0
    violation: int = 0
    critical: int = 0
    totalScore: float = Field(default=0.0, description="Mean compliance score")


class SimulationResult(BaseModel):
    """
    Output of a complete run.

    `analyses` and `compliance` are index-aligned. Tables that failed to
    analyze are absent from both and reported through `errors`.
    """
    analyses: List[TableAnalysis] = Field(default_factory=list)
    compliance: List[ComplianceResult] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)
    duration: float = Field(default=0.0, description="Run duration in milliseconds")
    config: SimulationConfig
    summary: SimulationSummary = Field(default_factory=SimulationSummary)


# =============================================================================
# Balance Report Models
# =============================================================================


class ReportMetadata(BaseModel):
    generatedAt: str = Field(..., description="ISO-8601 generation timestamp")
    analysisVersion: str
    sampleSize: int
    seed: int
    totalTables: int
    analysisDuration: float = Field(..., description="Run duration in milliseconds")


class ReportSummary(BaseModel):
    overallHealth: OverallHealth
    complianceScore: float
    tablesAnalyzed: int
    compliantTables: int
    tablesWithWarnings: int
    tablesWithViolations: int
    criticalTables: int
    averageScore: float
    riskLevel: str


class PlaybookCompliance(BaseModel):
    total: int = 0
    compliant: int = 0
    warning: int = 0
    violation: int = 0
    critical: int = 0
    averageScore: float = 0.0


class TopIssue(BaseModel):
    guardrail: str
    violationCount: int
    severity: IssueSeverity
    description: str


class MetricTrend(BaseModel):
    metric: str
    trend: TrendDirection
    description: str


class ComplianceSection(BaseModel):
    byPlaybook: Dict[str, PlaybookCompliance] = Field(default_factory=dict)
    topIssues: List[TopIssue] = Field(default_factory=list)
    trends: List[MetricTrend] = Field(default_factory=list)


class OutlierCounts(BaseModel):
    tablesWithOutliers: int = 0
    criticalOutliers: int = 0
    highSeverityOutliers: int = 0


class PlaybookOutliers(BaseModel):
    outlierTables: int = 0
    totalOutliers: int = 0
    mostCommonIssues: List[str] = Field(default_factory=list)


class OutliersSection(BaseModel):
    summary: OutlierCounts = Field(default_factory=OutlierCounts)
    byPlaybook: Dict[str, PlaybookOutliers] = Field(default_factory=dict)
    recommendations: List[str] = Field(default_factory=list)


class PriorityRecommendation(BaseModel):
    level: RecommendationLevel
    category: str
    description: str
    affectedTables: List[str] = Field(default_factory=list)
    estimatedImpact: str


class RecommendationsSection(BaseModel):
    priority: List[PriorityRecommendation] = Field(default_factory=list)
    byPlaybook: Dict[str, List[str]] = Field(default_factory=dict)
    quickWins: List[str] = Field(default_factory=list)


class KeyMetrics(BaseModel):
    avgYards: float
    turnoverRate: float
    explosiveRate: float
    balanceScore: int


class DetailedResult(BaseModel):
    tableId: str
    playbook: str
    compliance: ComplianceResult
    outliers: OutlierAnalysis
    keyMetrics: KeyMetrics


class ReportAppendices(BaseModel):
    guardrailDefinitions: Dict[str, str] = Field(default_factory=dict)
    methodology: str = ""
    statisticalNotes: List[str] = Field(default_factory=list)


class BalanceReport(BaseModel):
    """
    Complete balance report for one analysis run.

    Purely derived from the run outputs; safe to serialize to JSON and back.
    """
    metadata: ReportMetadata
    summary: ReportSummary
    compliance: ComplianceSection
    outliers: OutliersSection
    recommendations: RecommendationsSection
    detailedResults: List[DetailedResult] = Field(default_factory=list)
    appendices: ReportAppendices
