"""
Enumeration definitions for the Gridiron Balance pipeline.

All enums inherit from both `str` and `Enum` so they serialize as plain strings
inside pydantic models and JSON reports.
"""

from enum import Enum


class ComplianceStatus(str, Enum):
    """
    Overall guardrail compliance of a single table.

    - compliant: Every checked metric is inside its range
    - warning: Some metrics sit close to a boundary
    - violation: At least one metric is out of range
    - critical: A critical violation, or a score below 40
    """
    COMPLIANT = "compliant"
    WARNING = "warning"
    VIOLATION = "violation"
    CRITICAL = "critical"


class IssueSeverity(str, Enum):
    """Severity of a single compliance issue."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class OutlierMethod(str, Enum):
    """
    Detection method that produced an outlier finding.

    `isolation` is used for absolute fallback checks and playbook identity
    checks; `mahalanobis` is reserved and never produced.
    """
    ZSCORE = "zscore"
    IQR = "iqr"
    ISOLATION = "isolation"
    MAHALANOBIS = "mahalanobis"


class OutlierSeverity(str, Enum):
    """Severity of a single outlier finding."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class OutlierRisk(str, Enum):
    """Aggregated outlier severity for a whole table."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class OverallHealth(str, Enum):
    """Headline health grade of a balance report."""
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    CRITICAL = "critical"


class TrendDirection(str, Enum):
    """Direction of a guardrail metric trend across tables."""
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


class RecommendationLevel(str, Enum):
    """Priority level of a report recommendation."""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ReportFormat(str, Enum):
    """Output format for exported reports."""
    TEXT = "text"
    JSON = "json"


class PenaltySide(str, Enum):
    """Team charged with a penalty."""
    OFFENSE = "offense"
    DEFENSE = "defense"


class OutcomeTag(str, Enum):
    """
    Descriptive tags attached to a sampled play outcome.

    Tags drive the derived rates: SACK tags feed the sack rate and EXPLOSIVE
    mirrors the 20+ yard threshold used for the explosive rate.
    """
    INTERCEPTION = "INTERCEPTION"
    FUMBLE = "FUMBLE"
    EXPLOSIVE = "EXPLOSIVE"
    SACK = "SACK"
    INCOMPLETE = "INCOMPLETE"
    PRESSURE = "PRESSURE"
    PASS = "PASS"
    RUN = "RUN"


class ResultJoin(str, Enum):
    """
    How the report joins analyses, compliance results and outlier analyses.

    - table_id: Match on table identifier (normalized for outliers)
    - position: Zip by index and truncate to the shortest input
    """
    TABLE_ID = "table_id"
    POSITION = "position"
