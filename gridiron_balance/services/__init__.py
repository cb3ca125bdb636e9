"""
Gridiron Balance Services Module

Business logic for the balance analysis pipeline. Every service is a set of
stateless functions over pydantic models; randomness is always passed in
explicitly so runs are reproducible.

Services:
- guardrails: Static guardrail catalog (balance, playbook identity, shape)
- rng: Seeded uniform random source shared across one run
- statistical_analyzer: Outcome sampling and per-table metric aggregation
- guardrail_checker: Compliance scoring against the catalog
- outlier_detector: Peer-group and absolute outlier detection
- report_generator: Report assembly and JSON/text export
- simulation_runner: Batched orchestration, progress and timeout

All services are consumed by the API layer (gridiron_balance/api/) and the
command-line job (gridiron_balance/jobs/).
"""

# =============================================================================
# Guardrail Catalog Exports
# =============================================================================

from gridiron_balance.services.guardrails import (
    BALANCE_GUARDRAILS,
    DISTRIBUTION_GUARDRAILS,
    PLAYBOOK_IDENTITY_GUARDRAILS,
    PASS_PLAYBOOKS,
    RUN_PLAYBOOKS,
    get_guardrail_catalog,
    normalize_playbook_name,
    resolve_playbook_identity,
)

# =============================================================================
# Random Source Exports
# =============================================================================

from gridiron_balance.services.rng import (
    RandomSource,
    SeededRandom,
    create_rng,
)

# =============================================================================
# Statistical Analyzer Exports
# Outcome generation, distribution statistics and per-table aggregation
# =============================================================================

from gridiron_balance.services.statistical_analyzer import (
    analyze_table,
    build_analysis,
    calculate_distribution_metrics,
    generate_outcome,
    validate_analysis,
)

# =============================================================================
# Guardrail Checker Exports
# =============================================================================

from gridiron_balance.services.guardrail_checker import (
    build_guardrail_checks,
    calculate_score,
    check_batch_compliance,
    check_compliance,
    get_applicable_guardrails,
)

# =============================================================================
# Outlier Detector Exports
# =============================================================================

from gridiron_balance.services.outlier_detector import (
    detect_outliers,
    detect_table_outliers,
    filter_by_severity,
    get_outlier_summary,
    normalize_table_id,
)

# =============================================================================
# Report Generator Exports
# =============================================================================

from gridiron_balance.services.report_generator import (
    export_to_json,
    export_to_text,
    generate_report,
)

# =============================================================================
# Simulation Runner Exports
# =============================================================================

from gridiron_balance.services.simulation_runner import (
    create_default_config,
    discover_tables,
    run_analysis,
    validate_config,
)


__all__ = [
    # Guardrail catalog
    "BALANCE_GUARDRAILS",
    "DISTRIBUTION_GUARDRAILS",
    "PLAYBOOK_IDENTITY_GUARDRAILS",
    "PASS_PLAYBOOKS",
    "RUN_PLAYBOOKS",
    "get_guardrail_catalog",
    "normalize_playbook_name",
    "resolve_playbook_identity",
    # Random source
    "RandomSource",
    "SeededRandom",
    "create_rng",
    # Statistical analyzer
    "analyze_table",
    "build_analysis",
    "calculate_distribution_metrics",
    "generate_outcome",
    "validate_analysis",
    # Guardrail checker
    "build_guardrail_checks",
    "calculate_score",
    "check_batch_compliance",
    "check_compliance",
    "get_applicable_guardrails",
    # Outlier detector
    "detect_outliers",
    "detect_table_outliers",
    "filter_by_severity",
    "get_outlier_summary",
    "normalize_table_id",
    # Report generator
    "export_to_json",
    "export_to_text",
    "generate_report",
    # Simulation runner
    "create_default_config",
    "discover_tables",
    "run_analysis",
    "validate_config",
]
