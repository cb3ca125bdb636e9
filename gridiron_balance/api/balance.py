"""
FastAPI router module for balance analysis.

Implements GET /balance/guardrails (the guardrail catalog), GET /balance/tables
(the representative table set) and POST /balance/runs (run the full pipeline
and return the balance report).

The run endpoint applies request overrides on top of the configured defaults,
rejects invalid configurations with HTTP 400 and renders the report as JSON
or, with ``?format=text``, as the plain-text summary.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Body, HTTPException, Query
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from gridiron_balance.core.dependencies import SettingsDep
from gridiron_balance.models.enums import ReportFormat
from gridiron_balance.models.schemas import (
    BalanceReport,
    GuardrailCatalog,
    SimulationConfig,
    SimulationSummary,
    TableInfo,
)
from gridiron_balance.services.guardrails import get_guardrail_catalog
from gridiron_balance.services.outlier_detector import detect_outliers
from gridiron_balance.services.report_generator import export_to_text, generate_report
from gridiron_balance.services.simulation_runner import (
    create_default_config,
    discover_tables,
    run_analysis,
    validate_config,
)


# Configure logging
logger = logging.getLogger(__name__)


# =============================================================================
# Local Pydantic Models for API Requests and Responses
# =============================================================================

class TableListResponse(BaseModel):
    """Response model for the table discovery endpoint."""
    tables: List[TableInfo] = Field(
        default_factory=list,
        description="Tables analyzed by a default run"
    )


class RunRequest(BaseModel):
    """Request model for a balance run. Omitted fields use the configured defaults."""
    sampleSize: Optional[int] = Field(default=None, description="Samples per table")
    seed: Optional[int] = Field(default=None, description="Seed for the shared RNG")
    maxConcurrency: Optional[int] = Field(default=None, description="Tables per batch")
    timeoutMs: Optional[int] = Field(default=None, description="Overall timeout in milliseconds")
    tables: Optional[List[TableInfo]] = Field(
        default=None,
        description="Tables to analyze; defaults to the discovered table set"
    )


class RunResponse(BaseModel):
    """Response model for a completed balance run."""
    report: BalanceReport = Field(..., description="Generated balance report")
    summary: SimulationSummary = Field(..., description="Compliance counts and mean score")
    errors: List[str] = Field(
        default_factory=list,
        description="Per-table failures and timeout notices"
    )


# =============================================================================
# Router Definition
# =============================================================================

router = APIRouter()


def build_run_config(request: RunRequest) -> SimulationConfig:
    """Overlay the request's non-null overrides on the default configuration."""
    overrides = request.model_dump(exclude_none=True, exclude={"tables"})
    defaults = create_default_config().model_dump()
    return SimulationConfig(**{**defaults, **overrides})


# =============================================================================
# Endpoint Implementations
# =============================================================================


@router.get("/guardrails", response_model=GuardrailCatalog)
async def list_guardrails() -> GuardrailCatalog:
    """
    Return the complete guardrail catalog.

    Returns:
        GuardrailCatalog with balance, playbook identity, distribution,
        statistical and performance guardrails
    """
    return get_guardrail_catalog()


@router.get("/tables", response_model=TableListResponse)
async def list_tables() -> TableListResponse:
    """Return the representative table set (five playbooks, three tables each)."""
    tables = discover_tables()
    logger.info(f"Listed {len(tables)} balance tables")
    return TableListResponse(tables=tables)


@router.post("/runs", response_model=RunResponse)
async def create_run(
    settings: SettingsDep,
    request: Optional[RunRequest] = Body(default=None),
    output_format: ReportFormat = Query(default=ReportFormat.JSON, alias="format", description="Response format"),
):
    """
    Run the balance pipeline and return its report.

    Args:
        settings: Application settings (analysis version, defaults)
        request: Optional configuration overrides and table list
        output_format: ``json`` for RunResponse, ``text`` for the plain-text report

    Returns:
        RunResponse, or a text/plain rendering of the report

    Raises:
        HTTPException 400: Configuration outside safe limits or no tables
        HTTPException 500: Unexpected pipeline failure
    """
    request = request or RunRequest()
    config = build_run_config(request)
    validation = validate_config(config)
    if not validation.valid:
        raise HTTPException(
            status_code=400,
            detail={"message": "Invalid configuration", "errors": validation.errors},
        )

    tables = request.tables if request.tables is not None else discover_tables()
    if not tables:
        raise HTTPException(status_code=400, detail="No tables to analyze")

    try:
        result = await run_analysis(tables, config)
        outliers = detect_outliers(result.analyses)
        report = generate_report(
            result.analyses,
            result.compliance,
            outliers,
            result.duration,
            sample_size=config.sampleSize,
            seed=config.seed,
        )
    except Exception as e:
        logger.exception("Error running balance analysis")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to run balance analysis: {str(e)}"
        )

    logger.info(
        f"Balance run finished for {len(tables)} tables "
        f"(version {settings.analysis_version}): {report.summary.overallHealth.value}"
    )

    if output_format == ReportFormat.TEXT:
        return PlainTextResponse(export_to_text(report))
    return RunResponse(report=report, summary=result.summary, errors=result.errors)
