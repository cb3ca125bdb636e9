"""
Test suite for the balance report command-line job.

The tests verify:
1. A run writes the report in the requested format and prints the summary
2. Invalid configuration and an empty table set exit with code 1
3. Exit codes follow the report's critical tables, outliers and violation share
4. Report file naming and extension handling
"""

import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest
from typer.testing import CliRunner

from gridiron_balance.jobs.balance_report import (
    EXIT_CRITICAL,
    EXIT_ISSUES,
    EXIT_OK,
    app,
    default_report_filename,
    determine_exit_code,
    format_progress,
    resolve_output_path,
)
from gridiron_balance.models.enums import OutlierRisk, ReportFormat
from gridiron_balance.models.schemas import OutlierAnalysis, SimulationProgress
from gridiron_balance.services.guardrail_checker import check_compliance
from gridiron_balance.services.report_generator import generate_report
from gridiron_balance.tests.conftest import make_analysis


DISCOVER_TABLES = 'gridiron_balance.jobs.balance_report.discover_tables'
ANALYZE_TABLE = 'gridiron_balance.services.simulation_runner.analyze_table'

runner = CliRunner()


async def compliant_table(table_id, offense_card, defense_card, playbook, sample_size, **kwargs):
    return make_analysis(table_id=table_id)


def report_for(analyses, outliers=None):
    if outliers is None:
        outliers = [OutlierAnalysis(tableId=a.tableId) for a in analyses]
    return generate_report(
        analyses, [check_compliance(a) for a in analyses], outliers, 100.0, sample_size=1000, seed=1,
    )


# =============================================================================
# COMMAND
# =============================================================================


class TestCommand:

    def test_json_report_is_written(self, tmp_path, sample_tables):
        target = tmp_path / 'report.json'
        with patch(DISCOVER_TABLES, return_value=sample_tables[:2]), \
                patch(ANALYZE_TABLE, new=AsyncMock(side_effect=compliant_table)):
            result = runner.invoke(app, ['-s', '100', '-f', 'json', '-o', str(target)])

        assert result.exit_code == EXIT_OK, result.output
        assert 'Found 2 tables across 1 playbooks' in result.output
        assert f"JSON report saved to: {target}" in result.output
        assert 'Analysis Summary' in result.output
        assert 'System appears well-balanced' in result.output

        payload = json.loads(target.read_text(encoding='utf-8'))
        assert payload['metadata']['sampleSize'] == 100
        assert payload['metadata']['totalTables'] == 2
        assert payload['summary']['overallHealth'] == 'excellent'

    def test_text_report_gets_extension(self, tmp_path, sample_tables):
        target = tmp_path / 'summary'
        with patch(DISCOVER_TABLES, return_value=sample_tables[:1]), \
                patch(ANALYZE_TABLE, new=AsyncMock(side_effect=compliant_table)):
            result = runner.invoke(app, ['--format', 'TEXT', '--output', str(target), '--seed', '7'])

        assert result.exit_code == EXIT_OK, result.output
        written = tmp_path / 'summary.txt'
        assert written.read_text(encoding='utf-8').startswith('# Gridiron Strategy - Balance Analysis Report')

    @pytest.mark.slow
    @pytest.mark.integration
    def test_real_sampling_run(self, tmp_path, sample_tables):
        target = tmp_path / 'report.json'
        with patch(DISCOVER_TABLES, return_value=sample_tables[:2]):
            result = runner.invoke(app, ['-s', '200', '-f', 'json', '-o', str(target), '-v'])

        assert result.exit_code in (EXIT_OK, EXIT_ISSUES, EXIT_CRITICAL), result.output
        assert 'Progress: 100.0% (2/2)' in result.output
        assert len(json.loads(target.read_text(encoding='utf-8'))['detailedResults']) == 2

    def test_invalid_sample_size(self, tmp_path):
        result = runner.invoke(app, ['-s', '10', '-o', str(tmp_path / 'report')])
        assert result.exit_code == EXIT_ISSUES
        assert 'Invalid configuration: Sample size must be at least 100' in result.output
        assert not list(tmp_path.iterdir())

    def test_no_tables(self, tmp_path):
        with patch(DISCOVER_TABLES, return_value=[]):
            result = runner.invoke(app, ['-o', str(tmp_path / 'report')])
        assert result.exit_code == EXIT_ISSUES
        assert 'No tables found' in result.output

    def test_pipeline_failure(self, tmp_path, sample_tables):
        with patch(DISCOVER_TABLES, return_value=sample_tables[:1]), \
                patch('gridiron_balance.jobs.balance_report.detect_outliers', side_effect=ValueError('bad input')):
            result = runner.invoke(app, ['-s', '100', '-o', str(tmp_path / 'report')])
        assert result.exit_code == EXIT_ISSUES
        assert 'Analysis failed: bad input' in result.output


# =============================================================================
# EXIT CODES
# =============================================================================


class TestExitCode:

    def test_critical_table(self):
        analyses = [make_analysis(table_id='t/1', turnoverRate=45.0), make_analysis(table_id='t/2')]
        assert determine_exit_code(report_for(analyses)) == EXIT_CRITICAL

    def test_critical_outlier(self):
        analyses = [make_analysis(table_id='t/1')]
        outliers = [OutlierAnalysis(tableId='t/1', outlierCount=5, severity=OutlierRisk.CRITICAL)]
        assert determine_exit_code(report_for(analyses, outliers)) == EXIT_CRITICAL

    def test_violation_share_above_limit(self):
        analyses = [make_analysis(table_id=f"t/{i}") for i in range(3)]
        analyses += [make_analysis(table_id=f"v/{i}", turnoverRate=26.0) for i in range(2)]
        assert determine_exit_code(report_for(analyses)) == EXIT_ISSUES

    def test_violation_share_within_limit(self):
        analyses = [make_analysis(table_id=f"t/{i}") for i in range(4)]
        analyses.append(make_analysis(table_id='v/1', turnoverRate=26.0))
        assert determine_exit_code(report_for(analyses)) == EXIT_OK

    def test_empty_report(self):
        assert determine_exit_code(report_for([])) == EXIT_OK


# =============================================================================
# HELPERS
# =============================================================================


class TestOutputPath:

    def test_default_filename_keeps_milliseconds(self):
        moment = datetime(2025, 3, 1, 14, 5, 9, 123000, tzinfo=timezone.utc)
        assert default_report_filename(moment) == 'balance-report-2025-03-01T14-05-09-123Z'

    def test_runs_in_the_same_second_get_distinct_names(self):
        first = datetime(2025, 3, 1, 14, 5, 9, 100000, tzinfo=timezone.utc)
        second = datetime(2025, 3, 1, 14, 5, 9, 900000, tzinfo=timezone.utc)
        assert default_report_filename(first) != default_report_filename(second)

    def test_default_path_uses_format_extension(self):
        moment = datetime(2025, 3, 1, 14, 5, 9, tzinfo=timezone.utc)
        assert str(resolve_output_path(None, ReportFormat.JSON, moment)) == 'balance-report-2025-03-01T14-05-09-000Z.json'
        assert str(resolve_output_path(None, ReportFormat.TEXT, moment)).endswith('.txt')

    def test_existing_extension_is_kept(self):
        assert str(resolve_output_path('custom-report.json', ReportFormat.JSON)) == 'custom-report.json'


class TestProgressLine:

    def test_in_flight(self):
        progress = SimulationProgress(total=4, completed=1, current='spread/MESH', estimatedTimeRemaining=4000.0)
        assert format_progress(progress) == 'Progress: 25.0% (1/4) - ETA: 4s - Analyzing: spread/MESH'

    def test_eta_unknown(self):
        assert format_progress(SimulationProgress(total=2)) == 'Progress: 0.0% (0/2) - ETA: calculating...'

    def test_finished_run_shows_zero_eta(self):
        progress = SimulationProgress(total=2, completed=2, current='spread/MESH', estimatedTimeRemaining=0.0)
        assert format_progress(progress) == 'Progress: 100.0% (2/2) - ETA: 0s - Analyzing: spread/MESH'
