"""
Command-line jobs for Gridiron Balance.

Jobs:
- balance_report: Full balance analysis run with report output and exit codes
"""

from gridiron_balance.jobs.balance_report import app, determine_exit_code

__all__ = [
    "app",
    "determine_exit_code",
]
