"""
Gridiron Balance Package.

Statistical balance analysis for Gridiron Strategy matchup tables. Samples each
offense/defense table, checks the resulting metrics against balance guardrails,
compares tables against their playbook peers and renders a balance report.

Subpackages:
    - api: FastAPI route handlers
    - core: Configuration and dependencies
    - models: Pydantic schemas and enums
    - services: Analysis pipeline services
    - jobs: Command-line report job
"""

__version__ = "1.0.0"
