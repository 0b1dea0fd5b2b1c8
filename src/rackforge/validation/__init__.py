from .compatibility import run_compatibility_check
from .engine import categorize_issues, group_issues_by_node, run_validation
from .power import calculate_power, calculate_psu_capacity_summary
from .types import Issue, ValidationContext, error, warn
from .rules import DEFAULT_RULES, validate_build

__all__ = [
    "DEFAULT_RULES",
    "Issue",
    "ValidationContext",
    "calculate_power",
    "calculate_psu_capacity_summary",
    "categorize_issues",
    "error",
    "group_issues_by_node",
    "run_compatibility_check",
    "run_validation",
    "validate_build",
    "warn",
]
