"""Rule engine: run independent rules against a build and bucket the results."""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from ..schemas import Build, Catalog
from .types import Issue, ValidationContext, ValidationRule

logger = logging.getLogger(__name__)

_NODE_PATH = re.compile(r"^nodes\[(\d+)\]")


class IssueSummary(BaseModel):
    errors: List[Issue] = Field(default_factory=list)
    warnings: List[Issue] = Field(default_factory=list)
    has_errors: bool = False
    has_warnings: bool = False


class NodeIssueGroups(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    by_node: Dict[int, List[Issue]] = Field(default_factory=dict, alias="byNode")
    global_issues: List[Issue] = Field(default_factory=list, alias="global")


def run_validation(
    build: Build,
    rules: Sequence[ValidationRule],
    catalog: Optional[Catalog] = None,
    context: Optional[ValidationContext] = None,
) -> List[Issue]:
    """Run every rule in order and concatenate their issues.

    Rules are independent; a rule that raises aborts the whole pass.
    """
    issues: List[Issue] = []
    for rule in rules:
        rule_issues = rule(build, catalog, context)
        logger.debug(
            "rule %s produced %d issue(s)",
            getattr(rule, "__name__", repr(rule)),
            len(rule_issues),
        )
        issues.extend(rule_issues)
    return issues


def categorize_issues(issues: Sequence[Issue]) -> IssueSummary:
    errors = [i for i in issues if i.severity == "error"]
    warnings = [i for i in issues if i.severity == "warn"]
    return IssueSummary(
        errors=errors,
        warnings=warnings,
        has_errors=bool(errors),
        has_warnings=bool(warnings),
    )


def group_issues_by_node(issues: Sequence[Issue]) -> NodeIssueGroups:
    by_node: Dict[int, List[Issue]] = {}
    global_issues: List[Issue] = []
    for issue in issues:
        match = _NODE_PATH.match(issue.path)
        if match:
            by_node.setdefault(int(match.group(1)), []).append(issue)
        else:
            global_issues.append(issue)
    return NodeIssueGroups(by_node=by_node, global_issues=global_issues)
