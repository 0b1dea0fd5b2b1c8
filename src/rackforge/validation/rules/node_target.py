from __future__ import annotations

from typing import List, Optional

from ...builder.budget import node_target_gaps
from ...schemas import Build, Catalog
from ..types import Issue, ValidationContext, warn

_UNITS = {"cores": "cores", "memoryGB": "GB memory", "storageTB": "TB storage"}


def node_target_rule(
    build: Build,
    catalog: Optional[Catalog] = None,
    context: Optional[ValidationContext] = None,
) -> List[Issue]:
    if context is None or not context.node_targets:
        return []
    issues: List[Issue] = []
    for gap in node_target_gaps(build, context.node_targets):
        issues.append(
            warn(
                "NODE_TARGET_SHORTFALL",
                f"nodes[{gap.node_index}]",
                f"Node {gap.node_index} has {gap.actual:g} {_UNITS[gap.metric]}, "
                f"short of the {gap.target:g} target",
            )
        )
    return issues
