from __future__ import annotations

from typing import List, Optional

from ...schemas import Build, Catalog
from ..types import Issue, ValidationContext, error


def node_topology_rule(
    build: Build,
    catalog: Optional[Catalog] = None,
    context: Optional[ValidationContext] = None,
) -> List[Issue]:
    """Nodes against the chassis node slots they are bound to by position."""
    if build.chassis is None:
        return []
    slots = build.chassis.constraints.nodes
    issues: List[Issue] = []

    if len(build.nodes) > len(slots):
        issues.append(
            error(
                "NODE_COUNT_EXCEEDED",
                "nodes",
                f"{len(build.nodes)} nodes configured, chassis supports maximum {len(slots)}",
            )
        )

    for i, (node, slot) in enumerate(zip(build.nodes, slots)):
        if len(node.cpus) > slot.cpu_count:
            issues.append(
                error(
                    "NODE_CPU_COUNT_EXCEEDED",
                    f"nodes[{i}].cpus",
                    f"Node {i}: {len(node.cpus)} CPUs configured, chassis node supports "
                    f"maximum {slot.cpu_count}",
                )
            )
        if node.motherboard is not None and node.motherboard.form_factor not in slot.mobo_form_factors:
            issues.append(
                error(
                    "NODE_MOBO_FORM_FACTOR",
                    f"nodes[{i}].motherboard",
                    f"Node {i}: {node.motherboard.form_factor} motherboard incompatible "
                    f"(chassis accepts: {', '.join(slot.mobo_form_factors)})",
                )
            )
    return issues
