from __future__ import annotations

from collections import Counter
from typing import List, Optional

from ...schemas import Build, Catalog
from ..types import Issue, ValidationContext, error


def bay_limit_rule(
    build: Build,
    catalog: Optional[Catalog] = None,
    context: Optional[ValidationContext] = None,
) -> List[Issue]:
    """Drive counts per bay form factor, whole-chassis and per node.

    A ``perNode`` bay group's ``count`` is the number of bays in each node, so
    the chassis-wide limit for it is ``count`` times the chassis node slots.
    """
    if build.chassis is None:
        return []
    chassis = build.chassis
    node_count = max(1, len(chassis.constraints.nodes))
    issues: List[Issue] = []

    totals = Counter(
        drive.constraints.form_factor for node in build.nodes for drive in node.storage
    )

    for bay in chassis.constraints.bays:
        installed = totals.get(bay.form_factor, 0)
        limit = bay.count * node_count if bay.per_node else bay.count
        if installed > limit:
            issues.append(
                error(
                    "BAY_LIMIT_EXCEEDED",
                    "chassis",
                    f"{installed} {bay.form_factor} drives exceeds {limit} available "
                    f"{bay.form_factor} bays",
                )
            )
        if not bay.per_node:
            continue
        for i, node in enumerate(build.nodes):
            in_node = sum(1 for d in node.storage if d.constraints.form_factor == bay.form_factor)
            if in_node > bay.count:
                issues.append(
                    error(
                        "BAY_PER_NODE_EXCEEDED",
                        f"nodes[{i}].storage",
                        f"Node {i} has {in_node} {bay.form_factor} drives, exceeds "
                        f"{bay.count} per-node limit",
                    )
                )

    for i, node in enumerate(build.nodes):
        for j, drive in enumerate(node.storage):
            groups = [b for b in chassis.constraints.bays if b.form_factor == drive.constraints.form_factor]
            if not groups or any(b.interface == drive.constraints.interface for b in groups):
                continue
            accepted = ", ".join(sorted({b.interface for b in groups}))
            issues.append(
                error(
                    "BAY_INTERFACE_MISMATCH",
                    f"nodes[{i}].storage[{j}]",
                    f"{drive.constraints.interface} drive incompatible with {accepted}-only "
                    f"{drive.constraints.form_factor} bay",
                )
            )
    return issues
