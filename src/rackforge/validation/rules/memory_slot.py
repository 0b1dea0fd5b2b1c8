from __future__ import annotations

from typing import List, Optional

from ...schemas import Build, Catalog
from ..types import Issue, ValidationContext, error


def memory_slot_rule(
    build: Build,
    catalog: Optional[Catalog] = None,
    context: Optional[ValidationContext] = None,
) -> List[Issue]:
    if build.chassis is None:
        return []
    max_dimms = build.chassis.constraints.max_dimms_per_node
    if not max_dimms:
        return []

    issues: List[Issue] = []
    for i, node in enumerate(build.nodes):
        installed = len(node.memory)
        if installed <= max_dimms:
            continue
        # points at the first DIMM past the chassis cap
        issues.append(
            error(
                "DIMM_SLOT_LIMIT",
                f"nodes[{i}].memory[{max_dimms}]",
                f"DIMM limits exceeded: {installed} installed, max {max_dimms} allowed for this chassis.",
            )
        )
    return issues
