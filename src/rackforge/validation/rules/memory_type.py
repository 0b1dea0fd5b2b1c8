from __future__ import annotations

from typing import List, Optional

from ...schemas import Build, Catalog
from ..types import Issue, ValidationContext, error


def memory_type_rule(
    build: Build,
    catalog: Optional[Catalog] = None,
    context: Optional[ValidationContext] = None,
) -> List[Issue]:
    """DDR generation, DIMM type, slot count and capacity against the motherboard."""
    issues: List[Issue] = []
    for i, node in enumerate(build.nodes):
        if node.motherboard is None or not node.memory:
            continue
        policy = node.motherboard.constraints.memory
        types = []

        for j, dimm in enumerate(node.memory):
            props = dimm.constraints
            path = f"nodes[{i}].memory[{j}]"
            if props.ddr_gen != policy.ddr_gen:
                issues.append(
                    error(
                        "MEMORY_DDR_MISMATCH",
                        path,
                        f"DDR{props.ddr_gen} memory incompatible with DDR{policy.ddr_gen}-only motherboard",
                    )
                )
            if props.type not in policy.dimm_types:
                issues.append(
                    error(
                        "MEMORY_TYPE_NOT_SUPPORTED",
                        path,
                        f"{props.type} not supported (motherboard accepts: {', '.join(policy.dimm_types)})",
                    )
                )
            if props.type not in types:
                types.append(props.type)

        if "RDIMM" in types and "LRDIMM" in types:
            issues.append(
                error(
                    "MEMORY_TYPE_MIXED",
                    f"nodes[{i}].memory",
                    f"Cannot mix RDIMM and LRDIMM in the same system (found: {', '.join(types)})",
                )
            )

        total_slots = policy.channels_per_socket * policy.dimms_per_channel * policy.sockets_count
        if len(node.memory) > total_slots:
            issues.append(
                error(
                    "MEMORY_SLOT_EXCEEDED",
                    f"nodes[{i}].memory",
                    f"{len(node.memory)} DIMMs exceeds {total_slots} available slots",
                )
            )

        total_gb = sum(dimm.constraints.capacity_gb for dimm in node.memory)
        if total_gb > policy.max_total_gb:
            issues.append(
                error(
                    "MEMORY_CAPACITY_EXCEEDED",
                    f"nodes[{i}].memory",
                    f"Total {total_gb}GB exceeds maximum {policy.max_total_gb}GB",
                )
            )

        for j, dimm in enumerate(node.memory):
            if dimm.constraints.capacity_gb > policy.max_per_dimm_gb:
                issues.append(
                    error(
                        "MEMORY_DIMM_CAPACITY_EXCEEDED",
                        f"nodes[{i}].memory[{j}]",
                        f"{dimm.constraints.capacity_gb}GB DIMM exceeds max "
                        f"{policy.max_per_dimm_gb}GB per DIMM",
                    )
                )
    return issues
