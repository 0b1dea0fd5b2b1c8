from __future__ import annotations

from typing import List, Optional

from ...schemas import Build, Catalog
from ..types import Issue, ValidationContext, error


def cpu_memory_generation_rule(
    build: Build,
    catalog: Optional[Catalog] = None,
    context: Optional[ValidationContext] = None,
) -> List[Issue]:
    """Each DIMM's DDR generation must be supported by at least one installed CPU."""
    issues: List[Issue] = []
    for i, node in enumerate(build.nodes):
        if not node.cpus or not node.memory:
            continue
        for j, dimm in enumerate(node.memory):
            gen = dimm.constraints.ddr_gen
            if any(gen in cpu.constraints.mem_gen_supported for cpu in node.cpus):
                continue
            issues.append(
                error(
                    "CPU_MEMORY_GEN_UNSUPPORTED",
                    f"nodes[{i}].memory[{j}]",
                    f"DDR{gen} memory is not supported by {', '.join(c.name for c in node.cpus)}",
                )
            )
    return issues
