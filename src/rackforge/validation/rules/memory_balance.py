from __future__ import annotations

from typing import List, Optional

from ...schemas import Build, Catalog
from ..types import Issue, ValidationContext, warn


def _unique(values):
    seen = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen


def memory_balance_rule(
    build: Build,
    catalog: Optional[Catalog] = None,
    context: Optional[ValidationContext] = None,
) -> List[Issue]:
    """Population hints: uneven channels, mixed capacities, mixed speeds."""
    issues: List[Issue] = []
    for i, node in enumerate(build.nodes):
        if node.motherboard is None or not node.memory:
            continue
        policy = node.motherboard.constraints.memory
        sockets = len(node.cpus) or policy.sockets_count
        channels = policy.channels_per_socket * sockets
        count = len(node.memory)

        if channels > 0 and count % channels != 0:
            suggested = -(-count // channels) * channels
            issues.append(
                warn(
                    "MEMORY_UNBALANCED",
                    f"nodes[{i}].memory",
                    f"Memory not evenly distributed ({count} DIMMs across {channels} channels). "
                    f"Consider populating {suggested} DIMMs for optimal performance.",
                )
            )

        capacities = _unique(dimm.constraints.capacity_gb for dimm in node.memory)
        if len(capacities) > 1:
            issues.append(
                warn(
                    "MEMORY_MIXED_CAPACITY",
                    f"nodes[{i}].memory",
                    f"Mixing DIMM capacities ({'GB, '.join(str(c) for c in capacities)}GB) "
                    "may reduce maximum memory speed",
                )
            )

        speeds = _unique(dimm.constraints.speed_mt for dimm in node.memory)
        if len(speeds) > 1:
            issues.append(
                warn(
                    "MEMORY_SPEED_DOWNRATE",
                    f"nodes[{i}].memory",
                    f"Mixing memory speeds ({', '.join(str(s) for s in speeds)} MT/s). "
                    f"System will run at lowest speed: {min(speeds)} MT/s",
                )
            )
    return issues
