from __future__ import annotations

from typing import List, Optional

from ...schemas import Build, Catalog
from ..power import (
    calculate_power,
    calculate_psu_capacity_summary,
    required_power,
    single_node_build,
)
from ..types import Issue, ValidationContext, error, warn

HEADROOM_WARN_THRESHOLD = 0.2


def power_rule(
    build: Build,
    catalog: Optional[Catalog] = None,
    context: Optional[ValidationContext] = None,
) -> List[Issue]:
    summary = calculate_psu_capacity_summary(build)
    if summary is None:
        return []

    issues: List[Issue] = []
    if summary.total_power > summary.nameplate_capacity:
        issues.append(
            error(
                "POWER_EXCEEDED",
                "chassis.psu",
                f"Total power {summary.total_power}W exceeds PSU nameplate capacity "
                f"{summary.nameplate_capacity}W ({summary.installed_count}x {summary.max_watts}W)",
            )
        )

    if summary.effective_capacity <= 0 or summary.psu_count <= 0:
        issues.append(
            error(
                "POWER_REDUNDANCY_INVALID",
                "chassis.psu",
                f"{summary.mode} redundancy with {summary.psu_count} PSU(s) leaves no effective capacity",
            )
        )
        return issues

    if summary.required_power > summary.effective_capacity:
        issues.append(
            error(
                "POWER_REDUNDANCY_EXCEEDED",
                "chassis.psu",
                f"Required {summary.required_power}W (with 20% headroom) exceeds {summary.mode} "
                f"effective capacity {summary.effective_capacity}W",
            )
        )
    elif summary.headroom is not None and summary.headroom < HEADROOM_WARN_THRESHOLD:
        issues.append(
            warn(
                "POWER_HEADROOM_LOW",
                "chassis.psu",
                f"PSU headroom {summary.headroom * 100:.1f}% is below the recommended 20%",
            )
        )

    if summary.per_node:
        for i, node in enumerate(build.nodes):
            node_power = calculate_power(single_node_build(build, node))
            if node_power > summary.node_nameplate_capacity:
                issues.append(
                    error(
                        "POWER_NODE_EXCEEDED",
                        f"nodes[{i}]",
                        f"Node {i} draws {node_power}W, exceeding its PSU nameplate "
                        f"{summary.node_nameplate_capacity}W",
                    )
                )
            node_required = required_power(node_power)
            if node_required > summary.node_effective_capacity:
                issues.append(
                    error(
                        "POWER_NODE_REDUNDANCY_EXCEEDED",
                        f"nodes[{i}]",
                        f"Node {i} requires {node_required}W, exceeding {summary.mode} effective "
                        f"capacity {summary.node_effective_capacity}W",
                    )
                )
    return issues
