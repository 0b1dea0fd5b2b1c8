"""Power model: wattage draw, PSU redundancy and capacity.

Effective capacity is always derived from the installed PSU count and the
redundancy mode; nothing here is stored on the build.
"""

from __future__ import annotations

import logging
import math
from typing import Optional

from ..schemas import Build, Chassis, Node, PsuConstraints, PsuRedundancyMode, WireModel

logger = logging.getLogger(__name__)

DIMM_WATTS = 10
SYSTEM_OVERHEAD_WATTS = 75
HEADROOM_TARGET = 0.2


class PsuCapacitySummary(WireModel):
    mode: PsuRedundancyMode
    per_node: bool
    domains: int
    psu_count: int
    installed_count: int
    max_watts: int
    nameplate_capacity: int
    effective_count: int
    effective_capacity: int
    total_power: int
    required_power: int
    headroom: Optional[float] = None
    node_nameplate_capacity: int
    node_effective_capacity: int


def node_power(node: Node) -> int:
    watts = sum(cpu.constraints.tdp_w for cpu in node.cpus)
    watts += len(node.memory) * DIMM_WATTS
    watts += sum(drive.constraints.tdp_w for drive in node.storage)
    return watts


def calculate_power(build: Build) -> int:
    """Total draw in watts; the system overhead is charged once per build."""
    return sum(node_power(node) for node in build.nodes) + SYSTEM_OVERHEAD_WATTS


def single_node_build(build: Build, node: Node) -> Build:
    return build.model_copy(update={"nodes": [node]})


def required_power(total_power: int) -> int:
    return math.ceil(total_power * (1 + HEADROOM_TARGET))


def resolve_redundancy_mode(psu: PsuConstraints) -> PsuRedundancyMode:
    if psu.redundancy_mode:
        return psu.redundancy_mode
    return "N+1" if psu.redundancy else "N"


def calculate_effective_redundant_count(count: int, mode: PsuRedundancyMode) -> int:
    if mode == "N+1":
        return max(0, count - 1)
    if mode == "2N":
        return count // 2
    return count


def infer_per_node_psu(chassis: Chassis) -> bool:
    psu = chassis.constraints.psu
    if psu.per_node is not None:
        return psu.per_node
    # TODO: drop once every multi-node chassis in the catalog sets psu.perNode
    inferred = len(chassis.constraints.nodes) > 1 and all(
        bay.per_node for bay in chassis.constraints.bays
    )
    if inferred:
        logger.debug("chassis %s: per-node PSUs inferred from bay layout", chassis.id)
    return inferred


def calculate_psu_capacity_summary(build: Build) -> Optional[PsuCapacitySummary]:
    if build.chassis is None:
        return None

    chassis = build.chassis
    psu = chassis.constraints.psu
    mode = resolve_redundancy_mode(psu)
    per_node = infer_per_node_psu(chassis)
    domains = max(1, len(chassis.constraints.nodes)) if per_node else 1
    effective_count = calculate_effective_redundant_count(psu.count, mode)

    effective_capacity = psu.max_watts * effective_count * domains
    total = calculate_power(build)
    required = required_power(total)
    headroom = None
    if effective_capacity > 0:
        headroom = (effective_capacity - required) / effective_capacity

    return PsuCapacitySummary(
        mode=mode,
        per_node=per_node,
        domains=domains,
        psu_count=psu.count,
        installed_count=psu.count * domains,
        max_watts=psu.max_watts,
        nameplate_capacity=psu.max_watts * psu.count * domains,
        effective_count=effective_count,
        effective_capacity=effective_capacity,
        total_power=total,
        required_power=required,
        headroom=headroom,
        node_nameplate_capacity=psu.max_watts * psu.count,
        node_effective_capacity=psu.max_watts * effective_count,
    )
