from __future__ import annotations

from typing import List, Optional

from ...schemas import Build, Catalog
from ..engine import run_validation
from ..types import Issue, ValidationContext, ValidationRule
from .bay_limit import bay_limit_rule
from .compatibility_graph import compatibility_graph_rule
from .cpu_memory_generation import cpu_memory_generation_rule
from .memory_balance import memory_balance_rule
from .memory_slot import memory_slot_rule
from .memory_type import memory_type_rule
from .node_target import node_target_rule
from .node_topology import node_topology_rule
from .power import power_rule
from .socket import socket_rule

DEFAULT_RULES: List[ValidationRule] = [
    socket_rule,
    memory_type_rule,
    memory_balance_rule,
    memory_slot_rule,
    bay_limit_rule,
    power_rule,
    node_topology_rule,
    compatibility_graph_rule,
    cpu_memory_generation_rule,
    node_target_rule,
]


def validate_build(
    build: Build,
    catalog: Optional[Catalog] = None,
    context: Optional[ValidationContext] = None,
) -> List[Issue]:
    return run_validation(build, DEFAULT_RULES, catalog, context)


__all__ = [
    "DEFAULT_RULES",
    "bay_limit_rule",
    "compatibility_graph_rule",
    "cpu_memory_generation_rule",
    "memory_balance_rule",
    "memory_slot_rule",
    "memory_type_rule",
    "node_target_rule",
    "node_topology_rule",
    "power_rule",
    "socket_rule",
    "validate_build",
]
