"""Builder 模块：配置编辑、成本规划与候选配件筛选"""

from .budget import CostRow, CostSummary, build_cost_rows, node_actuals, node_target_gaps, summarize_costs
from .picker import (
    available_controllers,
    available_network_adapters,
    compatible_cpus,
    compatible_memory,
    cpu_slot_limit,
    dimm_slot_limit,
)
from .store import BuildStore, create_empty_build

__all__ = [
    "BuildStore",
    "CostRow",
    "CostSummary",
    "available_controllers",
    "available_network_adapters",
    "build_cost_rows",
    "compatible_cpus",
    "compatible_memory",
    "cpu_slot_limit",
    "create_empty_build",
    "dimm_slot_limit",
    "node_actuals",
    "node_target_gaps",
    "summarize_costs",
]
