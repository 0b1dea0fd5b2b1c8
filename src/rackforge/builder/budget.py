"""
成本规划模块 - Cost Planning Module

把配置清单展开为按节点分组的物料行，应用手动价格覆盖并汇总自定义费用。
Expand a build into per-node bill-of-materials rows, apply manual price
overrides and total the custom line items.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence

from ..schemas import Build, BuildBundle, CatalogPart, CustomCostItem, NodePlanningTarget

# (override key prefix, row category, Node attribute)
_NODE_GROUPS = (
    ("cpu", "CPU", "cpus"),
    ("memory", "Memory", "memory"),
    ("storage", "Storage", "storage"),
    ("controller", "Controller", "controllers"),
    ("network", "Networking", "network_adapters"),
)


def override_key(kind: str, part_id: str) -> str:
    return f"{kind}:{part_id}"


@dataclass
class CostRow:
    """
    物料行 - Bill of Materials Row

    同一节点内相同 id 的配件合并为一行。
    Parts sharing an id within one node collapse into a single row.
    """

    key: str
    category: str
    location: str
    item: str
    quantity: int
    default_unit_price: float
    override_key: str

    def unit_price(self, overrides: Mapping[str, float]) -> float:
        return overrides.get(self.override_key, self.default_unit_price)

    def subtotal(self, overrides: Mapping[str, float]) -> float:
        return self.unit_price(overrides) * self.quantity

    def to_dict(self, overrides: Optional[Mapping[str, float]] = None) -> Dict[str, object]:
        overrides = overrides or {}
        return {
            "key": self.key,
            "category": self.category,
            "location": self.location,
            "item": self.item,
            "quantity": self.quantity,
            "defaultUnitPrice": self.default_unit_price,
            "overrideKey": self.override_key,
            "unitPrice": self.unit_price(overrides),
            "subtotal": self.subtotal(overrides),
        }


@dataclass
class CostSummary:
    """
    成本汇总 - Cost Summary

    字段说明 Field Descriptions:
    - rows: 硬件物料行 / hardware rows
    - hardware_total: 应用价格覆盖后的硬件合计 / hardware total after overrides
    - custom_total: 自定义费用合计 / custom line item total
    - total: 总计 / grand total
    """

    rows: List[CostRow] = field(default_factory=list)
    overrides: Dict[str, float] = field(default_factory=dict)
    custom_costs: List[CustomCostItem] = field(default_factory=list)
    hardware_total: float = 0
    custom_total: float = 0
    total: float = 0

    def to_dict(self) -> Dict[str, object]:
        return {
            "rows": [row.to_dict(self.overrides) for row in self.rows],
            "customCosts": [item.to_wire() for item in self.custom_costs],
            "hardwareTotal": self.hardware_total,
            "customTotal": self.custom_total,
            "total": self.total,
        }


def _describe(part: CatalogPart) -> str:
    return f"{part.vendor} {part.name}"


def build_cost_rows(build: Build) -> List[CostRow]:
    """
    生成物料行 - Build Cost Rows

    参数 Parameters:
        build: 当前配置 / the current build

    返回 Returns:
        机箱一行（全局），随后每个节点的主板与按 id 合并的配件行
        One global chassis row, then per node the motherboard and parts grouped by id
    """
    rows: List[CostRow] = []
    if build.chassis is not None:
        rows.append(
            CostRow(
                key=f"chassis-{build.chassis.id}",
                category="Chassis",
                location="Global",
                item=_describe(build.chassis),
                quantity=1,
                default_unit_price=build.chassis.msrp or 0,
                override_key=override_key("chassis", build.chassis.id),
            )
        )

    for node_idx, node in enumerate(build.nodes):
        location = f"Node {node_idx + 1}"
        if node.motherboard is not None:
            rows.append(
                CostRow(
                    key=f"mobo-{node_idx}-{node.motherboard.id}",
                    category="Motherboard",
                    location=location,
                    item=_describe(node.motherboard),
                    quantity=1,
                    default_unit_price=node.motherboard.msrp or 0,
                    override_key=override_key("motherboard", node.motherboard.id),
                )
            )
        for kind, category, attr in _NODE_GROUPS:
            grouped: Dict[str, CostRow] = {}
            for part in getattr(node, attr):
                row = grouped.get(part.id)
                if row is None:
                    grouped[part.id] = CostRow(
                        key=f"{kind}-{node_idx}-{part.id}",
                        category=category,
                        location=location,
                        item=_describe(part),
                        quantity=1,
                        default_unit_price=part.msrp or 0,
                        override_key=override_key(kind, part.id),
                    )
                else:
                    row.quantity += 1
            rows.extend(grouped.values())
    return rows


def summarize_costs(bundle: BuildBundle) -> CostSummary:
    rows = build_cost_rows(bundle.build)
    overrides = dict(bundle.price_overrides)
    hardware_total = sum(row.subtotal(overrides) for row in rows)
    custom_total = sum(item.unit_price * item.quantity for item in bundle.custom_costs)
    return CostSummary(
        rows=rows,
        overrides=overrides,
        custom_costs=list(bundle.custom_costs),
        hardware_total=hardware_total,
        custom_total=custom_total,
        total=hardware_total + custom_total,
    )


# === Node planning targets ===

@dataclass
class NodeActuals:
    cores: int
    memory_gb: int
    storage_tb: float


@dataclass
class TargetGap:
    node_index: int
    metric: str
    target: float
    actual: float


def node_actuals(build: Build) -> Dict[int, NodeActuals]:
    """Installed cores, memory and storage per node, keyed by ``Node.index``."""
    return {
        node.index: NodeActuals(
            cores=sum(cpu.cores for cpu in node.cpus),
            memory_gb=sum(dimm.constraints.capacity_gb for dimm in node.memory),
            storage_tb=round(sum(drive.constraints.capacity_tb for drive in node.storage), 2),
        )
        for node in build.nodes
    }


def node_target_gaps(
    build: Build, targets: Mapping[int, NodePlanningTarget]
) -> List[TargetGap]:
    """Every positive target the node does not yet meet; unset targets are ignored."""
    gaps: List[TargetGap] = []
    actuals = node_actuals(build)
    for node in build.nodes:
        target = targets.get(node.index)
        actual = actuals[node.index]
        if target is None:
            continue
        checks: Sequence = (
            ("cores", target.cores, actual.cores),
            ("memoryGB", target.memory_gb, actual.memory_gb),
            ("storageTB", target.storage_tb, actual.storage_tb),
        )
        for metric, wanted, have in checks:
            if wanted > 0 and have < wanted:
                gaps.append(TargetGap(node.index, metric, wanted, have))
    return gaps
