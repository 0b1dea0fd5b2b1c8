from __future__ import annotations

import threading
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from ..schemas import (
    CPU,
    Build,
    BuildBundle,
    Chassis,
    ControllerCard,
    CustomCostItem,
    Memory,
    Motherboard,
    NetworkAdapter,
    Node,
    NodePlanningTarget,
    Storage,
    SwitchPortProfile,
    Transceiver,
)

DEFAULT_CATALOG_VERSION = "2026-02-04"


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def create_empty_build(catalog_version: str = DEFAULT_CATALOG_VERSION) -> Build:
    now = utc_now()
    return Build(
        id=str(uuid.uuid4()),
        schema_version=1,
        catalog_version=catalog_version,
        chassis=None,
        nodes=[],
        created_at=now,
        updated_at=now,
    )


class BuildStore:
    """Holds the build being edited plus its planning state.

    Parts and builds are frozen models; every action swaps in a new ``Build``
    produced with ``model_copy`` and bumps ``updated_at``.
    """

    def __init__(self, build: Build | None = None, catalog_version: str = DEFAULT_CATALOG_VERSION):
        self.catalog_version = catalog_version
        self.build: Build = build or create_empty_build(catalog_version)
        self.price_overrides: Dict[str, float] = {}
        self.node_targets: Dict[int, NodePlanningTarget] = {}
        self.custom_costs: List[CustomCostItem] = []
        self._lock = threading.Lock()

    # === internals ===

    def _touch(self, **update) -> None:
        update["updated_at"] = utc_now()
        self.build = self.build.model_copy(update=update)

    def _update_node(self, node_index: int, fn: Callable[[Node], Node]) -> None:
        if not 0 <= node_index < len(self.build.nodes):
            raise IndexError(f"node index out of range: {node_index}")
        nodes = [fn(node) if idx == node_index else node for idx, node in enumerate(self.build.nodes)]
        self._touch(nodes=nodes)

    def _append(self, node_index: int, attr: str, part) -> None:
        with self._lock:
            self._update_node(
                node_index,
                lambda node: node.model_copy(update={attr: [*getattr(node, attr), part]}),
            )

    def _remove(self, node_index: int, attr: str, item_index: int) -> None:
        with self._lock:
            self._update_node(
                node_index,
                lambda node: node.model_copy(
                    update={attr: [p for i, p in enumerate(getattr(node, attr)) if i != item_index]}
                ),
            )

    # === chassis / node actions ===

    def set_chassis(self, chassis: Chassis) -> None:
        with self._lock:
            nodes = [Node(index=slot.index) for slot in chassis.constraints.nodes]
            self.node_targets = {
                node.index: self.node_targets.get(node.index) or NodePlanningTarget()
                for node in nodes
            }
            self._touch(chassis=chassis, nodes=nodes)

    def set_node_motherboard(self, node_index: int, motherboard: Optional[Motherboard]) -> None:
        with self._lock:
            self._update_node(
                node_index, lambda node: node.model_copy(update={"motherboard": motherboard})
            )

    def add_cpu(self, node_index: int, cpu: CPU) -> None:
        self._append(node_index, "cpus", cpu)

    def remove_cpu(self, node_index: int, cpu_index: int) -> None:
        self._remove(node_index, "cpus", cpu_index)

    def add_memory(self, node_index: int, memory: Memory) -> None:
        self._append(node_index, "memory", memory)

    def remove_memory(self, node_index: int, memory_index: int) -> None:
        self._remove(node_index, "memory", memory_index)

    def add_storage(self, node_index: int, storage: Storage) -> None:
        self._append(node_index, "storage", storage)

    def remove_storage(self, node_index: int, storage_index: int) -> None:
        self._remove(node_index, "storage", storage_index)

    def add_controller(self, node_index: int, controller: ControllerCard) -> None:
        self._append(node_index, "controllers", controller)

    def remove_controller(self, node_index: int, controller_index: int) -> None:
        self._remove(node_index, "controllers", controller_index)

    def add_network_adapter(self, node_index: int, adapter: NetworkAdapter) -> None:
        self._append(node_index, "network_adapters", adapter)

    def remove_network_adapter(self, node_index: int, adapter_index: int) -> None:
        self._remove(node_index, "network_adapters", adapter_index)

    def add_transceiver(self, node_index: int, transceiver: Transceiver) -> None:
        self._append(node_index, "transceivers", transceiver)

    def remove_transceiver(self, node_index: int, transceiver_index: int) -> None:
        self._remove(node_index, "transceivers", transceiver_index)

    def set_fabric_switches(self, switches: Optional[List[SwitchPortProfile]]) -> None:
        with self._lock:
            self._touch(fabric_switches=list(switches) if switches else None)

    # === planner actions ===

    def set_price_override(self, item_key: str, price: Optional[float]) -> None:
        """Set a manual unit price; ``None`` or a negative price clears it."""
        with self._lock:
            overrides = dict(self.price_overrides)
            if price is None or price != price or price < 0:
                overrides.pop(item_key, None)
            else:
                overrides[item_key] = price
            self.price_overrides = overrides
            self._touch()

    def set_node_target(
        self,
        node_index: int,
        cores: Optional[int] = None,
        memory_gb: Optional[int] = None,
        storage_tb: Optional[float] = None,
    ) -> NodePlanningTarget:
        patch = {
            key: value
            for key, value in (("cores", cores), ("memory_gb", memory_gb), ("storage_tb", storage_tb))
            if value is not None
        }
        with self._lock:
            current = self.node_targets.get(node_index) or NodePlanningTarget()
            target = current.model_copy(update=patch)
            self.node_targets = {**self.node_targets, node_index: target}
            self._touch()
        return target

    def add_custom_cost_item(self) -> CustomCostItem:
        item = CustomCostItem(id=f"custom-cost-{uuid.uuid4()}")
        with self._lock:
            self.custom_costs = [*self.custom_costs, item]
            self._touch()
        return item

    def update_custom_cost_item(self, item_id: str, **patch) -> None:
        with self._lock:
            patch.pop("id", None)
            self.custom_costs = [
                item.model_copy(update=patch) if item.id == item_id else item
                for item in self.custom_costs
            ]
            self._touch()

    def remove_custom_cost_item(self, item_id: str) -> None:
        with self._lock:
            self.custom_costs = [item for item in self.custom_costs if item.id != item_id]
            self._touch()

    # === build management ===

    def reset_build(self) -> None:
        with self._lock:
            self.build = create_empty_build(self.catalog_version)
            self.price_overrides = {}
            self.node_targets = {}
            self.custom_costs = []

    def load_build(self, build: Build) -> None:
        with self._lock:
            self.build = build
            self.node_targets = {node.index: NodePlanningTarget() for node in build.nodes}

    def load_bundle(self, bundle: BuildBundle) -> None:
        with self._lock:
            self.build = bundle.build
            self.price_overrides = dict(bundle.price_overrides)
            self.node_targets = dict(bundle.node_targets)
            self.custom_costs = list(bundle.custom_costs)

    def to_bundle(self) -> BuildBundle:
        return BuildBundle(
            build=self.build,
            price_overrides=dict(self.price_overrides),
            node_targets=dict(self.node_targets),
            custom_costs=list(self.custom_costs),
        )
