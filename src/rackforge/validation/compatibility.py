"""Cross-component compatibility checks.

The build is first indexed into a flat ``ConstraintGraph`` of installed parts,
each tagged with its kind, locator path and owning node. The node pass then
checks every node that has a motherboard. After that, a separate chassis pass
applies the 1U thermal policy.
"""

from __future__ import annotations

import enum
import logging
import math
from collections import defaultdict
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Set

from ..schemas import (
    CPU,
    Backplane,
    BayInterface,
    BifurcationMode,
    Build,
    ControllerCard,
    Memory,
    Motherboard,
    NetworkAdapter,
    Node,
    Storage,
    SwitchPortProfile,
    Transceiver,
)
from .inference import resolve_dimm_traits
from .types import Issue, error, warn

logger = logging.getLogger(__name__)

DEFAULT_1U_CPU_TDP_LIMIT_W = 250
DEFAULT_MEMORY_PER_CORE_GB = 8
BALANCED_SCORE_THRESHOLD = 65
MEMORY_PER_SPEC_INT_TARGET = 0.08
REGISTERED_ECC_BOARD_FORM_FACTORS = ("EATX", "SSI-EEB")


class ComponentKind(str, enum.Enum):
    CHASSIS = "chassis"
    MOTHERBOARD = "motherboard"
    CPU = "cpu"
    MEMORY = "memory"
    STORAGE = "storage"
    CONTROLLER = "controller"
    NETWORK_ADAPTER = "network-adapter"
    TRANSCEIVER = "transceiver"
    SWITCH = "switch"


class GraphComponent(NamedTuple):
    id: str
    kind: ComponentKind
    path: str
    node_index: Optional[int]
    value: Any


class ConstraintGraph:
    """Index of installed components; it never validates anything."""

    def __init__(self) -> None:
        self._components: List[GraphComponent] = []

    def __len__(self) -> int:
        return len(self._components)

    def add(self, component: GraphComponent) -> None:
        self._components.append(component)

    def all(self, kind: Optional[ComponentKind] = None) -> List[GraphComponent]:
        if kind is None:
            return list(self._components)
        return [c for c in self._components if c.kind is kind]

    def by_node(self, node_index: int, kind: ComponentKind) -> List[GraphComponent]:
        return [
            c for c in self._components if c.node_index == node_index and c.kind is kind
        ]

    def values(self, node_index: int, kind: ComponentKind) -> List[Any]:
        return [c.value for c in self.by_node(node_index, kind)]


# (kind, Node attribute, id fragment)
_NODE_COLLECTIONS = (
    (ComponentKind.CPU, "cpus", "cpu"),
    (ComponentKind.MEMORY, "memory", "memory"),
    (ComponentKind.STORAGE, "storage", "storage"),
    (ComponentKind.CONTROLLER, "controllers", "controller"),
    (ComponentKind.NETWORK_ADAPTER, "network_adapters", "nic"),
    (ComponentKind.TRANSCEIVER, "transceivers", "trx"),
)

_WIRE_NAMES = {"network_adapters": "networkAdapters"}


def build_constraint_graph(build: Build) -> ConstraintGraph:
    graph = ConstraintGraph()

    if build.chassis is not None:
        graph.add(GraphComponent("chassis", ComponentKind.CHASSIS, "chassis", None, build.chassis))

    for node_index, node in enumerate(build.nodes):
        if node.motherboard is not None:
            graph.add(
                GraphComponent(
                    f"node-{node_index}-motherboard",
                    ComponentKind.MOTHERBOARD,
                    f"nodes[{node_index}].motherboard",
                    node_index,
                    node.motherboard,
                )
            )
        for kind, attr, fragment in _NODE_COLLECTIONS:
            wire_name = _WIRE_NAMES.get(attr, attr)
            for item_index, part in enumerate(getattr(node, attr)):
                graph.add(
                    GraphComponent(
                        f"node-{node_index}-{fragment}-{item_index}",
                        kind,
                        f"nodes[{node_index}].{wire_name}[{item_index}]",
                        node_index,
                        part,
                    )
                )

    for switch_index, switch in enumerate(build.fabric_switches or []):
        graph.add(
            GraphComponent(
                f"switch-{switch_index}",
                ComponentKind.SWITCH,
                f"fabricSwitches[{switch_index}]",
                None,
                switch,
            )
        )

    logger.debug("constraint graph for build %s: %d component(s)", build.id, len(graph))
    return graph


# === Balanced configuration score ===

class BalanceScore(NamedTuple):
    score: int
    memory_per_core_gb: float
    target_memory_per_core_gb: float


def compute_balance_score(cpus: Sequence[CPU], memory: Sequence[Memory]) -> BalanceScore:
    """Score 0-100 from memory per core (70 points) and memory per SPECint (30 points).

    CPUs without a ``specIntRate`` count as ``cores * 10``.
    """
    total_cores = sum(cpu.cores for cpu in cpus)
    total_memory_gb = sum(dimm.constraints.capacity_gb for dimm in memory)
    target = max(
        [DEFAULT_MEMORY_PER_CORE_GB]
        + [
            cpu.constraints.recommended_memory_per_core_gb or DEFAULT_MEMORY_PER_CORE_GB
            for cpu in cpus
        ]
    )
    memory_per_core = total_memory_gb / total_cores if total_cores > 0 else 0.0
    memory_ratio_score = min(memory_per_core / target, 1) * 70

    aggregate_spec_int = sum(
        cpu.constraints.spec_int_rate
        if cpu.constraints.spec_int_rate is not None
        else cpu.cores * 10
        for cpu in cpus
    )
    memory_per_spec_int = total_memory_gb / aggregate_spec_int if aggregate_spec_int > 0 else 0.0
    perf_score = min(memory_per_spec_int / MEMORY_PER_SPEC_INT_TARGET, 1) * 30

    return BalanceScore(
        score=int(_round_half_up(min(100.0, memory_ratio_score + perf_score))),
        memory_per_core_gb=_round_half_up(memory_per_core, 2),
        target_memory_per_core_gb=target,
    )


def _round_half_up(value: float, digits: int = 0) -> float:
    scale = 10 ** digits
    return math.floor(value * scale + 0.5) / scale


def _format_number(value: float) -> str:
    return f"{value:g}"


# === Node pass ===

def _check_socket_policy(
    node_index: int, motherboard: Motherboard, cpus: Sequence[CPU]
) -> List[Issue]:
    issues: List[Issue] = []
    cpu_count = len(cpus)
    capacity = motherboard.constraints.memory.sockets_count
    if cpu_count > capacity:
        issues.append(
            error(
                "SOCKET_POPULATION_EXCEEDED",
                f"nodes[{node_index}].cpus",
                f"Configured {cpu_count} CPU(s), motherboard supports up to {capacity} socket(s).",
            )
        )
    board_counts = motherboard.constraints.supported_socket_counts
    if board_counts is not None and cpu_count not in board_counts:
        issues.append(
            error(
                "MOTHERBOARD_SOCKET_COUNT_UNSUPPORTED",
                f"nodes[{node_index}].cpus",
                f"CPU population {cpu_count} is unsupported by motherboard socket policy.",
            )
        )
    for cpu_index, cpu in enumerate(cpus):
        counts = cpu.constraints.supported_socket_counts
        if counts is not None and cpu_count not in counts:
            issues.append(
                error(
                    "CPU_SOCKET_COUNT_UNSUPPORTED",
                    f"nodes[{node_index}].cpus[{cpu_index}]",
                    f"{cpu.name} does not support {cpu_count}-socket configurations.",
                )
            )
    return issues


def _check_cpu_requirements(
    node_index: int, motherboard: Motherboard, cpus: Sequence[CPU], memory: Sequence[Memory]
) -> List[Issue]:
    issues: List[Issue] = []
    traits = [resolve_dimm_traits(dimm) for dimm in memory]

    for cpu in cpus:
        if cpu.constraints.requires_registered_ecc and memory:
            for dimm_index, dimm_traits in enumerate(traits):
                path = f"nodes[{node_index}].memory[{dimm_index}]"
                if dimm_traits.buffering not in ("Registered", "LoadReduced"):
                    issues.append(
                        error(
                            "CPU_REQUIRES_REGISTERED_MEMORY",
                            path,
                            f"{cpu.name} requires Registered/LRDIMM memory.",
                        )
                    )
                if dimm_traits.ecc != "ECC":
                    issues.append(
                        error("CPU_REQUIRES_ECC_MEMORY", path, f"{cpu.name} requires ECC DIMMs.")
                    )
            if motherboard.form_factor not in REGISTERED_ECC_BOARD_FORM_FACTORS:
                issues.append(
                    error(
                        "CPU_FORM_FACTOR_RESTRICTED",
                        f"nodes[{node_index}].motherboard",
                        f"{cpu.name} requires E-ATX or SSI-EEB motherboard form factors.",
                    )
                )

        preferred = cpu.constraints.preferred_board_form_factors

        if preferred is not None and motherboard.form_factor not in preferred:
            issues.append(
                error(
                    "CPU_BOARD_FORM_FACTOR_MISMATCH",
                    f"nodes[{node_index}].motherboard",
                    f"{cpu.name} expects motherboard form factor: {', '.join(preferred)}.",
                )
            )
    return issues


def _check_dimm_policy(
    node_index: int, motherboard: Motherboard, memory: Sequence[Memory]
) -> List[Issue]:
    issues: List[Issue] = []
    policy = motherboard.constraints.memory
    for dimm_index, dimm in enumerate(memory):
        traits = resolve_dimm_traits(dimm)
        path = f"nodes[{node_index}].memory[{dimm_index}]"
        if policy.buffering_supported is not None and traits.buffering not in policy.buffering_supported:
            issues.append(
                error(
                    "MEMORY_BUFFERING_MISMATCH",
                    path,
                    f"{traits.buffering} DIMM is not supported by motherboard buffering policy.",
                )
            )
        if policy.ecc_support is not None and traits.ecc not in policy.ecc_support:
            issues.append(
                error(
                    "MEMORY_ECC_MISMATCH",
                    path,
                    f"{traits.ecc} DIMM is not supported by motherboard ECC policy.",
                )
            )
        if (
            policy.rank_density_supported is not None
            and traits.rank_density not in policy.rank_density_supported
        ):
            issues.append(
                error(
                    "MEMORY_RANK_DENSITY_MISMATCH",
                    path,
                    f"Rank density {traits.rank_density} is not supported by motherboard.",
                )
            )
        voltage_range = policy.voltage_range
        if voltage_range is not None:
            voltage = dimm.constraints.voltage
            if not voltage_range.min <= voltage <= voltage_range.max:
                issues.append(
                    error(
                        "MEMORY_VOLTAGE_MISMATCH",
                        path,
                        f"DIMM voltage {_format_number(voltage)}V is outside supported range "
                        f"{_format_number(voltage_range.min)}-{_format_number(voltage_range.max)}V.",
                    )
                )
    return issues


def _bifurcation_modes(motherboard: Motherboard) -> Set[BifurcationMode]:
    modes: Set[BifurcationMode] = set()
    for profile in motherboard.constraints.pcie.bifurcation or []:
        modes.update(profile.modes)
    return modes


def _check_storage_requirements(
    node_index: int,
    motherboard: Motherboard,
    storage: Sequence[Storage],
    controllers: Sequence[ControllerCard],
) -> List[Issue]:
    issues: List[Issue] = []
    modes = _bifurcation_modes(motherboard)
    controller_types = {c.constraints.type for c in controllers}
    connectors = {port.connector for c in controllers for port in c.constraints.ports}

    for drive_index, drive in enumerate(storage):
        props = drive.constraints
        path = f"nodes[{node_index}].storage[{drive_index}]"
        if props.required_bifurcation_mode and props.required_bifurcation_mode not in modes:
            issues.append(
                error(
                    "PCIE_BIFURCATION_UNSUPPORTED",
                    path,
                    f"Drive requires PCIe bifurcation mode {props.required_bifurcation_mode}, "
                    "which is unavailable on the selected motherboard.",
                )
            )
        if props.required_controller_types and not controller_types.intersection(
            props.required_controller_types
        ):
            issues.append(
                error(
                    "STORAGE_CONTROLLER_TYPE_REQUIRED",
                    path,
                    f"Drive requires controller type {', '.join(props.required_controller_types)}.",
                )
            )
        if props.required_controller_connector and props.required_controller_connector not in connectors:
            issues.append(
                error(
                    "STORAGE_CONTROLLER_CONNECTOR_REQUIRED",
                    path,
                    f"Drive requires controller connector {props.required_controller_connector}.",
                )
            )
    return issues


def drives_per_port(interface: BayInterface) -> int:
    return 1 if interface == "NVMe" else 4


def _find_backplane(backplanes: Sequence[Backplane], drive: Storage) -> Optional[Backplane]:
    for backplane in backplanes:
        if (
            backplane.bay_form_factor == drive.constraints.form_factor
            and drive.constraints.interface in backplane.supported_interfaces
        ):
            return backplane
    return None


def _check_backplane_pathing(
    node_index: int,
    backplanes: Sequence[Backplane],
    storage: Sequence[Storage],
    controllers: Sequence[ControllerCard],
) -> List[Issue]:
    issues: List[Issue] = []
    drive_counts: Dict[str, int] = defaultdict(int)
    ports_per_drive: Dict[str, int] = {}

    for drive_index, drive in enumerate(storage):
        props = drive.constraints
        path = f"nodes[{node_index}].storage[{drive_index}]"
        backplane = _find_backplane(backplanes, drive)
        if backplane is None:
            issues.append(
                error(
                    "BACKPLANE_PATH_MISSING",
                    path,
                    f"No compatible backplane path exists for {props.form_factor} {props.interface} drive.",
                )
            )
            continue

        if props.required_caddy_types is not None and not set(props.required_caddy_types).intersection(
            backplane.caddy_types
        ):
            issues.append(
                error(
                    "CADDY_MISMATCH",
                    path,
                    "Drive caddy requirement does not match chassis backplane caddies.",
                )
            )

        for backplane_path in backplane.pathing:
            if backplane_path.interface == props.interface:
                key = f"{backplane_path.connector}:{props.interface}"
                drive_counts[key] += 1
                ports_per_drive[key] = drives_per_port(props.interface)
                break

    supply: Dict[str, int] = defaultdict(int)
    for controller in controllers:
        for port in controller.constraints.ports:
            supply[f"{port.connector}:{port.interface}"] += port.count

    max_drives = sum(c.constraints.max_drives or 0 for c in controllers)
    if max_drives > 0 and len(storage) > max_drives:
        issues.append(
            error(
                "CONTROLLER_DRIVE_LIMIT_EXCEEDED",
                f"nodes[{node_index}].storage",
                f"Selected controllers support {max_drives} drives total, "
                f"but {len(storage)} drives are configured.",
            )
        )

    for key, count in drive_counts.items():
        # integer ceil keeps 4 SAS drives at exactly one port
        required = -(-count // ports_per_drive[key])
        available = supply.get(key, 0)
        if required > available:
            issues.append(
                error(
                    "BACKPLANE_CONTROLLER_PORT_SHORTAGE",
                    f"nodes[{node_index}].storage",
                    f"Backplane path requires {required} {key} port(s), but only {available} "
                    "are provided by selected HBA/RAID controllers.",
                )
            )
    return issues


def _check_network(
    node_index: int,
    ocp3_slots: int,
    nics: Sequence[NetworkAdapter],
    transceivers: Sequence[Transceiver],
    switches: Sequence[SwitchPortProfile],
) -> List[Issue]:
    issues: List[Issue] = []
    ocp_cards = [nic for nic in nics if nic.constraints.ocp3_compatible]
    if len(ocp_cards) > ocp3_slots:
        issues.append(
            error(
                "OCP3_SLOT_EXCEEDED",
                f"nodes[{node_index}].networkAdapters",
                f"Selected {len(ocp_cards)} OCP 3.0 card(s), but chassis node provides "
                f"{ocp3_slots} OCP 3.0 slot(s).",
            )
        )

    for nic_index, nic in enumerate(nics):
        if not nic.constraints.requires_transceiver:
            continue
        for port in nic.constraints.ports:
            match = next(
                (
                    trx
                    for trx in transceivers
                    if trx.constraints.connector == port.connector
                    and trx.constraints.speed_gbps == port.speed_gbps
                ),
                None,
            )
            if match is None:
                issues.append(
                    error(
                        "TRANSCEIVER_REQUIRED",
                        f"nodes[{node_index}].networkAdapters[{nic_index}]",
                        f"No compatible transceiver selected for {port.connector} "
                        f"{_format_number(port.speed_gbps)}GbE port.",
                    )
                )
                continue
            if switches and not any(
                match.constraints.media in switch.supported_transceiver_media
                and any(
                    sw_port.connector == port.connector and sw_port.speed_gbps == port.speed_gbps
                    for sw_port in switch.ports
                )
                for switch in switches
            ):
                issues.append(
                    error(
                        "TRANSCEIVER_SWITCH_MISMATCH",
                        f"nodes[{node_index}].transceivers",
                        f"Transceiver {match.name} ({match.constraints.media}) is incompatible "
                        "with configured switch port profiles.",
                    )
                )
    return issues


def _check_balance(node_index: int, cpus: Sequence[CPU], memory: Sequence[Memory]) -> List[Issue]:
    result = compute_balance_score(cpus, memory)
    if result.score >= BALANCED_SCORE_THRESHOLD:
        return []
    return [
        warn(
            "BALANCED_CONFIGURATION_LOW",
            f"nodes[{node_index}]",
            f"Balanced Configuration score {result.score}/100 (memory/core "
            f"{_format_number(result.memory_per_core_gb)}GB vs target "
            f"{_format_number(result.target_memory_per_core_gb)}GB).",
        )
    ]


def evaluate_node_constraints(build: Build, graph: ConstraintGraph) -> List[Issue]:
    issues: List[Issue] = []
    chassis = build.chassis
    backplanes = (chassis.constraints.backplanes or []) if chassis is not None else []
    slots = chassis.constraints.nodes if chassis is not None else []
    switches: List[SwitchPortProfile] = [c.value for c in graph.all(ComponentKind.SWITCH)]

    for node_index, node in enumerate(build.nodes):
        motherboard = node.motherboard
        if motherboard is None:
            continue

        cpus: List[CPU] = graph.values(node_index, ComponentKind.CPU)
        memory: List[Memory] = graph.values(node_index, ComponentKind.MEMORY)
        storage: List[Storage] = graph.values(node_index, ComponentKind.STORAGE)
        controllers: List[ControllerCard] = graph.values(node_index, ComponentKind.CONTROLLER)
        nics: List[NetworkAdapter] = graph.values(node_index, ComponentKind.NETWORK_ADAPTER)
        transceivers: List[Transceiver] = graph.values(node_index, ComponentKind.TRANSCEIVER)

        issues.extend(_check_socket_policy(node_index, motherboard, cpus))
        issues.extend(_check_cpu_requirements(node_index, motherboard, cpus, memory))
        issues.extend(_check_dimm_policy(node_index, motherboard, memory))
        issues.extend(_check_storage_requirements(node_index, motherboard, storage, controllers))
        if backplanes:
            issues.extend(_check_backplane_pathing(node_index, backplanes, storage, controllers))
        if nics:
            slot = slots[node_index] if node_index < len(slots) else None
            ocp3_slots = (slot.ocp3_slots or 0) if slot is not None else 0
            issues.extend(_check_network(node_index, ocp3_slots, nics, transceivers, switches))
        issues.extend(_check_balance(node_index, cpus, memory))

    return issues


# === Chassis pass ===

def evaluate_chassis_thermals(build: Build) -> List[Issue]:
    chassis = build.chassis
    if chassis is None or chassis.form_factor != "1U":
        return []

    thermal = chassis.constraints.thermal
    limits = (thermal.max_cpu_tdp_per_socket_w if thermal else None) or {}
    limit = limits.get("1U", DEFAULT_1U_CPU_TDP_LIMIT_W)
    passive_sockets = set((thermal.supports_passive_heatsink_sockets if thermal else None) or [])

    issues: List[Issue] = []
    for node_index, node in enumerate(build.nodes):
        for cpu_index, cpu in enumerate(node.cpus):
            if cpu.constraints.tdp_w <= limit:
                continue
            # CPUs that need a passive heatsink are rejected even on listed sockets
            if cpu.constraints.socket not in passive_sockets or cpu.constraints.requires_passive_heatsink:
                issues.append(
                    error(
                        "THERMAL_1U_CPU_UNSUPPORTED",
                        f"nodes[{node_index}].cpus[{cpu_index}]",
                        f"1U chassis thermal policy blocks {cpu.name} ({cpu.constraints.tdp_w}W) "
                        f"above the {limit}W per-socket limit without explicit passive heatsink support.",
                    )
                )
    return issues


def run_compatibility_check(build: Build) -> List[Issue]:
    if build.chassis is None:
        return []
    graph = build_constraint_graph(build)
    return evaluate_node_constraints(build, graph) + evaluate_chassis_thermals(build)


def node_balance_score(node: Node) -> Optional[BalanceScore]:
    if node.motherboard is None:
        return None
    return compute_balance_score(node.cpus, node.memory)
