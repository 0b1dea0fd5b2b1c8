"""
候选配件筛选模块 - Candidate Part Filtering Module

为某个节点筛选可安装的配件，并计算 CPU / 内存 / PCIe / OCP 槽位上限。
Filter the parts a node can accept and compute its CPU, DIMM, PCIe and OCP slot limits.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from ..schemas import CPU, Build, ControllerCard, Memory, NetworkAdapter, Node, NodeSlotConstraints

DEFAULT_CPU_SLOTS = 2


def _slot_for(build: Build, node_index: int) -> Optional[NodeSlotConstraints]:
    if build.chassis is None:
        return None
    slots = build.chassis.constraints.nodes
    return slots[node_index] if node_index < len(slots) else None


def cpu_slot_limit(build: Build, node_index: int) -> int:
    """
    CPU 插槽上限 - CPU Slot Limit

    优先使用主板插槽数，其次是机箱节点槽位的 cpuCount，否则为 2。
    The motherboard's socket count wins, then the chassis slot's cpuCount, else 2.
    """
    node = build.nodes[node_index]
    if node.motherboard is not None:
        return node.motherboard.constraints.memory.sockets_count
    slot = _slot_for(build, node_index)
    if slot is not None:
        return slot.cpu_count
    return DEFAULT_CPU_SLOTS


def dimm_slot_limit(build: Build, node_index: int) -> Optional[int]:
    """
    DIMM 插槽上限 - DIMM Slot Limit

    取机箱 maxDimmsPerNode 与主板插槽总数中较小者；两者都未知时返回 None。
    The smaller of the chassis maxDimmsPerNode and the motherboard slot total;
    None when neither is known.
    """
    node = build.nodes[node_index]
    limits = []
    if build.chassis is not None and build.chassis.constraints.max_dimms_per_node is not None:
        limits.append(build.chassis.constraints.max_dimms_per_node)
    if node.motherboard is not None:
        memory = node.motherboard.constraints.memory
        limits.append(memory.channels_per_socket * memory.dimms_per_channel * memory.sockets_count)
    return min(limits) if limits else None


def pcie_card_limit(node: Node) -> Optional[int]:
    if node.motherboard is None:
        return None
    return len(node.motherboard.constraints.pcie.slots)


def ocp3_slot_limit(build: Build, node_index: int) -> int:
    slot = _slot_for(build, node_index)
    return (slot.ocp3_slots or 0) if slot is not None else 0


def compatible_cpus(build: Build, node_index: int, cpus: Sequence[CPU]) -> List[CPU]:
    """
    可选 CPU - Compatible CPUs

    未选主板时全部可选；否则只保留插槽类型匹配的 CPU。
    Every CPU when no motherboard is chosen, otherwise those matching its socket.
    """
    board = build.nodes[node_index].motherboard
    if board is None:
        return list(cpus)
    return [cpu for cpu in cpus if cpu.constraints.socket == board.constraints.socket]


def compatible_memory(build: Build, node_index: int, memory: Sequence[Memory]) -> List[Memory]:
    """
    可选内存 - Compatible Memory

    参数 Parameters:
        build: 当前配置 / the current build
        node_index: 节点下标 / node position
        memory: 候选内存 / candidate DIMMs

    返回 Returns:
        与主板代数、类型匹配，且至少被一颗已装 CPU 支持的内存
        DIMMs matching the board's generation and type and supported by at least one installed CPU
    """
    node = build.nodes[node_index]
    board = node.motherboard
    result = []
    for dimm in memory:
        props = dimm.constraints
        if board is not None and (
            props.ddr_gen != board.constraints.memory.ddr_gen
            or props.type not in board.constraints.memory.dimm_types
        ):
            continue
        if node.cpus and not any(props.ddr_gen in cpu.constraints.mem_gen_supported for cpu in node.cpus):
            continue
        result.append(dimm)
    return result


def available_network_adapters(
    build: Build, node_index: int, adapters: Sequence[NetworkAdapter]
) -> List[NetworkAdapter]:
    """Adapters that still fit; OCP 3.0 cards need a free OCP slot on the chassis node."""
    installed = build.nodes[node_index].network_adapters
    used = sum(1 for nic in installed if nic.constraints.ocp3_compatible)
    free = ocp3_slot_limit(build, node_index) - used
    return [nic for nic in adapters if not nic.constraints.ocp3_compatible or free > 0]


def available_controllers(
    build: Build, node_index: int, controllers: Sequence[ControllerCard]
) -> List[ControllerCard]:
    node = build.nodes[node_index]
    limit = pcie_card_limit(node)
    if limit is not None and len(node.controllers) >= limit:
        return []
    return list(controllers)
