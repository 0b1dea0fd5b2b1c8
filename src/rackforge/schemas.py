from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


SocketType = Literal["LGA4677", "SP5", "LGA4094", "LGA4926"]
Platform = Literal["Intel", "AMD", "Ampere"]
MemoryType = Literal["RDIMM", "LRDIMM", "ECC-UDIMM", "UDIMM"]
MemoryGen = Literal[4, 5]
SocketCount = Literal[1, 2, 4]
ChassisFormFactor = Literal["1U", "2U", "4U", "Blade"]
MotherboardFormFactor = Literal["ATX", "EATX", "SSI-EEB", "Proprietary"]
BayFormFactor = Literal['2.5"', '3.5"', "E1.S", "E1.L", "E3.S", "E3.L", "M.2", "U.2", "U.3"]
BayInterface = Literal["SATA", "SAS", "NVMe"]
MemoryBuffering = Literal["Registered", "Unbuffered", "LoadReduced"]
EccSupport = Literal["ECC", "Non-ECC"]
RankDensity = Literal["SR", "DR", "QR"]
ControllerType = Literal["HBA", "RAID", "Tri-Mode"]
ControllerConnector = Literal["SFF-8643", "SFF-8654", "SlimSAS", "OCuLink", "U.2"]
BifurcationMode = Literal["x8x8", "x4x4x4x4", "x8x4x4", "x4x4"]
NetworkConnector = Literal["RJ45", "SFP+", "SFP28", "QSFP28", "OCP3.0"]
TransceiverMedia = Literal["SR", "LR", "DAC", "AOC"]
PsuRedundancyMode = Literal["N", "N+1", "2N"]
CostCategory = Literal["Network", "Accessories", "Service", "Other"]

PartCategory = Literal[
    "chassis",
    "motherboards",
    "cpus",
    "memory",
    "storage",
    "controllers",
    "networkAdapters",
    "transceivers",
    "switches",
]


class WireModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class PartModel(WireModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# === Chassis ===

class NodeSlotConstraints(PartModel):
    index: int
    mobo_form_factors: List[MotherboardFormFactor] = Field(default_factory=list)
    cpu_count: SocketCount = 1
    ocp3_slots: Optional[int] = None


class BayGroup(PartModel):
    form_factor: BayFormFactor
    interface: BayInterface
    count: int
    hot_swap: bool = True
    per_node: Optional[bool] = None


class PsuConstraints(PartModel):
    max_watts: int
    count: int
    redundancy: bool = False
    redundancy_mode: Optional[PsuRedundancyMode] = None
    per_node: Optional[bool] = None


class RiserSlot(PartModel):
    slot_index: int
    lanes: int
    gen: int


class BackplanePath(PartModel):
    interface: BayInterface
    connector: ControllerConnector
    ports: int
    lanes_per_port: int


class Backplane(PartModel):
    id: str
    name: str
    bay_form_factor: BayFormFactor
    bay_count: int
    caddy_types: List[str] = Field(default_factory=list)
    supported_interfaces: List[BayInterface] = Field(default_factory=list)
    pathing: List[BackplanePath] = Field(default_factory=list)
    compatible_controller_types: List[ControllerType] = Field(default_factory=list)


class RailKit(PartModel):
    chassis_depth_mm: int
    rail_kit_min_depth_mm: int
    rail_kit_max_depth_mm: int
    rail_kit_required: Optional[bool] = None


class ThermalPolicy(PartModel):
    # keyed by chassis form factor, e.g. {"1U": 270}
    max_cpu_tdp_per_socket_w: Optional[Dict[str, int]] = Field(
        default=None, alias="maxCpuTdpPerSocketW"
    )
    supports_passive_heatsink_sockets: Optional[List[SocketType]] = None
    supported_passive_heatsink_skus: Optional[List[str]] = None


class NetworkFabric(PartModel):
    supported_port_types: List[NetworkConnector] = Field(default_factory=list)
    supported_transceiver_media: List[TransceiverMedia] = Field(default_factory=list)


class ChassisConstraints(PartModel):
    nodes: List[NodeSlotConstraints] = Field(default_factory=list)
    bays: List[BayGroup] = Field(default_factory=list)
    psu: PsuConstraints
    risers: Optional[List[RiserSlot]] = None
    backplanes: Optional[List[Backplane]] = None
    rail_kit: Optional[RailKit] = None
    thermal: Optional[ThermalPolicy] = None
    network_fabric: Optional[NetworkFabric] = None
    max_dimms_per_node: Optional[int] = None


# === Motherboard ===

class VoltageRange(PartModel):
    min: float
    max: float


class MotherboardMemory(PartModel):
    ddr_gen: MemoryGen
    dimm_types: List[MemoryType] = Field(default_factory=list)
    sockets_count: SocketCount = 1
    channels_per_socket: int
    dimms_per_channel: int
    max_per_dimm_gb: int = Field(alias="maxPerDimmGB")
    max_total_gb: int = Field(alias="maxTotalGB")
    buffering_supported: Optional[List[MemoryBuffering]] = None
    ecc_support: Optional[List[EccSupport]] = None
    rank_density_supported: Optional[List[RankDensity]] = None
    voltage_range: Optional[VoltageRange] = None


class SocketLanes(PartModel):
    socket_index: int
    lanes: int
    gen: int


class BifurcationProfile(PartModel):
    slot_label: str
    source_lanes: int
    modes: List[BifurcationMode] = Field(default_factory=list)


class PcieSlot(PartModel):
    gen: int
    lanes: int
    form_factor: str


class MotherboardPcie(PartModel):
    gen: int
    lanes: int
    lanes_by_socket: Optional[List[SocketLanes]] = None
    bifurcation: Optional[List[BifurcationProfile]] = None
    slots: List[PcieSlot] = Field(default_factory=list)


class StorageHeader(PartModel):
    type: Literal["SATA", "SAS"]
    count: int


class ControllerHeader(PartModel):
    connector: ControllerConnector
    count: int


class OnboardSlot(PartModel):
    type: BayFormFactor
    interface: BayInterface
    pcie_gen: int
    lanes: int
    count: int


class MotherboardStorage(PartModel):
    headers: List[StorageHeader] = Field(default_factory=list)
    controller_headers: Optional[List[ControllerHeader]] = None
    onboard_slots: List[OnboardSlot] = Field(default_factory=list)


class NetworkPort(PartModel):
    connector: NetworkConnector
    speed_gbps: float
    count: int = 1


class MotherboardNetwork(PartModel):
    onboard_ports: List[NetworkPort] = Field(default_factory=list)
    ocp3_slots: Optional[int] = None


class DepthRange(PartModel):
    min: int
    max: int


class MotherboardMechanical(PartModel):
    rack_depth_range_mm: Optional[DepthRange] = None


class MotherboardConstraints(PartModel):
    socket: SocketType
    supported_socket_counts: Optional[List[SocketCount]] = None
    memory: MotherboardMemory
    pcie: MotherboardPcie
    storage: MotherboardStorage = Field(default_factory=MotherboardStorage)
    network: Optional[MotherboardNetwork] = None
    mechanical: Optional[MotherboardMechanical] = None


# === CPU / Memory / Storage ===

class CPUConstraints(PartModel):
    socket: SocketType
    supported_socket_counts: Optional[List[SocketCount]] = None
    mem_gen_supported: List[MemoryGen] = Field(default_factory=list)
    supported_buffering: Optional[List[MemoryBuffering]] = None
    supported_ecc_modes: Optional[List[EccSupport]] = None
    supported_rank_density: Optional[List[RankDensity]] = None
    tdp_w: int = Field(alias="tdpW")
    max_mem_speed_mt: int = Field(default=0, alias="maxMemSpeedMT")
    lanes: int = 0
    pcie_lane_map: Optional[List[SocketLanes]] = None
    spec_int_rate: Optional[float] = None
    recommended_memory_per_core_gb: Optional[float] = Field(
        default=None, alias="recommendedMemoryPerCoreGB"
    )
    requires_registered_ecc: Optional[bool] = None
    preferred_board_form_factors: Optional[List[MotherboardFormFactor]] = None
    requires_passive_heatsink: Optional[bool] = None
    supported_rack_units: Optional[List[ChassisFormFactor]] = None


class MemoryConstraints(PartModel):
    ddr_gen: MemoryGen
    type: MemoryType
    buffering: Optional[MemoryBuffering] = None
    ecc: Optional[EccSupport] = None
    speed_mt: int = Field(alias="speedMT")
    capacity_gb: int = Field(alias="capacityGB")
    ranks: int = 1
    rank_density: Optional[RankDensity] = None
    voltage: float = 1.1


class StorageConstraints(PartModel):
    form_factor: BayFormFactor
    interface: BayInterface
    capacity_tb: float = Field(alias="capacityTB")
    tdp_w: int = Field(alias="tdpW")
    required_controller_types: Optional[List[ControllerType]] = None
    required_controller_connector: Optional[ControllerConnector] = None
    required_backplane_interface: Optional[BayInterface] = None
    required_caddy_types: Optional[List[str]] = None
    required_bifurcation_mode: Optional[BifurcationMode] = None


# === Controllers / Networking ===

class ControllerPort(PartModel):
    connector: ControllerConnector
    interface: BayInterface
    count: int


class ControllerConstraints(PartModel):
    type: ControllerType
    ports: List[ControllerPort] = Field(default_factory=list)
    max_drives: Optional[int] = None
    pcie_lanes: Optional[int] = None


class NetworkAdapterConstraints(PartModel):
    ports: List[NetworkPort] = Field(default_factory=list)
    requires_transceiver: Optional[bool] = None
    ocp3_compatible: Optional[bool] = None


class TransceiverConstraints(PartModel):
    connector: NetworkConnector
    speed_gbps: float
    media: TransceiverMedia


# === Catalog parts ===

class CatalogPart(PartModel):
    id: str
    sku: str
    vendor: str
    name: str
    msrp: Optional[float] = None
    currency: Optional[str] = None
    last_updated: Optional[str] = None


class Chassis(CatalogPart):
    form_factor: ChassisFormFactor
    constraints: ChassisConstraints


class Motherboard(CatalogPart):
    form_factor: MotherboardFormFactor
    constraints: MotherboardConstraints


class CPU(CatalogPart):
    family: str = ""
    platform: Platform
    cores: int
    threads: int
    base_clock: float
    boost_clock: Optional[float] = None
    constraints: CPUConstraints


class Memory(CatalogPart):
    constraints: MemoryConstraints


class Storage(CatalogPart):
    type: Literal["SSD", "HDD", "NVMe"]
    constraints: StorageConstraints
    read_speed_m_bps: Optional[int] = Field(default=None, alias="readSpeedMBps")
    write_speed_m_bps: Optional[int] = Field(default=None, alias="writeSpeedMBps")


class ControllerCard(CatalogPart):
    constraints: ControllerConstraints


class NetworkAdapter(CatalogPart):
    constraints: NetworkAdapterConstraints


class Transceiver(CatalogPart):
    constraints: TransceiverConstraints


class SwitchPortProfile(PartModel):
    id: str
    name: str
    ports: List[NetworkPort] = Field(default_factory=list)
    supported_transceiver_media: List[TransceiverMedia] = Field(default_factory=list)


class Catalog(PartModel):
    version: str
    last_updated: str = ""
    chassis: List[Chassis] = Field(default_factory=list)
    motherboards: List[Motherboard] = Field(default_factory=list)
    cpus: List[CPU] = Field(default_factory=list)
    memory: List[Memory] = Field(default_factory=list)
    storage: List[Storage] = Field(default_factory=list)
    controllers: List[ControllerCard] = Field(default_factory=list)
    network_adapters: List[NetworkAdapter] = Field(default_factory=list)
    transceivers: List[Transceiver] = Field(default_factory=list)
    switches: List[SwitchPortProfile] = Field(default_factory=list)


# === Build state ===

class Node(PartModel):
    index: int
    motherboard: Optional[Motherboard] = None
    cpus: List[CPU] = Field(default_factory=list)
    memory: List[Memory] = Field(default_factory=list)
    storage: List[Storage] = Field(default_factory=list)
    controllers: List[ControllerCard] = Field(default_factory=list)
    network_adapters: List[NetworkAdapter] = Field(default_factory=list)
    transceivers: List[Transceiver] = Field(default_factory=list)


class Build(PartModel):
    id: str
    schema_version: int = 1
    catalog_version: str = ""
    chassis: Optional[Chassis] = None
    nodes: List[Node] = Field(default_factory=list)
    fabric_switches: Optional[List[SwitchPortProfile]] = None
    created_at: str = ""
    updated_at: str = ""

    def to_wire(self) -> dict:
        # chassis/motherboard nulls are part of the persisted shape
        data = super().to_wire()
        data.setdefault("chassis", None)
        for node in data.get("nodes", []):
            node.setdefault("motherboard", None)
        return data


class NodePlanningTarget(WireModel):
    cores: int = 0
    memory_gb: int = Field(default=0, alias="memoryGB")
    storage_tb: float = Field(default=0, alias="storageTB")


class CustomCostItem(WireModel):
    id: str
    label: str = "Custom line item"
    category: CostCategory = "Other"
    quantity: int = 1
    unit_price: float = 0


class BuildBundle(WireModel):
    build: Build
    price_overrides: Dict[str, float] = Field(default_factory=dict)
    node_targets: Dict[int, NodePlanningTarget] = Field(default_factory=dict)
    custom_costs: List[CustomCostItem] = Field(default_factory=list)
    share_code: Optional[str] = None

    def to_wire(self) -> dict:
        data = self.model_dump(by_alias=True, exclude_none=True)
        data["build"] = self.build.to_wire()
        return data


class SaveBuildResponse(WireModel):
    id: str
    share_code: str
    url: str
