import math

import pytest
from factories import (
    make_build,
    make_chassis,
    make_controller,
    make_cpu,
    make_memory,
    make_motherboard,
    make_nic,
    make_node,
    make_storage,
)

from rackforge.builder import (
    BuildStore,
    available_controllers,
    available_network_adapters,
    build_cost_rows,
    compatible_cpus,
    compatible_memory,
    cpu_slot_limit,
    create_empty_build,
    dimm_slot_limit,
    node_actuals,
    node_target_gaps,
    summarize_costs,
)
from rackforge.schemas import BuildBundle, CustomCostItem, NodePlanningTarget


# === store ===

def test_empty_build_defaults():
    build = create_empty_build("2030-01-01")

    assert build.chassis is None
    assert build.nodes == []
    assert build.schema_version == 1
    assert build.catalog_version == "2030-01-01"
    assert build.created_at.endswith("Z")


def test_set_chassis_seeds_one_node_per_slot():
    store = BuildStore()
    store.set_chassis(make_chassis(node_count=4))

    assert [node.index for node in store.build.nodes] == [0, 1, 2, 3]
    assert set(store.node_targets) == {0, 1, 2, 3}


def test_part_actions_are_copy_on_write():
    store = BuildStore()
    store.set_chassis(make_chassis())
    before = store.build

    store.set_node_motherboard(0, make_motherboard())
    store.add_cpu(0, make_cpu(part_id="a"))
    store.add_cpu(0, make_cpu(part_id="b"))
    store.remove_cpu(0, 0)
    store.add_memory(0, make_memory())
    store.add_storage(0, make_storage())
    store.add_controller(0, make_controller())
    store.add_network_adapter(0, make_nic())

    node = store.build.nodes[0]
    assert [cpu.id for cpu in node.cpus] == ["b"]
    assert len(node.memory) == len(node.storage) == len(node.controllers) == 1
    assert len(node.network_adapters) == 1
    assert before.nodes[0].cpus == []
    assert before.nodes[0].motherboard is None


def test_part_actions_reject_unknown_node():
    store = BuildStore()
    with pytest.raises(IndexError):
        store.add_cpu(0, make_cpu())


def test_price_override_set_and_clear():
    store = BuildStore()
    store.set_price_override("cpu:a", 100)
    store.set_price_override("cpu:b", 50)
    assert store.price_overrides == {"cpu:a": 100, "cpu:b": 50}

    store.set_price_override("cpu:a", None)
    store.set_price_override("cpu:b", math.nan)
    assert store.price_overrides == {}

    store.set_price_override("cpu:a", -1)
    assert "cpu:a" not in store.price_overrides


def test_node_target_updates_are_partial():
    store = BuildStore()
    store.set_node_target(0, cores=64)
    target = store.set_node_target(0, memory_gb=512)

    assert target == NodePlanningTarget(cores=64, memory_gb=512, storage_tb=0)
    assert store.node_targets[0] == target


def test_custom_cost_items_lifecycle():
    store = BuildStore()
    item = store.add_custom_cost_item()
    assert item.id.startswith("custom-cost-")
    assert item.label == "Custom line item"

    store.update_custom_cost_item(item.id, label="Install", unit_price=250.0, quantity=2, id="other")
    assert store.custom_costs[0].id == item.id
    assert store.custom_costs[0].unit_price == 250.0

    store.remove_custom_cost_item(item.id)
    assert store.custom_costs == []


def test_bundle_round_trip_and_reset():
    store = BuildStore()
    store.set_chassis(make_chassis(node_count=2))
    store.set_price_override("chassis:chassis-1", 900)
    store.set_node_target(1, cores=32)
    bundle = store.to_bundle()

    other = BuildStore()
    other.load_bundle(bundle)
    assert other.to_bundle() == bundle

    other.reset_build()
    assert other.build.chassis is None
    assert other.price_overrides == {} and other.node_targets == {}


def test_load_build_resets_targets():
    store = BuildStore()
    store.set_node_target(0, cores=8)
    store.load_build(make_build(make_chassis(), [make_node(0), make_node(1)]))

    assert store.node_targets == {0: NodePlanningTarget(), 1: NodePlanningTarget()}


# === costs ===

def test_golden_build_cost_rows(valid_build):
    rows = build_cost_rows(valid_build)

    assert [(r.category, r.location, r.quantity) for r in rows] == [
        ("Chassis", "Global", 1),
        ("Motherboard", "Node 1", 1),
        ("CPU", "Node 1", 2),
        ("Memory", "Node 1", 16),
        ("Storage", "Node 1", 4),
        ("Controller", "Node 1", 1),
    ]
    assert rows[2].key == "cpu-0-intel-xeon-6430"
    assert rows[2].override_key == "cpu:intel-xeon-6430"


def test_cost_summary_applies_overrides_and_custom_items(valid_build):
    bundle = BuildBundle(
        build=valid_build,
        price_overrides={"cpu:intel-xeon-6430": 2000, "chassis:dell-r760-2u": 0},
        custom_costs=[CustomCostItem(id="c1", label="Rack & stack", unit_price=150, quantity=2)],
    )
    summary = summarize_costs(bundle)

    assert summary.hardware_total == 1800 + 2 * 2000 + 16 * 260 + 4 * 620 + 420
    assert summary.custom_total == 300
    assert summary.total == summary.hardware_total + 300

    wire = summary.to_dict()
    assert wire["rows"][0]["unitPrice"] == 0
    assert wire["rows"][0]["defaultUnitPrice"] == 3200
    assert wire["customCosts"][0]["unitPrice"] == 150


def test_node_actuals_and_gaps(valid_build):
    actual = node_actuals(valid_build)[0]
    assert (actual.cores, actual.memory_gb, actual.storage_tb) == (64, 1024, 15.36)

    gaps = node_target_gaps(valid_build, {0: NodePlanningTarget(cores=64, memory_gb=2048)})
    assert [(g.metric, g.target, g.actual) for g in gaps] == [("memoryGB", 2048, 1024)]
    assert node_target_gaps(valid_build, {}) == []


# === picker ===

def test_cpu_slot_limit_precedence():
    chassis = make_chassis(nodes=[{"index": 0, "moboFormFactors": ["EATX"], "cpuCount": 4}])
    assert cpu_slot_limit(make_build(None, [make_node()]), 0) == 2
    assert cpu_slot_limit(make_build(chassis, [make_node()]), 0) == 4

    board = make_motherboard(memory={"socketsCount": 1})
    assert cpu_slot_limit(make_build(chassis, [make_node(motherboard=board)]), 0) == 1


def test_dimm_slot_limit_takes_smaller_cap():
    board = make_motherboard()
    assert dimm_slot_limit(make_build(None, [make_node()]), 0) is None
    assert dimm_slot_limit(make_build(make_chassis(), [make_node(motherboard=board)]), 0) == 24
    chassis = make_chassis(maxDimmsPerNode=16)
    assert dimm_slot_limit(make_build(chassis, [make_node(motherboard=board)]), 0) == 16


def test_compatible_cpus_follow_board_socket():
    cpus = [make_cpu(socket="SP5", part_id="a"), make_cpu(socket="LGA4677", part_id="b")]
    assert len(compatible_cpus(make_build(None, [make_node()]), 0, cpus)) == 2

    build = make_build(None, [make_node(motherboard=make_motherboard(socket="LGA4677"))])
    assert [cpu.id for cpu in compatible_cpus(build, 0, cpus)] == ["b"]


def test_compatible_memory_checks_board_and_cpus():
    dimms = [
        make_memory(part_id="ddr5-r"),
        make_memory(dimm_type="UDIMM", part_id="ddr5-u"),
        make_memory(ddr_gen=4, part_id="ddr4-r"),
    ]
    build = make_build(None, [make_node(motherboard=make_motherboard())])
    assert [d.id for d in compatible_memory(build, 0, dimms)] == ["ddr5-r"]

    build = make_build(None, [make_node(cpus=[make_cpu(memGenSupported=[4])])])
    assert [d.id for d in compatible_memory(build, 0, dimms)] == ["ddr4-r"]


def test_ocp_cards_hidden_once_slots_are_full():
    chassis = make_chassis(nodes=[{"index": 0, "moboFormFactors": ["EATX"], "cpuCount": 2, "ocp3Slots": 1}])
    candidates = [make_nic(ocp3=True, part_id="ocp"), make_nic(part_id="pcie")]

    assert len(available_network_adapters(make_build(chassis, [make_node()]), 0, candidates)) == 2
    full = make_build(chassis, [make_node(network_adapters=[make_nic(ocp3=True)])])
    assert [n.id for n in available_network_adapters(full, 0, candidates)] == ["pcie"]


def test_controllers_limited_by_pcie_slots():
    board = make_motherboard(pcie={"gen": 5, "lanes": 128, "slots": [{"gen": 5, "lanes": 16, "formFactor": "FHFL"}]})
    candidates = [make_controller()]

    assert available_controllers(make_build(None, [make_node(motherboard=board)]), 0, candidates) == candidates
    full = make_build(None, [make_node(motherboard=board, controllers=[make_controller()])])
    assert available_controllers(full, 0, candidates) == []
