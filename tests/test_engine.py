import pytest
from factories import make_build, make_chassis, make_cpu, make_memory, make_motherboard, make_node

from rackforge.schemas import NodePlanningTarget
from rackforge.validation import (
    DEFAULT_RULES,
    Issue,
    ValidationContext,
    categorize_issues,
    error,
    group_issues_by_node,
    run_validation,
    validate_build,
    warn,
)


def test_default_rule_order():
    assert [rule.__name__ for rule in DEFAULT_RULES] == [
        "socket_rule",
        "memory_type_rule",
        "memory_balance_rule",
        "memory_slot_rule",
        "bay_limit_rule",
        "power_rule",
        "node_topology_rule",
        "compatibility_graph_rule",
        "cpu_memory_generation_rule",
        "node_target_rule",
    ]


def test_issues_are_concatenated_in_rule_order():
    first = error("A", "chassis", "first")
    second = warn("B", "nodes[0]", "second")
    issues = run_validation(make_build(), [lambda *_: [first], lambda *_: [], lambda *_: [second]])

    assert issues == [first, second]


def test_failing_rule_aborts_validation():
    def broken(build, catalog=None, context=None):
        raise RuntimeError("rule bug")

    with pytest.raises(RuntimeError, match="rule bug"):
        run_validation(make_build(), [broken])


def test_categorize_splits_by_severity():
    issues = [error("A", "chassis", "a"), warn("B", "chassis", "b"), error("C", "nodes", "c")]
    summary = categorize_issues(issues)

    assert [i.code for i in summary.errors] == ["A", "C"]
    assert [i.code for i in summary.warnings] == ["B"]
    assert summary.has_errors and summary.has_warnings
    assert not categorize_issues([]).has_errors


def test_group_issues_by_leading_node_index():
    issues = [
        error("A", "nodes[0].cpus[1]", "a"),
        error("B", "nodes[12]", "b"),
        error("C", "nodes", "c"),
        error("D", "chassis.psu", "d"),
        error("E", "fabricSwitches[0]", "e"),
        error("F", "nodes[0].memory", "f"),
    ]
    groups = group_issues_by_node(issues)

    assert {k: [i.code for i in v] for k, v in groups.by_node.items()} == {0: ["A", "F"], 12: ["B"]}
    assert [i.code for i in groups.global_issues] == ["C", "D", "E"]


def test_issue_is_immutable():
    issue = error("A", "chassis", "a")
    with pytest.raises(Exception):
        issue.code = "B"
    assert isinstance(issue, Issue)


def test_golden_build_has_no_issues(valid_build):
    assert validate_build(valid_build) == []


def test_validation_is_idempotent():
    node = make_node(
        motherboard=make_motherboard(),
        cpus=[make_cpu(socket="LGA4677"), make_cpu()],
        memory=[make_memory(dimm_type="LRDIMM"), make_memory(ddr_gen=4)],
    )
    build = make_build(make_chassis(form_factor="1U", maxDimmsPerNode=1), [node])

    first = validate_build(build)
    assert first
    assert validate_build(build) == first


def test_node_targets_feed_shortfall_warnings(valid_build):
    context = ValidationContext(
        node_targets={0: NodePlanningTarget(cores=96, memory_gb=1024, storage_tb=20)}
    )
    issues = validate_build(valid_build, context=context)

    assert [(i.code, i.severity) for i in issues] == [
        ("NODE_TARGET_SHORTFALL", "warn"),
        ("NODE_TARGET_SHORTFALL", "warn"),
    ]
    assert issues[0].message == "Node 0 has 64 cores, short of the 96 target"
    assert issues[1].message == "Node 0 has 15.36 TB storage, short of the 20 target"
