from __future__ import annotations

"""Unit tests for workflow building, loading and structural validation."""

import pytest

from flowdag.dag import Workflow
from flowdag.errors import (
    CyclicWorkflowError,
    DuplicateEdgeError,
    DuplicateNodeError,
    UnknownNodeError,
    WorkflowAlreadyNestedError,
    WorkflowValidationError,
)
from flowdag.node import DYNAMIC_FORWARD_KEY, SubWorkflow


def build_workflow_payload() -> dict:
    return {
        "id": "orders",
        "nodes": [
            {"id": "receive", "operations": [{"function": "parse-order"}]},
            {
                "id": "items",
                "foreach": {
                    "id": "per-item",
                    "nodes": [{"id": "reserve", "operations": [{"callback-url": "http://stock/reserve01"}]}],
                },
            },
            {
                "id": "route",
                "conditions": {
                    "express": {"id": "fast", "nodes": [{"id": "ship"}]},
                    "standard": {"id": "slow", "nodes": [{"id": "queue"}]},
                },
                "execution-only": True,
            },
            {"id": "done", "aggregator": True, "operations": [{"modifier": True, "failure-handler": True}]},
        ],
        "edges": [
            {"from": "receive", "to": "items"},
            {"from": "items", "to": "route"},
            {"from": "route", "to": "done", "execution-only": True},
        ],
    }


def test_add_node_assigns_index_and_unique_id() -> None:
    workflow = Workflow(id="main")
    first = workflow.add_node("a")
    second = workflow.add_node("b")

    assert (first.index, first.unique_id) == (1, "main.a")
    assert (second.index, second.unique_id) == (2, "main.b")


def test_duplicate_node_is_rejected() -> None:
    workflow = Workflow(id="main")
    workflow.add_node("a")

    with pytest.raises(DuplicateNodeError):
        workflow.add_node("a")


def test_add_edge_updates_degrees_and_forwarding() -> None:
    workflow = Workflow(id="main")
    workflow.add_node("a")
    workflow.add_node("b")
    workflow.add_edge("a", "b")

    a, b = workflow.get_node("a"), workflow.get_node("b")
    assert a.children == [b]
    assert (a.out_degree, b.in_degree) == (1, 1)
    assert a.is_execution_only("b") is False
    assert workflow.has_edge is True
    assert workflow.execution_only is False

    with pytest.raises(DuplicateEdgeError):
        workflow.add_edge("a", "b")


def test_execution_only_edge_leaves_no_forwarding_entry() -> None:
    workflow = Workflow(id="main")
    workflow.add_node("a")
    workflow.add_node("b")
    workflow.add_edge("a", "b", execution_only=True)

    assert "b" not in workflow.get_node("a").forwarding
    assert workflow.get_node("a").is_execution_only("b") is True
    assert workflow.execution_only is True


def test_unknown_node_raises() -> None:
    workflow = Workflow(id="main")

    with pytest.raises(UnknownNodeError, match="'ghost' not found"):
        workflow.add_edge("ghost", "other")


def test_nesting_a_workflow_inside_itself_is_rejected() -> None:
    workflow = Workflow(id="main")
    workflow.add_node("a")

    with pytest.raises(CyclicWorkflowError):
        workflow.add_sub_workflow("a", workflow)


def test_from_dict_builds_nested_structure() -> None:
    workflow = Workflow.from_dict(build_workflow_payload())

    assert list(workflow.nodes) == ["receive", "items", "route", "done"]
    assert workflow.has_branch is True
    assert workflow.execution_only is True
    assert workflow.start_node.id == "receive"
    assert workflow.end_node.id == "done"

    items = workflow.get_node("items")
    assert items.dynamic is True
    assert items.get_foreach().body.id == "orders.items.foreach"
    assert items.forwarding[DYNAMIC_FORWARD_KEY] is not None

    route = workflow.get_node("route")
    assert set(route.get_condition().workflows) == {"express", "standard"}
    assert route.is_execution_only(DYNAMIC_FORWARD_KEY) is True

    done = workflow.get_node("done")
    assert done.aggregator is not None
    assert done.operations[0].mod is not None
    assert done.operations[0].on_failure is not None

    workflow.validate()


def test_from_dict_rejects_two_nested_workflows() -> None:
    payload = {
        "id": "bad",
        "nodes": [
            {
                "id": "a",
                "foreach": {"id": "x", "nodes": [{"id": "n"}]},
                "sub-workflow": {"id": "y", "nodes": [{"id": "m"}]},
            }
        ],
    }

    with pytest.raises(ValueError, match="more than one nested workflow"):
        Workflow.from_dict(payload)


def test_from_dict_rejects_unknown_edge_nodes() -> None:
    payload = {"id": "bad", "nodes": [{"id": "a"}], "edges": [{"from": "a", "to": "b"}]}

    with pytest.raises(ValueError, match="unknown nodes"):
        Workflow.from_dict(payload)


def test_validator_rejects_empty_workflow() -> None:
    with pytest.raises(WorkflowValidationError, match="has no node"):
        Workflow(id="empty").validate()


def test_validator_rejects_multiple_start_nodes() -> None:
    workflow = Workflow(id="main")
    for node_id in ("a", "b", "c"):
        workflow.add_node(node_id)
    workflow.add_edge("a", "c")
    workflow.add_edge("b", "c")

    with pytest.raises(WorkflowValidationError, match="multiple start nodes: a, b"):
        workflow.validate()


def test_validator_rejects_multiple_end_nodes() -> None:
    workflow = Workflow(id="main")
    for node_id in ("a", "b", "c"):
        workflow.add_node(node_id)
    workflow.add_edge("a", "b")
    workflow.add_edge("a", "c")

    with pytest.raises(WorkflowValidationError, match="multiple end nodes: b, c"):
        workflow.validate()


def test_validator_rejects_cycles() -> None:
    workflow = Workflow(id="main")
    for node_id in ("a", "b", "c"):
        workflow.add_node(node_id)
    workflow.add_edge("a", "b")
    workflow.add_edge("b", "c")
    workflow.add_edge("c", "b")

    with pytest.raises(WorkflowValidationError, match="has a cycle at node 'b'"):
        workflow.validate()


def test_validator_reports_nested_failures_with_owner() -> None:
    workflow = Workflow(id="main")
    workflow.add_node("check")
    workflow.add_conditional_branch("check", {"yes": Workflow(id="empty")})

    with pytest.raises(WorkflowValidationError) as excinfo:
        workflow.validate()
    assert str(excinfo.value) == "node 'main.check': workflow 'main.check.yes' has no node"


def test_validator_rejects_conditional_without_branches() -> None:
    workflow = Workflow(id="main")
    workflow.add_node("check")
    workflow.add_conditional_branch("check", {})

    with pytest.raises(WorkflowValidationError, match="has no branch"):
        workflow.validate()


def test_validator_rejects_self_nesting() -> None:
    workflow = Workflow(id="main")
    workflow.add_node("again")
    workflow.get_node("again").nested = SubWorkflow(workflow=workflow)

    with pytest.raises(WorkflowValidationError, match="nested inside itself"):
        workflow.validate()


def test_same_workflow_cannot_back_two_branches() -> None:
    shared = Workflow(id="shared")
    shared.add_node("task")
    workflow = Workflow(id="cond")
    workflow.add_node("check")

    with pytest.raises(WorkflowAlreadyNestedError, match="more than one branch"):
        workflow.add_conditional_branch("check", {"left": shared, "right": shared})

    assert workflow.get_node("check").get_condition() is None
    assert shared.id == "shared"
    assert shared.get_node("task").unique_id == "shared.task"


def test_nested_workflow_cannot_be_attached_twice() -> None:
    body = Workflow(id="body")
    body.add_node("task")
    workflow = Workflow(id="main")
    workflow.add_node("first")
    workflow.add_node("second")
    workflow.add_foreach_branch("first", body)

    with pytest.raises(WorkflowAlreadyNestedError, match="already nested under 'main.first'"):
        workflow.add_sub_workflow("second", body)

    assert body.get_node("task").unique_id == "main.first.foreach.task"
    assert workflow.get_node("second").sub_workflow is None


def test_rebasing_keeps_deeply_nested_ids_unique() -> None:
    inner = Workflow(id="inner")
    inner.add_node("leaf")
    middle = Workflow(id="middle")
    middle.add_node("wrap")
    middle.add_sub_workflow("wrap", inner)
    workflow = Workflow(id="main")
    workflow.add_node("outer")
    workflow.add_sub_workflow("outer", middle)

    assert inner.get_node("leaf").unique_id == "main.outer.sub.wrap.sub.leaf"
