from __future__ import annotations

"""Recursive conversion of live workflow graphs into snapshot trees."""

import logging
from typing import Dict

from flowdag.dag import Workflow
from flowdag.errors import CyclicWorkflowError
from flowdag.models import (
    ConditionalSnapshot,
    ForeachSnapshot,
    NestedSnapshot,
    NoNestedSnapshot,
    NodeSnapshot,
    OperationSnapshot,
    SubWorkflowSnapshot,
    WorkflowSnapshot,
)
from flowdag.node import DYNAMIC_FORWARD_KEY, Node, Operation

logger = logging.getLogger("flowdag.snapshot")

CALLBACK_NAME_LENGTH = 8


def callback_display_name(url: str) -> str:
    """Return the trailing characters of a callback address used as its name.

    Addresses shorter than the display length are kept whole.
    """

    return url[-CALLBACK_NAME_LENGTH:]


def snapshot_operation(operation: Operation) -> OperationSnapshot:
    """Build the snapshot of one operation.

    The kind is resolved in priority order modifier, function, callback.
    """

    is_mod = operation.mod is not None
    is_function = not is_mod and bool(operation.function)
    is_callback = not is_mod and not is_function and bool(operation.callback_url)

    name = ""
    if is_function:
        name = operation.function
    elif is_callback:
        name = callback_display_name(operation.callback_url)

    return OperationSnapshot(
        is_mod=is_mod,
        is_function=is_function,
        is_callback=is_callback,
        name=name,
        has_response_handler=operation.on_response is not None,
        has_failure_handler=operation.on_failure is not None,
    )


class Snapshotter:
    """Walks a workflow graph and its nested workflows into a snapshot tree.

    The workflows on the current recursion path are tracked by identity so
    a workflow nested inside itself fails fast instead of recursing forever.
    """

    def __init__(self) -> None:
        self._path: list[Workflow] = []

    def workflow(self, workflow: Workflow) -> WorkflowSnapshot:
        if any(ancestor is workflow for ancestor in self._path):
            chain = " -> ".join(ancestor.id for ancestor in self._path)
            raise CyclicWorkflowError(f"Workflow '{workflow.id}' is nested inside itself: {chain}")

        self._path.append(workflow)
        try:
            nodes = {
                node_id: self.node(node)
                for node_id, node in (workflow.nodes or {}).items()
            }
        finally:
            self._path.pop()

        start, end = workflow.start_node, workflow.end_node
        logger.debug("Snapshotted workflow %s (%d nodes)", workflow.id, len(nodes))
        return WorkflowSnapshot(
            id=workflow.id,
            start_node=start.id if start is not None else "",
            end_node=end.id if end is not None else "",
            has_branch=workflow.has_branch,
            has_edge=workflow.has_edge,
            exec_only_dag=workflow.execution_only,
            nodes=nodes,
        )

    def node(self, node: Node) -> NodeSnapshot:
        dynamic_exec_only = False
        if node.get_condition() is not None or node.get_foreach() is not None:
            dynamic_exec_only = node.is_execution_only(DYNAMIC_FORWARD_KEY)

        childrens = tuple(child.id for child in node.children or ())
        child_exec_only: Dict[str, bool] = {
            child_id: node.is_execution_only(child_id) for child_id in childrens
        }

        return NodeSnapshot(
            id=node.id,
            index=node.index,
            unique_id=node.unique_id,
            is_dynamic=node.dynamic,
            has_aggregator=node.aggregator is not None,
            has_sub_aggregator=node.sub_aggregator is not None,
            in_degree=node.in_degree,
            out_degree=node.out_degree,
            nested=self.nested(node),
            dynamic_exec_only=dynamic_exec_only,
            operations=tuple(snapshot_operation(op) for op in node.operations or ()),
            childrens=childrens,
            child_exec_only=child_exec_only,
        )

    def nested(self, node: Node) -> NestedSnapshot:
        condition = node.get_condition()
        if condition is not None:
            return ConditionalSnapshot(
                workflows={
                    label: self.workflow(workflow)
                    for label, workflow in condition.workflows.items()
                }
            )

        loop = node.get_foreach()
        if loop is not None:
            return ForeachSnapshot(body=self.workflow(loop.body))

        sub_workflow = node.sub_workflow
        if sub_workflow is not None and not node.dynamic:
            return SubWorkflowSnapshot(workflow=self.workflow(sub_workflow))
        if sub_workflow is not None:
            logger.debug("Not expanding sub-workflow of dynamic node %s", node.unique_id)
        return NoNestedSnapshot()


def snapshot_workflow(workflow: Workflow) -> WorkflowSnapshot:
    """Return a fresh snapshot tree of ``workflow`` without validity fields."""

    return Snapshotter().workflow(workflow)


__all__ = [
    "CALLBACK_NAME_LENGTH",
    "Snapshotter",
    "callback_display_name",
    "snapshot_operation",
    "snapshot_workflow",
]
