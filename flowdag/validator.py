from __future__ import annotations

"""Structural validation for workflow graphs."""

from typing import TYPE_CHECKING, Dict, Optional

from flowdag.errors import WorkflowValidationError

if TYPE_CHECKING:
    from flowdag.dag import Workflow


class WorkflowValidator:
    """Checks that a workflow, and every workflow nested in it, is a runnable DAG.

    The first problem found is raised as ``WorkflowValidationError``. Nested
    workflows are reported with the unique id of the node that owns them so
    the message points at the right place in the tree.
    """

    def validate(self, workflow: "Workflow") -> None:
        self._validate(workflow, ancestors=())

    def _validate(self, workflow: "Workflow", ancestors: tuple[int, ...]) -> None:
        if id(workflow) in ancestors:
            raise WorkflowValidationError(f"workflow '{workflow.id}' is nested inside itself")
        if not workflow.nodes:
            raise WorkflowValidationError(f"workflow '{workflow.id}' has no node")

        starts = [node.id for node in workflow.nodes.values() if node.in_degree == 0]
        if not starts:
            raise WorkflowValidationError(f"workflow '{workflow.id}' has no start node")
        if len(starts) > 1:
            raise WorkflowValidationError(
                f"workflow '{workflow.id}' has multiple start nodes: {', '.join(sorted(starts))}"
            )

        ends = [node.id for node in workflow.nodes.values() if node.out_degree == 0]
        if len(ends) > 1:
            raise WorkflowValidationError(
                f"workflow '{workflow.id}' has multiple end nodes: {', '.join(sorted(ends))}"
            )

        cycle_at = self._find_cycle(workflow)
        if cycle_at is not None:
            raise WorkflowValidationError(f"workflow '{workflow.id}' has a cycle at node '{cycle_at}'")

        path = ancestors + (id(workflow),)
        for node in workflow.nodes.values():
            condition = node.get_condition()
            if condition is not None and not condition.workflows:
                raise WorkflowValidationError(f"node '{node.unique_id}' is conditional but has no branch")
            for _, nested in node.nested_workflows():
                try:
                    self._validate(nested, path)
                except WorkflowValidationError as exc:
                    raise WorkflowValidationError(f"node '{node.unique_id}': {exc}") from exc

    @staticmethod
    def _find_cycle(workflow: "Workflow") -> Optional[str]:
        """Return the id of a node on a cycle, or None for an acyclic graph."""

        visiting, done = 1, 2
        marks: Dict[str, int] = {}
        for root in workflow.nodes.values():
            if root.id in marks:
                continue
            marks[root.id] = visiting
            stack = [(root, iter(root.children))]
            while stack:
                node, children = stack[-1]
                child = next(children, None)
                if child is None:
                    marks[node.id] = done
                    stack.pop()
                    continue
                state = marks.get(child.id)
                if state == visiting:
                    return child.id
                if state is None:
                    marks[child.id] = visiting
                    stack.append((child, iter(child.children)))
        return None


__all__ = ["WorkflowValidator", "WorkflowValidationError"]
