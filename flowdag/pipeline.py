from __future__ import annotations

"""Pipeline wrapper exposing the root workflow graph."""

from dataclasses import dataclass
from typing import Any, Dict

from flowdag.dag import Workflow


@dataclass
class Pipeline:
    """Holds the root workflow of a deployable pipeline."""

    workflow: Workflow

    @property
    def id(self) -> str:
        return self.workflow.id

    def get_workflow_graph(self) -> Workflow:
        """Return the root workflow graph."""

        return self.workflow

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Pipeline":
        """Build a pipeline from a declarative workflow definition."""

        return cls(workflow=Workflow.from_dict(data))


__all__ = ["Pipeline"]
