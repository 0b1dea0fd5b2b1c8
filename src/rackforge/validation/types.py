from __future__ import annotations

from typing import Dict, List, Literal, Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field

from ..schemas import Build, Catalog, NodePlanningTarget


Severity = Literal["error", "warn"]


class Issue(BaseModel):
    """One validation finding.

    code: stable machine-readable identifier
    path: locator into the Build, e.g. ``nodes[1].memory[2]``
    """

    model_config = ConfigDict(frozen=True)

    code: str
    severity: Severity
    path: str
    message: str


class ValidationContext(BaseModel):
    node_targets: Dict[int, NodePlanningTarget] = Field(default_factory=dict)


class ValidationRule(Protocol):
    def __call__(
        self,
        build: Build,
        catalog: Optional[Catalog] = None,
        context: Optional[ValidationContext] = None,
    ) -> List[Issue]: ...


def error(code: str, path: str, message: str) -> Issue:
    return Issue(code=code, severity="error", path=path, message=message)


def warn(code: str, path: str, message: str) -> Issue:
    return Issue(code=code, severity="warn", path=path, message=message)
