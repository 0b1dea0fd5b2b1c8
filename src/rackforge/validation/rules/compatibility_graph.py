from __future__ import annotations

from typing import List, Optional

from ...schemas import Build, Catalog
from ..compatibility import run_compatibility_check
from ..types import Issue, ValidationContext


def compatibility_graph_rule(
    build: Build,
    catalog: Optional[Catalog] = None,
    context: Optional[ValidationContext] = None,
) -> List[Issue]:
    return run_compatibility_check(build)
