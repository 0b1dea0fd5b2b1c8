from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol

from langchain_core.tools import tool
from pydantic import BaseModel, Field

from .schemas import Build, Catalog
from .validation.engine import categorize_issues, run_validation
from .validation.power import calculate_power, calculate_psu_capacity_summary
from .validation.rules import DEFAULT_RULES


class CatalogRepoProtocol(Protocol):
    def catalog(self) -> Catalog: ...
    def search(self, query: str = "", category: Optional[str] = None, limit: int = 20) -> list: ...


class SearchPartsInput(BaseModel):
    query: str = Field(default="", description="Free-text match on vendor, name or id")
    category: Optional[str] = Field(
        default=None,
        description="Catalog category such as chassis, cpus, memory, storage, networkAdapters",
    )
    limit: int = Field(default=10, ge=1, le=100)


class BuildInput(BaseModel):
    build: Dict[str, Any] = Field(description="Build document in its camelCase wire shape")


class Toolset:
    def __init__(self, repo: CatalogRepoProtocol):
        self.repo = repo

    def register(self):
        repo = self.repo

        @tool("search_parts", args_schema=SearchPartsInput)
        def search_parts(query: str = "", category: Optional[str] = None, limit: int = 10) -> List[dict]:
            """Search the hardware catalog by text and optional category."""
            return [part.to_wire() for part in repo.search(query, category, limit)]

        @tool("estimate_power", args_schema=BuildInput)
        def estimate_power(build: Dict[str, Any]) -> int:
            """Estimate total power draw in watts, including the fixed system overhead."""
            return calculate_power(Build.model_validate(build))

        @tool("check_build", args_schema=BuildInput)
        def check_build(build: Dict[str, Any]) -> dict:
            """Run every compatibility rule against a build and report its issues."""
            issues = run_validation(Build.model_validate(build), DEFAULT_RULES, repo.catalog())
            summary = categorize_issues(issues)
            return {
                "valid": not summary.has_errors,
                "errors": [issue.model_dump() for issue in summary.errors],
                "warnings": [issue.model_dump() for issue in summary.warnings],
            }

        @tool("psu_capacity_summary", args_schema=BuildInput)
        def psu_capacity_summary(build: Dict[str, Any]) -> Optional[dict]:
            """Summarize PSU nameplate and redundant capacity; null when no chassis is chosen."""
            summary = calculate_psu_capacity_summary(Build.model_validate(build))
            return summary.model_dump(by_alias=True) if summary is not None else None

        return {
            "search_parts": search_parts,
            "estimate_power": estimate_power,
            "check_build": check_build,
            "psu_capacity_summary": psu_capacity_summary,
        }
