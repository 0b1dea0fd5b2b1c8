from __future__ import annotations

import logging
import secrets
import threading
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .builder.budget import CostSummary, summarize_costs
from .builder.store import DEFAULT_CATALOG_VERSION, utc_now
from .schemas import Build, BuildBundle, Catalog, SaveBuildResponse
from .share_store import BuildShareStore, MemoryShareStore
from .validation.engine import (
    IssueSummary,
    NodeIssueGroups,
    categorize_issues,
    group_issues_by_node,
    run_validation,
)
from .validation.power import PsuCapacitySummary, calculate_power, calculate_psu_capacity_summary
from .validation.rules import DEFAULT_RULES
from .validation.types import Issue, ValidationContext, ValidationRule

logger = logging.getLogger(__name__)

SHARE_CODE_BYTES = 4


class BuildNotFoundError(LookupError):
    def __init__(self, key: str):
        super().__init__(f"build not found: {key}")
        self.key = key


@dataclass
class ValidationReport:
    issues: List[Issue] = field(default_factory=list)
    summary: IssueSummary = field(default_factory=IssueSummary)
    groups: NodeIssueGroups = field(default_factory=NodeIssueGroups)

    @property
    def valid(self) -> bool:
        return not self.summary.has_errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "issues": [issue.model_dump() for issue in self.issues],
            "summary": {
                "errors": len(self.summary.errors),
                "warnings": len(self.summary.warnings),
                "hasErrors": self.summary.has_errors,
                "hasWarnings": self.summary.has_warnings,
            },
            "byNode": {
                str(idx): [issue.model_dump() for issue in items]
                for idx, items in self.groups.by_node.items()
            },
            "global": [issue.model_dump() for issue in self.groups.global_issues],
        }


def normalize_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Accept either a bundle or a bare build and return bundle-shaped data."""
    if isinstance(payload.get("build"), dict):
        return dict(payload)
    return {"build": dict(payload)}


class BuildService:
    def __init__(
        self,
        store: Optional[BuildShareStore] = None,
        catalog: Optional[Catalog] = None,
        catalog_version: str = DEFAULT_CATALOG_VERSION,
        rules: Optional[List[ValidationRule]] = None,
    ):
        self.store: BuildShareStore = store if store is not None else MemoryShareStore()
        self.catalog = catalog
        self.catalog_version = catalog_version
        self.rules = list(rules) if rules is not None else list(DEFAULT_RULES)
        self._save_lock = threading.Lock()

    # === persistence ===

    def _allocate_share_code(self) -> str:
        code = secrets.token_hex(SHARE_CODE_BYTES)
        while self.store.resolve_alias(code) is not None:
            code = secrets.token_hex(SHARE_CODE_BYTES)
        return code

    def save(self, payload: Dict[str, Any]) -> SaveBuildResponse:
        data = normalize_payload(payload)
        build = dict(data["build"])
        now = utc_now()
        build["id"] = build.get("id") or str(uuid.uuid4())
        build["schemaVersion"] = build.get("schemaVersion") or 1
        build["catalogVersion"] = build.get("catalogVersion") or self.catalog_version
        build["updatedAt"] = now

        with self._save_lock:
            existing = self.store.get(build["id"]) or {}
            build["createdAt"] = (
                build.get("createdAt") or existing.get("build", {}).get("createdAt") or now
            )
            data["build"] = build
            bundle = BuildBundle.model_validate(data)

            share_code = bundle.share_code or existing.get("shareCode") or self._allocate_share_code()
            bundle = bundle.model_copy(update={"share_code": share_code})
            self.store.put(bundle.build.id, bundle.to_wire())
            self.store.put_alias(share_code, bundle.build.id)

        logger.info("saved build %s as share code %s", bundle.build.id, share_code)
        return SaveBuildResponse(id=bundle.build.id, share_code=share_code, url=f"/list/{share_code}")

    def load(self, build_id: str) -> BuildBundle:
        record = self.store.get(build_id)
        if record is None:
            raise BuildNotFoundError(build_id)
        return BuildBundle.model_validate(record)

    def load_by_share_code(self, code: str) -> BuildBundle:
        build_id = self.store.resolve_alias(code)
        if build_id is None:
            raise BuildNotFoundError(code)
        return self.load(build_id)

    # === analysis ===

    def validate(self, build: Build, context: Optional[ValidationContext] = None) -> ValidationReport:
        issues = run_validation(build, self.rules, self.catalog, context)
        return ValidationReport(
            issues=issues,
            summary=categorize_issues(issues),
            groups=group_issues_by_node(issues),
        )

    def validate_bundle(self, bundle: BuildBundle) -> ValidationReport:
        return self.validate(bundle.build, ValidationContext(node_targets=bundle.node_targets))

    def power_summary(self, build: Build) -> Dict[str, Any]:
        psu: Optional[PsuCapacitySummary] = calculate_psu_capacity_summary(build)
        return {
            "totalPower": calculate_power(build),
            "psu": psu.model_dump(by_alias=True) if psu is not None else None,
        }

    def costs(self, bundle: BuildBundle) -> CostSummary:
        return summarize_costs(bundle)
