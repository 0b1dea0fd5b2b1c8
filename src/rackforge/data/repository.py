"""JSON 目录仓库"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Type

from pydantic import BaseModel, TypeAdapter, ValidationError

from ..schemas import (
    CPU,
    Catalog,
    Chassis,
    ControllerCard,
    Memory,
    Motherboard,
    NetworkAdapter,
    PartCategory,
    Storage,
    SwitchPortProfile,
    Transceiver,
)

logger = logging.getLogger(__name__)

# category -> (file name, model, required)
CATALOG_FILES: Dict[str, tuple] = {
    "chassis": ("chassis.json", Chassis, True),
    "motherboards": ("motherboards.json", Motherboard, True),
    "cpus": ("cpus.json", CPU, True),
    "memory": ("memory.json", Memory, True),
    "storage": ("storage.json", Storage, True),
    "controllers": ("controllers.json", ControllerCard, False),
    "networkAdapters": ("networkAdapters.json", NetworkAdapter, False),
    "transceivers": ("transceivers.json", Transceiver, False),
    "switches": ("switches.json", SwitchPortProfile, False),
}

_FIELD_NAMES = {"networkAdapters": "network_adapters"}


class CatalogLoadError(Exception):
    def __init__(self, path: Path, reason: str):
        super().__init__(f"failed to load catalog file {path.name}: {reason}")
        self.path = path


def _load_parts(path: Path, model: Type[BaseModel]) -> list:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise CatalogLoadError(path, str(exc)) from exc
    try:
        return TypeAdapter(List[model]).validate_python(raw)
    except ValidationError as exc:
        raise CatalogLoadError(path, str(exc)) from exc


class CatalogRepository:
    """只读配件目录，启动时从 JSON 文件加载一次"""

    def __init__(self, data_dir: Path, version: str = "2026-02-04"):
        self.data_dir = data_dir
        self.version = version
        self._catalog = Catalog(version=version)
        self.reload()

    def reload(self) -> None:
        parts: Dict[str, list] = {}
        for category, (file_name, model, required) in CATALOG_FILES.items():
            path = self.data_dir / file_name
            if not path.exists():
                if required:
                    raise CatalogLoadError(path, "file not found")
                parts[_FIELD_NAMES.get(category, category)] = []
                continue
            parts[_FIELD_NAMES.get(category, category)] = _load_parts(path, model)

        self._catalog = Catalog(
            version=self.version,
            last_updated=datetime.now(timezone.utc).isoformat(),
            **parts,
        )
        logger.info(
            "catalog %s loaded from %s: %s",
            self.version,
            self.data_dir,
            ", ".join(f"{k}={len(v)}" for k, v in parts.items()),
        )

    def catalog(self) -> Catalog:
        return self._catalog

    def by_category(self, category: PartCategory) -> list:
        if category not in CATALOG_FILES:
            raise KeyError(category)
        return list(getattr(self._catalog, _FIELD_NAMES.get(category, category)))

    def find_by_id(self, category: PartCategory, part_id: str):
        for part in self.by_category(category):
            if part.id == part_id:
                return part
        return None

    def chassis(self) -> List[Chassis]:
        return list(self._catalog.chassis)

    def storage(self) -> List[Storage]:
        return list(self._catalog.storage)

    def transceivers(self) -> List[Transceiver]:
        return list(self._catalog.transceivers)

    def switches(self) -> List[SwitchPortProfile]:
        return list(self._catalog.switches)

    def cpus(self, platform: Optional[str] = None, socket: Optional[str] = None) -> List[CPU]:
        items = self._catalog.cpus
        if platform:
            items = [cpu for cpu in items if cpu.platform == platform]
        if socket:
            items = [cpu for cpu in items if cpu.constraints.socket == socket]
        return list(items)

    def motherboards(self, socket: Optional[str] = None) -> List[Motherboard]:
        items = self._catalog.motherboards
        if socket:
            items = [board for board in items if board.constraints.socket == socket]
        return list(items)

    def memory(self, ddr_gen: Optional[int] = None, dimm_type: Optional[str] = None) -> List[Memory]:
        items = self._catalog.memory
        if ddr_gen:
            items = [dimm for dimm in items if dimm.constraints.ddr_gen == ddr_gen]
        if dimm_type:
            items = [dimm for dimm in items if dimm.constraints.type == dimm_type]
        return list(items)

    def network_adapters(self, connector: Optional[str] = None) -> List[NetworkAdapter]:
        items = self._catalog.network_adapters
        if connector:
            items = [
                nic for nic in items if any(p.connector == connector for p in nic.constraints.ports)
            ]
        return list(items)

    def controllers(
        self, controller_type: Optional[str] = None, connector: Optional[str] = None
    ) -> List[ControllerCard]:
        items = self._catalog.controllers
        if controller_type:
            items = [c for c in items if c.constraints.type == controller_type]
        if connector:
            items = [c for c in items if any(p.connector == connector for p in c.constraints.ports)]
        return list(items)

    def search(self, query: str = "", category: Optional[PartCategory] = None, limit: int = 20) -> list:
        categories = [category] if category else list(CATALOG_FILES)
        needle = query.strip().lower()
        hits = []
        for cat in categories:
            for part in self.by_category(cat):
                text = f"{getattr(part, 'vendor', '')} {part.name} {part.id}".lower()
                if not needle or needle in text:
                    hits.append(part)
        return hits[:limit]
