from pathlib import Path

import pytest

from rackforge.data.repository import CatalogRepository
from rackforge.service import BuildService
from rackforge.share_store import MemoryShareStore

ROOT = Path(__file__).resolve().parents[1]
CATALOG_DIR = ROOT / "data" / "catalog"


@pytest.fixture(scope="session")
def repo() -> CatalogRepository:
    return CatalogRepository(CATALOG_DIR)


@pytest.fixture
def service(repo) -> BuildService:
    return BuildService(store=MemoryShareStore(), catalog=repo.catalog())


@pytest.fixture
def valid_build(repo):
    """Dual-socket R760 node that passes every default rule."""
    from rackforge.schemas import Build, Node

    def part(category, part_id):
        found = repo.find_by_id(category, part_id)
        assert found is not None, part_id
        return found

    node = Node(
        index=0,
        motherboard=part("motherboards", "dell-r760-mb"),
        cpus=[part("cpus", "intel-xeon-6430")] * 2,
        memory=[part("memory", "ddr5-rdimm-64g-4800")] * 16,
        storage=[part("storage", "pm1643a-3t84")] * 4,
        controllers=[part("controllers", "bcm-9500-8i")],
    )
    return Build(
        id="golden-build",
        catalog_version="2026-02-04",
        chassis=part("chassis", "dell-r760-2u"),
        nodes=[node],
    )
