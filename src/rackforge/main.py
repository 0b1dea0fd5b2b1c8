from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from .data.repository import CatalogRepository
from .schemas import Build, BuildBundle
from .service import BuildNotFoundError, BuildService, normalize_payload
from .settings import load_settings
from .share_store import create_share_store

settings = load_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

repo = CatalogRepository(settings.catalog_dir, version=settings.catalog_version)
service = BuildService(
    store=create_share_store(
        settings.share_store,
        db_path=settings.share_db_path,
        redis_url=settings.share_redis_url,
        ttl_seconds=settings.share_ttl_seconds,
    ),
    catalog=repo.catalog(),
    catalog_version=settings.catalog_version,
)

app = FastAPI(title="RackForge")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


def _bundle_from_body(payload: Dict[str, Any]) -> BuildBundle:
    try:
        return BuildBundle.model_validate(normalize_payload(payload))
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc))


def _parts(items) -> list:
    return [part.to_wire() for part in items]


@app.get("/health")
def health():
    return {"status": "ok", "catalogVersion": repo.version}


@app.get("/api/catalog")
def get_catalog():
    return repo.catalog().to_wire()


@app.get("/api/catalog/chassis")
def list_chassis():
    return _parts(repo.chassis())


@app.get("/api/catalog/cpus")
def list_cpus(platform: Optional[str] = None, socket: Optional[str] = None):
    return _parts(repo.cpus(platform=platform, socket=socket))


@app.get("/api/catalog/motherboards")
def list_motherboards(socket: Optional[str] = None):
    return _parts(repo.motherboards(socket=socket))


@app.get("/api/catalog/memory")
def list_memory(ddrGen: Optional[int] = None, type: Optional[str] = None):
    return _parts(repo.memory(ddr_gen=ddrGen, dimm_type=type))


@app.get("/api/catalog/storage")
def list_storage():
    return _parts(repo.storage())


@app.get("/api/catalog/controllers")
def list_controllers(type: Optional[str] = None, connector: Optional[str] = None):
    return _parts(repo.controllers(controller_type=type, connector=connector))


@app.get("/api/catalog/network-adapters")
def list_network_adapters(connector: Optional[str] = None):
    return _parts(repo.network_adapters(connector=connector))


@app.get("/api/catalog/transceivers")
def list_transceivers():
    return _parts(repo.transceivers())


@app.get("/api/catalog/switches")
def list_switches():
    return _parts(repo.switches())


@app.post("/api/builds")
def save_build(payload: Dict[str, Any] = Body(...)):
    try:
        response = service.save(payload)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return response.to_wire()


@app.get("/api/builds/share/{code}")
def get_shared_build(code: str):
    try:
        return service.load_by_share_code(code).to_wire()
    except BuildNotFoundError:
        raise HTTPException(status_code=404, detail="Build not found")


@app.get("/api/builds/{build_id}")
def get_build(build_id: str):
    try:
        return service.load(build_id).to_wire()
    except BuildNotFoundError:
        raise HTTPException(status_code=404, detail="Build not found")


@app.post("/api/validate")
def validate(payload: Dict[str, Any] = Body(...)):
    return service.validate_bundle(_bundle_from_body(payload)).to_dict()


@app.post("/api/power")
def power(build: Build):
    return service.power_summary(build)


@app.post("/api/costs")
def costs(payload: Dict[str, Any] = Body(...)):
    return service.costs(_bundle_from_body(payload)).to_dict()
