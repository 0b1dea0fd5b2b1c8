from fastapi.testclient import TestClient

from rackforge.main import app

client = TestClient(app)


def test_health():
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "catalogVersion": "2026-02-04"}


def test_full_catalog_uses_camel_case():
    payload = client.get("/api/catalog").json()

    assert payload["version"] == "2026-02-04"
    assert {"chassis", "cpus", "memory", "networkAdapters", "switches"} <= set(payload)
    assert "tdpW" in payload["cpus"][0]["constraints"]


def test_catalog_filters():
    cpus = client.get("/api/catalog/cpus", params={"socket": "LGA4677"}).json()
    assert {cpu["id"] for cpu in cpus} == {"intel-xeon-6430", "intel-xeon-4410y"}

    amd = client.get("/api/catalog/cpus", params={"platform": "AMD"}).json()
    assert all(cpu["platform"] == "AMD" for cpu in amd)

    ddr4 = client.get("/api/catalog/memory", params={"ddrGen": 4}).json()
    assert [dimm["id"] for dimm in ddr4] == ["ddr4-rdimm-32g-3200"]

    nics = client.get("/api/catalog/network-adapters", params={"connector": "SFP28"}).json()
    assert [nic["id"] for nic in nics] == ["mcx631432-ocp"]

    tri_mode = client.get("/api/catalog/controllers", params={"type": "Tri-Mode"}).json()
    assert [c["id"] for c in tri_mode] == ["bcm-9670w-16i"]


def test_save_and_load_by_share_code(valid_build):
    saved = client.post("/api/builds", json={"build": valid_build.to_wire()})
    assert saved.status_code == 200
    body = saved.json()
    assert body["id"] == "golden-build"
    assert body["url"] == f"/list/{body['shareCode']}"

    shared = client.get(f"/api/builds/share/{body['shareCode']}")
    assert shared.status_code == 200
    assert shared.json()["build"]["chassis"]["id"] == "dell-r760-2u"

    by_id = client.get("/api/builds/golden-build")
    assert by_id.json()["shareCode"] == body["shareCode"]


def test_unknown_builds_are_404():
    assert client.get("/api/builds/missing").status_code == 404
    assert client.get("/api/builds/share/00000000").status_code == 404


def test_malformed_build_is_422():
    response = client.post("/api/builds", json={"build": {"id": "x", "nodes": "oops"}})
    assert response.status_code == 422

    response = client.post("/api/validate", json={"nodes": [{"index": "zero"}]})
    assert response.status_code == 422


def test_validate_endpoint(valid_build):
    payload = client.post("/api/validate", json={"build": valid_build.to_wire()}).json()
    assert payload["valid"] is True

    overloaded = valid_build.to_wire()
    overloaded["chassis"]["constraints"]["psu"] = {"maxWatts": 500, "count": 1}
    payload = client.post("/api/validate", json=overloaded).json()

    assert payload["valid"] is False
    assert "POWER_EXCEEDED" in [issue["code"] for issue in payload["global"]]


def test_power_endpoint(valid_build):
    payload = client.post("/api/power", json=valid_build.to_wire()).json()

    assert payload["totalPower"] == 811
    assert payload["psu"]["nameplateCapacity"] == 2800


def test_costs_endpoint(valid_build):
    payload = client.post(
        "/api/costs",
        json={
            "build": valid_build.to_wire(),
            "customCosts": [{"id": "c1", "label": "Shipping", "unitPrice": 80, "quantity": 1}],
        },
    ).json()

    assert payload["customTotal"] == 80
    assert payload["total"] == 16316 + 80
    assert payload["rows"][0]["location"] == "Global"
