import json

import pytest

from conftest import make_image
from soilsense.core.errors import ServiceUnavailable
from soilsense.services.ai.soil.contracts import Prediction


def _upload(content: bytes, name: str = "soil.png", content_type: str = "image/png"):
    return {"file": (name, content, content_type)}


@pytest.mark.asyncio
async def test_analyze_returns_result_and_stores_history(client):
    r = await client.post("/api/v1/soil/analyze", files=_upload(make_image((140, 70, 55))))
    assert r.status_code == 200
    data = r.json()
    assert data["result"]["soil_type"] == "clay"
    assert data["result"]["confidence"] == 86.2
    assert data["record_id"]

    h = await client.get("/api/v1/soil/history")
    assert [rec["id"] for rec in h.json()] == [data["record_id"]]

    one = await client.get(f"/api/v1/soil/history/{data['record_id']}")
    assert one.status_code == 200
    assert one.json()["result"]["soil_type"] == "clay"


@pytest.mark.asyncio
async def test_analyze_rejects_wrong_type(client):
    r = await client.post(
        "/api/v1/soil/analyze",
        files=_upload(b"GIF89a", name="soil.gif", content_type="image/gif"),
    )
    assert r.status_code == 400
    assert r.json()["error"] == "InvalidUpload"


@pytest.mark.asyncio
async def test_analyze_rejects_oversize(client, monkeypatch):
    from soilsense.core.config import get_settings

    monkeypatch.setenv("MAX_IMAGE_SIZE", "100")
    get_settings.cache_clear()
    r = await client.post("/api/v1/soil/analyze", files=_upload(make_image(size=(200, 200))))
    assert r.status_code == 413


@pytest.mark.asyncio
async def test_non_soil_image_is_422(client, provider):
    provider.predictions = [Prediction(label="sports car", score=0.99)]
    r = await client.post("/api/v1/soil/analyze", files=_upload(make_image()))
    assert r.status_code == 422
    assert r.json()["error"] == "NonSoilImage"

    h = await client.get("/api/v1/soil/history")
    assert h.json() == []


@pytest.mark.asyncio
async def test_service_unavailable_is_503(client, provider):
    provider.error = ServiceUnavailable("API request failed: Service Unavailable", status=503)
    r = await client.post("/api/v1/soil/analyze", files=_upload(make_image()))
    assert r.status_code == 503
    assert "Service Unavailable" in r.json()["detail"]


@pytest.mark.asyncio
async def test_export_import_stats_and_delete(client):
    ids = []
    for _ in range(2):
        r = await client.post("/api/v1/soil/analyze", files=_upload(make_image((140, 70, 55))))
        ids.append(r.json()["record_id"])

    exported = await client.get("/api/v1/soil/history/export")
    assert exported.status_code == 200
    assert "attachment" in exported.headers["content-disposition"]
    payload = exported.content
    assert [rec["id"] for rec in json.loads(payload)] == list(reversed(ids))

    stats = (await client.get("/api/v1/soil/history/stats")).json()
    assert stats["total_count"] == 2
    assert stats["counts_by_soil_type"] == {"clay": 2}

    d = await client.delete(f"/api/v1/soil/history/{ids[0]}")
    assert d.json() == {"deleted": True}
    missing = await client.delete(f"/api/v1/soil/history/{ids[0]}")
    assert missing.status_code == 404

    imported = await client.post(
        "/api/v1/soil/history/import",
        files={"file": ("history.json", payload, "application/json")},
    )
    assert imported.json() == {"imported": 2}
    assert (await client.get("/api/v1/soil/history/stats")).json()["total_count"] == 2


@pytest.mark.asyncio
async def test_import_rejects_non_array(client):
    r = await client.post(
        "/api/v1/soil/history/import",
        files={"file": ("history.json", b'{"not": "a list"}', "application/json")},
    )
    assert r.status_code == 400
    assert r.json()["error"] == "InvalidFormat"


@pytest.mark.asyncio
async def test_report_download(client):
    r = await client.post("/api/v1/soil/analyze", files=_upload(make_image((140, 70, 55))))
    record_id = r.json()["record_id"]

    report = await client.get(f"/api/v1/soil/history/{record_id}/report")
    assert report.status_code == 200
    body = report.json()
    assert body["soil_type"] == "clay"
    assert len(body["recommendations"]) == 4

    assert (await client.get("/api/v1/soil/history/analysis_0_x/report")).status_code == 404


@pytest.mark.asyncio
async def test_clear_history_and_size(client):
    await client.post("/api/v1/soil/analyze", files=_upload(make_image((140, 70, 55))))
    assert (await client.get("/api/v1/soil/history/size")).json()["bytes"] > 0

    r = await client.delete("/api/v1/soil/history")
    assert r.json() == {"deleted": True}
    assert (await client.get("/api/v1/soil/history")).json() == []


@pytest.mark.asyncio
async def test_remote_history_empty_without_sink(client):
    r = await client.get("/api/v1/soil/history/remote")
    assert r.status_code == 200
    assert r.json() == []


@pytest.mark.asyncio
async def test_soil_types_and_health(client):
    types = (await client.get("/api/v1/soil/types")).json()
    assert {t["soil_type"] for t in types} == {"clay", "sandy", "loamy", "silty", "peaty", "chalky"}

    health = (await client.get("/health")).json()
    assert health == {"status": "ok", "mode": "real"}
