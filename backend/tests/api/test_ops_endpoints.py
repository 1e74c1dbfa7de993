import pytest

from devradar.settings import settings


@pytest.mark.asyncio
async def test_liveness(api_client):
	resp = await api_client.get("/health/live")
	assert resp.status_code == 200
	assert resp.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_readiness_reports_index_and_redis(api_client):
	resp = await api_client.get("/health/ready")
	assert resp.status_code == 200
	body = resp.json()
	assert body["status"] == "ok"
	assert body["checks"]["index"]["developers"] == 0
	assert body["checks"]["redis"]["ok"] is True


@pytest.mark.asyncio
async def test_metrics_fail_closed_without_token(api_client):
	resp = await api_client.get("/metrics")
	assert resp.status_code == 403
	assert resp.json()["detail"] == "admin_token_not_configured"


@pytest.mark.asyncio
async def test_metrics_with_admin_token(api_client):
	settings.obs_admin_token = "secret"
	denied = await api_client.get("/metrics", headers={"X-Admin-Token": "wrong"})
	assert denied.status_code == 403

	allowed = await api_client.get("/metrics", headers={"Authorization": "Bearer secret"})
	assert allowed.status_code == 200
	assert "devradar_" in allowed.text


@pytest.mark.asyncio
async def test_metrics_public_flag(api_client):
	settings.obs_metrics_public = True
	resp = await api_client.get("/metrics")
	assert resp.status_code == 200


@pytest.mark.asyncio
async def test_index_stats_require_admin(api_client):
	assert (await api_client.get("/ops/index")).status_code == 403

	settings.obs_admin_token = "secret"
	await api_client.post("/developers", json={"id": "d1", "latitude": 0, "longitude": 0})
	resp = await api_client.get("/ops/index", headers={"X-Admin-Token": "secret"})
	assert resp.status_code == 200
	body = resp.json()
	assert body["developers"] == 1
	assert body["cells"] == 1
	assert body["store"] == "redis"
