import pytest

from devradar import container


def _payload(**overrides):
	body = {
		"id": "octocat",
		"latitude": 37.7749,
		"longitude": -122.4194,
		"techs": ["Go", "TypeScript"],
		"avatarUrl": "https://avatars.example/octocat.png",
		"bio": "ships things",
		"name": "Mona",
	}
	body.update(overrides)
	return body


@pytest.mark.asyncio
async def test_register_creates_then_replaces(api_client):
	created = await api_client.post("/developers", json=_payload())
	assert created.status_code == 201
	body = created.json()
	assert body["id"] == "octocat"
	assert body["tags"] == ["go", "typescript"]
	assert body["avatarUrl"] == "https://avatars.example/octocat.png"

	replaced = await api_client.post("/developers", json=_payload(techs="rust"))
	assert replaced.status_code == 200
	assert replaced.json()["tags"] == ["rust"]
	assert len(container.get_registry()) == 1


@pytest.mark.asyncio
async def test_register_accepts_client_aliases(api_client):
	resp = await api_client.post(
		"/developers",
		json={"github_username": "mona", "latitude": 1, "longitude": 2, "tags": "Python, Go"},
	)
	assert resp.status_code == 201
	assert resp.json()["tags"] == ["python", "go"]
	assert container.get_registry().get("mona").techs == ("python", "go")


@pytest.mark.asyncio
async def test_register_rejects_out_of_range_coordinates(api_client):
	resp = await api_client.post("/developers", json=_payload(latitude=120))
	assert resp.status_code == 422
	body = resp.json()
	assert body["detail"] == "invalid_latitude"
	assert body["request_id"]
	assert len(container.get_registry()) == 0


@pytest.mark.asyncio
async def test_register_rejects_missing_fields(api_client):
	resp = await api_client.post("/developers", json={"id": "octocat"})
	assert resp.status_code == 422
	assert resp.json()["detail"] == "validation_error"


@pytest.mark.asyncio
async def test_get_list_update_delete(api_client):
	await api_client.post("/developers", json=_payload(id="b-dev"))
	await api_client.post("/developers", json=_payload(id="a-dev"))

	listing = await api_client.get("/developers")
	assert [d["id"] for d in listing.json()["developers"]] == ["a-dev", "b-dev"]

	fetched = await api_client.get("/developers/a-dev")
	assert fetched.status_code == 200
	assert fetched.json()["name"] == "Mona"

	moved = await api_client.put("/developers/a-dev", json={"latitude": 10.0, "longitude": 20.0})
	assert moved.status_code == 200
	assert (moved.json()["latitude"], moved.json()["longitude"]) == (10.0, 20.0)
	assert moved.json()["tags"] == ["go", "typescript"]

	deleted = await api_client.delete("/developers/a-dev")
	assert deleted.status_code == 204
	assert (await api_client.delete("/developers/a-dev")).status_code == 204

	missing = await api_client.get("/developers/a-dev")
	assert missing.status_code == 404
	assert missing.json()["detail"] == "developer_not_found"


@pytest.mark.asyncio
async def test_update_unknown_developer_is_404(api_client):
	resp = await api_client.put("/developers/ghost", json={"latitude": 1.0})
	assert resp.status_code == 404


@pytest.mark.asyncio
async def test_request_id_echoed(api_client):
	resp = await api_client.get("/developers/ghost", headers={"X-Request-Id": "req-123"})
	assert resp.headers["X-Request-Id"] == "req-123"
	assert resp.json()["request_id"] == "req-123"


@pytest.mark.asyncio
async def test_registration_is_persisted_to_redis(api_client, fake_redis):
	await api_client.post("/developers", json=_payload())
	stored = await fake_redis.hgetall("dev:octocat")
	assert stored["name"] == "Mona"
	await api_client.delete("/developers/octocat")
	assert await fake_redis.hgetall("dev:octocat") == {}


@pytest.mark.asyncio
async def test_generated_request_id_is_shared_by_header_and_body(api_client):
	resp = await api_client.get("/developers/ghost")
	rid = resp.headers["X-Request-Id"]
	assert len(rid) == 32 and int(rid, 16) >= 0
	assert resp.json()["request_id"] == rid
