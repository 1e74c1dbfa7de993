import asyncio
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
import socketio

from devradar import container
from devradar.domain.developers.models import DeveloperRecord
from devradar.domain.realtime.sockets import DevsNamespace, parse_handshake
from devradar.domain.developers.exceptions import ProtocolError
from devradar.settings import settings


@pytest_asyncio.fixture
async def namespace():
	server = socketio.AsyncServer(async_mode="asgi")
	ns = DevsNamespace()
	server.register_namespace(ns)
	ns.emit = AsyncMock()
	ns.disconnect = AsyncMock()
	try:
		yield ns
	finally:
		for sid in list(ns._pumps):
			await ns.on_disconnect(sid)


async def _settle(ns, sid):
	outbox = container.get_outboxes().get(sid)
	for _ in range(20):
		await asyncio.sleep(0)
		if outbox is None or len(outbox) == 0:
			break
	await asyncio.sleep(0)


def _emitted(ns):
	return [(call.args[0], call.args[1]) for call in ns.emit.await_args_list]


def _pushes(ns):
	return [(name, payload["id"]) for name, payload in _emitted(ns) if name in ("new-dev", "dev-removed")]


async def _connect(ns, sid="sid-1", **auth):
	handshake = {"latitude": 0.0, "longitude": 0.0, "radius_m": 1000}
	handshake.update(auth)
	await ns.trigger_event("connect", sid, {}, handshake)


def test_parse_handshake_from_query_string():
	region, techs = parse_handshake({"QUERY_STRING": "latitude=1.5&longitude=-2&techs=Go,Rust&radius_m=250"})
	assert (region.latitude, region.longitude, region.radius_m) == (1.5, -2.0, 250.0)
	assert techs == ("go", "rust")


def test_parse_handshake_defaults_radius():
	region, techs = parse_handshake({}, {"latitude": 0, "longitude": 0})
	assert region.radius_m == settings.default_search_radius_m
	assert techs == ()


@pytest.mark.parametrize(
	"auth,reason",
	[
		({"longitude": 0}, "missing_coordinates"),
		({"latitude": 95, "longitude": 0}, "invalid_latitude"),
		({"latitude": 0, "longitude": 0, "radius_m": "wide"}, "invalid_radius"),
		({"latitude": 0, "longitude": 0, "radius_m": 0}, "invalid_radius"),
		({"latitude": 0, "longitude": 0, "techs": 42}, "invalid_techs"),
	],
)
def test_parse_handshake_rejects(auth, reason):
	with pytest.raises(ProtocolError) as exc:
		parse_handshake({}, auth)
	assert exc.value.reason == reason


@pytest.mark.asyncio
async def test_connect_rejects_malformed_handshake(namespace):
	with pytest.raises(ConnectionRefusedError):
		await namespace.trigger_event("connect", "sid-1", {"QUERY_STRING": "latitude=abc&longitude=0"})
	assert "sid-1" not in container.get_subscriptions()
	assert "sid-1" not in container.get_outboxes()


@pytest.mark.asyncio
async def test_connect_emits_ok_and_opens_subscription(namespace):
	await namespace.trigger_event(
		"connect", "sid-1", {"QUERY_STRING": "latitude=0&longitude=0&radius_m=1000&techs=Go"}
	)

	namespace.emit.assert_any_await(
		"sys.ok",
		{"subscription": {"latitude": 0.0, "longitude": 0.0, "radius_m": 1000.0, "techs": ["go"]}},
		room="sid-1",
	)
	assert container.get_subscriptions().get("sid-1").techs == ("go",)
	assert "sid-1" in container.get_outboxes()


@pytest.mark.asyncio
async def test_connect_pushes_snapshot(namespace):
	registry = container.get_registry()
	await registry.register(DeveloperRecord.create(id="near", latitude=0.0, longitude=0.001, name="Near"))
	await registry.register(DeveloperRecord.create(id="far", latitude=5.0, longitude=5.0))

	await _connect(namespace)
	await _settle(namespace, "sid-1")

	assert _pushes(namespace) == [("new-dev", "near")]
	payload = dict(_emitted(namespace))["new-dev"]
	assert payload["name"] == "Near"
	assert "avatarUrl" in payload


@pytest.mark.asyncio
async def test_large_snapshot_is_delivered_in_full(namespace):
	registry = container.get_registry()
	count = settings.outbox_max_size + 44
	for n in range(count):
		await registry.register(DeveloperRecord.create(id=f"dev-{n:04d}", latitude=0.0, longitude=n * 1e-5))

	await _connect(namespace)

	pushed = [dev_id for name, dev_id in _pushes(namespace) if name == "new-dev"]
	assert pushed == sorted(f"dev-{n:04d}" for n in range(count))
	assert container.get_outboxes().get("sid-1").dropped == 0
	namespace.disconnect.assert_not_awaited()
	assert "sid-1" in namespace._pumps


@pytest.mark.asyncio
async def test_registry_writes_are_pushed_live(namespace):
	await _connect(namespace, techs=["go"])
	registry = container.get_registry()

	await registry.register(DeveloperRecord.create(id="gopher", latitude=0.0, longitude=0.0, techs="go"))
	await registry.register(DeveloperRecord.create(id="rustacean", latitude=0.0, longitude=0.0, techs="rust"))
	await registry.register(DeveloperRecord.create(id="gopher", latitude=40.0, longitude=40.0, techs="go"))
	await registry.register(DeveloperRecord.create(id="gopher", latitude=0.0, longitude=0.0, techs="go"))
	await registry.unregister("gopher")
	await _settle(namespace, "sid-1")

	assert _pushes(namespace) == [
		("new-dev", "gopher"),
		("dev-removed", "gopher"),
		("new-dev", "gopher"),
		("dev-removed", "gopher"),
	]


@pytest.mark.asyncio
async def test_subscription_update_moves_region(namespace):
	registry = container.get_registry()
	await registry.register(DeveloperRecord.create(id="home", latitude=0.0, longitude=0.0))
	await registry.register(DeveloperRecord.create(id="away", latitude=10.0, longitude=10.0))
	await _connect(namespace)
	await _settle(namespace, "sid-1")
	namespace.emit.reset_mock()

	await namespace.trigger_event("subscription_update", "sid-1", {"latitude": 10.0, "longitude": 10.0})
	await _settle(namespace, "sid-1")

	emitted = _emitted(namespace)
	assert emitted[0] == (
		"subscription.ack",
		{"subscription": {"latitude": 10.0, "longitude": 10.0, "radius_m": 1000.0, "techs": []}},
	)
	assert _pushes(namespace) == [("new-dev", "away"), ("dev-removed", "home")]


@pytest.mark.asyncio
async def test_subscription_update_changes_tags(namespace):
	await _connect(namespace)
	await namespace.trigger_event("subscription_update", "sid-1", {"techs": "Python, Go"})
	assert container.get_subscriptions().get("sid-1").techs == ("python", "go")


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [{"radius_m": -5}, {"latitude": "abc"}, {}, "not-a-dict", {"techs": 7}])
async def test_malformed_update_closes_connection(namespace, payload):
	await _connect(namespace)
	namespace.emit.reset_mock()

	await namespace.trigger_event("subscription_update", "sid-1", payload)

	names = [name for name, _ in _emitted(namespace)]
	assert names == ["sys.error"]
	namespace.disconnect.assert_awaited_once_with("sid-1")


@pytest.mark.asyncio
async def test_update_without_subscription_warns(namespace):
	await namespace.trigger_event("subscription_update", "sid-9", {"latitude": 1.0})
	namespace.emit.assert_awaited_once_with("sys.warn", {"code": "not_subscribed"}, room="sid-9")


@pytest.mark.asyncio
async def test_subscription_update_rate_limited(namespace, monkeypatch):
	monkeypatch.setattr(settings, "subscription_update_rate_limit", 1)
	await _connect(namespace)
	await namespace.trigger_event("subscription_update", "sid-1", {"radius_m": 500})
	namespace.emit.reset_mock()

	await namespace.trigger_event("subscription_update", "sid-1", {"radius_m": 800})

	namespace.emit.assert_awaited_once_with("sys.warn", {"code": "rate_limited"}, room="sid-1")
	assert container.get_subscriptions().get("sid-1").region.radius_m == 500.0


@pytest.mark.asyncio
async def test_unsubscribe_stops_pushes(namespace):
	await _connect(namespace)
	await namespace.trigger_event("unsubscribe", "sid-1")
	assert "sid-1" not in container.get_subscriptions()

	namespace.emit.reset_mock()
	await container.get_registry().register(DeveloperRecord.create(id="late", latitude=0.0, longitude=0.0))
	await _settle(namespace, "sid-1")
	assert _pushes(namespace) == []


@pytest.mark.asyncio
async def test_disconnect_releases_subscription_and_outbox(namespace):
	await _connect(namespace)
	await namespace.trigger_event("disconnect", "sid-1", "client disconnect")

	assert "sid-1" not in container.get_subscriptions()
	assert "sid-1" not in container.get_outboxes()
	assert "sid-1" not in namespace._pumps

	committed = await container.get_registry().register(
		DeveloperRecord.create(id="after", latitude=0.0, longitude=0.0)
	)
	assert committed.id == "after"


@pytest.mark.asyncio
async def test_overloaded_connection_is_evicted(namespace):
	await _connect(namespace)
	namespace.emit.reset_mock()

	namespace._on_overload("sid-1")
	for _ in range(3):
		await asyncio.sleep(0)

	namespace.emit.assert_any_await("sys.error", {"code": "backpressure"}, room="sid-1")
	namespace.disconnect.assert_awaited_once_with("sid-1")


@pytest.mark.asyncio
async def test_failed_emit_does_not_break_pump(namespace):
	await _connect(namespace)
	namespace.emit = AsyncMock(side_effect=[RuntimeError("transport closed"), None])
	registry = container.get_registry()
	await registry.register(DeveloperRecord.create(id="first", latitude=0.0, longitude=0.0))
	await registry.register(DeveloperRecord.create(id="second", latitude=0.0, longitude=0.0))
	await _settle(namespace, "sid-1")

	assert [call.args[1]["id"] for call in namespace.emit.await_args_list] == ["first", "second"]
