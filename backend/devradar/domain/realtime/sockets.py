"""Socket.IO namespace pushing developer matches to subscribed clients."""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from typing import Any, Dict, Mapping, Optional, Tuple
from urllib.parse import parse_qs

import socketio

from devradar import container
from devradar.domain.developers.exceptions import DevRadarError, ProtocolError, SubscriptionNotFound
from devradar.domain.developers.models import TagsInput, normalize_techs
from devradar.domain.matching.engine import MatchEngine
from devradar.domain.matching.events import MatchEvent
from devradar.domain.matching.subscriptions import Region
from devradar.domain.realtime.outbox import ConnectionOutbox, OutboxRouter
from devradar.infra.rate_limit import allow as rate_allow
from devradar.obs import logging as obs_logging
from devradar.obs import metrics as obs_metrics
from devradar.settings import settings

logger = logging.getLogger(__name__)

NAMESPACE = "/devs"


def _query_params(environ: Mapping[str, Any]) -> Dict[str, str]:
    scope = environ.get("asgi.scope", environ)
    raw = environ.get("QUERY_STRING")
    if raw is None:
        raw = scope.get("query_string", b"")
    if isinstance(raw, bytes):
        raw = raw.decode("latin-1")
    return {key: values[-1] for key, values in parse_qs(raw or "").items() if values}


def _radius(raw: Any) -> float:
    if raw in (None, ""):
        return float(settings.default_search_radius_m)
    try:
        radius = float(raw)
    except (TypeError, ValueError):
        raise ProtocolError("invalid_radius") from None
    if not 0 < radius <= settings.max_search_radius_m:
        raise ProtocolError("invalid_radius")
    return radius


def _techs(payload: Mapping[str, Any]) -> TagsInput:
    raw = payload.get("techs", payload.get("tags"))
    if raw is not None and not isinstance(raw, (str, list, tuple)):
        raise ProtocolError("invalid_techs")
    return raw


def parse_handshake(environ: Mapping[str, Any], auth: Optional[Mapping[str, Any]] = None) -> Tuple[Region, tuple]:
    """Read ``{latitude, longitude, techs, radius_m?}`` from the auth payload or query string."""
    payload: Mapping[str, Any]
    if auth:
        if not isinstance(auth, Mapping):
            raise ProtocolError("invalid_handshake")
        payload = auth
    else:
        payload = _query_params(environ)
    if "latitude" not in payload or "longitude" not in payload:
        raise ProtocolError("missing_coordinates")
    try:
        region = Region.create(payload["latitude"], payload["longitude"], _radius(payload.get("radius_m")))
        techs = normalize_techs(_techs(payload))
    except ProtocolError:
        raise
    except DevRadarError as exc:
        raise ProtocolError(exc.reason) from None
    return region, techs


class DevsNamespace(socketio.AsyncNamespace):
    """One subscription per socket; match events are streamed through a bounded outbox."""

    def __init__(
        self,
        *,
        engine: Optional[MatchEngine] = None,
        outboxes: Optional[OutboxRouter] = None,
    ) -> None:
        super().__init__(NAMESPACE)
        self._engine = engine
        self._outboxes = outboxes
        self._pumps: Dict[str, asyncio.Task] = {}
        self._evictions: set[asyncio.Task] = set()

    @property
    def engine(self) -> MatchEngine:
        return self._engine or container.get_engine()

    @property
    def outboxes(self) -> OutboxRouter:
        return self._outboxes or container.get_outboxes()

    async def trigger_event(self, event: str, *args: Any) -> Any:
        sid = args[0] if args and isinstance(args[0], str) else None
        token = obs_logging.bind_context(connection_id=sid)
        try:
            return await super().trigger_event(event, *args)
        finally:
            obs_logging.reset_context(token)

    async def on_connect(self, sid: str, environ: dict, auth: Optional[dict] = None) -> None:
        obs_metrics.socket_connected(self.namespace)
        try:
            region, techs = parse_handshake(environ, auth)
        except ProtocolError as exc:
            obs_metrics.socket_disconnected(self.namespace)
            obs_metrics.inc_protocol_error("handshake")
            logger.info("devs handshake rejected sid=%s reason=%s", sid, exc.reason)
            raise ConnectionRefusedError("protocol_error") from None
        outboxes = self.outboxes
        outboxes.on_overload = self._on_overload
        outbox = outboxes.open(sid)
        subscription = self.engine.subscribe(sid, region, techs, push_snapshot=False)
        snapshot = self.engine.snapshot(sid)
        logger.info("devs connect sid=%s techs=%s snapshot=%s", sid, ",".join(subscription.techs), len(snapshot))
        await self.emit("sys.ok", {"subscription": subscription.to_payload()}, room=sid)
        # The snapshot bypasses the outbox; live events queue behind it until the pump starts.
        for event in snapshot:
            await self._push(sid, event)
        if outboxes.get(sid) is not outbox:
            return
        self._pumps[sid] = asyncio.create_task(self._pump(sid, outbox), name=f"devs-outbox:{sid}")

    async def on_disconnect(self, sid: str, reason: Optional[str] = None) -> None:
        obs_metrics.socket_disconnected(self.namespace)
        self.engine.unsubscribe(sid)
        self.outboxes.close(sid)
        task = self._pumps.pop(sid, None)
        if task is not None:
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
        logger.info("devs disconnect sid=%s reason=%s", sid, reason or "client")

    async def on_subscription_update(self, sid: str, data: Any = None) -> None:
        obs_metrics.socket_event(self.namespace, "subscription_update")
        try:
            current = self.engine.subscriptions.get(sid)
        except SubscriptionNotFound:
            await self.emit("sys.warn", {"code": "not_subscribed"}, room=sid)
            return
        if not await self._check_limits(sid):
            return
        try:
            region, techs = self._parse_update(current.region, data)
        except ProtocolError as exc:
            obs_metrics.inc_protocol_error("update")
            logger.info("devs update rejected sid=%s reason=%s", sid, exc.reason)
            await self.emit("sys.error", {"code": "protocol_error", "reason": exc.reason}, room=sid)
            await self.disconnect(sid)
            return
        subscription = self.engine.update_subscription(sid, region=region, techs=techs)
        await self.emit("subscription.ack", {"subscription": subscription.to_payload()}, room=sid)

    async def on_unsubscribe(self, sid: str, data: Any = None) -> None:
        obs_metrics.socket_event(self.namespace, "unsubscribe")
        self.engine.unsubscribe(sid)
        outbox = self.outboxes.get(sid)
        if outbox is not None:
            outbox.drain()
        await self.emit("subscription.ack", {"subscription": None}, room=sid)

    @staticmethod
    def _parse_update(current: Region, data: Any) -> Tuple[Optional[Region], TagsInput]:
        if not isinstance(data, Mapping):
            raise ProtocolError("invalid_payload")
        region: Optional[Region] = None
        if any(key in data for key in ("latitude", "longitude", "radius_m")):
            try:
                region = Region.create(
                    data.get("latitude", current.latitude),
                    data.get("longitude", current.longitude),
                    _radius(data.get("radius_m", current.radius_m)),
                )
            except ProtocolError:
                raise
            except DevRadarError as exc:
                raise ProtocolError(exc.reason) from None
        techs = _techs(data)
        if techs is not None:
            try:
                techs = normalize_techs(techs)
            except DevRadarError as exc:
                raise ProtocolError(exc.reason) from None
        if region is None and techs is None:
            raise ProtocolError("empty_update")
        return region, techs

    async def _pump(self, sid: str, outbox: ConnectionOutbox) -> None:
        while True:
            event = await outbox.get()
            await self._push(sid, event)

    async def _push(self, sid: str, event: MatchEvent) -> None:
        obs_metrics.socket_event(self.namespace, event.push_event)
        try:
            await self.emit(event.push_event, event.to_payload(), room=sid)
        except Exception:
            obs_metrics.inc_delivery_failure("emit")
            logger.warning("devs push failed sid=%s event=%s", sid, event.push_event, exc_info=True)

    async def _check_limits(self, sid: str) -> bool:
        allowed = await rate_allow(
            "subscription_update",
            sid,
            limit=settings.subscription_update_rate_limit,
            window_seconds=settings.subscription_update_window_seconds,
        )
        if allowed:
            return True
        obs_metrics.inc_rate_limited("subscription_update")
        await self.emit("sys.warn", {"code": "rate_limited"}, room=sid)
        return False

    def _on_overload(self, sid: str) -> None:
        task = asyncio.get_running_loop().create_task(self._evict(sid), name=f"devs-evict:{sid}")
        self._evictions.add(task)
        task.add_done_callback(self._evictions.discard)

    async def _evict(self, sid: str) -> None:
        logger.warning("devs disconnecting slow consumer sid=%s", sid)
        try:
            await self.emit("sys.error", {"code": "backpressure"}, room=sid)
        except Exception:
            obs_metrics.inc_delivery_failure("emit")
            logger.debug("devs backpressure notice failed sid=%s", sid, exc_info=True)
        await self.disconnect(sid)
