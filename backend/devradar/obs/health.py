"""Liveness and readiness probes."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, Tuple

from devradar import container
from devradar.infra.redis import redis_client
from devradar.obs import metrics
from devradar.settings import settings

logger = logging.getLogger(__name__)


async def _check_redis() -> Dict[str, Any]:
	started = time.perf_counter()
	try:
		await asyncio.wait_for(redis_client.ping(), timeout=settings.redis_ping_timeout_seconds)
	except Exception as exc:
		metrics.mark_redis(False)
		logger.warning("redis ping failed during readiness", exc_info=True)
		return {"ok": False, "error": type(exc).__name__}
	metrics.mark_redis(True)
	return {"ok": True, "latency_ms": round((time.perf_counter() - started) * 1000, 2)}


def _check_index() -> Dict[str, Any]:
	registry = container.get_registry()
	# The serving copy and the index must agree on membership.
	consistent = len(registry) == len(registry.index)
	return {
		"ok": consistent,
		"developers": len(registry),
		"cells": registry.index.cell_count,
		"subscriptions": len(container.get_subscriptions()),
	}


async def liveness() -> Dict[str, Any]:
	return {"status": "ok"}


async def readiness() -> Tuple[int, Dict[str, Any]]:
	checks: Dict[str, Dict[str, Any]] = {"index": _check_index()}
	if settings.developer_store == "redis":
		checks["redis"] = await _check_redis()
	healthy = all(check["ok"] for check in checks.values())
	body = {"status": "ok" if healthy else "degraded", "checks": checks}
	return (200 if healthy else 503), body
