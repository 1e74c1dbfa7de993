"""Probes, Prometheus scrape and index stats for operators."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from devradar import container
from devradar.obs import health
from devradar.settings import settings

router = APIRouter()


def _presented_token(request: Request) -> Optional[str]:
	explicit = request.headers.get("X-Admin-Token")
	if explicit:
		return explicit
	scheme, _, credentials = request.headers.get("Authorization", "").partition(" ")
	if scheme.lower() == "bearer" and credentials:
		return credentials
	return None


def require_admin(request: Request) -> None:
	expected = settings.obs_admin_token
	if not expected:
		raise HTTPException(status.HTTP_403_FORBIDDEN, detail="admin_token_not_configured")
	if _presented_token(request) != expected:
		raise HTTPException(status.HTTP_403_FORBIDDEN, detail="forbidden")


def require_metrics_access(request: Request) -> None:
	if not settings.obs_metrics_public:
		require_admin(request)


@router.get("/health/live")
async def health_live() -> Dict[str, Any]:
	return await health.liveness()


@router.get("/health/ready")
async def health_ready() -> Response:
	status_code, payload = await health.readiness()
	return JSONResponse(content=payload, status_code=status_code)


@router.get("/metrics", dependencies=[Depends(require_metrics_access)])
async def prometheus_metrics() -> Response:
	return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@router.get("/ops/index", dependencies=[Depends(require_admin)])
async def index_stats() -> Dict[str, Any]:
	"""Sizes of the serving state: developers, occupied cells, live subscriptions."""
	registry = container.get_registry()
	return {
		"developers": len(registry),
		"cells": registry.index.cell_count,
		"cell_size_deg": registry.index.cell_size_deg,
		"metric": registry.index.metric,
		"subscriptions": len(container.get_subscriptions()),
		"store": settings.developer_store,
	}
