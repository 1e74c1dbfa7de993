"""Per-request metrics and a single structured access line."""

from __future__ import annotations

import time

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from devradar.api import request_id as request_ids
from devradar.obs import logging as obs_logging
from devradar.obs import metrics

_access_log = obs_logging.get_logger("devradar.http")


def _route_label(request: Request) -> str:
	# Templated path keeps metric label cardinality bounded (/developers/{developer_id}).
	route = request.scope.get("route")
	return getattr(route, "path", None) or request.url.path


class ObservabilityMiddleware(BaseHTTPMiddleware):
	async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
		request_id = request_ids.ensure_request_id(request)
		token = obs_logging.bind_context(
			request_id=request_id,
			route=request.url.path,
			ip=request.client.host if request.client else None,
		)
		started = time.perf_counter()
		status_code = 500
		try:
			response = await call_next(request)
			status_code = response.status_code
		except Exception:
			_access_log.exception("http_request_failed", extra={"method": request.method})
			raise
		finally:
			elapsed = time.perf_counter() - started
			route = _route_label(request)
			metrics.observe_request(route, request.method, status_code, elapsed)
			_access_log.info(
				"http_request",
				extra={
					"method": request.method,
					"status": status_code,
					"latency_ms": round(elapsed * 1000, 3),
					"route_template": route,
				},
			)
			obs_logging.reset_context(token)
		response.headers.setdefault(request_ids.REQUEST_ID_HEADER, request_id)
		return response


def install(app: FastAPI) -> None:
	app.add_middleware(ObservabilityMiddleware)
