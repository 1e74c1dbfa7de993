"""Request id helpers.

Every request carries an X-Request-Id: taken from the client when supplied,
generated otherwise. The id lives on ``request.state`` and in the logging
context so error bodies and log lines can quote it.
"""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from devradar.obs import logging as obs_logging

REQUEST_ID_ATTR = "request_id"
REQUEST_ID_HEADER = "X-Request-Id"


def ensure_request_id(request: Request) -> str:
    """Return the id already assigned to ``request``, assigning one on first use."""
    rid = getattr(request.state, REQUEST_ID_ATTR, None) or request.headers.get(REQUEST_ID_HEADER)
    if not rid:
        rid = uuid.uuid4().hex
    setattr(request.state, REQUEST_ID_ATTR, rid)
    return rid


def get_request_id(request: Optional[Request] = None, default: str = "unknown") -> str:
    """Return the current request id from request.state or the logging context."""
    if request is not None:
        rid = getattr(request.state, REQUEST_ID_ATTR, None)
        if rid:
            return str(rid)
    return obs_logging.current_request_id() or default


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        rid = ensure_request_id(request)
        response = await call_next(request)
        if REQUEST_ID_HEADER not in response.headers:
            response.headers[REQUEST_ID_HEADER] = rid
        return response
