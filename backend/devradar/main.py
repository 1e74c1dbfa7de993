"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import socketio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from devradar import container
from devradar.api import developers, ops, search
from devradar.api.errors import install_error_handlers
from devradar.api.request_id import RequestIdMiddleware
from devradar.domain.realtime.sockets import DevsNamespace
from devradar.infra.redis import redis_client
from devradar.obs import init as obs_init
from devradar.settings import settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
	loaded = await container.startup()
	logger.info("devradar core ready developers=%s store=%s", loaded, settings.developer_store)
	try:
		yield
	finally:
		await redis_client.shutdown()


app = FastAPI(title="DevRadar Proximity Core", lifespan=lifespan)
install_error_handlers(app)

allow_origins = list(settings.cors_allow_origins)
if not allow_origins:
	allow_origins = ["http://localhost:19006", "http://localhost:3000"] if settings.is_dev() else []

app.add_middleware(
	CORSMiddleware,
	allow_origins=allow_origins,
	allow_credentials="*" not in allow_origins,
	allow_methods=["*"],
	allow_headers=["*"],
)

# Use the same allowed origins for Socket.IO as for the REST API
sio = socketio.AsyncServer(async_mode="asgi", cors_allowed_origins=allow_origins)
devs_namespace = DevsNamespace()
sio.register_namespace(devs_namespace)
socket_app = socketio.ASGIApp(sio, other_asgi_app=app)
obs_init(app)

# Ensure every request carries an X-Request-Id and make it available on request.state
app.add_middleware(RequestIdMiddleware)

app.include_router(developers.router, tags=["developers"])
app.include_router(search.router, tags=["search"])
app.include_router(ops.router, tags=["ops"])
