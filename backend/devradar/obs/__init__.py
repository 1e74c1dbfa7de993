"""Observability bootstrap: JSON logging and HTTP instrumentation."""

from __future__ import annotations

import logging as std_logging

from fastapi import FastAPI

from devradar.obs import logging as obs_logging
from devradar.obs import middleware
from devradar.settings import settings

# Our middleware already writes one access line per request.
_QUIET_LOGGERS = ("uvicorn.access", "engineio.server", "socketio.server")


def init(app: FastAPI) -> bool:
	"""Install logging and request instrumentation once per app; returns True if installed."""
	if not settings.obs_enabled or getattr(app.state, "obs_installed", False):
		return False
	obs_logging.configure_logging()
	for name in _QUIET_LOGGERS:
		std_logging.getLogger(name).setLevel(std_logging.WARNING)
	middleware.install(app)
	app.state.obs_installed = True
	return True


__all__ = ["init"]
