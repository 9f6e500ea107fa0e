"""Logging, metrics and health for the feed service."""

from __future__ import annotations

from fastapi import FastAPI

from app.obs import logging as obs_logging
from app.obs import middleware
from app.settings import settings


def init(app: FastAPI) -> None:
	"""Install JSON logging and the request middleware once per app."""
	if getattr(app.state, "obs_installed", False):
		return
	app.state.obs_installed = True
	obs_logging.configure_logging()
	if settings.obs_enabled:
		middleware.install(app)


__all__ = ["init"]
