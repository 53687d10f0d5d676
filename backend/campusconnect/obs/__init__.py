"""Observability package bootstrap."""

from __future__ import annotations

from fastapi import FastAPI

from campusconnect.obs import logging as obs_logging
from campusconnect.obs import middleware
from campusconnect.settings import settings

_logging_configured = False


def init(app: FastAPI) -> None:
	global _logging_configured
	if not settings.obs_enabled:
		return
	if not _logging_configured:
		obs_logging.configure_logging()
		_logging_configured = True
	middleware.install(app)


__all__ = ["init"]
