"""FastAPI application entrypoint."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from campusconnect.api import search as search_api
from campusconnect.api.errors import install_error_handlers
from campusconnect.infra import opensearch, postgres
from campusconnect.obs import init as obs_init
from campusconnect.search.adapter import OpenSearchSearchAdapter

_LOG = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
	await postgres.init_pool()
	opensearch.init_client()
	service = search_api._service
	if service.backend_enabled:
		statuses = await OpenSearchSearchAdapter().ensure_indices()
		not_ready = [category.value for category, status in statuses.items() if not status.ready]
		if not_ready:
			_LOG.warning("search.indices.not_ready", extra={"categories": not_ready})
	await service.initialize()
	reprobe_task: asyncio.Task | None = None
	if service.reprobe_enabled:
		reprobe_task = asyncio.create_task(service.run_forever(), name="search-backend-reprobe")
	try:
		yield
	finally:
		service.stop()
		if reprobe_task is not None:
			reprobe_task.cancel()
			await asyncio.gather(reprobe_task, return_exceptions=True)
		await opensearch.close_client()
		await postgres.close_pool()


def create_app() -> FastAPI:
	app = FastAPI(title="CampusConnect Search", lifespan=lifespan)
	install_error_handlers(app)
	obs_init(app)
	app.include_router(search_api.router, prefix="/api", tags=["search"])

	@app.get("/metrics", include_in_schema=False)
	async def metrics_endpoint() -> Response:
		return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

	return app


app = create_app()
