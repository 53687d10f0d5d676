"""Service layer orchestrating unified search across users, groups, events and posts."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Sequence, TypeVar

from opentelemetry import trace

from campusconnect.obs import metrics as obs_metrics
from campusconnect.search import adapter as adapter_module
from campusconnect.search import exceptions
from campusconnect.search import fallback as fallback_module
from campusconnect.search import repository as repository_module
from campusconnect.search.mode import BackendModeCell
from campusconnect.search.tasks import collect
from campusconnect.search.models import (
	ALL_SCOPE,
	BackendPage,
	Category,
	CategoryPage,
	SearchMode,
	SearchQuery,
	SearchResult,
)
from campusconnect.settings import settings

_LOG = logging.getLogger(__name__)
_TRACER = trace.get_tracer(__name__)

T = TypeVar("T")


class UnifiedSearchService:
	"""Single entry point for search: routes, fans out, merges and enriches."""

	def __init__(
		self,
		*,
		adapter: adapter_module.OpenSearchSearchAdapter | None = None,
		fallback: fallback_module.PostgresFallbackEngine | None = None,
		repository: repository_module.SearchRepository | None = None,
		mode_cell: BackendModeCell | None = None,
		backend: str | None = None,
		call_timeout: float | None = None,
		fanout_size: int | None = None,
		reprobe_interval: float | None = None,
	) -> None:
		self._repo = repository or repository_module.SearchRepository()
		self._adapter = adapter or adapter_module.OpenSearchSearchAdapter()
		self._fallback = fallback or fallback_module.PostgresFallbackEngine(repository=self._repo)
		self._mode = mode_cell or BackendModeCell(promote_after=settings.search_promote_after)
		self._backend = (backend or settings.search_backend).lower()
		self._timeout = call_timeout if call_timeout is not None else settings.search_call_timeout_seconds
		self._fanout_size = fanout_size or settings.search_fanout_size
		self._reprobe_interval = (
			reprobe_interval if reprobe_interval is not None else settings.search_reprobe_interval_seconds
		)
		self._running = False

	@property
	def mode_cell(self) -> BackendModeCell:
		return self._mode

	@property
	def backend_enabled(self) -> bool:
		return self._backend in ("opensearch", "os", "elasticsearch")

	@property
	def reprobe_enabled(self) -> bool:
		return self.backend_enabled and self._reprobe_interval > 0

	# --- lifecycle -------------------------------------------------------

	async def initialize(self) -> SearchMode:
		"""Probe the backend once and pick the serving mode."""

		if not self.backend_enabled:
			self._mode.set(SearchMode.FALLBACK)
			_LOG.info("search.initialized", extra={"mode": SearchMode.FALLBACK.value, "reason": "disabled"})
			return SearchMode.FALLBACK
		available = await self._probe()
		mode = SearchMode.BACKEND if available else SearchMode.FALLBACK
		self._mode.set(mode)
		_LOG.info("search.initialized", extra={"mode": mode.value})
		return mode

	async def reprobe_once(self) -> SearchMode:
		return self._mode.record_probe(await self._probe())

	async def run_forever(self) -> None:
		"""Re-probe the backend periodically until :meth:`stop` is called."""

		if not self.reprobe_enabled:
			return
		self._running = True
		while self._running:
			await asyncio.sleep(self._reprobe_interval)
			await self.reprobe_once()

	def stop(self) -> None:
		self._running = False

	async def _probe(self) -> bool:
		try:
			return await asyncio.wait_for(self._adapter.is_available(), self._timeout)
		except asyncio.TimeoutError:
			_LOG.warning("search.backend.probe_timeout", extra={"timeout": self._timeout})
			return False

	# --- search ----------------------------------------------------------

	async def search(self, query: SearchQuery) -> SearchResult:
		if self._mode.mode is SearchMode.UNINITIALIZED:
			await self.initialize()

		categories = query.categories()
		# without text only filtered categories are searched; the rest stay empty
		searchable = tuple(category for category in categories if query.text or query.filters_for(category))
		if query.category == ALL_SCOPE:
			page, page_size = 1, self._fanout_size
		else:
			page, page_size = query.page, query.page_size
		mode = self._mode.mode

		started = time.perf_counter()
		with _TRACER.start_as_current_span("search.unified") as span:
			span.set_attribute("search.scope", query.category)
			span.set_attribute("search.mode", mode.value)
			pages: Sequence[CategoryPage]
			if mode is SearchMode.BACKEND:
				try:
					pages = await self._search_backend(query, searchable, page, page_size)
				except exceptions.BackendUnavailable as exc:
					_LOG.warning(
						"search.backend_failure",
						extra={"detail": exc.detail, "scope": query.category},
					)
					obs_metrics.inc_search_fallback()
					if self.reprobe_enabled:
						self._mode.record_failure()
					mode = SearchMode.FALLBACK
					span.set_attribute("search.demoted", True)
					pages = await self._search_fallback(query, searchable, page, page_size)
			else:
				pages = await self._search_fallback(query, searchable, page, page_size)

		by_category = dict(zip(searchable, pages))
		empty = CategoryPage(items=[], total=0)
		per_category = {category: list(by_category.get(category, empty).items) for category in categories}
		total = sum(result.total for result in by_category.values())
		obs_metrics.inc_search_query(query.category, mode.value)
		obs_metrics.observe_search_latency(query.category, time.perf_counter() - started)
		return SearchResult(per_category=per_category, total=total, mode=mode)

	async def _search_backend(
		self,
		query: SearchQuery,
		categories: Sequence[Category],
		page: int,
		page_size: int,
	) -> list[CategoryPage]:
		offset = (page - 1) * page_size
		try:
			backend_pages = await collect(
				self._backend_call(
					self._adapter.query(
						category,
						query.text,
						query.filters_for(category),
						offset,
						page_size,
						query.sort,
					)
				)
				for category in categories
			)
		except exceptions.BackendUnavailable:
			raise
		except Exception as exc:
			raise exceptions.BackendUnavailable(str(exc) or exc.__class__.__name__) from exc
		return await collect(
			self._enrich(category, backend_page) for category, backend_page in zip(categories, backend_pages)
		)

	async def _search_fallback(
		self,
		query: SearchQuery,
		categories: Sequence[Category],
		page: int,
		page_size: int,
	) -> list[CategoryPage]:
		return await collect(
			self._upstream_call(
				self._fallback.query(
					category,
					query.text,
					query.filters_for(category),
					page,
					page_size,
					query.sort,
				)
			)
			for category in categories
		)

	async def _enrich(self, category: Category, backend_page: BackendPage) -> CategoryPage:
		"""Swap thin hits for primary records, keeping the backend's order."""

		ids = [hit.id for hit in backend_page.hits]
		entities = await self._upstream_call(self._repo.find_many_by_ids(category, ids))
		by_id = {entity.id: entity for entity in entities}
		ordered = [by_id[entity_id] for entity_id in ids if entity_id in by_id]
		stale = [entity_id for entity_id in ids if entity_id not in by_id]
		if stale:
			_LOG.debug("search.enrich.stale_hits", extra={"category": category.value, "ids": stale})
			obs_metrics.inc_stale_hits(category.value, len(stale))
		return CategoryPage(items=ordered, total=backend_page.total)

	async def _backend_call(self, awaitable: Awaitable[T]) -> T:
		try:
			return await asyncio.wait_for(awaitable, self._timeout)
		except asyncio.TimeoutError as exc:
			raise exceptions.BackendUnavailable("search_backend_timeout") from exc

	async def _upstream_call(self, awaitable: Awaitable[T]) -> T:
		try:
			return await asyncio.wait_for(awaitable, self._timeout)
		except asyncio.TimeoutError as exc:
			raise exceptions.UpstreamFailure("primary_datastore_timeout") from exc

	async def status(self) -> dict[str, Any]:
		available = await self._probe() if self.backend_enabled else False
		return {"mode": self._mode.mode.value, "backend_available": available}


search_service = UnifiedSearchService()


__all__ = ["UnifiedSearchService", "search_service"]
