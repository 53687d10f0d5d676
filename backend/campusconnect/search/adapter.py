"""Adapter around the dedicated OpenSearch engine.

Owns index lifecycle, document writes, and query execution. Write paths and
index provisioning never raise: they report :class:`WriteOutcome` /
:class:`IndexStatus` so a failed index write cannot fail the primary-entity
write that triggered it. Only :meth:`OpenSearchSearchAdapter.query` raises,
with :class:`BackendUnavailable`, which the service turns into fallback mode.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional

from opensearchpy import AsyncOpenSearch, NotFoundError

from campusconnect.infra import opensearch
from campusconnect.obs import metrics as obs_metrics
from campusconnect.search import builders, exceptions
from campusconnect.search.mappings import definition_for
from campusconnect.search.models import ALL_CATEGORIES, BackendPage, Category, IndexHit, IndexStatus, WriteOutcome

_LOG = logging.getLogger(__name__)
_REFRESH = "wait_for"


def _total_hits(response: Mapping[str, Any]) -> int:
	total = response.get("hits", {}).get("total", 0)
	if isinstance(total, dict):
		return int(total.get("value") or 0)
	return int(total or 0)


class OpenSearchSearchAdapter:
	"""Thin async wrapper around ``AsyncOpenSearch`` scoped to the search indices."""

	def __init__(self, *, client: AsyncOpenSearch | None = None) -> None:
		self._explicit_client = client

	@property
	def client(self) -> AsyncOpenSearch:
		return self._explicit_client or opensearch.get_client()

	async def is_available(self) -> bool:
		try:
			return bool(await self.client.ping())
		except Exception as exc:
			_LOG.info("search.backend.ping_failed", extra={"error": str(exc)})
			return False

	async def ensure_index(self, category: Category) -> IndexStatus:
		definition = definition_for(category)
		index = definition.index_name
		try:
			if await self.client.indices.exists(index=index):
				return IndexStatus.EXISTS
			await self.client.indices.create(index=index, body=definition.mapping_body())
		except Exception as exc:
			_LOG.warning("search.index.not_ready", extra={"index": index, "error": str(exc)})
			return IndexStatus.NOT_READY
		_LOG.info("search.index.created", extra={"index": index})
		return IndexStatus.CREATED

	async def ensure_indices(self) -> dict[Category, IndexStatus]:
		return {category: await self.ensure_index(category) for category in ALL_CATEGORIES}

	async def upsert(self, category: Category, entity_id: str, document: Mapping[str, Any]) -> WriteOutcome:
		index = definition_for(category).index_name
		body = dict(document)
		body["id"] = str(entity_id)
		try:
			await self.client.index(index=index, id=str(entity_id), body=body, refresh=_REFRESH)
		except Exception as exc:
			return self._write_failed(category, "upsert", index, entity_id, exc)
		obs_metrics.inc_index_write(category.value, "upsert", WriteOutcome.OK.value)
		return WriteOutcome.OK

	async def remove(self, category: Category, entity_id: str) -> WriteOutcome:
		index = definition_for(category).index_name
		try:
			await self.client.delete(index=index, id=str(entity_id), refresh=_REFRESH)
		except NotFoundError:
			obs_metrics.inc_index_write(category.value, "remove", WriteOutcome.NOT_FOUND.value)
			return WriteOutcome.NOT_FOUND
		except Exception as exc:
			return self._write_failed(category, "remove", index, entity_id, exc)
		obs_metrics.inc_index_write(category.value, "remove", WriteOutcome.OK.value)
		return WriteOutcome.OK

	async def bulk_upsert(
		self,
		category: Category,
		documents: Iterable[tuple[str, Mapping[str, Any]]],
	) -> WriteOutcome:
		index = definition_for(category).index_name
		actions: list[dict[str, Any]] = []
		for entity_id, document in documents:
			body = dict(document)
			body["id"] = str(entity_id)
			actions.append({"index": {"_index": index, "_id": str(entity_id)}})
			actions.append(body)
		if not actions:
			return WriteOutcome.OK
		try:
			response = await self.client.bulk(body=actions, refresh=_REFRESH)
		except Exception as exc:
			return self._write_failed(category, "bulk", index, None, exc)
		if response.get("errors"):
			failed = [
				item.get("index", {}).get("_id")
				for item in response.get("items", [])
				if item.get("index", {}).get("error")
			]
			_LOG.error(
				"search.index.bulk_partial_failure",
				extra={"index": index, "failed_ids": failed},
			)
			obs_metrics.inc_index_write(category.value, "bulk", WriteOutcome.FAILED.value)
			return WriteOutcome.FAILED
		obs_metrics.inc_index_write(category.value, "bulk", WriteOutcome.OK.value)
		return WriteOutcome.OK

	async def query(
		self,
		category: Category,
		text: str,
		filters: Mapping[str, Any],
		offset: int,
		limit: int,
		sort: Optional[str] = None,
	) -> BackendPage:
		definition = definition_for(category)
		body = builders.build_search_query(
			definition,
			text=text,
			filters=filters,
			offset=offset,
			limit=limit,
			sort=sort,
		)
		try:
			response = await self.client.search(index=definition.index_name, body=body)
		except Exception as exc:
			raise exceptions.BackendUnavailable(f"search_failed:{definition.index_name}") from exc
		return BackendPage(hits=self._parse_hits(response), total=_total_hits(response))

	def _parse_hits(self, response: Mapping[str, Any]) -> list[IndexHit]:
		hits: list[IndexHit] = []
		for hit in response.get("hits", {}).get("hits", []):
			source = dict(hit.get("_source") or {})
			entity_id = hit.get("_id") or source.get("id")
			if not entity_id:
				continue
			score = hit.get("_score")
			hits.append(
				IndexHit(
					id=str(entity_id),
					score=float(score) if score is not None else None,
					fields=source,
				)
			)
		return hits

	def _write_failed(
		self,
		category: Category,
		op: str,
		index: str,
		entity_id: Optional[str],
		exc: Exception,
	) -> WriteOutcome:
		_LOG.error(
			"search.index.write_failed",
			extra={"index": index, "op": op, "entity_id": entity_id, "error": str(exc)},
		)
		obs_metrics.inc_index_write(category.value, op, WriteOutcome.FAILED.value)
		return WriteOutcome.FAILED


__all__ = ["OpenSearchSearchAdapter"]
