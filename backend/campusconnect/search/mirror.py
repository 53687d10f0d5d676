"""Keeps the search index in step with primary-store mutations.

Callers invoke the writer after their own primary write has committed. Index
failures are reported as :class:`WriteOutcome` values and never propagate, so
the index can lag the primary store but never blocks it.
"""

from __future__ import annotations

import logging
from typing import Any

from campusconnect.search import adapter as adapter_module
from campusconnect.search import repository as repository_module
from campusconnect.search.mappings import definition_for
from campusconnect.search.models import Category, SearchableEntity, WriteOutcome, category_of

_LOG = logging.getLogger(__name__)


def project(entity: SearchableEntity) -> dict[str, Any]:
	"""Return the index document for ``entity``: only the mapped fields."""

	definition = definition_for(category_of(entity))
	return entity.model_dump(mode="json", include=set(definition.projected_fields))


class IndexMirrorWriter:
	def __init__(
		self,
		*,
		adapter: adapter_module.OpenSearchSearchAdapter | None = None,
		repository: repository_module.SearchRepository | None = None,
	) -> None:
		self._adapter = adapter or adapter_module.OpenSearchSearchAdapter()
		self._repo = repository or repository_module.SearchRepository()

	async def on_create(self, entity: SearchableEntity) -> WriteOutcome:
		return await self._upsert(entity)

	async def on_update(self, entity: SearchableEntity) -> WriteOutcome:
		return await self._upsert(entity)

	async def on_delete(self, *, category: Category, entity_id: str) -> WriteOutcome:
		category = Category(category)
		outcome = await self._adapter.remove(category, str(entity_id))
		if outcome is WriteOutcome.NOT_FOUND:
			_LOG.debug("search.mirror.delete_missing", extra={"category": category.value, "entity_id": entity_id})
		return outcome

	async def backfill(self, category: Category, *, batch_size: int = 500) -> int:
		"""Stream every live entity of ``category`` into the index.

		Returns the number of documents written. A failed batch is logged and
		skipped; the remaining batches still run.
		"""

		indexed = 0
		async for batch in self._repo.iter_all(category, batch_size=batch_size):
			outcome = await self._adapter.bulk_upsert(
				category,
				[(entity.id, project(entity)) for entity in batch],
			)
			if outcome.ok:
				indexed += len(batch)
			else:
				_LOG.warning(
					"search.mirror.backfill_batch_failed",
					extra={"category": category.value, "size": len(batch)},
				)
		_LOG.info("search.mirror.backfill_done", extra={"category": category.value, "indexed": indexed})
		return indexed

	async def _upsert(self, entity: SearchableEntity) -> WriteOutcome:
		category = category_of(entity)
		return await self._adapter.upsert(category, entity.id, project(entity))


__all__ = ["IndexMirrorWriter", "project"]
