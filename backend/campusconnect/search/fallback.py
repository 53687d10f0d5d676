"""PostgreSQL full-text fallback used when the search backend is unavailable.

Matching is token based (``plainto_tsquery``), not fuzzy: the fallback trades
match quality for availability. Results are full entities read straight from
the source of truth, so no enrichment step follows.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from campusconnect.search import repository as repository_module
from campusconnect.search.models import Category, CategoryPage
from campusconnect.search.tasks import collect

_LOG = logging.getLogger(__name__)


class PostgresFallbackEngine:
	def __init__(self, *, repository: repository_module.SearchRepository | None = None) -> None:
		self._repo = repository or repository_module.SearchRepository()

	async def query(
		self,
		category: Category,
		text: str,
		filters: Mapping[str, Any],
		page: int,
		page_size: int,
		sort: Optional[str] = None,
	) -> CategoryPage:
		offset = (max(page, 1) - 1) * page_size
		page_items = self._repo.find_by_filter(
			category,
			text=text,
			filters=filters,
			offset=offset,
			limit=page_size,
			sort=sort,
		)
		total_count = self._repo.count(category, text=text, filters=filters)
		items, total = await collect((page_items, total_count))
		_LOG.debug(
			"search.fallback.query",
			extra={"category": category.value, "returned": len(items), "total": total},
		)
		return CategoryPage(items=list(items), total=total)


__all__ = ["PostgresFallbackEngine"]
