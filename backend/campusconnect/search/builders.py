"""OpenSearch query builders for unified search."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional

from campusconnect.search.mappings import IndexDefinition

_LOG = logging.getLogger(__name__)


def parse_sort(sort: Optional[str], allowed: Iterable[str]) -> Optional[tuple[str, bool]]:
	"""Parse ``"field"`` / ``"-field"`` into ``(field, descending)``.

	Sort hints are advisory: unknown fields yield ``None`` rather than an error.
	"""

	if not sort:
		return None
	value = sort.strip()
	descending = value.startswith("-")
	name = value.lstrip("-+")
	if name not in set(allowed):
		return None
	return name, descending


def build_filter_clauses(definition: IndexDefinition, filters: Mapping[str, Any]) -> list[dict[str, Any]]:
	"""Translate public filter names into exact-match ``term`` clauses."""

	clauses: list[dict[str, Any]] = []
	for name, value in filters.items():
		if value in (None, ""):
			continue
		field = definition.filter_field(name)
		if field is None:
			_LOG.debug(
				"search.builders.filter_ignored",
				extra={"category": definition.category.value, "filter": name},
			)
			continue
		clauses.append({"term": {field: value}})
	return clauses


def build_search_query(
	definition: IndexDefinition,
	*,
	text: str,
	filters: Mapping[str, Any],
	offset: int,
	limit: int,
	sort: Optional[str] = None,
) -> dict[str, Any]:
	"""Return a fuzzy multi-field query, or match-all when ``text`` is empty."""

	if text:
		must: list[dict[str, Any]] = [
			{
				"multi_match": {
					"query": text,
					"fields": definition.query_fields(),
					"type": "best_fields",
					"fuzziness": "AUTO",
				}
			}
		]
	else:
		must = [{"match_all": {}}]

	body: dict[str, Any] = {
		"query": {"bool": {"must": must, "filter": build_filter_clauses(definition, filters)}},
		"from": offset,
		"size": limit,
		"track_total_hits": True,
	}
	parsed = parse_sort(sort, definition.sortable_fields)
	if parsed is not None:
		field, descending = parsed
		body["sort"] = [{field: {"order": "desc" if descending else "asc"}}, "_score"]
	return body


__all__ = ["build_filter_clauses", "build_search_query", "parse_sort"]
