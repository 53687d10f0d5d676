"""Async repository over the primary datastore for searchable entities."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, AsyncIterator, Mapping, Optional, Sequence

import asyncpg

from campusconnect.infra.postgres import get_pool
from campusconnect.search import builders, exceptions
from campusconnect.search.models import ENTITY_TYPES, Category, SearchableEntity

_TS_CONFIG = "english"


@dataclass(frozen=True, slots=True)
class TableSpec:
	table: str
	text_columns: tuple[str, ...]
	array_columns: tuple[str, ...]
	filter_columns: frozenset[str]
	sortable_columns: frozenset[str]

	def document_sql(self) -> str:
		parts = [f"coalesce(\"{column}\", '')" for column in self.text_columns]
		parts.extend(f"coalesce(array_to_string(\"{column}\", ' '), '')" for column in self.array_columns)
		return f"to_tsvector('{_TS_CONFIG}', concat_ws(' ', {', '.join(parts)}))"


TABLES: dict[Category, TableSpec] = {
	Category.USERS: TableSpec(
		table="user_profile",
		text_columns=("name", "bio", "company", "position"),
		array_columns=("skills", "interests"),
		filter_columns=frozenset({"role", "department", "industry", "graduation_year"}),
		sortable_columns=frozenset({"created_at", "graduation_year"}),
	),
	Category.GROUPS: TableSpec(
		table="group_entity",
		text_columns=("name", "description"),
		array_columns=("tags",),
		filter_columns=frozenset({"type", "privacy"}),
		sortable_columns=frozenset({"created_at", "member_count"}),
	),
	Category.EVENTS: TableSpec(
		table="campus_event",
		text_columns=("title", "description", "location"),
		array_columns=("tags",),
		filter_columns=frozenset({"category"}),
		sortable_columns=frozenset({"created_at", "start_date", "end_date", "attendee_count"}),
	),
	Category.KNOWLEDGE: TableSpec(
		table="knowledge_post",
		text_columns=("title", "body", "company", "author_name"),
		array_columns=("tags", "related_skills", "course_codes"),
		filter_columns=frozenset({"category", "company", "industry", "author_role"}),
		sortable_columns=frozenset({"created_at", "vote_score", "views", "helpful_count"}),
	),
}


class _Params:
	"""Accumulates positional asyncpg parameters and hands out ``$n`` placeholders."""

	def __init__(self) -> None:
		self.values: list[Any] = []

	def add(self, value: Any) -> str:
		self.values.append(value)
		return f"${len(self.values)}"


def _where_clause(layout: TableSpec, params: _Params, *, text: str, filters: Mapping[str, Any]) -> tuple[str, Optional[str]]:
	"""Return the WHERE clause and, when ``text`` is set, the tsquery placeholder."""

	conditions = ["deleted_at IS NULL"]
	ts_placeholder: Optional[str] = None
	if text:
		ts_placeholder = params.add(text)
		conditions.append(f"{layout.document_sql()} @@ plainto_tsquery('{_TS_CONFIG}', {ts_placeholder})")
	for name in sorted(filters):
		value = filters[name]
		if value in (None, "") or name not in layout.filter_columns:
			continue
		conditions.append(f"CAST(\"{name}\" AS text) = {params.add(str(value))}")
	return " AND ".join(conditions), ts_placeholder


class SearchRepository:
	"""Thin data-access layer around asyncpg for users, groups, events and posts."""

	def __init__(self, *, pool: asyncpg.pool.Pool | None = None) -> None:
		self._pool = pool

	async def _acquire_pool(self) -> asyncpg.pool.Pool:
		if self._pool is not None:
			return self._pool
		return await get_pool()

	async def _fetch(self, sql: str, *params: Any) -> list[asyncpg.Record]:
		try:
			pool = await self._acquire_pool()
			async with pool.acquire() as conn:
				return await conn.fetch(sql, *params)
		except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as exc:
			raise exceptions.UpstreamFailure(str(exc) or exc.__class__.__name__) from exc

	async def _fetchval(self, sql: str, *params: Any) -> Any:
		try:
			pool = await self._acquire_pool()
			async with pool.acquire() as conn:
				return await conn.fetchval(sql, *params)
		except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as exc:
			raise exceptions.UpstreamFailure(str(exc) or exc.__class__.__name__) from exc

	def _to_entity(self, category: Category, row: Mapping[str, Any]) -> SearchableEntity:
		return ENTITY_TYPES[category].model_validate(dict(row))  # type: ignore[return-value]

	async def find_by_id(self, category: Category, entity_id: str) -> SearchableEntity | None:
		layout = TABLES[category]
		rows = await self._fetch(
			f"SELECT * FROM {layout.table} WHERE id::text = $1 AND deleted_at IS NULL",
			str(entity_id),
		)
		if not rows:
			return None
		return self._to_entity(category, rows[0])

	async def find_many_by_ids(self, category: Category, ids: Sequence[str]) -> list[SearchableEntity]:
		"""Fetch entities by id. Result order is unspecified; missing ids are omitted."""

		if not ids:
			return []
		layout = TABLES[category]
		rows = await self._fetch(
			f"SELECT * FROM {layout.table} WHERE id::text = ANY($1::text[]) AND deleted_at IS NULL",
			[str(entity_id) for entity_id in ids],
		)
		return [self._to_entity(category, row) for row in rows]

	async def find_by_filter(
		self,
		category: Category,
		*,
		text: str,
		filters: Mapping[str, Any],
		offset: int,
		limit: int,
		sort: Optional[str] = None,
	) -> list[SearchableEntity]:
		layout = TABLES[category]
		params = _Params()
		where, ts_placeholder = _where_clause(layout, params, text=text, filters=filters)
		if ts_placeholder is not None:
			order_by = f"ts_rank({layout.document_sql()}, plainto_tsquery('{_TS_CONFIG}', {ts_placeholder})) DESC, created_at DESC"
		else:
			parsed = builders.parse_sort(sort, layout.sortable_columns)
			if parsed is not None:
				column, descending = parsed
				order_by = f"\"{column}\" {'DESC' if descending else 'ASC'}, id"
			else:
				order_by = "created_at DESC, id"
		limit_ph = params.add(limit)
		offset_ph = params.add(offset)
		sql = f"""
			SELECT *
			FROM {layout.table}
			WHERE {where}
			ORDER BY {order_by}
			LIMIT {limit_ph} OFFSET {offset_ph}
		"""
		rows = await self._fetch(sql, *params.values)
		return [self._to_entity(category, row) for row in rows]

	async def count(self, category: Category, *, text: str, filters: Mapping[str, Any]) -> int:
		layout = TABLES[category]
		params = _Params()
		where, _ = _where_clause(layout, params, text=text, filters=filters)
		value = await self._fetchval(f"SELECT count(*) FROM {layout.table} WHERE {where}", *params.values)
		return int(value or 0)

	async def iter_all(self, category: Category, *, batch_size: int = 500) -> AsyncIterator[list[SearchableEntity]]:
		"""Yield every live entity of ``category`` in keyset-paginated batches."""

		layout = TABLES[category]
		cursor: Optional[tuple[datetime, str]] = None
		while True:
			if cursor is None:
				rows = await self._fetch(
					f"SELECT * FROM {layout.table} WHERE deleted_at IS NULL ORDER BY created_at, id::text LIMIT $1",
					batch_size,
				)
			else:
				rows = await self._fetch(
					f"""
					SELECT * FROM {layout.table}
					WHERE deleted_at IS NULL AND (created_at, id::text) > ($1, $2)
					ORDER BY created_at, id::text
					LIMIT $3
					""",
					cursor[0],
					cursor[1],
					batch_size,
				)
			if not rows:
				return
			batch = [self._to_entity(category, row) for row in rows]
			yield batch
			last = batch[-1]
			cursor = (last.created_at, last.id)
			if len(rows) < batch_size:
				return


__all__ = ["SearchRepository", "TABLES", "TableSpec"]
