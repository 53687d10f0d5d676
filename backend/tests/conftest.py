import asyncio
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

from campusconnect.infra import opensearch, postgres
from campusconnect.main import app
from campusconnect.search import exceptions
from campusconnect.search.fallback import PostgresFallbackEngine
from campusconnect.search.mode import BackendModeCell
from campusconnect.search.models import (
	BackendPage,
	Category,
	Event,
	Group,
	IndexHit,
	KnowledgePost,
	SearchMode,
	UserProfile,
	WriteOutcome,
	category_of,
)
from campusconnect.search.service import UnifiedSearchService

_EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _haystack(payload: dict[str, Any]) -> str:
	parts: list[str] = []
	for value in payload.values():
		if isinstance(value, list):
			parts.extend(str(item) for item in value)
		elif isinstance(value, str):
			parts.append(value)
	return " ".join(parts).lower()


def _matches(payload: dict[str, Any], text: str, filters: dict[str, Any]) -> bool:
	haystack = _haystack(payload)
	if text and not all(token in haystack for token in text.lower().split()):
		return False
	return all(str(payload.get(key)) == str(value) for key, value in filters.items())


class InMemoryRepository:
	"""Primary-store double with the same coroutine surface as SearchRepository."""

	def __init__(self) -> None:
		self.rows: dict[Category, dict[str, Any]] = {category: {} for category in Category}
		self.fail = False
		self.delay = 0.0
		self.calls: list[tuple[str, Category]] = []

	def add(self, *entities) -> None:
		for entity in entities:
			self.rows[category_of(entity)][entity.id] = entity

	def delete(self, category: Category, entity_id: str) -> None:
		self.rows[category].pop(entity_id, None)

	async def _enter(self, op: str, category: Category) -> None:
		self.calls.append((op, category))
		if self.delay:
			await asyncio.sleep(self.delay)
		if self.fail:
			raise exceptions.UpstreamFailure("connection refused")

	async def find_by_id(self, category, entity_id):
		await self._enter("find_by_id", category)
		return self.rows[category].get(entity_id)

	async def find_many_by_ids(self, category, ids):
		await self._enter("find_many_by_ids", category)
		wanted = set(ids)
		# reversed so callers cannot rely on the store's order
		return [entity for entity_id, entity in reversed(self.rows[category].items()) if entity_id in wanted]

	def _filtered(self, category, text, filters):
		matched = [
			entity for entity in self.rows[category].values() if _matches(entity.model_dump(mode="json"), text, filters)
		]
		return sorted(matched, key=lambda entity: entity.created_at, reverse=True)

	async def find_by_filter(self, category, *, text, filters, offset, limit, sort=None):
		await self._enter("find_by_filter", category)
		return self._filtered(category, text, filters)[offset : offset + limit]

	async def count(self, category, *, text, filters):
		await self._enter("count", category)
		return len(self._filtered(category, text, filters))

	async def iter_all(self, category, *, batch_size=500):
		entities = list(self.rows[category].values())
		for start in range(0, len(entities), batch_size):
			yield entities[start : start + batch_size]


class StubSearchAdapter:
	"""Search-backend double; documents live in dicts keyed by category."""

	def __init__(self) -> None:
		self.docs: dict[Category, dict[str, dict[str, Any]]] = {category: {} for category in Category}
		self.ranked: dict[Category, list[str]] = {}
		self.available = True
		self.fail_on: set[Category] = set()
		self.fail_writes = False
		self.delays: dict[Category, float] = {}
		self.query_calls: list[dict[str, Any]] = []
		self.bulk_calls: list[tuple[Category, list[str]]] = []

	async def is_available(self) -> bool:
		return self.available

	async def ensure_indices(self):
		return {}

	async def upsert(self, category, entity_id, document):
		if self.fail_writes:
			return WriteOutcome.FAILED
		self.docs[category][entity_id] = dict(document, id=entity_id)
		return WriteOutcome.OK

	async def remove(self, category, entity_id):
		if self.fail_writes:
			return WriteOutcome.FAILED
		if self.docs[category].pop(entity_id, None) is None:
			return WriteOutcome.NOT_FOUND
		return WriteOutcome.OK

	async def bulk_upsert(self, category, documents):
		documents = list(documents)
		self.bulk_calls.append((category, [entity_id for entity_id, _ in documents]))
		if self.fail_writes:
			return WriteOutcome.FAILED
		for entity_id, document in documents:
			self.docs[category][entity_id] = dict(document, id=entity_id)
		return WriteOutcome.OK

	async def query(self, category, text, filters, offset, limit, sort=None):
		self.query_calls.append(
			{"category": category, "text": text, "filters": dict(filters), "offset": offset, "limit": limit}
		)
		if category in self.delays:
			await asyncio.sleep(self.delays[category])
		if category in self.fail_on:
			raise exceptions.BackendUnavailable(f"search_failed:{category.value}")
		if category in self.ranked:
			ids = list(self.ranked[category])
		else:
			ids = [
				entity_id
				for entity_id, document in self.docs[category].items()
				if _matches(document, text, filters)
			]
		page = ids[offset : offset + limit]
		hits = [IndexHit(id=entity_id, score=float(len(page) - position)) for position, entity_id in enumerate(page)]
		return BackendPage(hits=hits, total=len(ids))


def _created(minutes: int) -> datetime:
	return _EPOCH + timedelta(minutes=minutes)


def _make_user(entity_id: str, name: str, *, minutes: int = 0, **fields: Any) -> UserProfile:
	fields.setdefault("role", "student")
	return UserProfile(id=entity_id, name=name, created_at=_created(minutes), **fields)


def _make_group(entity_id: str, name: str, *, minutes: int = 0, **fields: Any) -> Group:
	fields.setdefault("type", "club")
	return Group(id=entity_id, name=name, created_at=_created(minutes), **fields)


def _make_event(entity_id: str, title: str, *, minutes: int = 0, **fields: Any) -> Event:
	fields.setdefault("category", "social")
	return Event(id=entity_id, title=title, created_at=_created(minutes), **fields)


def _make_post(entity_id: str, title: str, *, minutes: int = 0, **fields: Any) -> KnowledgePost:
	fields.setdefault("body", "")
	fields.setdefault("category", "interview")
	return KnowledgePost(id=entity_id, title=title, created_at=_created(minutes), **fields)


@pytest.fixture
def make_user():
	return _make_user


@pytest.fixture
def make_group():
	return _make_group


@pytest.fixture
def make_event():
	return _make_event


@pytest.fixture
def make_post():
	return _make_post


@pytest.fixture
def memory_repo():
	return InMemoryRepository()


@pytest.fixture
def stub_adapter():
	return StubSearchAdapter()


@pytest.fixture
def build_service(memory_repo, stub_adapter):
	"""Factory wiring a service to the in-memory doubles in a chosen mode."""

	def _build(mode: SearchMode = SearchMode.BACKEND, **overrides: Any) -> UnifiedSearchService:
		options: dict[str, Any] = {
			"adapter": stub_adapter,
			"repository": memory_repo,
			"fallback": PostgresFallbackEngine(repository=memory_repo),
			"mode_cell": BackendModeCell(mode, promote_after=overrides.pop("promote_after", 1)),
			"backend": "opensearch",
			"call_timeout": 1.0,
			"fanout_size": 5,
			"reprobe_interval": 0,
		}
		options.update(overrides)
		return UnifiedSearchService(**options)

	return _build


@pytest.fixture(autouse=True)
def patch_infra(monkeypatch):
	async def _noop():
		return None

	monkeypatch.setattr(postgres, "init_pool", _noop)
	monkeypatch.setattr(postgres, "close_pool", _noop)
	monkeypatch.setattr(opensearch, "close_client", _noop)


@pytest_asyncio.fixture
async def api_client():
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client
