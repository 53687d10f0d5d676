"""REST endpoints for unified and per-category search."""

from __future__ import annotations

import logging
import re
from typing import Any, Mapping, Optional

from fastapi import APIRouter, Query, Request

from campusconnect.search import exceptions
from campusconnect.search.models import ALL_SCOPE, Category, SearchQuery
from campusconnect.search.service import search_service
from campusconnect.settings import settings

_LOG = logging.getLogger(__name__)

router = APIRouter(tags=["search"])

_service = search_service

_VALID_SCOPES = frozenset({ALL_SCOPE, *(category.value for category in Category)})
# users[role]=student, knowledge[company]=Acme
_FILTER_PARAM = re.compile(r"^(users|groups|events|knowledge)\[(\w+)\]$")


def _bracket_filters(params: Mapping[str, Any]) -> dict[Category, dict[str, str]]:
	filters: dict[Category, dict[str, str]] = {}
	for key, value in params.items():
		match = _FILTER_PARAM.match(key)
		if not match or value in (None, ""):
			continue
		filters.setdefault(Category(match.group(1)), {})[match.group(2)] = value
	return filters


def _page_size(limit: int) -> int:
	return min(limit, settings.search_max_page_size)


async def _run(error: str, query: SearchQuery) -> dict[str, Any]:
	if not query.text and not query.has_filters():
		raise exceptions.InvalidQuery()
	try:
		result = await _service.search(query)
	except exceptions.SearchError as exc:
		raise exceptions.UpstreamFailure(error, message=exc.detail) from exc
	except Exception as exc:
		_LOG.exception("search.request_failed", extra={"scope": query.category})
		raise exceptions.UpstreamFailure(error, message=str(exc) or "Unknown error") from exc
	return result.to_payload()


def _scoped(scope: Category, text: str, page: int, limit: int, filters: Mapping[str, Optional[str]]) -> SearchQuery:
	return SearchQuery(
		text=text,
		category=scope.value,
		filters={scope: {key: value for key, value in filters.items() if value}},
		page=page,
		page_size=_page_size(limit),
	)


@router.get("/search")
async def unified_search_endpoint(
	request: Request,
	q: str = "",
	scope: str = Query(default=ALL_SCOPE, alias="type"),
	page: int = Query(default=1, ge=1),
	limit: int = Query(default=settings.search_default_page_size, ge=1),
	sort: Optional[str] = None,
) -> dict[str, Any]:
	query = SearchQuery(
		text=q,
		category=scope if scope in _VALID_SCOPES else ALL_SCOPE,
		filters=_bracket_filters(request.query_params),
		page=page,
		page_size=_page_size(limit),
		sort=sort,
	)
	return await _run("Search failed", query)


@router.get("/search/status")
async def search_status_endpoint() -> dict[str, Any]:
	return await _service.status()


@router.get("/search/users")
async def search_users_endpoint(
	q: str = "",
	page: int = Query(default=1, ge=1),
	limit: int = Query(default=settings.search_default_page_size, ge=1),
	role: Optional[str] = None,
	department: Optional[str] = None,
) -> dict[str, Any]:
	query = _scoped(Category.USERS, q, page, limit, {"role": role, "department": department})
	return await _run("User search failed", query)


@router.get("/search/groups")
async def search_groups_endpoint(
	q: str = "",
	page: int = Query(default=1, ge=1),
	limit: int = Query(default=settings.search_default_page_size, ge=1),
	group_type: Optional[str] = Query(default=None, alias="type"),
	privacy: Optional[str] = None,
) -> dict[str, Any]:
	query = _scoped(Category.GROUPS, q, page, limit, {"type": group_type, "privacy": privacy})
	return await _run("Group search failed", query)


@router.get("/search/events")
async def search_events_endpoint(
	q: str = "",
	page: int = Query(default=1, ge=1),
	limit: int = Query(default=settings.search_default_page_size, ge=1),
	category: Optional[str] = None,
) -> dict[str, Any]:
	query = _scoped(Category.EVENTS, q, page, limit, {"category": category})
	return await _run("Event search failed", query)


@router.get("/search/knowledge")
async def search_knowledge_endpoint(
	q: str = "",
	page: int = Query(default=1, ge=1),
	limit: int = Query(default=settings.search_default_page_size, ge=1),
	category: Optional[str] = None,
	company: Optional[str] = None,
) -> dict[str, Any]:
	query = _scoped(Category.KNOWLEDGE, q, page, limit, {"category": category, "company": company})
	return await _run("Knowledge search failed", query)


__all__ = ["router"]
