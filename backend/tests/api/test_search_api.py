import pytest

from campusconnect.api import search as search_api
from campusconnect.search import exceptions
from campusconnect.search.models import Category, SearchMode, SearchResult


class _RecordingService:
	def __init__(self, result=None, error=None):
		self.queries = []
		self.result = result
		self.error = error

	async def search(self, query):
		self.queries.append(query)
		if self.error is not None:
			raise self.error
		if self.result is not None:
			return self.result
		return SearchResult(per_category={category: [] for category in query.categories()}, total=0)

	async def status(self):
		return {"mode": "backend", "backend_available": True}


@pytest.mark.asyncio
async def test_unified_search_parses_bracket_filters(monkeypatch, api_client):
	service = _RecordingService()
	monkeypatch.setattr(search_api, "_service", service)

	response = await api_client.get(
		"/api/search",
		params={"q": "robotics", "type": "all", "users[role]": "faculty", "groups[privacy]": "public", "page": "2"},
	)

	assert response.status_code == 200
	assert response.json() == {"users": [], "groups": [], "events": [], "posts": [], "total": 0}
	query = service.queries[0]
	assert query.text == "robotics"
	assert query.category == "all"
	assert query.filters_for(Category.USERS) == {"role": "faculty"}
	assert query.filters_for(Category.GROUPS) == {"privacy": "public"}
	assert query.page == 2
	assert response.headers["X-Request-Id"]


@pytest.mark.asyncio
async def test_unknown_type_falls_back_to_all(monkeypatch, api_client):
	service = _RecordingService()
	monkeypatch.setattr(search_api, "_service", service)

	response = await api_client.get("/api/search", params={"q": "x", "type": "jobs"})

	assert response.status_code == 200
	assert service.queries[0].category == "all"


@pytest.mark.asyncio
async def test_missing_query_is_rejected(monkeypatch, api_client):
	service = _RecordingService()
	monkeypatch.setattr(search_api, "_service", service)

	for path in ("/api/search", "/api/search/users", "/api/search/knowledge"):
		response = await api_client.get(path, params={"q": "   "})
		assert response.status_code == 400
		assert response.json()["error"] == 'Query parameter "q" is required'
	assert service.queries == []


@pytest.mark.asyncio
async def test_empty_query_with_filter_is_allowed(monkeypatch, api_client):
	service = _RecordingService()
	monkeypatch.setattr(search_api, "_service", service)

	response = await api_client.get("/api/search/users", params={"role": "faculty"})

	assert response.status_code == 200
	assert response.json() == {"users": [], "total": 0}
	assert service.queries[0].filters_for(Category.USERS) == {"role": "faculty"}


@pytest.mark.asyncio
async def test_scoped_endpoints_map_their_filters(monkeypatch, api_client):
	service = _RecordingService()
	monkeypatch.setattr(search_api, "_service", service)

	await api_client.get("/api/search/groups", params={"q": "chess", "type": "club", "privacy": "public"})
	await api_client.get("/api/search/events", params={"q": "fair", "category": "career"})
	await api_client.get("/api/search/knowledge", params={"q": "intern", "company": "Acme", "limit": "500"})

	groups, events, knowledge = service.queries
	assert groups.category == "groups"
	assert groups.filters_for(Category.GROUPS) == {"type": "club", "privacy": "public"}
	assert events.filters_for(Category.EVENTS) == {"category": "career"}
	assert knowledge.filters_for(Category.KNOWLEDGE) == {"company": "Acme"}
	assert knowledge.page_size == 100


@pytest.mark.asyncio
async def test_upstream_failure_translates_to_500(monkeypatch, api_client):
	service = _RecordingService(error=exceptions.UpstreamFailure("connection refused"))
	monkeypatch.setattr(search_api, "_service", service)

	response = await api_client.get("/api/search/users", params={"q": "alice"})

	assert response.status_code == 500
	payload = response.json()
	assert payload["error"] == "User search failed"
	assert payload["message"] == "connection refused"
	assert payload["request_id"]


@pytest.mark.asyncio
async def test_unexpected_error_translates_to_500(monkeypatch, api_client):
	monkeypatch.setattr(search_api, "_service", _RecordingService(error=RuntimeError("boom")))

	response = await api_client.get("/api/search", params={"q": "alice"})

	assert response.status_code == 500
	assert response.json()["error"] == "Search failed"
	assert response.json()["message"] == "boom"


@pytest.mark.asyncio
async def test_status_endpoint(monkeypatch, api_client):
	monkeypatch.setattr(search_api, "_service", _RecordingService())

	response = await api_client.get("/api/search/status")

	assert response.status_code == 200
	assert response.json() == {"mode": "backend", "backend_available": True}


@pytest.mark.asyncio
async def test_end_to_end_over_fallback(monkeypatch, api_client, build_service, memory_repo, make_user, make_group):
	memory_repo.add(make_user("u1", "Alice Robotics", role="faculty"), make_group("g1", "Robotics Club"))
	monkeypatch.setattr(search_api, "_service", build_service(SearchMode.FALLBACK))

	response = await api_client.get("/api/search", params={"q": "robotics"})

	assert response.status_code == 200
	payload = response.json()
	assert [user["id"] for user in payload["users"]] == ["u1"]
	assert payload["groups"][0]["name"] == "Robotics Club"
	assert payload["posts"] == []
	assert payload["total"] == 2


@pytest.mark.asyncio
async def test_metrics_endpoint(api_client):
	response = await api_client.get("/metrics")

	assert response.status_code == 200
	assert "campusconnect_search_queries_total" in response.text


@pytest.mark.asyncio
async def test_events_and_knowledge_accept_category_filter(monkeypatch, api_client, build_service, memory_repo, make_event, make_post):
	memory_repo.add(
		make_event("e1", "Career Fair", category="career"),
		make_event("e2", "Career Mixer", category="social"),
		make_post("p1", "Career advice", category="interview", company="Acme"),
	)
	monkeypatch.setattr(search_api, "_service", build_service(SearchMode.FALLBACK))

	events = await api_client.get("/api/search/events", params={"q": "career", "category": "career"})
	knowledge = await api_client.get(
		"/api/search/knowledge", params={"q": "career", "category": "interview", "company": "Acme"}
	)

	assert events.status_code == 200
	assert [event["id"] for event in events.json()["events"]] == ["e1"]
	assert events.json()["total"] == 1
	assert knowledge.status_code == 200
	assert [post["id"] for post in knowledge.json()["posts"]] == ["p1"]


@pytest.mark.asyncio
async def test_filters_outside_requested_scope_do_not_satisfy_query(monkeypatch, api_client):
	service = _RecordingService()
	monkeypatch.setattr(search_api, "_service", service)

	response = await api_client.get("/api/search", params={"type": "groups", "users[role]": "faculty"})

	assert response.status_code == 400
	assert response.json()["error"] == 'Query parameter "q" is required'
	assert service.queries == []
