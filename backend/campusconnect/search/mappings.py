"""Per-category index definitions: field mappings, query fields, and filters."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from campusconnect.search.models import Category
from campusconnect.settings import settings

_KEYWORD = {"type": "keyword"}
_TEXT = {"type": "text", "analyzer": "standard"}
_DATE = {"type": "date"}
_INTEGER = {"type": "integer"}


@dataclass(frozen=True, slots=True)
class IndexDefinition:
	"""Everything the adapter and mirror need to know about one category index."""

	category: Category
	index_suffix: str
	text_fields: tuple[str, ...]
	# Maps the public filter name to the exact-match field inside the index.
	filter_fields: Mapping[str, str]
	sortable_fields: frozenset[str]
	properties: Mapping[str, Any]

	@property
	def index_name(self) -> str:
		return f"{settings.opensearch_index_prefix}_{self.index_suffix}"

	@property
	def projected_fields(self) -> frozenset[str]:
		return frozenset(self.properties.keys())

	def query_fields(self) -> list[str]:
		return list(self.text_fields)

	def filter_field(self, name: str) -> str | None:
		return self.filter_fields.get(name)

	def mapping_body(self) -> dict[str, Any]:
		return {
			"settings": {"number_of_shards": 1, "number_of_replicas": 0},
			"mappings": {"properties": {key: dict(value) for key, value in self.properties.items()}},
		}


USERS = IndexDefinition(
	category=Category.USERS,
	index_suffix="users",
	text_fields=("name^3", "bio", "company", "position", "skills", "interests"),
	filter_fields={
		"role": "role",
		"department": "department",
		"industry": "industry",
		"graduation_year": "graduation_year",
	},
	sortable_fields=frozenset({"created_at", "graduation_year"}),
	properties={
		"id": _KEYWORD,
		"name": _TEXT,
		"role": _KEYWORD,
		"department": _KEYWORD,
		"bio": _TEXT,
		"company": _TEXT,
		"position": _TEXT,
		"skills": _TEXT,
		"interests": _TEXT,
		"industry": _KEYWORD,
		"graduation_year": _INTEGER,
		"created_at": _DATE,
	},
)

GROUPS = IndexDefinition(
	category=Category.GROUPS,
	index_suffix="groups",
	text_fields=("name^3", "description", "tags^2"),
	filter_fields={"type": "type", "privacy": "privacy"},
	sortable_fields=frozenset({"created_at", "member_count"}),
	properties={
		"id": _KEYWORD,
		"name": _TEXT,
		"description": _TEXT,
		"type": _KEYWORD,
		"privacy": _KEYWORD,
		"tags": _TEXT,
		"member_count": _INTEGER,
		"created_at": _DATE,
	},
)

EVENTS = IndexDefinition(
	category=Category.EVENTS,
	index_suffix="events",
	text_fields=("title^3", "description", "location", "tags^2"),
	filter_fields={"category": "category"},
	sortable_fields=frozenset({"created_at", "start_date", "end_date", "attendee_count"}),
	properties={
		"id": _KEYWORD,
		"title": _TEXT,
		"description": _TEXT,
		"category": _KEYWORD,
		"location": _TEXT,
		"start_date": _DATE,
		"end_date": _DATE,
		"tags": _TEXT,
		"attendee_count": _INTEGER,
		"created_at": _DATE,
	},
)

KNOWLEDGE = IndexDefinition(
	category=Category.KNOWLEDGE,
	index_suffix="knowledge_posts",
	text_fields=(
		"title^3",
		"body",
		"company",
		"tags^2",
		"related_skills",
		"course_codes",
		"author_name",
	),
	filter_fields={
		"category": "category",
		"company": "company.keyword",
		"industry": "industry",
		"author_role": "author_role",
	},
	sortable_fields=frozenset({"created_at", "vote_score", "views", "helpful_count"}),
	properties={
		"id": _KEYWORD,
		"title": _TEXT,
		"body": _TEXT,
		"category": _KEYWORD,
		"company": {"type": "text", "fields": {"keyword": {"type": "keyword"}}},
		"industry": _KEYWORD,
		"tags": _TEXT,
		"related_skills": _TEXT,
		"course_codes": _TEXT,
		"author_name": _TEXT,
		"author_role": _KEYWORD,
		"vote_score": _INTEGER,
		"views": _INTEGER,
		"helpful_count": _INTEGER,
		"created_at": _DATE,
	},
)

DEFINITIONS: dict[Category, IndexDefinition] = {
	definition.category: definition for definition in (USERS, GROUPS, EVENTS, KNOWLEDGE)
}


def definition_for(category: Category) -> IndexDefinition:
	return DEFINITIONS[Category(category)]


__all__ = ["DEFINITIONS", "EVENTS", "GROUPS", "IndexDefinition", "KNOWLEDGE", "USERS", "definition_for"]
