"""Domain models for unified search: searchable entities, queries, and results."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Annotated, Any, Literal, Mapping, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator


class Category(str, enum.Enum):
	"""Entity categories the search service can fan out over."""

	USERS = "users"
	GROUPS = "groups"
	EVENTS = "events"
	KNOWLEDGE = "knowledge"

	@property
	def result_key(self) -> str:
		"""JSON key used for this category in HTTP responses."""
		return "posts" if self is Category.KNOWLEDGE else self.value


ALL_SCOPE = "all"
ALL_CATEGORIES: tuple[Category, ...] = (
	Category.USERS,
	Category.GROUPS,
	Category.EVENTS,
	Category.KNOWLEDGE,
)

SearchScope = Literal["all", "users", "groups", "events", "knowledge"]


class SearchMode(str, enum.Enum):
	UNINITIALIZED = "uninitialized"
	BACKEND = "backend"
	FALLBACK = "fallback"


class IndexStatus(str, enum.Enum):
	EXISTS = "exists"
	CREATED = "created"
	NOT_READY = "not_ready"

	@property
	def ready(self) -> bool:
		return self is not IndexStatus.NOT_READY


class WriteOutcome(str, enum.Enum):
	OK = "ok"
	NOT_FOUND = "not_found"
	FAILED = "failed"

	@property
	def ok(self) -> bool:
		return self is not WriteOutcome.FAILED


# --- Searchable entities ------------------------------------------------


class _Entity(BaseModel):
	id: str
	created_at: datetime

	model_config = ConfigDict(from_attributes=True)

	@model_validator(mode="before")
	@classmethod
	def fill_null_defaults(cls, data: Any) -> Any:
		"""Let SQL NULL in a column with a non-null default fall back to that default."""

		if not isinstance(data, Mapping):
			return data
		cleaned = {}
		for key, value in data.items():
			field_info = cls.model_fields.get(key)
			if value is None and field_info is not None and not field_info.is_required() and field_info.default is not None:
				continue
			cleaned[key] = value
		return cleaned

	@field_validator("id", mode="before")
	def stringify_id(cls, value: Any) -> str:  # type: ignore[override]
		return str(value)


class UserProfile(_Entity):
	kind: Literal["users"] = "users"
	name: str
	email: Optional[str] = None
	role: str
	department: Optional[str] = None
	bio: Optional[str] = None
	company: Optional[str] = None
	position: Optional[str] = None
	skills: list[str] = Field(default_factory=list)
	interests: list[str] = Field(default_factory=list)
	industry: Optional[str] = None
	graduation_year: Optional[int] = None


class Group(_Entity):
	kind: Literal["groups"] = "groups"
	name: str
	description: str = ""
	type: str
	privacy: str = "public"
	tags: list[str] = Field(default_factory=list)
	member_count: int = 0


class Event(_Entity):
	kind: Literal["events"] = "events"
	title: str
	description: str = ""
	category: str
	location: Optional[str] = None
	start_date: Optional[datetime] = None
	end_date: Optional[datetime] = None
	tags: list[str] = Field(default_factory=list)
	attendee_count: int = 0


class KnowledgePost(_Entity):
	kind: Literal["knowledge"] = "knowledge"
	title: str
	body: str
	category: str
	company: Optional[str] = None
	industry: Optional[str] = None
	tags: list[str] = Field(default_factory=list)
	related_skills: list[str] = Field(default_factory=list)
	course_codes: list[str] = Field(default_factory=list)
	author_name: Optional[str] = None
	author_role: Optional[str] = None
	vote_score: int = 0
	views: int = 0
	helpful_count: int = 0


SearchableEntity = Annotated[
	Union[UserProfile, Group, Event, KnowledgePost],
	Field(discriminator="kind"),
]

ENTITY_TYPES: dict[Category, type[_Entity]] = {
	Category.USERS: UserProfile,
	Category.GROUPS: Group,
	Category.EVENTS: Event,
	Category.KNOWLEDGE: KnowledgePost,
}

_ENTITY_ADAPTER: TypeAdapter[SearchableEntity] = TypeAdapter(SearchableEntity)


def parse_entity(payload: Mapping[str, Any]) -> SearchableEntity:
	"""Validate a tagged payload (``kind`` set) into its entity variant."""
	return _ENTITY_ADAPTER.validate_python(dict(payload))


def category_of(entity: SearchableEntity) -> Category:
	return Category(entity.kind)


# --- Query / result value objects ---------------------------------------


class SearchQuery(BaseModel):
	"""Request value object accepted by :class:`UnifiedSearchService`."""

	text: str = ""
	category: SearchScope = ALL_SCOPE
	filters: dict[Category, dict[str, Any]] = Field(default_factory=dict)
	page: int = Field(default=1, ge=1)
	page_size: int = Field(default=20, ge=1)
	sort: Optional[str] = None

	@field_validator("text", mode="before")
	def normalise_text(cls, value: Any) -> str:  # type: ignore[override]
		if not value:
			return ""
		return " ".join(str(value).strip().split())

	def categories(self) -> tuple[Category, ...]:
		if self.category == ALL_SCOPE:
			return ALL_CATEGORIES
		return (Category(self.category),)

	def filters_for(self, category: Category) -> dict[str, Any]:
		return {key: value for key, value in (self.filters.get(category) or {}).items() if value not in (None, "")}

	def has_filters(self) -> bool:
		return any(self.filters_for(category) for category in self.categories())


@dataclass(slots=True)
class IndexHit:
	"""Thin hit returned by the search backend; ``id`` joins to the primary store."""

	id: str
	score: Optional[float]
	fields: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class BackendPage:
	hits: list[IndexHit]
	total: int


@dataclass(slots=True)
class CategoryPage:
	"""Full entities for one category plus that category's total hit count."""

	items: list[SearchableEntity]
	total: int


@dataclass(slots=True)
class SearchResult:
	per_category: dict[Category, list[SearchableEntity]]
	total: int
	mode: SearchMode = SearchMode.FALLBACK

	def to_payload(self) -> dict[str, Any]:
		payload: dict[str, Any] = {
			category.result_key: [item.model_dump(mode="json") for item in items]
			for category, items in self.per_category.items()
		}
		payload["total"] = self.total
		return payload

	def items_for(self, category: Category) -> Sequence[SearchableEntity]:
		return self.per_category.get(category, [])


__all__ = [
	"ALL_CATEGORIES",
	"ALL_SCOPE",
	"BackendPage",
	"Category",
	"CategoryPage",
	"ENTITY_TYPES",
	"Event",
	"Group",
	"IndexHit",
	"IndexStatus",
	"KnowledgePost",
	"SearchMode",
	"SearchQuery",
	"SearchResult",
	"SearchScope",
	"SearchableEntity",
	"UserProfile",
	"WriteOutcome",
	"category_of",
	"parse_entity",
]
