"""Unified search exports."""

from .mirror import IndexMirrorWriter
from .models import Category, SearchMode, SearchQuery, SearchResult
from .service import UnifiedSearchService, search_service

__all__ = [
	"Category",
	"IndexMirrorWriter",
	"SearchMode",
	"SearchQuery",
	"SearchResult",
	"UnifiedSearchService",
	"search_service",
]
