"""Custom exceptions for unified search operations."""

from __future__ import annotations

from typing import Optional


class SearchError(Exception):
	"""Base class for search errors.

	``detail`` is the public error string; ``message`` optionally carries the
	underlying cause for the HTTP body.
	"""

	def __init__(self, detail: str, *, status_code: int = 400, message: Optional[str] = None) -> None:
		super().__init__(detail)
		self.detail = detail
		self.status_code = status_code
		self.message = message


class InvalidQuery(SearchError):
	"""Raised by the HTTP boundary when a query is missing its text and filters."""

	def __init__(self, detail: str = 'Query parameter "q" is required', *, status_code: int = 400) -> None:
		super().__init__(detail, status_code=status_code)


class BackendUnavailable(SearchError):
	"""Raised when the dedicated search engine rejects or fails a request."""

	def __init__(self, detail: str = "search_backend_unavailable", *, status_code: int = 503) -> None:
		super().__init__(detail, status_code=status_code)


class UpstreamFailure(SearchError):
	"""Raised when the primary datastore cannot serve enrichment or fallback queries."""

	def __init__(
		self,
		detail: str = "primary_datastore_unavailable",
		*,
		status_code: int = 500,
		message: Optional[str] = None,
	) -> None:
		super().__init__(detail, status_code=status_code, message=message)


__all__ = ["BackendUnavailable", "InvalidQuery", "SearchError", "UpstreamFailure"]
