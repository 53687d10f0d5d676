"""Process-wide backend selection state for the unified search service."""

from __future__ import annotations

import logging

from campusconnect.obs import metrics as obs_metrics
from campusconnect.search.models import SearchMode

_LOG = logging.getLogger(__name__)


class BackendModeCell:
	"""Holds the current :class:`SearchMode`.

	Reads are lock free and writes are single attribute assignments, so a
	concurrent request may observe the previous mode for one call at most.
	Probe results apply hysteresis: one failed probe demotes to fallback,
	``promote_after`` consecutive successes are needed to promote back.
	"""

	def __init__(self, mode: SearchMode = SearchMode.UNINITIALIZED, *, promote_after: int = 1) -> None:
		self._mode = mode
		self._promote_after = max(1, promote_after)
		self._successes = 0

	@property
	def mode(self) -> SearchMode:
		return self._mode

	@property
	def using_backend(self) -> bool:
		return self._mode is SearchMode.BACKEND

	@property
	def consecutive_successes(self) -> int:
		return self._successes

	def set(self, mode: SearchMode) -> SearchMode:
		previous = self._mode
		self._mode = mode
		if mode is not previous:
			_LOG.info("search.mode.changed", extra={"from": previous.value, "to": mode.value})
		obs_metrics.set_search_mode(mode is SearchMode.BACKEND)
		return previous

	def record_probe(self, available: bool) -> SearchMode:
		if not available:
			self._successes = 0
			if self._mode is not SearchMode.FALLBACK:
				self.set(SearchMode.FALLBACK)
			return self._mode
		self._successes += 1
		if self._mode is not SearchMode.BACKEND and self._successes >= self._promote_after:
			self.set(SearchMode.BACKEND)
		return self._mode

	def record_failure(self) -> None:
		self._successes = 0
		if self._mode is SearchMode.BACKEND:
			self.set(SearchMode.FALLBACK)


__all__ = ["BackendModeCell"]
