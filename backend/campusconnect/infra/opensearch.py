"""AsyncOpenSearch client management for the search backend."""

from __future__ import annotations

import logging
from typing import Optional

from opensearchpy import AsyncOpenSearch

from campusconnect.settings import settings

_LOG = logging.getLogger(__name__)
_client: Optional[AsyncOpenSearch] = None


def _build_client() -> AsyncOpenSearch:
	host = settings.opensearch_url
	if "://" not in host:
		host = f"http://{host}"
	auth = None
	if settings.opensearch_username and settings.opensearch_password:
		auth = (settings.opensearch_username, settings.opensearch_password)
	return AsyncOpenSearch(
		hosts=[host],
		http_auth=auth,
		use_ssl=host.startswith("https://"),
		verify_certs=settings.opensearch_verify_certs,
		ssl_show_warn=False,
		timeout=settings.search_call_timeout_seconds,
	)


def init_client() -> AsyncOpenSearch:
	"""Create the shared client on first use; building it performs no I/O."""

	global _client
	if _client is None:
		_client = _build_client()
		_LOG.info("opensearch.client_initialized", extra={"url": settings.opensearch_url})
	return _client


def get_client() -> AsyncOpenSearch:
	if _client is None:
		return init_client()
	return _client


async def close_client() -> None:
	global _client
	if _client is not None:
		await _client.close()
		_client = None


__all__ = ["close_client", "get_client", "init_client"]
