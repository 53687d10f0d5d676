"""CLI entrypoint to create any missing search indices."""

from __future__ import annotations

import asyncio
import sys

from campusconnect.infra import opensearch
from campusconnect.obs import logging as obs_logging
from campusconnect.search.adapter import OpenSearchSearchAdapter


async def _run() -> int:
	opensearch.init_client()
	try:
		statuses = await OpenSearchSearchAdapter().ensure_indices()
	finally:
		await opensearch.close_client()
	for category, status in statuses.items():
		print(f"{category.value}: {status.value}")
	return 0 if all(status.ready for status in statuses.values()) else 1


def main() -> None:
	obs_logging.configure_logging()
	sys.exit(asyncio.run(_run()))


if __name__ == "__main__":
	main()
