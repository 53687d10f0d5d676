"""Backfill the search index from the primary datastore."""

from __future__ import annotations

import argparse
import asyncio
from typing import Sequence

from campusconnect.infra import opensearch, postgres
from campusconnect.obs import logging as obs_logging
from campusconnect.search.mirror import IndexMirrorWriter
from campusconnect.search.models import ALL_CATEGORIES, Category


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
	parser = argparse.ArgumentParser(description=__doc__)
	parser.add_argument(
		"--category",
		action="append",
		choices=[category.value for category in ALL_CATEGORIES],
		help="category to backfill; repeat for several (default: all)",
	)
	parser.add_argument("--batch-size", type=int, default=500)
	return parser.parse_args(argv)


async def _run(categories: Sequence[Category], batch_size: int) -> None:
	await postgres.init_pool()
	opensearch.init_client()
	writer = IndexMirrorWriter()
	try:
		for category in categories:
			indexed = await writer.backfill(category, batch_size=batch_size)
			print(f"{category.value}: {indexed} indexed")
	finally:
		await opensearch.close_client()
		await postgres.close_pool()


def main(argv: Sequence[str] | None = None) -> None:
	args = _parse_args(argv)
	obs_logging.configure_logging()
	categories = [Category(value) for value in args.category] if args.category else list(ALL_CATEGORIES)
	asyncio.run(_run(categories, max(1, args.batch_size)))


if __name__ == "__main__":
	main()
