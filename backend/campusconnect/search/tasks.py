"""Concurrency helpers shared by the search engines."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Iterable, TypeVar

T = TypeVar("T")


async def collect(awaitables: Iterable[Awaitable[T]]) -> list[T]:
	"""Await all concurrently; once every call settled, raise the first failure."""

	results = await asyncio.gather(*awaitables, return_exceptions=True)
	for result in results:
		if isinstance(result, BaseException):
			raise result
	return list(results)  # type: ignore[arg-type]


__all__ = ["collect"]
