import asyncio
from typing import AsyncIterator, Iterator, TypeVar

T = TypeVar("T")

_EXHAUSTED = object()


async def iter_in_thread(it: Iterator[T]) -> AsyncIterator[T]:
    """Drive a blocking iterator from a worker thread, one item at a time."""
    while True:
        item = await asyncio.to_thread(next, it, _EXHAUSTED)
        if item is _EXHAUSTED:
            return
        yield item
