"""
Structured fan-out helpers for provider calls.
"""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from pathlib import Path
from typing import TypeVar

from shared.file_utils import remove_file
from shared.logging_utils import setup_logging

T = TypeVar("T")

logger = setup_logging("concurrency")


async def gather_all_or_nothing(
    factories: Sequence[Callable[[], Awaitable[T]]],
    *,
    limit: int,
    on_failure: Callable[[list[T]], None],
) -> list[T]:
    """
    Run every factory concurrently (at most ``limit`` at a time) and return
    results in input order.

    If any call fails, or the caller is cancelled, outstanding siblings are
    cancelled and awaited, ``on_failure`` receives every result that did
    complete, and the original exception propagates.
    """
    semaphore = asyncio.Semaphore(max(1, limit))

    async def _bounded(factory: Callable[[], Awaitable[T]]) -> T:
        async with semaphore:
            return await factory()

    tasks = [asyncio.create_task(_bounded(factory)) for factory in factories]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        finished = [
            task.result()
            for task in tasks
            if task.done() and not task.cancelled() and task.exception() is None
        ]
        try:
            on_failure(finished)
        except Exception as cleanup_error:
            logger.warning("Cleanup after failed fan-out raised: %s", cleanup_error)
        raise


def remove_planned_outputs(output_dir: str | Path, stems: Sequence[str]) -> int:
    """Delete every ``<stem>.*`` file in ``output_dir``, including partial writes."""
    directory = Path(output_dir)
    if not directory.exists():
        return 0
    removed = 0
    for stem in stems:
        for candidate in directory.glob(f"{stem}.*"):
            if remove_file(candidate):
                removed += 1
    return removed
