"""
Voratiq Parallel Runner

Agents in a run are independent: each owns its worktree, its branch and
its log files. This module fans the per-agent pipeline out over a thread
pool and hands results back in submission order, so the run report
always lists agents in catalog order no matter who finishes first.
"""

from __future__ import annotations

import concurrent.futures
from typing import Callable, Sequence, TypeVar

from loguru import logger

T = TypeVar("T")
R = TypeVar("R")


def run_in_order(
    items: Sequence[T],
    fn: Callable[[T], R],
    max_workers: int = 1,
) -> list[R]:
    """
    Apply *fn* to every item, up to *max_workers* at a time.

    With one worker (the default) items run strictly one after another on
    the calling thread. Exceptions raised by *fn* propagate.
    """
    if max_workers <= 1 or len(items) <= 1:
        return [fn(item) for item in items]

    workers = min(max_workers, len(items))
    logger.info(f"[PARALLEL] {len(items)} agents, {workers} workers")

    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [executor.submit(fn, item) for item in items]
        return [future.result() for future in futures]
