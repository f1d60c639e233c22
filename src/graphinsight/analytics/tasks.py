"""Run independent analytics tasks, optionally on a thread pool."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait

from graphinsight.analytics.deadline import Deadline

log = logging.getLogger(__name__)


def run_tasks[T](
    tasks: Mapping[str, Callable[[], T]],
    *,
    max_workers: int = 1,
    deadline: Deadline | None = None,
) -> dict[str, T]:
    """
    Execute named zero-argument tasks and collect their results by name.

    With ``max_workers <= 1`` tasks run sequentially in the caller thread. On
    a pool, the first failure cancels the shared deadline so sibling tasks
    stop at their next check, and that failure is re-raised.

    Parameters
    ----------
    tasks
        Mapping of task name to callable.
    max_workers
        Pool size; values below 2 disable the pool.
    deadline
        Deadline shared with the tasks, cancelled on failure.

    Returns
    -------
    dict[str, T]
        Results keyed by task name, in the order of ``tasks``.
    """
    if max_workers <= 1 or len(tasks) <= 1:
        return {name: task() for name, task in tasks.items()}

    workers = min(max_workers, len(tasks))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="graphinsight") as executor:
        futures: dict[str, Future[T]] = {
            name: executor.submit(task) for name, task in tasks.items()
        }
        done, _pending = wait(futures.values(), return_when=FIRST_EXCEPTION)
        failed = [future for future in done if future.exception() is not None]
        if failed:
            if deadline is not None:
                deadline.cancel()
            for future in futures.values():
                future.cancel()
            first = failed[0].exception()
            log.debug("Analytics task failed; cancelling siblings: %s", first)
            raise first  # type: ignore[misc]
        return {name: future.result() for name, future in futures.items()}
