from __future__ import annotations

from collections.abc import Callable, Iterable
import logging
import queue
import threading

from bucketmirror.models import Failed, MirrorJob, MirrorOutcome


logger = logging.getLogger("bucketmirror.pipeline")

JobHandler = Callable[[MirrorJob], MirrorOutcome]
OutcomeSink = Callable[[MirrorJob, MirrorOutcome], None]

_CLOSED = object()


def _worker(work: queue.Queue, handler: JobHandler, on_outcome: OutcomeSink) -> None:
    while True:
        job = work.get()
        try:
            if job is _CLOSED:
                return
            try:
                outcome = handler(job)
            except Exception as exc:
                logger.error("Unhandled error for %s: %s", job.source.key, exc)
                outcome = Failed(exc)
            on_outcome(job, outcome)
        finally:
            work.task_done()


def run_pipeline(
    jobs: Iterable[MirrorJob],
    workers: int,
    handler: JobHandler,
    on_outcome: OutcomeSink,
) -> int:
    """Process every job exactly once on a fixed pool of worker threads.

    Returns the number of jobs dispatched. Does not return until every worker
    has drained the queue and exited.
    """
    if workers < 1:
        raise ValueError("workers must be at least 1")

    work: queue.Queue = queue.Queue()
    threads = [
        threading.Thread(
            target=_worker,
            args=(work, handler, on_outcome),
            name=f"mirror-worker-{index}",
            daemon=True,
        )
        for index in range(workers)
    ]
    for thread in threads:
        thread.start()

    dispatched = 0
    try:
        for job in jobs:
            work.put(job)
            dispatched += 1
    finally:
        # One close marker per worker; each worker exits on the first it sees.
        for _ in threads:
            work.put(_CLOSED)
        for thread in threads:
            thread.join()

    return dispatched
