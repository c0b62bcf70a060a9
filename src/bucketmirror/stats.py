from __future__ import annotations

import threading

from bucketmirror.models import Copied, Failed, MirrorOutcome, MirrorStats, Skipped


class StatsAggregator:
    """Folds outcomes from concurrent workers into one MirrorStats.

    Every update holds the lock. snapshot() is only meaningful once all
    workers have finished.
    """

    def __init__(self) -> None:
        self._stats = MirrorStats()
        self._lock = threading.Lock()

    def set_total(self, total: int) -> None:
        with self._lock:
            self._stats.total_objects = total

    def record(self, outcome: MirrorOutcome) -> None:
        with self._lock:
            if isinstance(outcome, Copied):
                self._stats.copied_objects += 1
                self._stats.bytes_transferred += outcome.bytes_transferred
                if outcome.dry_run:
                    self._stats.dry_run_bytes += outcome.planned_bytes
            elif isinstance(outcome, Skipped):
                self._stats.skipped_objects += 1
            elif isinstance(outcome, Failed):
                self._stats.error_count += 1
            else:
                raise TypeError(f"Unknown outcome: {outcome!r}")

    def snapshot(self) -> MirrorStats:
        with self._lock:
            return MirrorStats(
                total_objects=self._stats.total_objects,
                copied_objects=self._stats.copied_objects,
                skipped_objects=self._stats.skipped_objects,
                error_count=self._stats.error_count,
                bytes_transferred=self._stats.bytes_transferred,
                dry_run_bytes=self._stats.dry_run_bytes,
            )
