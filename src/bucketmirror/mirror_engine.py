from __future__ import annotations

from dataclasses import dataclass
import logging

import pathspec

from bucketmirror.config import MirrorConfig, compile_exclude
from bucketmirror.diff import Decision, decide, lookup_target
from bucketmirror.models import (
    Copied,
    Failed,
    MirrorJob,
    MirrorOutcome,
    MirrorStats,
    ObjectDescriptor,
    Skipped,
    resolve_target_key,
)
from bucketmirror.pipeline import run_pipeline
from bucketmirror.stats import StatsAggregator
from bucketmirror.storage import StorageClient, StorageError


class ListingError(Exception):
    """The source catalog could not be enumerated; the run produced no stats."""


@dataclass(slots=True)
class ExcludeFilter:
    prefix: str
    spec: pathspec.GitIgnoreSpec

    @classmethod
    def build(cls, prefix: str, patterns: list[str]) -> "ExcludeFilter | None":
        if not patterns:
            return None
        return cls(prefix=prefix, spec=compile_exclude(patterns))

    def is_excluded(self, key: str) -> bool:
        relative = key[len(self.prefix):] if self.prefix and key.startswith(self.prefix) else key
        return self.spec.match_file(relative)


class MirrorEngine:
    def __init__(
        self,
        source: StorageClient,
        target: StorageClient,
        config: MirrorConfig,
        logger: logging.Logger | None = None,
    ) -> None:
        self.source = source
        self.target = target
        self.config = config
        self.log = logger or logging.getLogger("bucketmirror.engine")

    def _list_source(self) -> list[ObjectDescriptor]:
        prefix = self.config.source.prefix
        try:
            objects = self.source.list_objects(prefix)
        except StorageError as exc:
            raise ListingError(f"failed to list source objects: {exc}") from exc

        exclude = ExcludeFilter.build(prefix, self.config.exclude)
        if exclude is None:
            return objects
        kept = [obj for obj in objects if not exclude.is_excluded(obj.key)]
        if len(kept) != len(objects):
            self.log.info("Excluded %d object(s) by pattern", len(objects) - len(kept))
        return kept

    def build_jobs(self, objects: list[ObjectDescriptor]) -> list[MirrorJob]:
        target_prefix = self.config.target.prefix
        return [MirrorJob(source=obj, target_key=resolve_target_key(target_prefix, obj.key)) for obj in objects]

    def process_job(self, job: MirrorJob) -> MirrorOutcome:
        obj = job.source
        existing = lookup_target(self.target, job.target_key)
        if decide(obj, existing) is Decision.SKIP:
            if self.config.verbose:
                self.log.info("Skipping %s (already exists with same ETag)", obj.key)
            return Skipped()

        if self.config.dry_run:
            self.log.info("[DRY RUN] Would copy: %s -> %s (%d bytes)", obj.key, job.target_key, obj.size)
            return Copied(bytes_transferred=0, dry_run=True, planned_bytes=obj.size)

        try:
            body = self.source.get_object(obj.key)
        except StorageError as exc:
            self.log.error("Error copying %s: failed to get object: %s", obj.key, exc)
            return Failed(exc)

        try:
            self.target.put_object(job.target_key, body, obj.size)
        except StorageError as exc:
            self.log.error("Error copying %s: failed to put object: %s", obj.key, exc)
            return Failed(exc)
        finally:
            body.close()

        if self.config.verbose:
            self.log.info("Copied: %s -> %s (%d bytes)", obj.key, job.target_key, obj.size)
        return Copied(bytes_transferred=obj.size)

    def mirror(self) -> MirrorStats:
        self.log.info("Starting mirror from %s to %s", self.source.bucket, self.target.bucket)
        if self.config.source.prefix:
            self.log.info("Using source prefix filter: %s", self.config.source.prefix)
        if self.config.dry_run:
            self.log.info("DRY RUN MODE - No actual copying will occur")

        objects = self._list_source()

        stats = StatsAggregator()
        stats.set_total(len(objects))
        self.log.info("Found %d objects to process", len(objects))

        run_pipeline(
            self.build_jobs(objects),
            workers=self.config.workers,
            handler=self.process_job,
            on_outcome=lambda _job, outcome: stats.record(outcome),
        )
        return stats.snapshot()
