from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
import logging

from bucketmirror.config import MirrorConfig, StorageConfig, apply_overrides, load_config, validate_config
from bucketmirror.mirror_engine import ListingError, MirrorEngine
from bucketmirror.models import MirrorStats
from bucketmirror.storage import StorageClient, new_client


EXIT_SUCCESS = 0
EXIT_RUNTIME_OR_CONFIG_ERROR = 1
EXIT_PARTIAL_FAILURES = 2
EXIT_INVALID_CONFIG = 3

ClientFactory = Callable[[StorageConfig, int], StorageClient]


def load_validated_config(
    config_path: Path,
    workers: int | None = None,
    dry_run: bool = False,
    verbose: bool = False,
) -> MirrorConfig:
    config = apply_overrides(load_config(config_path), workers=workers, dry_run=dry_run, verbose=verbose)
    validate_config(config)
    return config


def run_mirror(
    config_path: Path,
    workers: int | None = None,
    dry_run: bool = False,
    verbose: bool = False,
    logger: logging.Logger | None = None,
    client_factory: ClientFactory | None = None,
) -> tuple[int, MirrorStats | None]:
    log = logger or logging.getLogger("bucketmirror.run")
    factory = client_factory or new_client

    try:
        config = load_validated_config(config_path, workers=workers, dry_run=dry_run, verbose=verbose)
    except Exception as exc:
        log.error("Configuration error: %s", exc)
        return EXIT_INVALID_CONFIG, None

    try:
        source = factory(config.source, config.workers)
    except Exception as exc:
        log.error("Failed to create source storage client: %s", exc)
        return EXIT_RUNTIME_OR_CONFIG_ERROR, None
    try:
        target = factory(config.target, config.workers)
    except Exception as exc:
        log.error("Failed to create target storage client: %s", exc)
        return EXIT_RUNTIME_OR_CONFIG_ERROR, None

    engine = MirrorEngine(source, target, config, logger=log.getChild("engine"))
    try:
        stats = engine.mirror()
    except ListingError as exc:
        log.error("Mirror operation failed: %s", exc)
        return EXIT_RUNTIME_OR_CONFIG_ERROR, None

    log.info(
        "%s -> %s | total=%s copied=%s skipped=%s errors=%s bytes=%s",
        source.bucket,
        target.bucket,
        stats.total_objects,
        stats.copied_objects,
        stats.skipped_objects,
        stats.error_count,
        stats.bytes_transferred,
    )
    exit_code = EXIT_PARTIAL_FAILURES if stats.error_count else EXIT_SUCCESS
    return exit_code, stats
