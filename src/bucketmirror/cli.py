from __future__ import annotations

import argparse
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
import sys

from bucketmirror.config import StorageConfig
from bucketmirror.models import MirrorStats
from bucketmirror.run_service import (
    EXIT_INVALID_CONFIG,
    EXIT_RUNTIME_OR_CONFIG_ERROR,
    EXIT_SUCCESS,
    load_validated_config,
    run_mirror,
)


LOG_FORMAT = "%(asctime)s %(levelname)s %(message)s"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bucket-mirror", description="Mirror an object-storage bucket prefix into another bucket"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run the mirror")
    run_parser.add_argument("--config", type=Path, default=Path("config.yaml"))
    run_parser.add_argument(
        "--workers", type=int, default=0, help="Number of concurrent workers (overrides config)"
    )
    run_parser.add_argument("--dry-run", action="store_true", help="Report what would be copied")
    run_parser.add_argument("--verbose", action="store_true", help="Log every copied and skipped object")
    run_parser.add_argument("--log-file", type=Path, default=None)

    validate_parser = subparsers.add_parser("validate-config", help="Validate config")
    validate_parser.add_argument("--config", type=Path, default=Path("config.yaml"))

    list_parser = subparsers.add_parser("list", help="Show the source and target mapping")
    list_parser.add_argument("--config", type=Path, default=Path("config.yaml"))

    return parser


def _configure_logging(verbose: bool, log_file: Path | None) -> logging.Logger:
    logger = logging.getLogger("bucketmirror")
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(log_file, maxBytes=1_000_000, backupCount=3, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
    return logger


def _describe(cfg: StorageConfig) -> str:
    location = f"{cfg.type}://{cfg.bucket}/{cfg.prefix}"
    if cfg.endpoint:
        location += f" (endpoint={cfg.endpoint})"
    return location


def _print_stats(stats: MirrorStats) -> None:
    print("\n=== Mirror Summary ===")
    print(f"Total objects processed: {stats.total_objects}")
    print(f"Objects copied: {stats.copied_objects}")
    print(f"Objects skipped: {stats.skipped_objects}")
    print(f"Errors: {stats.error_count}")
    print(
        f"Total bytes transferred: {stats.bytes_transferred} "
        f"({stats.bytes_transferred / (1024 * 1024):.2f} MB)"
    )
    if stats.dry_run_bytes:
        print(f"Bytes that would be transferred: {stats.dry_run_bytes}")


def cmd_validate(config_path: Path) -> int:
    try:
        config = load_validated_config(config_path)
    except Exception as exc:
        print(f"Invalid config: {exc}", file=sys.stderr)
        return EXIT_INVALID_CONFIG

    print(f"Valid config: {config_path}")
    print(f"  - source={_describe(config.source)}")
    print(f"  - target={_describe(config.target)}")
    print(
        f"  - workers={config.workers} "
        f"dryRun={str(config.dry_run).lower()} "
        f"verbose={str(config.verbose).lower()}"
    )
    return EXIT_SUCCESS


def cmd_list(config_path: Path) -> int:
    try:
        config = load_validated_config(config_path)
    except Exception as exc:
        print(f"Invalid config: {exc}", file=sys.stderr)
        return EXIT_INVALID_CONFIG

    print(f"{_describe(config.source)} -> {_describe(config.target)}")
    for pattern in config.exclude:
        print(f"  exclude: {pattern}")
    return EXIT_SUCCESS


def cmd_run(
    config_path: Path,
    workers: int | None,
    dry_run: bool,
    verbose: bool,
    log_file: Path | None,
) -> int:
    logger = _configure_logging(verbose, log_file)
    exit_code, stats = run_mirror(
        config_path,
        workers=workers,
        dry_run=dry_run,
        verbose=verbose,
        logger=logger.getChild("run"),
    )
    if stats is not None:
        _print_stats(stats)
    return exit_code


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command == "validate-config":
        return cmd_validate(args.config)
    if args.command == "list":
        return cmd_list(args.config)
    if args.command == "run":
        return cmd_run(
            config_path=args.config,
            workers=args.workers,
            dry_run=args.dry_run,
            verbose=args.verbose,
            log_file=args.log_file,
        )

    parser.print_help()
    return EXIT_RUNTIME_OR_CONFIG_ERROR


if __name__ == "__main__":
    raise SystemExit(main())
