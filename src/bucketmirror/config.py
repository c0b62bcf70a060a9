from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import json
import pathspec
import yaml


STORAGE_TYPES = {"s3", "minio"}
DEFAULT_WORKERS = 10
MAX_WORKERS = 100
DEFAULT_S3_REGION = "us-east-1"


@dataclass(slots=True)
class StorageConfig:
    bucket: str
    type: str = "s3"
    region: str = ""
    endpoint: str = ""
    access_key_id: str = ""
    secret_access_key: str = ""
    use_ssl: bool = False
    prefix: str = ""


@dataclass(slots=True)
class MirrorConfig:
    source: StorageConfig
    target: StorageConfig
    workers: int = DEFAULT_WORKERS
    dry_run: bool = False
    verbose: bool = False
    exclude: list[str] = field(default_factory=list)


def _as_str(value: Any, field_name: str, default: str = "") -> str:
    if value is None:
        return default
    if not isinstance(value, str):
        raise ValueError(f"{field_name} must be a string")
    return value


def _as_bool(value: Any, field_name: str, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    raise ValueError(f"{field_name} must be a boolean")


def _as_int(value: Any, field_name: str, default: int) -> int:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{field_name} must be an integer")
    return value


def _as_list_of_strings(value: Any, field_name: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list) or any(not isinstance(item, str) for item in value):
        raise ValueError(f"{field_name} must be a list of strings")
    return [item for item in value if item.strip()]


def _load_raw_config(config_path: Path) -> dict[str, Any]:
    if not config_path.exists():
        raise ValueError(f"Config file does not exist: {config_path}")

    suffix = config_path.suffix.lower()
    text = config_path.read_text(encoding="utf-8")
    if suffix in {".yml", ".yaml"}:
        loaded = yaml.safe_load(text)
    elif suffix == ".json":
        loaded = json.loads(text)
    else:
        raise ValueError("Config file must be .yaml/.yml or .json")

    if not isinstance(loaded, dict):
        raise ValueError("Config root must be an object")
    return loaded


def _parse_storage(raw: Any, name: str) -> StorageConfig:
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValueError(f"{name} must be an object")

    storage_type = _as_str(raw.get("type"), f"{name}.type", default="s3") or "s3"
    region = _as_str(raw.get("region"), f"{name}.region")
    if storage_type == "s3" and not region:
        region = DEFAULT_S3_REGION

    return StorageConfig(
        bucket=_as_str(raw.get("bucket"), f"{name}.bucket"),
        type=storage_type,
        region=region,
        endpoint=_as_str(raw.get("endpoint"), f"{name}.endpoint"),
        access_key_id=_as_str(raw.get("access_key_id"), f"{name}.access_key_id"),
        secret_access_key=_as_str(raw.get("secret_access_key"), f"{name}.secret_access_key"),
        use_ssl=_as_bool(raw.get("use_ssl"), f"{name}.use_ssl", default=False),
        prefix=_as_str(raw.get("prefix"), f"{name}.prefix"),
    )


def load_config(config_path: Path) -> MirrorConfig:
    """Read a config file and fill in defaults. Call validate_config before use."""
    raw = _load_raw_config(config_path)

    workers = _as_int(raw.get("workers"), "workers", default=0) or DEFAULT_WORKERS

    return MirrorConfig(
        source=_parse_storage(raw.get("source"), "source"),
        target=_parse_storage(raw.get("target"), "target"),
        workers=workers,
        dry_run=_as_bool(raw.get("dry_run"), "dry_run", default=False),
        verbose=_as_bool(raw.get("verbose"), "verbose", default=False),
        exclude=_as_list_of_strings(raw.get("exclude"), "exclude"),
    )


def apply_overrides(
    config: MirrorConfig,
    workers: int | None = None,
    dry_run: bool = False,
    verbose: bool = False,
) -> MirrorConfig:
    if workers is not None and workers > 0:
        config.workers = workers
    if dry_run:
        config.dry_run = True
    if verbose:
        config.verbose = True
    return config


def compile_exclude(patterns: list[str]) -> pathspec.GitIgnoreSpec:
    try:
        return pathspec.GitIgnoreSpec.from_lines(patterns)
    except Exception as exc:
        raise ValueError(f"exclude: {exc}") from exc


def _validate_storage(name: str, cfg: StorageConfig) -> None:
    if cfg.type not in STORAGE_TYPES:
        raise ValueError(f"{name}: type must be 's3' or 'minio'")
    if not cfg.bucket:
        raise ValueError(f"{name}: bucket cannot be empty")
    if cfg.type == "minio":
        if not cfg.endpoint:
            raise ValueError(f"{name}: endpoint is required for MinIO")
        if not cfg.access_key_id:
            raise ValueError(f"{name}: access_key_id is required for MinIO")
        if not cfg.secret_access_key:
            raise ValueError(f"{name}: secret_access_key is required for MinIO")


def validate_config(config: MirrorConfig) -> None:
    _validate_storage("source", config.source)
    _validate_storage("target", config.target)
    if config.workers < 1:
        raise ValueError("workers must be at least 1")
    if config.workers > MAX_WORKERS:
        raise ValueError(f"workers cannot exceed {MAX_WORKERS}")
    if config.exclude:
        compile_exclude(config.exclude)
