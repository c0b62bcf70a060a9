from pathlib import Path

import pytest

from bucketmirror.config import (
    DEFAULT_S3_REGION,
    DEFAULT_WORKERS,
    MirrorConfig,
    StorageConfig,
    apply_overrides,
    load_config,
    validate_config,
)


def _write_config(tmp_path: Path, content: str, name: str = "config.yaml") -> Path:
    config_file = tmp_path / name
    config_file.write_text(content.strip(), encoding="utf-8")
    return config_file


def test_load_config_reads_both_sides(tmp_path: Path) -> None:
    config_file = _write_config(
        tmp_path,
        """
source:
  type: s3
  bucket: prod-assets
  region: eu-west-1
  prefix: images/
target:
  type: minio
  bucket: backup
  endpoint: minio.internal:9000
  access_key_id: minio
  secret_access_key: minio123
  use_ssl: true
  prefix: mirror/
workers: 25
dry_run: true
exclude:
  - "*.tmp"
""",
    )

    loaded = load_config(config_file)

    assert loaded.source == StorageConfig(bucket="prod-assets", type="s3", region="eu-west-1", prefix="images/")
    assert loaded.target.type == "minio"
    assert loaded.target.endpoint == "minio.internal:9000"
    assert loaded.target.use_ssl is True
    assert loaded.target.region == ""
    assert loaded.target.prefix == "mirror/"
    assert loaded.workers == 25
    assert loaded.dry_run is True
    assert loaded.verbose is False
    assert loaded.exclude == ["*.tmp"]
    validate_config(loaded)


def test_load_config_applies_defaults(tmp_path: Path) -> None:
    config_file = _write_config(
        tmp_path,
        """
source:
  bucket: a
target:
  bucket: b
""",
    )

    loaded = load_config(config_file)

    assert loaded.workers == DEFAULT_WORKERS
    assert loaded.source.type == "s3"
    assert loaded.source.region == DEFAULT_S3_REGION
    assert loaded.target.region == DEFAULT_S3_REGION
    assert loaded.target.use_ssl is False


def test_load_config_supports_json(tmp_path: Path) -> None:
    config_file = _write_config(
        tmp_path,
        '{"source": {"bucket": "a"}, "target": {"bucket": "b"}, "workers": 3}',
        name="config.json",
    )

    assert load_config(config_file).workers == 3


def test_load_config_rejects_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="does not exist"):
        load_config(tmp_path / "missing.yaml")


def test_load_config_rejects_bad_types(tmp_path: Path) -> None:
    config_file = _write_config(
        tmp_path,
        """
source:
  bucket: a
target:
  bucket: b
dry_run: "yes"
""",
    )

    with pytest.raises(ValueError, match="dry_run must be a boolean"):
        load_config(config_file)


@pytest.mark.parametrize(
    ("config", "message"),
    [
        (MirrorConfig(source=StorageConfig(bucket=""), target=StorageConfig(bucket="b")), "source: bucket cannot be empty"),
        (
            MirrorConfig(source=StorageConfig(bucket="a"), target=StorageConfig(bucket="b", type="gcs")),
            "target: type must be 's3' or 'minio'",
        ),
        (
            MirrorConfig(source=StorageConfig(bucket="a", type="minio"), target=StorageConfig(bucket="b")),
            "source: endpoint is required for MinIO",
        ),
        (
            MirrorConfig(
                source=StorageConfig(bucket="a", type="minio", endpoint="localhost:9000", access_key_id="k"),
                target=StorageConfig(bucket="b"),
            ),
            "source: secret_access_key is required for MinIO",
        ),
        (MirrorConfig(source=StorageConfig(bucket="a"), target=StorageConfig(bucket="b"), workers=0), "at least 1"),
        (MirrorConfig(source=StorageConfig(bucket="a"), target=StorageConfig(bucket="b"), workers=101), "cannot exceed 100"),
    ],
)
def test_validate_config_errors(config: MirrorConfig, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        validate_config(config)


def test_apply_overrides_only_turns_options_on() -> None:
    config = MirrorConfig(
        source=StorageConfig(bucket="a"), target=StorageConfig(bucket="b"), workers=5, dry_run=True
    )

    apply_overrides(config, workers=0, dry_run=False, verbose=True)

    assert config.workers == 5
    assert config.dry_run is True
    assert config.verbose is True

    apply_overrides(config, workers=40)

    assert config.workers == 40


def test_validate_config_rejects_invalid_exclude_pattern() -> None:
    config = MirrorConfig(
        source=StorageConfig(bucket="a"), target=StorageConfig(bucket="b"), exclude=["!", "a/***"]
    )

    with pytest.raises(ValueError, match="^exclude: "):
        validate_config(config)


def test_validate_config_accepts_valid_exclude_patterns() -> None:
    config = MirrorConfig(
        source=StorageConfig(bucket="a"), target=StorageConfig(bucket="b"), exclude=["tmp/", "*.log", "!keep.log"]
    )

    validate_config(config)
