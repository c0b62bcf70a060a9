from __future__ import annotations

from typing import BinaryIO, Protocol

from bucketmirror.config import StorageConfig
from bucketmirror.models import ObjectDescriptor


class StorageError(Exception):
    """Raised by a backend when a provider call fails."""


class ObjectNotFoundError(StorageError):
    pass


class StorageClient(Protocol):
    @property
    def bucket(self) -> str:
        ...

    def list_objects(self, prefix: str) -> list[ObjectDescriptor]:
        ...

    def head_object(self, key: str) -> ObjectDescriptor:
        ...

    def get_object(self, key: str) -> BinaryIO:
        ...

    def put_object(self, key: str, body: BinaryIO, size: int) -> None:
        ...


def strip_etag(value: str | None) -> str:
    if not value:
        return ""
    return value.strip('"')


def new_client(cfg: StorageConfig, max_connections: int = 10) -> StorageClient:
    # SDKs are imported on first use.
    if cfg.type == "s3":
        from bucketmirror.s3_storage import S3Storage

        return S3Storage.from_config(cfg, max_connections=max_connections)
    if cfg.type == "minio":
        from bucketmirror.minio_storage import MinioStorage

        return MinioStorage.from_config(cfg)
    raise ValueError(f"Unsupported storage type: {cfg.type}")
