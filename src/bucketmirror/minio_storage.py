"""
MinIO-backed storage speaking the native MinIO client protocol.
"""
from __future__ import annotations

import io
from typing import Any, BinaryIO

from minio import Minio
from minio.error import MinioException, S3Error
from urllib3.exceptions import HTTPError

from bucketmirror.config import StorageConfig
from bucketmirror.models import ObjectDescriptor
from bucketmirror.storage import ObjectNotFoundError, StorageError, strip_etag


NOT_FOUND_CODES = {"NoSuchKey", "NoSuchObject", "ResourceNotFound"}
CONTENT_TYPE = "application/octet-stream"


def _is_not_found(exc: Any) -> bool:
    return getattr(exc, "code", None) in NOT_FOUND_CODES


class _ReleasingStream(io.RawIOBase):
    """File-like view over a urllib3 response that returns the connection on close."""

    def __init__(self, response: Any) -> None:
        self._response = response

    def readable(self) -> bool:
        return True

    def read(self, size: int = -1) -> bytes:
        if size is None or size < 0:
            return self._response.read()
        return self._response.read(size)

    def readinto(self, buffer) -> int:
        data = self.read(len(buffer))
        buffer[: len(data)] = data
        return len(data)

    def close(self) -> None:
        if not self.closed:
            try:
                self._response.close()
                self._response.release_conn()
            finally:
                super().close()


class MinioStorage:
    def __init__(self, client: Any, bucket: str) -> None:
        self._client = client
        self._bucket = bucket

    @classmethod
    def from_config(cls, cfg: StorageConfig) -> "MinioStorage":
        client = Minio(
            endpoint=cfg.endpoint,
            access_key=cfg.access_key_id,
            secret_key=cfg.secret_access_key,
            secure=cfg.use_ssl,
            region=cfg.region or None,
        )
        return cls(client, cfg.bucket)

    @property
    def bucket(self) -> str:
        return self._bucket

    def list_objects(self, prefix: str) -> list[ObjectDescriptor]:
        objects: list[ObjectDescriptor] = []
        try:
            for obj in self._client.list_objects(self._bucket, prefix=prefix, recursive=True):
                if obj.is_dir:
                    continue
                objects.append(
                    ObjectDescriptor(
                        key=obj.object_name,
                        size=int(obj.size or 0),
                        etag=strip_etag(obj.etag),
                        last_modified=str(obj.last_modified) if obj.last_modified else "",
                    )
                )
        except (MinioException, HTTPError) as exc:
            raise StorageError(f"list minio://{self._bucket}/{prefix}: {exc}") from exc
        return objects

    def head_object(self, key: str) -> ObjectDescriptor:
        try:
            stat = self._client.stat_object(self._bucket, key)
        except S3Error as exc:
            if _is_not_found(exc):
                raise ObjectNotFoundError(f"minio://{self._bucket}/{key} not found") from exc
            raise StorageError(f"stat minio://{self._bucket}/{key}: {exc}") from exc
        except (MinioException, HTTPError) as exc:
            raise StorageError(f"stat minio://{self._bucket}/{key}: {exc}") from exc

        return ObjectDescriptor(
            key=key,
            size=int(stat.size or 0),
            etag=strip_etag(stat.etag),
            last_modified=str(stat.last_modified) if stat.last_modified else "",
        )

    def get_object(self, key: str) -> BinaryIO:
        try:
            response = self._client.get_object(self._bucket, key)
        except (MinioException, HTTPError) as exc:
            raise StorageError(f"get minio://{self._bucket}/{key}: {exc}") from exc
        return _ReleasingStream(response)

    def put_object(self, key: str, body: BinaryIO, size: int) -> None:
        try:
            self._client.put_object(
                self._bucket,
                key,
                body,
                length=size,
                content_type=CONTENT_TYPE,
            )
        except (MinioException, HTTPError) as exc:
            raise StorageError(f"put minio://{self._bucket}/{key} ({size} bytes): {exc}") from exc
