"""
boto3-backed storage for AWS S3 and S3-compatible endpoints.
"""
from __future__ import annotations

from typing import Any, BinaryIO

import boto3
from boto3.exceptions import S3UploadFailedError
from boto3.s3.transfer import TransferConfig
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from bucketmirror.config import StorageConfig
from bucketmirror.models import ObjectDescriptor
from bucketmirror.storage import ObjectNotFoundError, StorageError, strip_etag


NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}
MIN_MULTIPART_THRESHOLD = 8 * 1024 * 1024
MAX_SINGLE_PUT_SIZE = 5 * 1024 * 1024 * 1024


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


def transfer_config_for(size: int) -> TransferConfig:
    # A single PUT keeps the target ETag equal to the source ETag; only objects
    # beyond the single-PUT limit go multipart. Concurrency stays at the worker count.
    threshold = min(max(size + 1, MIN_MULTIPART_THRESHOLD), MAX_SINGLE_PUT_SIZE)
    return TransferConfig(multipart_threshold=threshold, max_concurrency=1, use_threads=False)


def _create_s3_client(cfg: StorageConfig, max_connections: int):
    boto_config = Config(
        signature_version="s3v4",
        max_pool_connections=max_connections,
    )
    kwargs: dict[str, Any] = {
        "region_name": cfg.region or None,
        "config": boto_config,
    }
    if cfg.endpoint:
        kwargs["endpoint_url"] = cfg.endpoint
    # Without explicit keys boto3 falls back to its default credential chain.
    if cfg.access_key_id and cfg.secret_access_key:
        kwargs["aws_access_key_id"] = cfg.access_key_id
        kwargs["aws_secret_access_key"] = cfg.secret_access_key
    return boto3.client("s3", **kwargs)


class S3Storage:
    def __init__(self, client: Any, bucket: str) -> None:
        self._client = client
        self._bucket = bucket

    @classmethod
    def from_config(cls, cfg: StorageConfig, max_connections: int = 10) -> "S3Storage":
        return cls(_create_s3_client(cfg, max_connections), cfg.bucket)

    @property
    def bucket(self) -> str:
        return self._bucket

    def list_objects(self, prefix: str) -> list[ObjectDescriptor]:
        objects: list[ObjectDescriptor] = []
        try:
            paginator = self._client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self._bucket, Prefix=prefix):
                for obj in page.get("Contents", []):
                    last_modified = obj.get("LastModified")
                    objects.append(
                        ObjectDescriptor(
                            key=obj["Key"],
                            size=int(obj.get("Size", 0)),
                            etag=strip_etag(obj.get("ETag")),
                            last_modified=str(last_modified) if last_modified else "",
                        )
                    )
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(f"list s3://{self._bucket}/{prefix}: {exc}") from exc
        return objects

    def head_object(self, key: str) -> ObjectDescriptor:
        try:
            response = self._client.head_object(Bucket=self._bucket, Key=key)
        except ClientError as exc:
            if _error_code(exc) in NOT_FOUND_CODES:
                raise ObjectNotFoundError(f"s3://{self._bucket}/{key} not found") from exc
            raise StorageError(f"head s3://{self._bucket}/{key}: {exc}") from exc
        except BotoCoreError as exc:
            raise StorageError(f"head s3://{self._bucket}/{key}: {exc}") from exc

        last_modified = response.get("LastModified")
        return ObjectDescriptor(
            key=key,
            size=int(response.get("ContentLength", 0)),
            etag=strip_etag(response.get("ETag")),
            last_modified=str(last_modified) if last_modified else "",
        )

    def get_object(self, key: str) -> BinaryIO:
        try:
            response = self._client.get_object(Bucket=self._bucket, Key=key)
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(f"get s3://{self._bucket}/{key}: {exc}") from exc
        return response["Body"]

    def put_object(self, key: str, body: BinaryIO, size: int) -> None:
        try:
            self._client.upload_fileobj(body, self._bucket, key, Config=transfer_config_for(size))
        except (S3UploadFailedError, ClientError, BotoCoreError) as exc:
            raise StorageError(f"put s3://{self._bucket}/{key} ({size} bytes): {exc}") from exc
