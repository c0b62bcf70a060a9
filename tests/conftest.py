from __future__ import annotations

import hashlib
import io
import threading

import pytest

from bucketmirror.models import ObjectDescriptor
from bucketmirror.storage import ObjectNotFoundError, StorageError


class TrackingStream(io.BytesIO):
    def __init__(self, data: bytes, registry: list["TrackingStream"]) -> None:
        super().__init__(data)
        registry.append(self)


class InMemoryStorage:
    """Thread-safe in-memory bucket with optional fault injection."""

    def __init__(self, bucket: str = "bucket") -> None:
        self._bucket = bucket
        self._lock = threading.Lock()
        self.objects: dict[str, bytes] = {}
        self.etags: dict[str, str] = {}
        self.streams: list[TrackingStream] = []
        self.put_calls: list[str] = []
        self.get_calls: list[str] = []
        self.fail_get: set[str] = set()
        self.fail_put: set[str] = set()
        self.fail_head: set[str] = set()
        self.fail_list = False

    @property
    def bucket(self) -> str:
        return self._bucket

    def add(self, key: str, data: bytes, etag: str | None = None) -> None:
        with self._lock:
            self.objects[key] = data
            self.etags[key] = etag or hashlib.md5(data).hexdigest()

    def _describe(self, key: str) -> ObjectDescriptor:
        return ObjectDescriptor(key=key, size=len(self.objects[key]), etag=self.etags[key])

    def list_objects(self, prefix: str) -> list[ObjectDescriptor]:
        if self.fail_list:
            raise StorageError("listing denied")
        with self._lock:
            return [self._describe(key) for key in sorted(self.objects) if key.startswith(prefix)]

    def head_object(self, key: str) -> ObjectDescriptor:
        if key in self.fail_head:
            raise StorageError(f"head timed out for {key}")
        with self._lock:
            if key not in self.objects:
                raise ObjectNotFoundError(key)
            return self._describe(key)

    def get_object(self, key: str):
        with self._lock:
            self.get_calls.append(key)
            if key in self.fail_get:
                raise StorageError(f"get failed for {key}")
            if key not in self.objects:
                raise ObjectNotFoundError(key)
            return TrackingStream(self.objects[key], self.streams)

    def put_object(self, key: str, body, size: int) -> None:
        with self._lock:
            self.put_calls.append(key)
        if key in self.fail_put:
            raise StorageError(f"put failed for {key}")
        data = body.read()
        assert len(data) == size
        self.add(key, data)


class NoWriteStorage(InMemoryStorage):
    def get_object(self, key: str):
        raise AssertionError(f"get_object called for {key}")

    def put_object(self, key: str, body, size: int) -> None:
        raise AssertionError(f"put_object called for {key}")


@pytest.fixture()
def source() -> InMemoryStorage:
    return InMemoryStorage("source-bucket")


@pytest.fixture()
def target() -> InMemoryStorage:
    return InMemoryStorage("target-bucket")
