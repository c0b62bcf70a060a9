from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True, slots=True)
class ObjectDescriptor:
    key: str
    size: int
    etag: str
    last_modified: str = ""


@dataclass(frozen=True, slots=True)
class MirrorJob:
    source: ObjectDescriptor
    target_key: str


@dataclass(frozen=True, slots=True)
class Copied:
    bytes_transferred: int
    dry_run: bool = False
    planned_bytes: int = 0


@dataclass(frozen=True, slots=True)
class Skipped:
    reason: str = "identical-fingerprint"


@dataclass(frozen=True, slots=True)
class Failed:
    error: Exception


MirrorOutcome = Union[Copied, Skipped, Failed]


@dataclass(slots=True)
class MirrorStats:
    total_objects: int = 0
    copied_objects: int = 0
    skipped_objects: int = 0
    error_count: int = 0
    bytes_transferred: int = 0
    dry_run_bytes: int = 0

    @property
    def accounted(self) -> int:
        return self.copied_objects + self.skipped_objects + self.error_count


def resolve_target_key(target_prefix: str, key: str) -> str:
    return f"{target_prefix}{key}" if target_prefix else key
