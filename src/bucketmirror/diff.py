from __future__ import annotations

from enum import Enum
import logging

from bucketmirror.models import ObjectDescriptor
from bucketmirror.storage import ObjectNotFoundError, StorageClient, StorageError


logger = logging.getLogger("bucketmirror.diff")


class Decision(str, Enum):
    SKIP = "skip"
    COPY = "copy"


def lookup_target(client: StorageClient, key: str) -> ObjectDescriptor | None:
    """Metadata-only lookup of the target object.

    Returns None when the object is missing. Any other lookup failure is also
    reported as None, so the object is copied rather than silently skipped.
    """
    try:
        return client.head_object(key)
    except ObjectNotFoundError:
        return None
    except StorageError as exc:
        logger.warning("Target lookup failed for %s, treating as absent: %s", key, exc)
        return None


def decide(source: ObjectDescriptor, target: ObjectDescriptor | None) -> Decision:
    if target is not None and target.etag == source.etag:
        return Decision.SKIP
    return Decision.COPY
