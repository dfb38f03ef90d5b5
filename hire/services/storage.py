"""Upload helpers for the storage buckets.

Buckets are top-level prefixes in the configured Django file storage:
``protocols`` for handover photos, ``documents`` for pre-registration scans
and ``signatures`` for signature images.
"""

from __future__ import annotations

import logging
import os

from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from django.utils import timezone
from django.utils.text import get_valid_filename

from ..exceptions import StorageUploadError

logger = logging.getLogger(__name__)

PROTOCOLS_BUCKET = "protocols"
DOCUMENTS_BUCKET = "documents"
SIGNATURES_BUCKET = "signatures"


def build_object_name(bucket: str, owner_id, kind: str, filename: str) -> str:
    stamp = int(timezone.now().timestamp() * 1000)
    safe_name = get_valid_filename(os.path.basename(filename or "upload")) or "upload"
    return f"{bucket}/{owner_id}/{kind}-{stamp}-{safe_name}"


def _save(name: str, content) -> str:
    try:
        return default_storage.save(name, content)
    except OSError as exc:
        logger.exception("Upload failed", extra={"object_name": name})
        raise StorageUploadError(f"Upload failed: {exc}") from exc


def store_upload(bucket: str, owner_id, kind: str, upload) -> str:
    """Save an uploaded file and return its storage name."""
    name = build_object_name(bucket, owner_id, kind, getattr(upload, "name", ""))
    stored = _save(name, upload)
    logger.info("Stored upload %s", stored)
    return stored


def store_bytes(bucket: str, owner_id, kind: str, data: bytes, extension: str = "png") -> str:
    name = build_object_name(bucket, owner_id, kind, f"{kind}.{extension}")
    return _save(name, ContentFile(data))


def discard(names) -> None:
    """Best-effort removal of objects left behind by a failed operation."""
    for name in names:
        try:
            default_storage.delete(name)
        except OSError:
            logger.warning("Could not remove orphaned object %s", name, exc_info=True)


def public_url(name: str | None) -> str | None:
    if not name:
        return None
    return default_storage.url(name)
