# hse_core/services/attachments.py
"""
Attachment metadata recording.

Only references are stored (name, size, type, uploader, time); file bytes
live with whatever storage collaborator the client used.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from django.conf import settings
from django.db import DatabaseError, transaction

from hse_core.models import AttachmentRecord, AuditLog

logger = logging.getLogger(__name__)


class AttachmentError(Exception):
    """Raised when attachment metadata is rejected."""

    def __init__(self, message: str, error_code: str = "INVALID_ATTACHMENT"):
        self.message = message
        self.error_code = error_code
        super().__init__(self.message)


@dataclass
class AttachmentOutcome:
    """Result of recording a batch of attachments against one entity."""

    recorded: List[AttachmentRecord] = field(default_factory=list)
    warnings: List[Dict[str, str]] = field(default_factory=list)

    @property
    def result(self) -> str:
        return "partial" if self.warnings else "success"


def validate_metadata(meta: Mapping[str, Any]) -> Dict[str, Any]:
    name = str(meta.get("file_name") or meta.get("name") or "").strip()
    if not name:
        raise AttachmentError("file_name is required.", "MISSING_NAME")

    ext = os.path.splitext(name)[1].lower()
    allowed = [e.strip().lower() for e in getattr(settings, "HSE_ATTACHMENT_EXTENSIONS", []) if e.strip()]
    if allowed and ext not in allowed:
        raise AttachmentError(f"File type '{ext or name}' is not allowed.", "INVALID_TYPE")

    try:
        size = int(meta.get("size_bytes", meta.get("size")))
    except (TypeError, ValueError):
        raise AttachmentError("size_bytes must be an integer.", "INVALID_SIZE")

    if size <= 0:
        raise AttachmentError("Attachment is empty.", "EMPTY_FILE")

    limit = getattr(settings, "HSE_ATTACHMENT_MAX_BYTES", 50 * 1024 * 1024)
    if size > limit:
        raise AttachmentError(
            f"Attachment exceeds the {limit // (1024 * 1024)} MB limit.",
            "FILE_TOO_LARGE",
        )

    return {
        "file_name": name[:255],
        "size_bytes": size,
        "content_type": str(meta.get("content_type") or "")[:120],
        "description": str(meta.get("description") or "")[:500],
    }


def record_attachment(*, kind: str, object_id: int, meta: Mapping[str, Any], user=None) -> AttachmentRecord:
    clean = validate_metadata(meta)
    with transaction.atomic():
        record = AttachmentRecord.objects.create(
            kind=kind,
            object_id=object_id,
            uploaded_by=user if user is not None and user.is_authenticated else None,
            **clean,
        )
        AuditLog.objects.create(
            user=record.uploaded_by,
            action=f"ATTACH {kind.upper()} {object_id}",
            details={"attachment_id": record.pk, "file_name": record.file_name, "size_bytes": record.size_bytes},
        )
    return record


def record_attachments(
    *,
    kind: str,
    object_id: int,
    items: Optional[Iterable[Mapping[str, Any]]],
    user=None,
) -> AttachmentOutcome:
    """
    Record each attachment independently. A failure becomes a warning and
    never undoes the others or the owning entity.
    """
    outcome = AttachmentOutcome()
    for index, meta in enumerate(items or []):
        try:
            outcome.recorded.append(record_attachment(kind=kind, object_id=object_id, meta=meta, user=user))
        except AttachmentError as exc:
            outcome.warnings.append({"index": str(index), "code": exc.error_code, "message": exc.message})
        except DatabaseError as exc:
            logger.warning("Attachment %s for %s %s not recorded: %s", index, kind, object_id, exc)
            outcome.warnings.append({"index": str(index), "code": "STORAGE_ERROR", "message": "Attachment could not be recorded."})

    if outcome.warnings:
        logger.warning("%s %s created with %d attachment warning(s)", kind, object_id, len(outcome.warnings))
    return outcome
