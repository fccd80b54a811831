# Overview: Service-layer operations for uploaded files on local disk.

from __future__ import annotations

import logging
import os
import uuid
from pathlib import Path

from flask import current_app
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Attachment, InventoryItem, PotentialProduct
from . import activity_service

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp"}
ALLOWED_IMAGE_MIME_TYPES = {"image/png", "image/jpeg", "image/jpg", "image/gif", "image/webp"}
MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB

URL_PREFIX = "/uploads/"


def upload_dir() -> Path:
    """Create the upload folder if it doesn't exist and return it."""
    path = Path(current_app.config["UPLOAD_FOLDER"])
    path.mkdir(parents=True, exist_ok=True)
    return path


def validate_image_file(file: FileStorage) -> None:
    ext = Path(file.filename or "").suffix.lower()
    if ext not in ALLOWED_IMAGE_EXTENSIONS:
        raise ValidationError(
            f"Invalid file type. Allowed: {', '.join(sorted(ALLOWED_IMAGE_EXTENSIONS))}",
            field="image",
        )
    if file.mimetype not in ALLOWED_IMAGE_MIME_TYPES:
        raise ValidationError("Invalid content type. Must be an image.", field="image")


def save_file(file: FileStorage) -> tuple[str, int]:
    """
    Write an upload under a generated name.

    Returns (stored filename, size in bytes).
    """
    ext = Path(file.filename or "").suffix.lower()
    filename = f"{uuid.uuid4().hex}{ext}"
    target = upload_dir() / filename

    file.save(target)
    size = target.stat().st_size
    if size > MAX_FILE_SIZE:
        target.unlink()
        raise ValidationError(
            f"File too large. Maximum size: {MAX_FILE_SIZE / (1024 * 1024):.0f}MB",
            field="file",
        )
    return filename, size


def save_image(file: FileStorage | None) -> str:
    """Validate and store an image; returns its public URL."""
    if file is None or not file.filename:
        raise ValidationError("No image uploaded", field="image")
    validate_image_file(file)
    filename, _ = save_file(file)
    return URL_PREFIX + filename


def delete_stored_file(filename: str) -> None:
    path = upload_dir() / os.path.basename(filename)
    try:
        path.unlink()
    except FileNotFoundError:
        logger.warning("Stored file %s already missing", filename)


def release_image(image_url: str | None) -> None:
    """Delete a stored image once no product or lot points at it any more."""
    if not image_url or not image_url.startswith(URL_PREFIX):
        return
    for model in (PotentialProduct, InventoryItem):
        if db.session.query(model.id).filter(model.image_url == image_url).first() is not None:
            return
    delete_stored_file(image_url[len(URL_PREFIX):])


def list_attachments(folder: str | None = None) -> list[dict]:
    query = db.session.query(Attachment)
    if folder:
        query = query.filter(Attachment.folder == folder)
    rows = query.order_by(Attachment.created_at.desc(), Attachment.id.desc()).all()
    return [r.to_dict() for r in rows]


def create_attachment(file: FileStorage | None, folder: str | None, user_id: int | None = None) -> dict:
    if file is None or not file.filename:
        raise ValidationError("No file uploaded", field="file")

    original_name = secure_filename(file.filename) or "upload"
    filename, size = save_file(file)

    attachment = Attachment(
        filename=filename,
        original_name=original_name,
        mime_type=file.mimetype,
        size=size,
        folder=(folder or "general").strip() or "general",
        url=URL_PREFIX + filename,
        uploaded_by_user_id=user_id,
    )
    db.session.add(attachment)
    db.session.flush()
    activity_service.record("uploaded", "attachment", attachment.id, original_name, user_id)
    db.session.commit()
    return attachment.to_dict()


def update_attachment(attachment_id: int, patch: dict, user_id: int | None = None) -> dict:
    attachment = db.session.get(Attachment, attachment_id)
    if attachment is None:
        raise NotFoundError("Attachment not found")
    for k in ("original_name", "folder"):
        if k in patch:
            setattr(attachment, k, patch[k])
    db.session.commit()
    return attachment.to_dict()


def delete_attachment(attachment_id: int, user_id: int | None = None) -> None:
    attachment = db.session.get(Attachment, attachment_id)
    if attachment is None:
        raise NotFoundError("Attachment not found")
    filename = attachment.filename
    activity_service.record("deleted", "attachment", attachment.id, attachment.original_name, user_id)
    db.session.delete(attachment)
    db.session.commit()
    delete_stored_file(filename)
