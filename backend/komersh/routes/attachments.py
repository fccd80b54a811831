# Overview: Flask API routes for file attachments (multipart upload, metadata, delete).

from flask import Blueprint, g, request

from ..decorators import require_auth, require_capability
from ..models import Attachment
from ..services import upload_service
from ..validation import ModelValidationPolicy, validate_payload

ATTACHMENT_POLICY = ModelValidationPolicy(writable_fields={"originalName", "folder"})

attachments_bp = Blueprint("attachments", __name__, url_prefix="/api/attachments")


@attachments_bp.get("")
@require_auth
@require_capability("VIEW_FILES")
def list_attachments():
    return upload_service.list_attachments(folder=request.args.get("folder"))


@attachments_bp.post("")
@attachments_bp.post("/upload")
@require_auth
@require_capability("MANAGE_FILES")
def upload_attachment():
    """Multipart form: file (required), folder (optional, default 'general')."""
    created = upload_service.create_attachment(
        request.files.get("file"),
        request.form.get("folder"),
        user_id=g.current_user.id,
    )
    return created, 201


@attachments_bp.put("/<int:attachment_id>")
@require_auth
@require_capability("MANAGE_FILES")
def update_attachment(attachment_id: int):
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Attachment, payload=payload, policy=ATTACHMENT_POLICY, partial=True)
    return upload_service.update_attachment(attachment_id, patch, user_id=g.current_user.id)


@attachments_bp.delete("/<int:attachment_id>")
@require_auth
@require_capability("MANAGE_FILES")
def delete_attachment(attachment_id: int):
    upload_service.delete_attachment(attachment_id, user_id=g.current_user.id)
    return "", 204
