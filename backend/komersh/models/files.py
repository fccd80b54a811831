from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Attachment(db.Model):
    """
    Metadata for a file stored under UPLOAD_FOLDER.

    filename is the generated on-disk name; original_name is what the user uploaded.
    """
    __tablename__ = "attachments"
    __table_args__ = (
        db.UniqueConstraint("filename", name="uq_attachments_filename"),
        db.Index("ix_attachments_folder", "folder"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    filename = db.Column(db.String(255), nullable=False)
    original_name = db.Column(db.String(255), nullable=False)
    mime_type = db.Column(db.String(128), nullable=True)
    size = db.Column(db.Integer, nullable=False, default=0)
    folder = db.Column(db.String(64), nullable=False, default="general")
    url = db.Column(db.String(1024), nullable=False)
    uploaded_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "filename": self.filename,
            "originalName": self.original_name,
            "mimeType": self.mime_type,
            "size": self.size,
            "folder": self.folder,
            "url": self.url,
            "uploadedByUserId": self.uploaded_by_user_id,
            "createdAt": to_utc_z(self.created_at),
        }
