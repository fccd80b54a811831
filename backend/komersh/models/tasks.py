from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date, to_utc_z


TASK_STATUSES = ("open", "planned", "in_progress", "done")
TASK_PRIORITIES = ("low", "medium", "high")


class Task(db.Model):
    """Kanban card. Any status can move to any other; no history is kept."""
    __tablename__ = "tasks"
    __table_args__ = (
        db.Index("ix_tasks_status", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(32), nullable=False, default="open")
    priority = db.Column(db.String(16), nullable=False, default="medium")
    labels = db.Column(db.JSON, nullable=True)
    due_date = db.Column(db.Date, nullable=True)
    assignee_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    assignee = db.relationship("User", foreign_keys=[assignee_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "priority": self.priority,
            "labels": list(self.labels or []),
            "dueDate": to_iso_date(self.due_date),
            "assigneeId": self.assignee_id,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
