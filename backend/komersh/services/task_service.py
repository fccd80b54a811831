# Overview: Service-layer operations for the kanban task board.

from __future__ import annotations

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import TASK_STATUSES, Task, User
from . import activity_service, notification_service

TASK_MUTABLE_FIELDS = {"title", "description", "status", "priority", "labels", "due_date", "assignee_id"}


def _get_task(task_id: int) -> Task:
    task = db.session.get(Task, task_id)
    if task is None:
        raise NotFoundError("Task not found")
    return task


def _check_assignee(assignee_id: int | None) -> None:
    if assignee_id is None:
        return
    user = db.session.get(User, assignee_id)
    if user is None or not user.is_active:
        raise ValidationError("Assignee not found", field="assigneeId")


def _notify_assignee(task: Task, actor_id: int | None) -> None:
    if task.assignee_id is None or task.assignee_id == actor_id:
        return
    notification_service.notify(
        task.assignee_id,
        "task_assigned",
        "Task assigned to you",
        task.title,
        "task",
        task.id,
    )


def list_tasks(status: str | None = None, assignee_id: int | None = None) -> list[dict]:
    query = db.session.query(Task)
    if status:
        query = query.filter(Task.status == status)
    if assignee_id is not None:
        query = query.filter(Task.assignee_id == assignee_id)
    rows = query.order_by(Task.created_at.desc(), Task.id.desc()).all()
    return [r.to_dict() for r in rows]


def board() -> dict:
    """Tasks grouped by status, one column per status (empty columns included)."""
    columns = {status: [] for status in TASK_STATUSES}
    for task in db.session.query(Task).order_by(Task.created_at.asc(), Task.id.asc()).all():
        columns.setdefault(task.status, []).append(task.to_dict())
    return columns


def create_task(patch: dict, user_id: int | None = None) -> dict:
    _check_assignee(patch.get("assignee_id"))
    task = Task()
    for k, v in patch.items():
        if k in TASK_MUTABLE_FIELDS:
            setattr(task, k, v)
    db.session.add(task)
    db.session.flush()

    activity_service.record("created", "task", task.id, task.title, user_id)
    _notify_assignee(task, user_id)
    db.session.commit()
    return task.to_dict()


def update_task(task_id: int, patch: dict, user_id: int | None = None) -> dict:
    task = _get_task(task_id)
    if "assignee_id" in patch:
        _check_assignee(patch["assignee_id"])

    previous_assignee = task.assignee_id
    previous_status = task.status
    for k, v in patch.items():
        if k in TASK_MUTABLE_FIELDS:
            setattr(task, k, v)

    if task.status != previous_status:
        activity_service.record("moved", "task", task.id, f"{previous_status} -> {task.status}", user_id)
    else:
        activity_service.record("updated", "task", task.id, task.title, user_id)
    if task.assignee_id != previous_assignee:
        _notify_assignee(task, user_id)

    db.session.commit()
    return task.to_dict()


def move_task(task_id: int, status: str, user_id: int | None = None) -> dict:
    """Any status may move to any other."""
    if status not in TASK_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(TASK_STATUSES)}", field="status")
    return update_task(task_id, {"status": status}, user_id)


def delete_task(task_id: int, user_id: int | None = None) -> None:
    task = _get_task(task_id)
    activity_service.record("deleted", "task", task.id, task.title, user_id)
    db.session.delete(task)
    db.session.commit()
