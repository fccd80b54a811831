# Overview: Flask API routes for the kanban task board.

from flask import Blueprint, g, request

from ..decorators import require_auth, require_capability
from ..models import TASK_PRIORITIES, TASK_STATUSES, Task
from ..services import task_service
from ..validation import ModelValidationPolicy, clean_labels, reject_unknown, require_fields, validate_payload

TASK_POLICY = ModelValidationPolicy(
    writable_fields={"title", "description", "status", "priority", "labels", "dueDate", "assigneeId"},
    required_on_create={"title"},
    choices={"status": TASK_STATUSES, "priority": TASK_PRIORITIES},
)

tasks_bp = Blueprint("tasks", __name__, url_prefix="/api/tasks")


def _task_patch(partial: bool) -> dict:
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Task, payload=payload, policy=TASK_POLICY, partial=partial)
    if "labels" in patch:
        patch["labels"] = clean_labels(patch["labels"])
    return patch


@tasks_bp.get("")
@require_auth
@require_capability("VIEW_TASKS")
def list_tasks():
    return task_service.list_tasks(
        status=request.args.get("status"),
        assignee_id=request.args.get("assigneeId", type=int),
    )


@tasks_bp.get("/board")
@require_auth
@require_capability("VIEW_TASKS")
def task_board():
    return task_service.board()


@tasks_bp.post("")
@require_auth
@require_capability("MANAGE_TASKS")
def create_task():
    return task_service.create_task(_task_patch(partial=False), user_id=g.current_user.id), 201


@tasks_bp.put("/<int:task_id>")
@require_auth
@require_capability("MANAGE_TASKS")
def update_task(task_id: int):
    return task_service.update_task(task_id, _task_patch(partial=True), user_id=g.current_user.id)


@tasks_bp.post("/<int:task_id>/move")
@require_auth
@require_capability("MANAGE_TASKS")
def move_task(task_id: int):
    payload = request.get_json(silent=True) or {}
    reject_unknown(payload, {"status"})
    require_fields(payload, "status")
    return task_service.move_task(task_id, payload["status"], user_id=g.current_user.id)


@tasks_bp.delete("/<int:task_id>")
@require_auth
@require_capability("MANAGE_TASKS")
def delete_task(task_id: int):
    task_service.delete_task(task_id, user_id=g.current_user.id)
    return "", 204
