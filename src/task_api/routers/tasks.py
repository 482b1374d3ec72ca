from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from ..auth import get_current_user
from ..dependencies import get_task_service
from ..models import TaskStatus, UserEntity
from ..repositories import TaskListQuery
from ..schemas import TaskCreate, TaskOut, TaskStatusUpdate, TaskUpdate
from ..task_service import TaskService

router = APIRouter(
    prefix="/api/v1/tasks",
    tags=["tasks"],
)


# PUBLIC_INTERFACE
@router.post(
    "/",
    response_model=TaskOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create Task",
    description="Create a new task owned by the caller.",
    responses={
        201: {"description": "Task created successfully"},
        401: {"description": "Not authenticated"},
        422: {"description": "Validation error"},
    },
)
def create_task(
    payload: TaskCreate,
    user: UserEntity = Depends(get_current_user),
    tasks: TaskService = Depends(get_task_service),
) -> TaskOut:
    """
    Create a new task with status OPEN.
    """
    created = tasks.create_task(payload.title, payload.description, user)
    return TaskOut(**created)  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.get(
    "/",
    response_model=List[TaskOut],
    summary="List Tasks",
    description=(
        "List the caller's tasks in creation order.\n\n"
        "Query parameters:\n"
        "- status: exact status filter (OPEN, IN_PROGRESS, DONE)\n"
        "- search: case-insensitive substring match on title or description\n\n"
        "Filters are combined with AND."
    ),
    responses={
        200: {"description": "List retrieved successfully"},
        401: {"description": "Not authenticated"},
    },
)
def list_tasks(
    status_filter: Optional[TaskStatus] = Query(None, alias="status", description="Filter by status"),
    search: Optional[str] = Query(None, max_length=200, description="Search text for title/description"),
    user: UserEntity = Depends(get_current_user),
    tasks: TaskService = Depends(get_task_service),
) -> List[TaskOut]:
    """
    List the caller's tasks with optional filters.
    """
    query = TaskListQuery(status=status_filter, search=search.strip() if search else None)
    return [TaskOut(**t) for t in tasks.get_tasks(query, user)]  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.get(
    "/{task_id}",
    response_model=TaskOut,
    summary="Get Task",
    description="Get one of the caller's tasks by ID.",
    responses={
        200: {"description": "Task found"},
        404: {"description": "Task not found"},
    },
)
def get_task(
    task_id: str,
    user: UserEntity = Depends(get_current_user),
    tasks: TaskService = Depends(get_task_service),
) -> TaskOut:
    """
    Retrieve a single task. Tasks of other users are reported as not found.
    """
    return TaskOut(**tasks.get_task_by_id(task_id, user))  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.patch(
    "/{task_id}",
    response_model=TaskOut,
    summary="Edit Task",
    description="Partially update the title and/or description of a task.",
    responses={
        200: {"description": "Task updated"},
        404: {"description": "Task not found"},
    },
)
def edit_task(
    task_id: str,
    payload: TaskUpdate,
    user: UserEntity = Depends(get_current_user),
    tasks: TaskService = Depends(get_task_service),
) -> TaskOut:
    """
    Partial update of a task's text fields.
    """
    updated = tasks.update_task(task_id, user, title=payload.title, description=payload.description)
    return TaskOut(**updated)  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.patch(
    "/{task_id}/status",
    response_model=TaskOut,
    summary="Update Task Status",
    description="Set a task's status. Any status may be set from any other.",
    responses={
        200: {"description": "Status updated"},
        404: {"description": "Task not found"},
    },
)
def update_task_status(
    task_id: str,
    payload: TaskStatusUpdate,
    user: UserEntity = Depends(get_current_user),
    tasks: TaskService = Depends(get_task_service),
) -> TaskOut:
    """
    Change the status of a task.
    """
    return TaskOut(**tasks.update_task_status(task_id, payload.status, user))  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.delete(
    "/{task_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Task",
    description="Delete one of the caller's tasks by ID.",
    responses={
        204: {"description": "Task deleted"},
        404: {"description": "Task not found"},
    },
)
def delete_task(
    task_id: str,
    user: UserEntity = Depends(get_current_user),
    tasks: TaskService = Depends(get_task_service),
) -> None:
    """
    Delete a task. Returns 204 on success, 404 if not found.
    """
    tasks.delete_task(task_id, user)
    return None
