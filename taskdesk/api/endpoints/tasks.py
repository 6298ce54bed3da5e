"""
Task CRUD + completion endpoints.

- GET operations require any authenticated user; non-admins only ever
  see tasks assigned to them.
- POST / PUT / DELETE require admin role.
- PUT /{id}/completion is open to the assignee (and admins).
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from taskdesk.api.deps import get_current_active_user, get_db, require_admin
from taskdesk.core.exceptions import Forbidden, NotFound
from taskdesk.models.task import Task
from taskdesk.models.user import User
from taskdesk.schemas.listing import TaskListResponse
from taskdesk.schemas.task import (DeleteResponse, TaskCompletionUpdate,
                                   TaskCreate, TaskRead, TaskResponse,
                                   TaskUpdate)
from taskdesk.services.listing import ListQuery

router = APIRouter(prefix="/tasks", tags=["tasks"])
logger = logging.getLogger(__name__)

_POPULATE = (
    selectinload(Task.assigned_to_user),
    selectinload(Task.created_by_user),
)

task_listing = ListQuery(
    model=Task,
    fields={
        "name": Task.name,
        "description": Task.description,
        "startDate": Task.start_date,
        "endDate": Task.end_date,
        "completionDate": Task.completion_date,
        "isActive": Task.is_active,
        "isCompleted": Task.is_completed,
        "assignedTo": Task.assigned_to,
        "createdBy": Task.created_by,
        "createdAt": Task.created_at,
        "updatedAt": Task.updated_at,
    },
    owner=Task.assigned_to,
    options=_POPULATE,
)


async def _load_task(db: AsyncSession, task_id: int) -> Task:
    result = await db.execute(
        select(Task).where(Task.id == task_id).options(*_POPULATE).execution_options(populate_existing=True)
    )
    task = result.scalar_one_or_none()
    if task is None:
        raise NotFound("Task not found")
    return task


async def _ensure_user_exists(db: AsyncSession, user_id: int) -> None:
    if await db.get(User, user_id) is None:
        raise NotFound("Assigned user not found")


def _ensure_can_access(task: Task, user: User) -> None:
    if not user.is_admin and task.assigned_to != user.id:
        raise Forbidden("Not authorized to access this task")


@router.get("", response_model=TaskListResponse)
async def list_tasks(
    request: Request,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_active_user),
) -> TaskListResponse:
    """Filterable, sortable, paginated task list (see ``services.listing``)."""
    page = await task_listing.execute(db, request.query_params.multi_items(), user)
    return TaskListResponse(
        count=len(page.items),
        pagination=page.pagination,
        data=[TaskRead.model_validate(t) for t in page.items],
    )


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_active_user),
) -> TaskResponse:
    task = await _load_task(db, task_id)
    _ensure_can_access(task, user)
    return TaskResponse(data=TaskRead.model_validate(task))


@router.post("", response_model=TaskResponse, status_code=201)
async def create_task(
    body: TaskCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> TaskResponse:
    await _ensure_user_exists(db, body.assigned_to)

    task = Task(**body.model_dump(), created_by=admin.id)
    task.check_schedule()
    task.touch()
    db.add(task)
    await db.commit()
    logger.info("Created task %d '%s' for user %d", task.id, task.name, task.assigned_to)

    task = await _load_task(db, task.id)
    return TaskResponse(message="Task created successfully", data=TaskRead.model_validate(task))


@router.put("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: int,
    body: TaskUpdate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> TaskResponse:
    task = await _load_task(db, task_id)
    changes = body.model_dump(exclude_unset=True)

    if changes.get("assigned_to") is not None:
        await _ensure_user_exists(db, changes["assigned_to"])

    for field, value in changes.items():
        # name / dates / assignee cannot be cleared, only replaced
        if value is None and field != "description":
            continue
        setattr(task, field, value)

    task.check_schedule()
    task.touch()
    await db.commit()
    logger.info("Updated task %d", task_id)

    task = await _load_task(db, task_id)
    return TaskResponse(message="Task updated successfully", data=TaskRead.model_validate(task))


@router.delete("/{task_id}", response_model=DeleteResponse)
async def delete_task(
    task_id: int,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> DeleteResponse:
    task = await db.get(Task, task_id)
    if task is None:
        raise NotFound("Task not found")

    await db.delete(task)
    await db.commit()
    logger.info("Deleted task %d", task_id)
    return DeleteResponse(message="Task deleted successfully")


@router.put("/{task_id}/completion", response_model=TaskResponse)
async def update_task_completion(
    task_id: int,
    body: TaskCompletionUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_active_user),
) -> TaskResponse:
    """Toggle completion. The only write a non-admin assignee may perform."""
    task = await _load_task(db, task_id)
    if not user.is_admin and task.assigned_to != user.id:
        raise Forbidden("Not authorized to update this task")

    if body.is_completed is not None:
        task.is_completed = body.is_completed
    elif body.completion_date is not None:
        # a completion date on its own marks the task complete
        task.is_completed = True

    if not task.is_completed:
        task.completion_date = None
    elif body.completion_date is not None:
        task.completion_date = body.completion_date
    elif task.completion_date is None:
        task.completion_date = datetime.now(timezone.utc)

    task.touch()
    await db.commit()
    logger.info("Task %d completion -> %s", task_id, task.is_completed)

    task = await _load_task(db, task_id)
    return TaskResponse(
        message="Task completion status updated successfully",
        data=TaskRead.model_validate(task),
    )
