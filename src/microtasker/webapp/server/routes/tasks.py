"""Task API routes."""

from datetime import date
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, HTTPException, Depends, status
from pydantic import BaseModel, Field, field_validator
import logging

from ....services.task_service import TaskNotFoundError, TaskService, get_task_service
from ....task import Category, Frequency, Priority, Task, TimeEstimate
from ..middleware import require_auth
from ..models import User


logger = logging.getLogger(__name__)


def clean_tags(v: Optional[List[str]]) -> Optional[List[str]]:
    if v is None:
        return None
    return [tag.strip() for tag in v if tag and tag.strip()]


class TaskCreateRequest(BaseModel):
    """Task creation request; a frequency makes it recurring."""
    title: str = Field(..., min_length=1, max_length=200)
    category: Optional[Category] = None
    tags: List[str] = Field(default_factory=list)
    priority: Optional[Priority] = None
    time_estimate: Optional[TimeEstimate] = None
    due_date: Optional[date] = None
    frequency: Optional[Frequency] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @field_validator('tags')
    @classmethod
    def validate_tags(cls, v):
        return clean_tags(v) or []


class TaskUpdateRequest(BaseModel):
    """Partial task update; only fields that are sent are changed."""
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    category: Optional[Category] = None
    tags: Optional[List[str]] = None
    priority: Optional[Priority] = None
    time_estimate: Optional[TimeEstimate] = None
    due_date: Optional[date] = None
    completed: Optional[bool] = None
    end_date: Optional[date] = None

    @field_validator('tags')
    @classmethod
    def validate_tags(cls, v):
        return clean_tags(v)


router = APIRouter(prefix="/api/tasks", tags=["tasks"])


def created_payload(message: str, tasks: List[Task]) -> Dict[str, Any]:
    """Response body for newly created tasks.

    ``task`` is the dated task; ``template`` is set for recurring captures.
    """
    template = next((t for t in tasks if t.is_template), None)
    task = next(t for t in tasks if not t.is_template)
    return {
        'message': message,
        'task': task.to_dict(),
        'template': template.to_dict() if template else None,
    }


def not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")


@router.get("")
async def list_tasks(
    include_templates: bool = True,
    user: User = Depends(require_auth),
    service: TaskService = Depends(get_task_service)
):
    """List the user's tasks, newest first."""
    tasks = service.list_tasks(user.id, include_templates=include_templates)
    return {'tasks': [t.to_dict() for t in tasks], 'count': len(tasks)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_task(
    body: TaskCreateRequest,
    user: User = Depends(require_auth),
    service: TaskService = Depends(get_task_service)
):
    """Create a task from explicit fields."""
    try:
        tasks = service.create_task(user.id, **body.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    logger.info(f"User {user.id} created {len(tasks)} task(s)")
    return created_payload("Task created successfully", tasks)


@router.get("/{task_id}")
async def get_task(
    task_id: str,
    user: User = Depends(require_auth),
    service: TaskService = Depends(get_task_service)
):
    try:
        return {'task': service.get_task(user.id, task_id).to_dict()}
    except TaskNotFoundError:
        raise not_found()


@router.put("/{task_id}")
async def update_task(
    task_id: str,
    body: TaskUpdateRequest,
    user: User = Depends(require_auth),
    service: TaskService = Depends(get_task_service)
):
    """Update a task.

    Completing a recurring instance returns the scheduled successor as
    ``next_task``.
    """
    try:
        task, successor = service.update_task(user.id, task_id, body.model_dump(exclude_unset=True))
    except TaskNotFoundError:
        raise not_found()
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return {
        'message': 'Task updated successfully',
        'task': task.to_dict(),
        'next_task': successor.to_dict() if successor else None,
    }


@router.post("/{task_id}/complete")
async def complete_task(
    task_id: str,
    user: User = Depends(require_auth),
    service: TaskService = Depends(get_task_service)
):
    try:
        task, successor = service.complete_task(user.id, task_id)
    except TaskNotFoundError:
        raise not_found()
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return {
        'message': 'Task completed',
        'task': task.to_dict(),
        'next_task': successor.to_dict() if successor else None,
    }


@router.delete("/{task_id}")
async def delete_task(
    task_id: str,
    user: User = Depends(require_auth),
    service: TaskService = Depends(get_task_service)
):
    try:
        service.delete_task(user.id, task_id)
    except TaskNotFoundError:
        raise not_found()

    logger.debug(f"User {user.id} deleted task {task_id}")
    return {'message': 'Task deleted successfully'}
