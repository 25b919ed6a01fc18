"""Task list views and progress routes."""

from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query

from ....services.task_service import TaskService, get_task_service
from ....services.views import (
    BacklogFilter,
    backlog_tasks,
    completed_on,
    planned_for,
    progress_report,
    today_summary,
)
from ....utils.datetime import to_iso_string, today_utc
from ..middleware import require_auth
from ..models import User


router = APIRouter(prefix="/api/views", tags=["views"])
progress_router = APIRouter(prefix="/api/progress", tags=["progress"])


@router.get("/today")
async def today_view(
    day: Optional[date] = None,
    user: User = Depends(require_auth),
    service: TaskService = Depends(get_task_service)
):
    """Open tasks due today, highest priority first, plus today's completions."""
    tasks = service.list_tasks(user.id)
    return today_summary(tasks, day or today_utc()).to_dict()


@router.get("/backlog")
async def backlog_view(
    filter_type: BacklogFilter = Query(BacklogFilter.UNPLANNED, alias="filter"),
    search: Optional[str] = None,
    user: User = Depends(require_auth),
    service: TaskService = Depends(get_task_service)
):
    tasks = backlog_tasks(service.list_tasks(user.id, include_templates=False), filter_type, search)
    return {'tasks': [t.to_dict() for t in tasks], 'count': len(tasks), 'filter': filter_type.value}


@router.get("/completed")
async def completed_view(
    day: Optional[date] = None,
    user: User = Depends(require_auth),
    service: TaskService = Depends(get_task_service)
):
    day = day or today_utc()
    tasks = completed_on(service.list_tasks(user.id, include_templates=False), day)
    return {'tasks': [t.to_dict() for t in tasks], 'count': len(tasks), 'day': to_iso_string(day)}


@router.get("/planning")
async def planning_view(
    day: Optional[date] = None,
    user: User = Depends(require_auth),
    service: TaskService = Depends(get_task_service)
):
    """Open tasks scheduled on ``day`` (defaults to today)."""
    day = day or today_utc()
    tasks = planned_for(service.list_tasks(user.id, include_templates=False), day)
    return {'tasks': [t.to_dict() for t in tasks], 'count': len(tasks), 'day': to_iso_string(day)}


@progress_router.get("")
async def progress(
    day: Optional[date] = None,
    user: User = Depends(require_auth),
    service: TaskService = Depends(get_task_service)
):
    """Completion statistics as of ``day``."""
    return progress_report(service.list_tasks(user.id), day or today_utc()).to_dict()
