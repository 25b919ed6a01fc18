"""Application services for MicroTasker."""

from .task_service import TaskService, TaskNotFoundError, CaptureError, get_task_service
from .views import BacklogFilter, backlog_tasks, progress_report, today_summary

__all__ = [
    "TaskService",
    "TaskNotFoundError",
    "CaptureError",
    "get_task_service",
    "BacklogFilter",
    "backlog_tasks",
    "progress_report",
    "today_summary",
]
