"""Task operations on behalf of a user.

Ties the capture parser and the recurrence generator to storage: captures
become tasks (or a template plus its first instance), and completing a
recurring instance materialises its successor.
"""

import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..parser import CaptureParser, CaptureRejectedError, ParseError, TaskBuilder
from ..recurring import RecurrenceGenerator, create_recurring_tasks
from ..task import Category, Frequency, Priority, Task, TimeEstimate, normalize_tags
from ..webapp.server.database import Database


logger = logging.getLogger(__name__)


class TaskNotFoundError(LookupError):
    """The task does not exist or belongs to someone else."""
    pass


class CaptureError(CaptureRejectedError):
    """A rejected capture, with the parser's errors attached."""

    def __init__(self, errors: List[ParseError]):
        self.errors = errors
        super().__init__("; ".join(e.message for e in errors) or "Capture rejected")


UPDATABLE_FIELDS = {
    'title', 'category', 'tags', 'priority', 'time_estimate', 'due_date',
    'completed', 'end_date',
}


class TaskService:
    """User-scoped task operations."""

    def __init__(self, db: Database, parser: Optional[CaptureParser] = None,
                 generator: Optional[RecurrenceGenerator] = None):
        self.db = db
        self.parser = parser or CaptureParser()
        self.generator = generator or RecurrenceGenerator()
        self.builder = TaskBuilder()
        self.logger = logging.getLogger(__name__)

    # Creation

    def capture(self, user_id: int, text: str, end_date: Optional[date] = None,
                today: Optional[date] = None) -> List[Task]:
        """Create tasks from quick-capture text.

        Returns:
            The stored tasks: one task, or a template and its first instance

        Raises:
            CaptureError: If the text yields no title
            ValueError: If ``end_date`` precedes the recurrence start or first due date
        """
        parsed, errors = self.parser.parse(text, today=today)
        blocking = [e for e in errors if e.severity == "error"]
        if blocking:
            self.logger.info(f"Rejected capture for user {user_id}: {blocking[0].message}")
            raise CaptureError(blocking)

        if parsed.is_recurring:
            if end_date is not None and end_date < parsed.start_date:
                raise ValueError(f"End date {end_date} is before start date {parsed.start_date}")
            parsed.end_date = end_date

        tasks = self.builder.build(parsed, user_id=user_id)
        for task in tasks:
            self.db.create_task(task)

        self.logger.info(f"Captured {len(tasks)} task(s) for user {user_id}: {parsed.title!r}")
        return tasks

    def create_task(self, user_id: int, title: str,
                    category: Optional[Category] = None,
                    tags: Iterable[str] = (),
                    priority: Optional[Priority] = None,
                    time_estimate: Optional[TimeEstimate] = None,
                    due_date: Optional[date] = None,
                    frequency: Optional[Frequency] = None,
                    start_date: Optional[date] = None,
                    end_date: Optional[date] = None) -> List[Task]:
        """Create a task from explicit fields.

        Giving a ``frequency`` creates a template and its first instance.

        Raises:
            ValueError: If the title is blank or the date range is invalid
        """
        title = ' '.join((title or '').split())
        if not title:
            raise ValueError("Title must not be empty")

        time_estimate = time_estimate or self.parser.default_time_estimate

        if frequency is not None:
            tasks = list(create_recurring_tasks(
                title=title,
                frequency=frequency,
                start_date=start_date,
                end_date=end_date,
                due_date=due_date,
                category=category,
                tags=tags,
                priority=priority,
                time_estimate=time_estimate,
                user_id=user_id,
            ))
        else:
            tasks = [Task(
                title=title,
                user_id=user_id,
                category=category,
                tags=list(tags),
                priority=priority,
                time_estimate=time_estimate,
                due_date=due_date,
            )]

        for task in tasks:
            self.db.create_task(task)
        return tasks

    # Retrieval

    def get_task(self, user_id: int, task_id: str) -> Task:
        task = self.db.get_task(task_id, user_id)
        if task is None:
            raise TaskNotFoundError(f"Task {task_id} not found")
        return task

    def list_tasks(self, user_id: int, include_templates: bool = True) -> List[Task]:
        return self.db.list_tasks(user_id, include_templates=include_templates)

    # Updates

    def update_task(self, user_id: int, task_id: str,
                    updates: Dict[str, Any]) -> Tuple[Task, Optional[Task]]:
        """Apply a partial update.

        Setting ``completed`` to true stamps ``completed_at`` and, for a
        recurring instance, creates its successor; setting it to false clears
        the stamp.

        Returns:
            The updated task and the successor instance, if one was created

        Raises:
            TaskNotFoundError: If the task is missing
            ValueError: For unknown fields or changes a template cannot take
        """
        unknown = set(updates) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update field(s): {', '.join(sorted(unknown))}")

        task = self.get_task(user_id, task_id)

        if task.is_template:
            if updates.get('completed'):
                raise ValueError("A recurring template cannot be completed")
            if updates.get('due_date') is not None:
                raise ValueError("A recurring template cannot have a due date")

        if 'title' in updates:
            title = ' '.join((updates['title'] or '').split())
            if not title:
                raise ValueError("Title must not be empty")
            task.title = title
        if 'category' in updates:
            task.category = updates['category']
        if 'tags' in updates:
            task.tags = normalize_tags(updates['tags'])
        if 'priority' in updates:
            task.priority = updates['priority']
        if 'time_estimate' in updates and updates['time_estimate'] is not None:
            task.time_estimate = updates['time_estimate']
        if 'due_date' in updates:
            task.due_date = updates['due_date']
        if 'end_date' in updates:
            if not task.is_template:
                raise ValueError("Only a recurring template has an end date")
            task.end_date = updates['end_date']

        newly_completed = False
        if 'completed' in updates:
            if updates['completed'] and not task.completed:
                task.complete()
                newly_completed = True
            elif not updates['completed']:
                task.reopen()

        self.db.update_task(task)

        successor = self._spawn_successor(task) if newly_completed else None
        return task, successor

    def complete_task(self, user_id: int, task_id: str) -> Tuple[Task, Optional[Task]]:
        """Mark a task completed; idempotent for already completed tasks."""
        return self.update_task(user_id, task_id, {'completed': True})

    def delete_task(self, user_id: int, task_id: str) -> None:
        if not self.db.delete_task(task_id, user_id):
            raise TaskNotFoundError(f"Task {task_id} not found")
        self.logger.info(f"Deleted task {task_id} for user {user_id}")

    def _spawn_successor(self, instance: Task) -> Optional[Task]:
        """Materialise the next instance of a completed recurring task."""
        if not instance.template_id:
            return None

        template = self.db.get_task(instance.template_id, instance.user_id)
        if template is None:
            self.logger.warning(f"Template {instance.template_id} of task {instance.id} is gone")
            return None

        successor = self.generator.generate_next(instance, template)
        if successor is None:
            return None

        if self.db.find_instance(template.id, successor.due_date) is not None:
            self.logger.debug(f"Instance of {template.id} due {successor.due_date} already exists")
            return None

        self.db.create_task(successor)
        self.logger.info(f"Scheduled next '{template.title}' for {successor.due_date}")
        return successor


# Global task service instance
_task_service: Optional[TaskService] = None


def get_task_service() -> TaskService:
    """Get global task service instance, configured from the app config."""
    global _task_service

    if _task_service is None:
        from ..config import get_config
        from ..webapp.server.database import get_db
        _task_service = TaskService(get_db(), CaptureParser.from_config(get_config()))

    return _task_service


def reset_task_service():
    """Reset global task service (for testing)."""
    global _task_service
    _task_service = None
