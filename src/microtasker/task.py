"""Task data model for MicroTasker."""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from .utils.datetime import (
    ensure_aware,
    now_utc,
    parse_iso_date,
    parse_iso_datetime,
    to_iso_string,
)


class Category(Enum):
    """The fixed set of micro-task categories."""
    READ = "Read"
    WRITE = "Write"
    SPEAK = "Speak"
    LEARN = "Learn"
    PRAY = "Pray"
    BREAK = "Break"
    BUILD = "Build"

    @classmethod
    def lookup(cls, name: str) -> Optional["Category"]:
        """Find a category by case-insensitive name."""
        wanted = name.strip().lower()
        for category in cls:
            if category.value.lower() == wanted:
                return category
        return None


class Priority(Enum):
    """Task priority levels."""
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @property
    def rank(self) -> int:
        return {"High": 3, "Medium": 2, "Low": 1}[self.value]


class TimeEstimate(Enum):
    """Coarse time buckets a micro-task is expected to take."""
    SHORT = "2-5 min"
    MEDIUM = "5-10 min"
    LONG = "10+ min"

    @property
    def minutes(self) -> float:
        """Representative duration used when summing a day's workload."""
        return {"2-5 min": 3.5, "5-10 min": 7.5, "10+ min": 15.0}[self.value]


class Frequency(Enum):
    """How often a recurring task repeats."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


def _enum_or_none(enum_cls, value):
    if value is None or value == "":
        return None
    if isinstance(value, enum_cls):
        return value
    return enum_cls(value)


def new_task_id() -> str:
    """Generate a unique task identifier."""
    return str(uuid.uuid4())


@dataclass
class Task:
    """A micro-task, a recurring template, or an instance of a template."""

    title: str
    id: str = field(default_factory=new_task_id)
    user_id: Optional[int] = None

    # Organization
    category: Optional[Category] = None
    tags: List[str] = field(default_factory=list)
    priority: Optional[Priority] = None
    time_estimate: TimeEstimate = TimeEstimate.SHORT

    # Scheduling and completion
    due_date: Optional[date] = None
    completed: bool = False
    completed_at: Optional[datetime] = None

    # Recurrence
    is_recurring: bool = False
    is_template: bool = False
    template_id: Optional[str] = None
    frequency: Optional[Frequency] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    # Metadata
    created_at: datetime = field(default_factory=now_utc)
    updated_at: datetime = field(default_factory=now_utc)

    def __post_init__(self):
        self.category = _enum_or_none(Category, self.category)
        self.priority = _enum_or_none(Priority, self.priority)
        self.time_estimate = _enum_or_none(TimeEstimate, self.time_estimate) or TimeEstimate.SHORT
        self.frequency = _enum_or_none(Frequency, self.frequency)
        self.tags = normalize_tags(self.tags)
        self.completed_at = ensure_aware(self.completed_at)
        self.created_at = ensure_aware(self.created_at)
        self.updated_at = ensure_aware(self.updated_at)

        if self.is_template:
            # Templates only spawn instances, they are never due themselves.
            self.due_date = None
            self.is_recurring = True

        if self.completed and not self.completed_at:
            self.completed_at = now_utc()

    def complete(self, at: Optional[datetime] = None):
        """Mark the task as completed."""
        self.completed = True
        self.completed_at = ensure_aware(at) or now_utc()
        self.updated_at = now_utc()

    def reopen(self):
        """Reopen a completed task."""
        self.completed = False
        self.completed_at = None
        self.updated_at = now_utc()

    def is_due_on(self, day: date) -> bool:
        """Check whether this task is scheduled for the given day."""
        return not self.is_template and self.due_date == day

    def is_open(self) -> bool:
        """Not completed and not a template."""
        return not self.completed and not self.is_template

    def completed_on(self, day: date) -> bool:
        return self.completed and self.completed_at is not None and self.completed_at.date() == day

    def to_dict(self) -> Dict[str, Any]:
        """Convert task to a JSON-friendly dictionary."""
        return {
            'id': self.id,
            'user_id': self.user_id,
            'title': self.title,
            'category': self.category.value if self.category else None,
            'tags': list(self.tags),
            'priority': self.priority.value if self.priority else None,
            'time_estimate': self.time_estimate.value,
            'due_date': to_iso_string(self.due_date),
            'completed': self.completed,
            'completed_at': to_iso_string(self.completed_at),
            'is_recurring': self.is_recurring,
            'is_template': self.is_template,
            'template_id': self.template_id,
            'frequency': self.frequency.value if self.frequency else None,
            'start_date': to_iso_string(self.start_date),
            'end_date': to_iso_string(self.end_date),
            'created_at': to_iso_string(self.created_at),
            'updated_at': to_iso_string(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        """Create a task from a dictionary produced by ``to_dict``."""
        kwargs: Dict[str, Any] = {
            'title': data['title'],
            'user_id': data.get('user_id'),
            'category': data.get('category'),
            'tags': data.get('tags') or [],
            'priority': data.get('priority'),
            'time_estimate': data.get('time_estimate'),
            'due_date': parse_iso_date(data.get('due_date')),
            'completed': bool(data.get('completed', False)),
            'completed_at': parse_iso_datetime(data.get('completed_at')),
            'is_recurring': bool(data.get('is_recurring', False)),
            'is_template': bool(data.get('is_template', False)),
            'template_id': data.get('template_id'),
            'frequency': data.get('frequency'),
            'start_date': parse_iso_date(data.get('start_date')),
            'end_date': parse_iso_date(data.get('end_date')),
        }
        if data.get('id'):
            kwargs['id'] = data['id']
        if data.get('created_at'):
            kwargs['created_at'] = parse_iso_datetime(data['created_at'])
        if data.get('updated_at'):
            kwargs['updated_at'] = parse_iso_datetime(data['updated_at'])
        return cls(**kwargs)


def normalize_tags(tags) -> List[str]:
    """Lower-case, strip and de-duplicate tags, keeping first-seen order."""
    seen: List[str] = []
    for tag in tags or []:
        cleaned = str(tag).strip().lstrip('#').lower()
        if cleaned and cleaned not in seen:
            seen.append(cleaned)
    return seen
