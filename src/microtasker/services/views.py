"""Task views and progress statistics.

Plain functions over a list of tasks: which tasks belong on today's list,
in the backlog, or on a planning day, and how much got done.
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional

from ..task import Category, Task
from ..utils.datetime import today_utc


STREAK_LIMIT = 30


class BacklogFilter(Enum):
    """Backlog filters"""
    ALL = "all"
    UNCATEGORIZED = "uncategorized"
    CATEGORIZED = "categorized"
    PLANNED = "planned"
    UNPLANNED = "unplanned"


def priority_sorted(tasks: List[Task]) -> List[Task]:
    """Sort High > Medium > Low > none, keeping order within a level."""
    return sorted(tasks, key=lambda t: t.priority.rank if t.priority else 0, reverse=True)


def todays_tasks(tasks: List[Task], today: Optional[date] = None) -> List[Task]:
    """Open tasks due today, highest priority first."""
    today = today or today_utc()
    return priority_sorted([t for t in tasks if t.is_due_on(today) and not t.completed])


def completed_on(tasks: List[Task], day: Optional[date] = None) -> List[Task]:
    day = day or today_utc()
    return [t for t in tasks if t.completed_on(day)]


def planned_for(tasks: List[Task], day: date) -> List[Task]:
    """Open tasks scheduled on a given day."""
    return [t for t in tasks if t.is_due_on(day) and not t.completed]


def backlog_tasks(tasks: List[Task], filter_type: BacklogFilter = BacklogFilter.UNPLANNED,
                  search: Optional[str] = None) -> List[Task]:
    """Open tasks, optionally filtered and searched.

    The default filter keeps unscheduled tasks only; ``ALL`` includes
    scheduled ones too. The search term matches the title or any tag, case-insensitively.
    """
    result = [t for t in tasks if t.is_open()]

    if search:
        term = search.lower()
        result = [t for t in result
                  if term in t.title.lower() or any(term in tag for tag in t.tags)]

    if filter_type is BacklogFilter.UNCATEGORIZED:
        result = [t for t in result if t.category is None]
    elif filter_type is BacklogFilter.CATEGORIZED:
        result = [t for t in result if t.category is not None]
    elif filter_type is BacklogFilter.PLANNED:
        result = [t for t in result if t.due_date is not None]
    elif filter_type is BacklogFilter.UNPLANNED:
        result = [t for t in result if t.due_date is None]

    return result


def estimated_minutes(tasks: List[Task]) -> float:
    return sum(t.time_estimate.minutes for t in tasks)


def percentage(part: int, whole: int) -> int:
    return round(part / whole * 100) if whole else 0


@dataclass
class TodaySummary:
    """Today's open and completed tasks"""
    open_tasks: List[Task]
    completed_tasks: List[Task]
    estimated_minutes: float
    completion_rate: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'tasks': [t.to_dict() for t in self.open_tasks],
            'completed': [t.to_dict() for t in self.completed_tasks],
            'count': len(self.open_tasks),
            'estimated_minutes': self.estimated_minutes,
            'completion_rate': self.completion_rate,
        }


def today_summary(tasks: List[Task], today: Optional[date] = None) -> TodaySummary:
    today = today or today_utc()
    open_tasks = todays_tasks(tasks, today)
    done = completed_on(tasks, today)
    return TodaySummary(
        open_tasks=open_tasks,
        completed_tasks=done,
        estimated_minutes=estimated_minutes(open_tasks),
        completion_rate=percentage(len(done), len(open_tasks) + len(done)),
    )


@dataclass
class CategoryStat:
    category: Category
    count: int
    percentage: int


@dataclass
class ProgressReport:
    """Completion statistics"""
    completed_today: int
    completed_this_week: int
    total_completed: int
    completion_rate: int
    streak: int
    categories: List[CategoryStat] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'completed_today': self.completed_today,
            'completed_this_week': self.completed_this_week,
            'total_completed': self.total_completed,
            'completion_rate': self.completion_rate,
            'streak': self.streak,
            'categories': [
                {'category': s.category.value, 'count': s.count, 'percentage': s.percentage}
                for s in self.categories
            ],
        }


def completion_streak(tasks: List[Task], today: Optional[date] = None) -> int:
    """Consecutive days, ending today, with at least one completion (max 30)."""
    today = today or today_utc()
    days = {t.completed_at.date() for t in tasks if t.completed and t.completed_at}

    streak = 0
    current = today
    while streak < STREAK_LIMIT and current in days:
        streak += 1
        current -= timedelta(days=1)
    return streak


def progress_report(tasks: List[Task], today: Optional[date] = None) -> ProgressReport:
    """Build completion statistics; templates are not counted."""
    today = today or today_utc()
    tasks = [t for t in tasks if not t.is_template]
    completed = [t for t in tasks if t.completed and t.completed_at]
    week_start = today - timedelta(days=7)
    weekly = [t for t in completed if t.completed_at.date() >= week_start]

    counts = Counter(t.category for t in weekly if t.category)
    stats = [CategoryStat(c, counts[c], percentage(counts[c], len(weekly))) for c in Category]
    stats.sort(key=lambda s: s.count, reverse=True)

    return ProgressReport(
        completed_today=len(completed_on(tasks, today)),
        completed_this_week=len(weekly),
        total_completed=len([t for t in tasks if t.completed]),
        completion_rate=percentage(len([t for t in tasks if t.completed]), len(tasks)),
        streak=completion_streak(tasks, today),
        categories=stats,
    )
