"""
Recurring tasks for MicroTasker.

A recurring capture creates a *template* (never due itself) and a first dated
*instance*. Completing an instance materialises at most one successor, dated
by advancing the previous due date by the template's frequency, as long as
the new date does not pass the template's end date.
"""

import logging
import re
from datetime import date, timedelta
from typing import Iterable, Optional, Tuple, Union

from .task import Category, Frequency, Priority, Task, TimeEstimate
from .utils.datetime import add_months, is_last_day_of_month, today_utc


logger = logging.getLogger(__name__)


class RecurrenceParser:
    """Parses simple recurrence phrases into a frequency"""

    PATTERNS = {
        r'^daily$': Frequency.DAILY,
        r'^every day$': Frequency.DAILY,
        r'^weekly$': Frequency.WEEKLY,
        r'^every week$': Frequency.WEEKLY,
        r'^monthly$': Frequency.MONTHLY,
        r'^every month$': Frequency.MONTHLY,
    }

    @classmethod
    def parse(cls, pattern_str: str) -> Optional[Frequency]:
        """Parse a recurrence phrase such as 'weekly' or 'every month'"""
        pattern_str = (pattern_str or '').lower().strip()
        for regex, frequency in cls.PATTERNS.items():
            if re.match(regex, pattern_str):
                return frequency
        return None


class RecurrenceGenerator:
    """Computes occurrences and materialises successor instances"""

    def next_occurrence(self, from_date: date, frequency: Union[Frequency, str, None],
                        day_of_month: Optional[int] = None) -> date:
        """Calculate the occurrence following ``from_date``.

        Monthly recurrence keeps the day of month (``day_of_month`` when
        given) and clamps to the last day of shorter months. Unrecognised
        frequencies advance by one day.
        """
        if isinstance(frequency, str):
            frequency = RecurrenceParser.parse(frequency) or frequency

        if frequency == Frequency.DAILY:
            return from_date + timedelta(days=1)
        elif frequency == Frequency.WEEKLY:
            return from_date + timedelta(weeks=1)
        elif frequency == Frequency.MONTHLY:
            return add_months(from_date, 1, day_of_month)

        logger.warning(f"Unrecognised frequency {frequency!r}; advancing by one day")
        return from_date + timedelta(days=1)

    def should_materialize(self, next_date: date, end_date: Optional[date]) -> bool:
        """Check whether an occurrence falls inside the template's range"""
        return end_date is None or next_date <= end_date

    def generate_next(self, instance: Task, template: Task) -> Optional[Task]:
        """Generate the successor of a completed instance.

        Returns:
            The new instance, or None when the next date is past the
            template's end date
        """
        base = instance.due_date or template.start_date or today_utc()
        next_date = self.next_occurrence(base, template.frequency, self._month_anchor(base, template))

        if not self.should_materialize(next_date, template.end_date):
            logger.debug(f"Template {template.id} ended on {template.end_date}; no successor after {base}")
            return None

        return self._instance_from_template(template, next_date)

    def _month_anchor(self, base: date, template: Task) -> Optional[int]:
        """Day of month to restore after ``base`` was clamped to a month end."""
        start = template.start_date
        if start and start.day > base.day and is_last_day_of_month(base):
            return start.day
        return None

    def _instance_from_template(self, template: Task, due_date: date) -> Task:
        """Generate an actual task from a recurring template"""
        return Task(
            title=template.title,
            user_id=template.user_id,
            category=template.category,
            tags=list(template.tags),
            priority=template.priority,
            time_estimate=template.time_estimate,
            due_date=due_date,
            is_recurring=True,
            template_id=template.id,
            frequency=template.frequency,
        )

    def create_recurring(self, template: Task, first_due: Optional[date] = None) -> Tuple[Task, Task]:
        """Pair a template with its first instance.

        The first instance is due on ``first_due`` if given, otherwise on the
        template's start date.
        """
        template.is_template = True
        template.is_recurring = True
        template.due_date = None
        if template.start_date is None:
            template.start_date = today_utc()

        instance = self._instance_from_template(template, first_due or template.start_date)
        return template, instance


_generator = RecurrenceGenerator()


def next_occurrence(from_date: date, frequency: Union[Frequency, str, None]) -> date:
    """Calculate the next occurrence of a recurring task."""
    return _generator.next_occurrence(from_date, frequency)


def generate_next(instance: Task, template: Task) -> Optional[Task]:
    """Generate the successor of a completed instance, if any."""
    return _generator.generate_next(instance, template)


def create_recurring_tasks(title: str, frequency: Frequency,
                           start_date: Optional[date] = None,
                           end_date: Optional[date] = None,
                           due_date: Optional[date] = None,
                           category: Optional[Category] = None,
                           tags: Iterable[str] = (),
                           priority: Optional[Priority] = None,
                           time_estimate: TimeEstimate = TimeEstimate.SHORT,
                           user_id: Optional[int] = None) -> Tuple[Task, Task]:
    """Helper to create a template and its first instance from plain fields.

    Raises:
        ValueError: If the end date lies before the start date or the first
            due date
    """
    start_date = start_date or today_utc()
    if end_date is not None and end_date < start_date:
        raise ValueError(f"End date {end_date} is before start date {start_date}")
    if end_date is not None and due_date is not None and due_date > end_date:
        raise ValueError(f"Due date {due_date} is after end date {end_date}")

    template = Task(
        title=title,
        user_id=user_id,
        category=category,
        tags=list(tags),
        priority=priority,
        time_estimate=time_estimate,
        is_recurring=True,
        is_template=True,
        frequency=frequency,
        start_date=start_date,
        end_date=end_date,
    )
    return _generator.create_recurring(template, first_due=due_date)
