"""Tests for recurrence calculation and successor generation."""

import pytest
from datetime import date

from microtasker.recurring import (
    RecurrenceGenerator, RecurrenceParser, create_recurring_tasks, generate_next,
    next_occurrence
)
from microtasker.task import Category, Frequency, Priority, Task


class TestRecurrenceParser:

    def test_parse_phrases(self):
        assert RecurrenceParser.parse("daily") == Frequency.DAILY
        assert RecurrenceParser.parse("Every Week") == Frequency.WEEKLY
        assert RecurrenceParser.parse(" monthly ") == Frequency.MONTHLY

    def test_parse_unknown(self):
        assert RecurrenceParser.parse("fortnightly") is None
        assert RecurrenceParser.parse("") is None


class TestNextOccurrence:
    """Test date arithmetic per frequency."""

    def test_daily(self):
        assert next_occurrence(date(2024, 12, 31), Frequency.DAILY) == date(2025, 1, 1)

    def test_weekly(self):
        assert next_occurrence(date(2024, 6, 1), Frequency.WEEKLY) == date(2024, 6, 8)

    def test_monthly(self):
        assert next_occurrence(date(2024, 3, 15), Frequency.MONTHLY) == date(2024, 4, 15)

    def test_monthly_clamps_to_month_end(self):
        """Test that the 31st rolls to the last day of a shorter month."""
        assert next_occurrence(date(2024, 1, 31), Frequency.MONTHLY) == date(2024, 2, 29)
        assert next_occurrence(date(2023, 1, 31), Frequency.MONTHLY) == date(2023, 2, 28)

    def test_monthly_with_day_of_month(self):
        assert next_occurrence(date(2024, 2, 29), Frequency.MONTHLY) == date(2024, 3, 29)
        generator = RecurrenceGenerator()
        assert generator.next_occurrence(date(2024, 2, 29), Frequency.MONTHLY, 31) == date(2024, 3, 31)
        assert generator.next_occurrence(date(2024, 3, 31), Frequency.MONTHLY, 31) == date(2024, 4, 30)

    def test_monthly_across_year(self):
        assert next_occurrence(date(2024, 12, 15), Frequency.MONTHLY) == date(2025, 1, 15)

    def test_string_frequency(self):
        assert next_occurrence(date(2024, 6, 1), "weekly") == date(2024, 6, 8)

    def test_unknown_frequency_advances_one_day(self):
        assert next_occurrence(date(2024, 6, 1), "yearly") == date(2024, 6, 2)
        assert next_occurrence(date(2024, 6, 1), None) == date(2024, 6, 2)


class TestCreateRecurringTasks:

    def test_template_and_first_instance(self):
        template, instance = create_recurring_tasks(
            title="Call mom",
            frequency=Frequency.WEEKLY,
            start_date=date(2024, 6, 1),
            category=Category.SPEAK,
            tags=["family"],
            priority=Priority.HIGH,
            user_id=3,
        )

        assert template.is_template and template.is_recurring
        assert template.due_date is None
        assert template.start_date == date(2024, 6, 1)

        assert instance.template_id == template.id
        assert instance.due_date == date(2024, 6, 1)
        assert instance.category == Category.SPEAK
        assert instance.tags == ["family"]
        assert instance.priority == Priority.HIGH
        assert instance.user_id == 3

    def test_explicit_first_due_date(self):
        _, instance = create_recurring_tasks(
            title="Stretch",
            frequency=Frequency.DAILY,
            start_date=date(2024, 6, 1),
            due_date=date(2024, 6, 2),
        )
        assert instance.due_date == date(2024, 6, 2)

    def test_end_before_start_rejected(self):
        with pytest.raises(ValueError, match="before start date"):
            create_recurring_tasks(
                title="Stretch",
                frequency=Frequency.DAILY,
                start_date=date(2024, 6, 10),
                end_date=date(2024, 6, 1),
            )

    def test_due_after_end_rejected(self):
        with pytest.raises(ValueError, match="after end date"):
            create_recurring_tasks(
                title="Stretch",
                frequency=Frequency.DAILY,
                start_date=date(2024, 6, 1),
                end_date=date(2024, 6, 5),
                due_date=date(2024, 6, 6),
            )

    def test_due_on_end_date_allowed(self):
        _, instance = create_recurring_tasks(
            title="Stretch",
            frequency=Frequency.DAILY,
            start_date=date(2024, 6, 1),
            end_date=date(2024, 6, 5),
            due_date=date(2024, 6, 5),
        )
        assert instance.due_date == date(2024, 6, 5)


class TestGenerateNext:
    """Test successor generation for completed instances."""

    def setup_method(self):
        self.generator = RecurrenceGenerator()
        self.template, self.instance = create_recurring_tasks(
            title="Water plants",
            frequency=Frequency.WEEKLY,
            start_date=date(2024, 6, 1),
            end_date=date(2024, 6, 10),
        )

    def test_successor_within_range(self):
        successor = self.generator.generate_next(self.instance, self.template)

        assert successor is not None
        assert successor.due_date == date(2024, 6, 8)
        assert successor.template_id == self.template.id
        assert successor.id != self.instance.id
        assert successor.completed is False

    def test_no_successor_past_end_date(self):
        second = self.generator.generate_next(self.instance, self.template)
        assert generate_next(second, self.template) is None

    def test_successor_on_end_date(self):
        self.template.end_date = date(2024, 6, 8)
        successor = self.generator.generate_next(self.instance, self.template)
        assert successor.due_date == date(2024, 6, 8)

    def test_undated_instance_uses_template_start(self):
        instance = Task(title="Water plants", template_id=self.template.id, is_recurring=True)
        successor = self.generator.generate_next(instance, self.template)
        assert successor.due_date == date(2024, 6, 8)

    def test_monthly_returns_to_start_day_after_short_month(self):
        """Test that a month-end series does not drift after February."""
        template, first = create_recurring_tasks(
            title="Pay rent",
            frequency=Frequency.MONTHLY,
            start_date=date(2024, 1, 31),
        )
        february = self.generator.generate_next(first, template)
        march = self.generator.generate_next(february, template)
        april = self.generator.generate_next(march, template)

        assert february.due_date == date(2024, 2, 29)
        assert march.due_date == date(2024, 3, 31)
        assert april.due_date == date(2024, 4, 30)

    def test_monthly_keeps_explicit_first_due_day(self):
        template, first = create_recurring_tasks(
            title="Review budget",
            frequency=Frequency.MONTHLY,
            start_date=date(2024, 6, 1),
            due_date=date(2024, 6, 15),
        )
        assert self.generator.generate_next(first, template).due_date == date(2024, 7, 15)

    def test_should_materialize(self):
        assert self.generator.should_materialize(date(2024, 6, 8), None)
        assert self.generator.should_materialize(date(2024, 6, 8), date(2024, 6, 8))
        assert not self.generator.should_materialize(date(2024, 6, 9), date(2024, 6, 8))
