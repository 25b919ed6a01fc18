"""Tests for task views and progress statistics."""

from datetime import date, datetime, timedelta, timezone

from microtasker.services.views import (
    BacklogFilter, backlog_tasks, completion_streak, estimated_minutes, planned_for,
    progress_report, today_summary, todays_tasks
)
from microtasker.task import Category, Priority, Task, TimeEstimate


TODAY = date(2024, 6, 10)


def done(title, day, **kwargs):
    task = Task(title=title, **kwargs)
    task.complete(at=datetime(day.year, day.month, day.day, 12, tzinfo=timezone.utc))
    return task


class TestToday:

    def test_priority_order(self):
        tasks = [
            Task(title="none", due_date=TODAY),
            Task(title="low", due_date=TODAY, priority=Priority.LOW),
            Task(title="high", due_date=TODAY, priority=Priority.HIGH),
            Task(title="medium", due_date=TODAY, priority=Priority.MEDIUM),
            Task(title="tomorrow", due_date=TODAY + timedelta(days=1), priority=Priority.HIGH),
        ]
        assert [t.title for t in todays_tasks(tasks, TODAY)] == ["high", "medium", "low", "none"]

    def test_summary(self):
        tasks = [
            Task(title="a", due_date=TODAY, time_estimate=TimeEstimate.SHORT),
            Task(title="b", due_date=TODAY, time_estimate=TimeEstimate.LONG),
            done("c", TODAY, due_date=TODAY),
            Task(title="template", is_template=True),
        ]
        summary = today_summary(tasks, TODAY)

        assert len(summary.open_tasks) == 2
        assert len(summary.completed_tasks) == 1
        assert summary.estimated_minutes == 18.5
        assert summary.completion_rate == 33

        data = summary.to_dict()
        assert data['count'] == 2
        assert data['completed'][0]['title'] == "c"

    def test_empty_summary(self):
        summary = today_summary([], TODAY)
        assert summary.completion_rate == 0
        assert estimated_minutes([]) == 0


class TestBacklog:
    """Test backlog filtering and search."""

    def setup_method(self):
        self.tasks = [
            Task(title="Read book", category=Category.READ),
            Task(title="Loose idea", tags=["someday"]),
            Task(title="Scheduled", due_date=TODAY),
            done("Finished", TODAY),
            Task(title="Template", is_template=True),
        ]

    def titles(self, **kwargs):
        return [t.title for t in backlog_tasks(self.tasks, **kwargs)]

    def test_default_is_unscheduled_open_tasks(self):
        assert self.titles() == ["Read book", "Loose idea"]

    def test_all(self):
        assert self.titles(filter_type=BacklogFilter.ALL) == ["Read book", "Loose idea", "Scheduled"]

    def test_category_filters(self):
        assert self.titles(filter_type=BacklogFilter.CATEGORIZED) == ["Read book"]
        assert self.titles(filter_type=BacklogFilter.UNCATEGORIZED) == ["Loose idea", "Scheduled"]

    def test_planned(self):
        assert self.titles(filter_type=BacklogFilter.PLANNED) == ["Scheduled"]

    def test_search_title_and_tags(self):
        assert self.titles(search="BOOK") == ["Read book"]
        assert self.titles(search="some") == ["Loose idea"]


def test_planned_for():
    tasks = [Task(title="a", due_date=TODAY), done("b", TODAY, due_date=TODAY)]
    assert [t.title for t in planned_for(tasks, TODAY)] == ["a"]


class TestProgress:
    """Test completion statistics."""

    def test_streak(self):
        tasks = [done("a", TODAY), done("b", TODAY - timedelta(days=1)), done("c", TODAY - timedelta(days=3))]
        assert completion_streak(tasks, TODAY) == 2

    def test_streak_needs_today(self):
        assert completion_streak([done("a", TODAY - timedelta(days=1))], TODAY) == 0

    def test_streak_capped(self):
        tasks = [done(str(i), TODAY - timedelta(days=i)) for i in range(40)]
        assert completion_streak(tasks, TODAY) == 30

    def test_report(self):
        tasks = [
            done("a", TODAY, category=Category.WRITE),
            done("b", TODAY - timedelta(days=2), category=Category.WRITE),
            done("c", TODAY - timedelta(days=3), category=Category.READ),
            done("old", TODAY - timedelta(days=20), category=Category.READ),
            Task(title="open"),
            Task(title="template", is_template=True),
        ]
        report = progress_report(tasks, TODAY)

        assert report.completed_today == 1
        assert report.completed_this_week == 3
        assert report.total_completed == 4
        assert report.completion_rate == 80
        assert report.streak == 1

        assert report.categories[0].category == Category.WRITE
        assert report.categories[0].count == 2
        assert report.categories[0].percentage == 67

        data = report.to_dict()
        assert data['categories'][1] == {'category': "Read", 'count': 1, 'percentage': 33}
        assert len(data['categories']) == len(Category)
