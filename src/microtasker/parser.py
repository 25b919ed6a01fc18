"""Quick-capture parser for MicroTasker.

Turns shorthand such as ``Write email /write #urgent #today`` into a
structured task draft:

- ``/category`` picks one of the fixed categories
- ``#tag`` is either a special tag from the vocabulary (priority, time
  estimate, due date, recurrence) or a plain tag

Everything that is not a shortcut becomes the title.
"""

import re
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Tuple

from fuzzywuzzy import fuzz, process

from .recurring import create_recurring_tasks
from .task import Category, Frequency, Priority, Task, TimeEstimate, normalize_tags
from .utils.datetime import to_iso_string, today_utc
from .vocabulary import TagKind, TagVocabulary


MAX_SUGGESTIONS = 5


class CaptureRejectedError(ValueError):
    """A capture produced no usable title."""
    pass


@dataclass
class ParsedCapture:
    """A task draft extracted from quick-capture text."""
    title: str
    category: Optional[Category] = None
    tags: List[str] = field(default_factory=list)
    priority: Optional[Priority] = None
    time_estimate: TimeEstimate = TimeEstimate.SHORT
    due_date: Optional[date] = None
    is_recurring: bool = False
    frequency: Optional[Frequency] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @property
    def is_valid(self) -> bool:
        return bool(self.title)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'title': self.title,
            'category': self.category.value if self.category else None,
            'tags': list(self.tags),
            'priority': self.priority.value if self.priority else None,
            'time_estimate': self.time_estimate.value,
            'due_date': to_iso_string(self.due_date),
            'is_recurring': self.is_recurring,
            'frequency': self.frequency.value if self.frequency else None,
            'start_date': to_iso_string(self.start_date),
            'end_date': to_iso_string(self.end_date),
        }


@dataclass
class ParseError:
    """Represents a parsing error with suggestions."""
    message: str
    suggestions: List[str] = field(default_factory=list)
    severity: str = "error"  # error, warning


class CaptureParser:
    """Parser for quick-capture shorthand."""

    def __init__(self, vocabulary: Optional[TagVocabulary] = None,
                 default_time_estimate: TimeEstimate = TimeEstimate.SHORT):
        self.vocabulary = vocabulary or TagVocabulary.build()
        self.default_time_estimate = default_time_estimate

        # Shortcuts must start a token; trailing punctuation ends them
        self.patterns = {
            'category': re.compile(r'(?<!\S)/(\w+)'),
            'tag': re.compile(r'(?<!\S)#(\w+)'),
        }

    @classmethod
    def from_config(cls, config) -> "CaptureParser":
        return cls(
            vocabulary=TagVocabulary.from_config(config),
            default_time_estimate=config.default_time_estimate,
        )

    def parse(self, input_text: str, today: Optional[date] = None) -> Tuple[ParsedCapture, List[ParseError]]:
        """Parse capture text into a draft.

        Args:
            input_text: Free-form capture text
            today: The date ``#today`` refers to (defaults to the current UTC date)

        Returns:
            The draft and a list of errors; a draft with an empty title is
            rejected and must not become a task.
        """
        today = today or today_utc()
        errors: List[ParseError] = []
        parsed = ParsedCapture(title="", time_estimate=self.default_time_estimate)

        if not input_text or not input_text.strip():
            errors.append(ParseError("Empty capture text", suggestions=["Type what needs doing"]))
            return parsed, errors

        tags: List[str] = []

        def take_category(match: re.Match) -> str:
            category = Category.lookup(match.group(1))
            if category is None:
                return match.group(0)
            if parsed.category is None:
                parsed.category = category
            return ''

        def take_tag(match: re.Match) -> str:
            tag = match.group(1).lower()
            effects = self.vocabulary.effects(tag)
            if not effects:
                tags.append(tag)
            for effect in effects:
                self._apply(parsed, effect.kind, effect.value, today)
            return ''

        remaining = self.patterns['category'].sub(take_category, input_text)
        remaining = self.patterns['tag'].sub(take_tag, remaining)

        parsed.tags = normalize_tags(tags)
        parsed.title = ' '.join(remaining.split())

        if not parsed.title:
            errors.append(ParseError(
                "No task title found after parsing shortcuts",
                suggestions=["Add a short description along with /category and #tags"]
            ))

        return parsed, errors

    def _apply(self, parsed: ParsedCapture, kind: TagKind, value, today: date):
        if kind is TagKind.PRIORITY:
            parsed.priority = value
        elif kind is TagKind.TIME_ESTIMATE:
            parsed.time_estimate = value
        elif kind is TagKind.DUE:
            parsed.due_date = today + timedelta(days=value)
        elif kind is TagKind.RECURRENCE:
            parsed.is_recurring = True
            parsed.frequency = value
            parsed.start_date = today

    def suggest_completions(self, input_text: str) -> List[str]:
        """Complete the trailing ``/category`` or ``#tag`` token."""
        if not input_text or input_text[-1].isspace():
            return []

        last = input_text.split()[-1]
        if last.startswith('/'):
            partial = last[1:].lower()
            suggestions = [f"/{c.value.lower()}" for c in Category if c.value.lower().startswith(partial)]
        elif last.startswith('#'):
            suggestions = [f"#{tag}" for tag in self.vocabulary.completions(last[1:])]
        else:
            return []

        return suggestions[:MAX_SUGGESTIONS]

    def suggest_corrections(self, input_text: str) -> List[str]:
        """Suggest categories for ``/word`` tokens that name none."""
        suggestions = []
        names = [c.value.lower() for c in Category]

        for word in self.patterns['category'].findall(input_text or ''):
            if Category.lookup(word) is not None:
                continue
            close_matches = process.extractBests(word.lower(), names, scorer=fuzz.ratio,
                                                 score_cutoff=70, limit=1)
            if close_matches:
                suggestions.append(f"Did you mean /{close_matches[0][0]} instead of /{word}?")

        return suggestions


class TaskBuilder:
    """Builds tasks from a parsed capture."""

    def build(self, parsed: ParsedCapture, user_id: Optional[int] = None) -> List[Task]:
        """Build the tasks a capture stands for.

        Returns:
            ``[task]`` for a one-off capture, ``[template, first_instance]``
            for a recurring one

        Raises:
            CaptureRejectedError: If the draft has no title
        """
        if not parsed.is_valid:
            raise CaptureRejectedError("Capture has no title")

        if parsed.is_recurring:
            return list(create_recurring_tasks(
                title=parsed.title,
                frequency=parsed.frequency,
                start_date=parsed.start_date,
                end_date=parsed.end_date,
                due_date=parsed.due_date,
                category=parsed.category,
                tags=parsed.tags,
                priority=parsed.priority,
                time_estimate=parsed.time_estimate,
                user_id=user_id,
            ))

        return [Task(
            title=parsed.title,
            user_id=user_id,
            category=parsed.category,
            tags=list(parsed.tags),
            priority=parsed.priority,
            time_estimate=parsed.time_estimate,
            due_date=parsed.due_date,
        )]


def parse_capture_input(input_text: str, parser: Optional[CaptureParser] = None,
                        today: Optional[date] = None) -> Tuple[ParsedCapture, List[ParseError], List[str]]:
    """Parse capture text and collect suggestions."""
    parser = parser or CaptureParser()
    parsed, errors = parser.parse(input_text, today=today)
    suggestions = parser.suggest_corrections(input_text)
    return parsed, errors, suggestions
