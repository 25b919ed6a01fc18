"""MicroTasker - quick-capture micro tasks with recurring routines."""

__version__ = "0.1.0"
__author__ = "MicroTasker Team"

from .task import (
    Task,
    Category,
    Priority,
    TimeEstimate,
    Frequency,
)
from .parser import CaptureParser, ParsedCapture
from .recurring import RecurrenceGenerator, next_occurrence

__all__ = [
    "Task", "Category", "Priority", "TimeEstimate", "Frequency",
    "CaptureParser", "ParsedCapture", "RecurrenceGenerator", "next_occurrence",
    "__version__",
]
