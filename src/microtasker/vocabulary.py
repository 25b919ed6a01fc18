"""Quick-capture tag vocabulary.

Maps ``#word`` shortcuts to the task attribute they set. The table is data,
so aliases and the ``#medium`` variant can be switched through configuration
instead of code.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple, Union

from .task import Frequency, Priority, TimeEstimate


class TagKind(Enum):
    """What a special tag controls."""
    PRIORITY = "priority"
    TIME_ESTIMATE = "time_estimate"
    DUE = "due"
    RECURRENCE = "recurrence"


@dataclass(frozen=True)
class TagEffect:
    """A single effect of a special tag."""
    kind: TagKind
    value: Union[Priority, TimeEstimate, Frequency, int]  # DUE value is a day offset


DEFAULT_TABLE: Dict[str, Tuple[TagEffect, ...]] = {
    'high': (TagEffect(TagKind.PRIORITY, Priority.HIGH),),
    'urgent': (TagEffect(TagKind.PRIORITY, Priority.HIGH),),
    'medium': (TagEffect(TagKind.PRIORITY, Priority.MEDIUM),),
    'low': (TagEffect(TagKind.PRIORITY, Priority.LOW),),

    'quick': (TagEffect(TagKind.TIME_ESTIMATE, TimeEstimate.SHORT),),
    '2min': (TagEffect(TagKind.TIME_ESTIMATE, TimeEstimate.SHORT),),
    '5min': (TagEffect(TagKind.TIME_ESTIMATE, TimeEstimate.SHORT),),
    'fast': (TagEffect(TagKind.TIME_ESTIMATE, TimeEstimate.SHORT),),
    'short': (TagEffect(TagKind.TIME_ESTIMATE, TimeEstimate.SHORT),),
    '10min': (TagEffect(TagKind.TIME_ESTIMATE, TimeEstimate.MEDIUM),),
    'mid': (TagEffect(TagKind.TIME_ESTIMATE, TimeEstimate.MEDIUM),),
    'long': (TagEffect(TagKind.TIME_ESTIMATE, TimeEstimate.LONG),),
    '15min': (TagEffect(TagKind.TIME_ESTIMATE, TimeEstimate.LONG),),
    '30min': (TagEffect(TagKind.TIME_ESTIMATE, TimeEstimate.LONG),),
    'slow': (TagEffect(TagKind.TIME_ESTIMATE, TimeEstimate.LONG),),
    'extended': (TagEffect(TagKind.TIME_ESTIMATE, TimeEstimate.LONG),),

    'today': (TagEffect(TagKind.DUE, 0),),
    'tomorrow': (TagEffect(TagKind.DUE, 1),),

    'daily': (TagEffect(TagKind.RECURRENCE, Frequency.DAILY),),
    'weekly': (TagEffect(TagKind.RECURRENCE, Frequency.WEEKLY),),
    'monthly': (TagEffect(TagKind.RECURRENCE, Frequency.MONTHLY),),
}

# Tags offered by autocomplete alongside the special ones
COMMON_TAGS = ['today', 'tomorrow', 'urgent', 'high', 'medium', 'low', 'quick', 'long', 'work', 'personal']


@dataclass
class TagVocabulary:
    """Lookup table from tag words to their effects."""

    table: Dict[str, Tuple[TagEffect, ...]] = field(default_factory=lambda: dict(DEFAULT_TABLE))

    @classmethod
    def build(cls, medium_sets_time_estimate: bool = False,
              aliases: Optional[Dict[str, str]] = None) -> "TagVocabulary":
        """Build the canonical vocabulary with optional variations.

        Args:
            medium_sets_time_estimate: Make ``#medium`` also set a 5-10 min estimate
            aliases: Extra tag words mapped onto existing canonical tags

        Raises:
            ValueError: If an alias points at an unknown canonical tag
        """
        table = dict(DEFAULT_TABLE)

        if medium_sets_time_estimate:
            table['medium'] = (
                TagEffect(TagKind.PRIORITY, Priority.MEDIUM),
                TagEffect(TagKind.TIME_ESTIMATE, TimeEstimate.MEDIUM),
            )

        for alias, target in (aliases or {}).items():
            alias, target = alias.lower(), target.lower()
            if target not in table:
                raise ValueError(f"Tag alias '{alias}' refers to unknown tag '{target}'")
            table[alias] = table[target]

        return cls(table=table)

    @classmethod
    def from_config(cls, config) -> "TagVocabulary":
        return cls.build(
            medium_sets_time_estimate=config.medium_sets_time_estimate,
            aliases=config.tag_aliases,
        )

    def effects(self, tag: str) -> Tuple[TagEffect, ...]:
        """Effects of a tag; empty for plain tags."""
        return self.table.get(tag.lower(), ())

    def is_special(self, tag: str) -> bool:
        return tag.lower() in self.table

    def words(self) -> List[str]:
        return sorted(self.table)

    def completions(self, partial: str, extra: Iterable[str] = COMMON_TAGS) -> List[str]:
        """Known tags starting with ``partial``, common tags first."""
        partial = partial.lower()
        ordered = list(dict.fromkeys(list(extra) + self.words()))
        return [tag for tag in ordered if tag.startswith(partial)]
