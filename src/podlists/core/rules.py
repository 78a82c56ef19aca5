"""Smart list rule model.

Rules compare one episode attribute against a typed value. Which comparisons
and which value variants a rule may use is fixed by its `RuleType`; building a
`Rule` that breaks those constraints raises `RuleValidationError` instead of
being silently coerced.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import ClassVar

from podlists.core.errors import RuleValidationError
from podlists.core.models import EpisodeDownloadStatus, EpisodePlayStatus
from podlists.core.periods import RelativeDatePeriod, as_aware

# Default refresh cadence for auto-updating smart lists, in seconds
DEFAULT_REFRESH_INTERVAL = 300.0


class Comparison(Enum):
    """Comparison operators for rules."""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    LESS_THAN = "less_than"
    GREATER_THAN = "greater_than"
    BETWEEN = "between"
    BEFORE = "before"
    AFTER = "after"
    WITHIN = "within"

    @property
    def display_name(self) -> str:
        return _COMPARISON_NAMES[self]


_COMPARISON_NAMES = {
    Comparison.EQUALS: "is",
    Comparison.NOT_EQUALS: "is not",
    Comparison.CONTAINS: "contains",
    Comparison.NOT_CONTAINS: "does not contain",
    Comparison.STARTS_WITH: "starts with",
    Comparison.ENDS_WITH: "ends with",
    Comparison.LESS_THAN: "is less than",
    Comparison.GREATER_THAN: "is greater than",
    Comparison.BETWEEN: "is between",
    Comparison.BEFORE: "is before",
    Comparison.AFTER: "is after",
    Comparison.WITHIN: "is within",
}


class RuleType(Enum):
    """Episode attribute a rule inspects."""

    PLAY_STATUS = "play_status"
    DOWNLOAD_STATUS = "download_status"
    DATE_ADDED = "date_added"
    PUB_DATE = "pub_date"
    DURATION = "duration"
    RATING = "rating"
    PODCAST = "podcast"
    TITLE = "title"
    DESCRIPTION = "description"
    IS_FAVORITED = "is_favorited"
    IS_BOOKMARKED = "is_bookmarked"
    IS_ARCHIVED = "is_archived"
    PLAYBACK_POSITION = "playback_position"

    @property
    def display_name(self) -> str:
        return _RULE_TYPE_NAMES[self]

    @property
    def available_comparisons(self) -> tuple[Comparison, ...]:
        """Comparisons valid for this type; the first one is the default."""
        if self in _STATUS_TYPES or self in _BOOLEAN_TYPES:
            return (Comparison.EQUALS, Comparison.NOT_EQUALS)
        if self in _DATE_TYPES:
            return (
                Comparison.EQUALS,
                Comparison.NOT_EQUALS,
                Comparison.BEFORE,
                Comparison.AFTER,
                Comparison.BETWEEN,
                Comparison.WITHIN,
            )
        if self in _NUMERIC_TYPES:
            return (
                Comparison.EQUALS,
                Comparison.NOT_EQUALS,
                Comparison.LESS_THAN,
                Comparison.GREATER_THAN,
                Comparison.BETWEEN,
            )
        return (
            Comparison.CONTAINS,
            Comparison.NOT_CONTAINS,
            Comparison.STARTS_WITH,
            Comparison.ENDS_WITH,
            Comparison.EQUALS,
            Comparison.NOT_EQUALS,
        )

    @property
    def is_text(self) -> bool:
        return self in _TEXT_TYPES


_RULE_TYPE_NAMES = {
    RuleType.PLAY_STATUS: "Play Status",
    RuleType.DOWNLOAD_STATUS: "Download Status",
    RuleType.DATE_ADDED: "Date Added",
    RuleType.PUB_DATE: "Publication Date",
    RuleType.DURATION: "Duration",
    RuleType.RATING: "Rating",
    RuleType.PODCAST: "Podcast",
    RuleType.TITLE: "Title",
    RuleType.DESCRIPTION: "Description",
    RuleType.IS_FAVORITED: "Favorited",
    RuleType.IS_BOOKMARKED: "Bookmarked",
    RuleType.IS_ARCHIVED: "Archived",
    RuleType.PLAYBACK_POSITION: "Progress",
}

_STATUS_TYPES = frozenset({RuleType.PLAY_STATUS, RuleType.DOWNLOAD_STATUS})
_BOOLEAN_TYPES = frozenset({RuleType.IS_FAVORITED, RuleType.IS_BOOKMARKED, RuleType.IS_ARCHIVED})
_DATE_TYPES = frozenset({RuleType.DATE_ADDED, RuleType.PUB_DATE})
_NUMERIC_TYPES = frozenset({RuleType.DURATION, RuleType.RATING, RuleType.PLAYBACK_POSITION})
_TEXT_TYPES = frozenset({RuleType.PODCAST, RuleType.TITLE, RuleType.DESCRIPTION})


# Rule values


class RuleValue(ABC):
    """Base class of the rule value variants.

    Each variant is a frozen dataclass with a stable ``kind`` tag.
    """

    kind: ClassVar[str]

    @property
    @abstractmethod
    def display_value(self) -> str:
        """Human readable form of the value."""


@dataclass(frozen=True)
class BooleanValue(RuleValue):
    kind: ClassVar[str] = "boolean"

    value: bool

    @property
    def display_value(self) -> str:
        return "Yes" if self.value else "No"


@dataclass(frozen=True)
class IntegerValue(RuleValue):
    kind: ClassVar[str] = "integer"

    value: int

    @property
    def display_value(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class DoubleValue(RuleValue):
    kind: ClassVar[str] = "double"

    value: float

    @property
    def display_value(self) -> str:
        return f"{self.value:.1f}"


@dataclass(frozen=True)
class StringValue(RuleValue):
    kind: ClassVar[str] = "string"

    value: str

    @property
    def display_value(self) -> str:
        return self.value


@dataclass(frozen=True)
class DateValue(RuleValue):
    kind: ClassVar[str] = "date"

    value: datetime

    @property
    def display_value(self) -> str:
        return self.value.strftime("%b %d, %Y")


@dataclass(frozen=True)
class DateRangeValue(RuleValue):
    kind: ClassVar[str] = "date_range"

    start: datetime
    end: datetime

    @property
    def display_value(self) -> str:
        return f"{self.start.strftime('%Y-%m-%d')} - {self.end.strftime('%Y-%m-%d')}"


@dataclass(frozen=True)
class TimeIntervalValue(RuleValue):
    kind: ClassVar[str] = "time_interval"

    seconds: float

    @property
    def display_value(self) -> str:
        return format_interval(self.seconds)


@dataclass(frozen=True)
class NumberRangeValue(RuleValue):
    """Inclusive numeric bounds for ``between`` on numeric rule types."""

    kind: ClassVar[str] = "number_range"

    low: float
    high: float

    @property
    def display_value(self) -> str:
        return f"{self.low:g} - {self.high:g}"


@dataclass(frozen=True)
class RelativeDateValue(RuleValue):
    kind: ClassVar[str] = "relative_date"

    period: RelativeDatePeriod

    @property
    def display_value(self) -> str:
        return self.period.display_name


@dataclass(frozen=True)
class EpisodeStatusValue(RuleValue):
    kind: ClassVar[str] = "episode_status"

    status: EpisodePlayStatus

    @property
    def display_value(self) -> str:
        return self.status.display_name


@dataclass(frozen=True)
class DownloadStatusValue(RuleValue):
    kind: ClassVar[str] = "download_status"

    status: EpisodeDownloadStatus

    @property
    def display_value(self) -> str:
        return self.status.display_name


RULE_VALUE_TYPES: tuple[type[RuleValue], ...] = (
    BooleanValue,
    IntegerValue,
    DoubleValue,
    StringValue,
    DateValue,
    DateRangeValue,
    TimeIntervalValue,
    NumberRangeValue,
    RelativeDateValue,
    EpisodeStatusValue,
    DownloadStatusValue,
)


def format_interval(seconds: float) -> str:
    """Format a duration in seconds as an abbreviated "1h 5m 3s" string."""
    total = int(round(seconds))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)

    parts = []
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if secs or not parts:
        parts.append(f"{secs}s")
    return " ".join(parts)


def expected_value_type(rule_type: RuleType, comparison: Comparison) -> type[RuleValue]:
    """Return the value variant a rule of this type and comparison must carry."""
    if rule_type is RuleType.PLAY_STATUS:
        return EpisodeStatusValue
    if rule_type is RuleType.DOWNLOAD_STATUS:
        return DownloadStatusValue
    if rule_type in _BOOLEAN_TYPES:
        return BooleanValue
    if rule_type in _TEXT_TYPES:
        return StringValue
    if rule_type in _DATE_TYPES:
        if comparison is Comparison.BETWEEN:
            return DateRangeValue
        if comparison is Comparison.WITHIN:
            return RelativeDateValue
        return DateValue
    if comparison is Comparison.BETWEEN:
        return NumberRangeValue
    if rule_type is RuleType.RATING:
        return IntegerValue
    return TimeIntervalValue


# Rules and rule sets


class Logic(Enum):
    """How the rules of a rule set are combined."""

    AND = "AND"
    OR = "OR"

    @property
    def display_name(self) -> str:
        return "All conditions" if self is Logic.AND else "Any condition"


@dataclass(frozen=True)
class Rule:
    """A single typed predicate over one episode attribute."""

    type: RuleType
    comparison: Comparison
    value: RuleValue
    is_negated: bool = False
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def __post_init__(self) -> None:
        if self.comparison not in self.type.available_comparisons:
            allowed = ", ".join(c.value for c in self.type.available_comparisons)
            raise RuleValidationError(
                f"Comparison '{self.comparison.value}' is not valid for rule type "
                f"'{self.type.value}' (allowed: {allowed})"
            )

        expected = expected_value_type(self.type, self.comparison)
        if type(self.value) is not expected:
            raise RuleValidationError(
                f"Rule '{self.type.value} {self.comparison.value}' requires a "
                f"{expected.kind} value, got {getattr(self.value, 'kind', type(self.value).__name__)}"
            )

        if isinstance(self.value, (DateRangeValue, NumberRangeValue)):
            low, high = (
                (as_aware(self.value.start), as_aware(self.value.end))
                if isinstance(self.value, DateRangeValue)
                else (self.value.low, self.value.high)
            )
            if low > high:
                raise RuleValidationError(
                    f"Range for '{self.type.value}' starts after it ends: {self.value.display_value}"
                )

    @property
    def description(self) -> str:
        """Human-readable summary, e.g. "Rating is greater than 3"."""
        text = f"{self.type.display_name} {self.comparison.display_name} {self.value.display_value}"
        return f"NOT ({text})" if self.is_negated else text

    def negated(self) -> Rule:
        """Return a copy with the negation flag toggled."""
        return replace(self, is_negated=not self.is_negated)


@dataclass(frozen=True)
class RuleSet:
    """Rules combined with AND/OR logic."""

    rules: tuple[Rule, ...] = ()
    logic: Logic = Logic.AND

    def __post_init__(self) -> None:
        object.__setattr__(self, "rules", tuple(self.rules))

    def __len__(self) -> int:
        return len(self.rules)

    @property
    def is_empty(self) -> bool:
        return not self.rules


# Sorting and smart lists


class SortBy(Enum):
    """Orderings available for smart list results."""

    PUB_DATE_NEWEST = "pubDate_desc"
    PUB_DATE_OLDEST = "pubDate_asc"
    DURATION = "duration"
    TITLE = "title"
    PLAY_STATUS = "playStatus"
    DOWNLOAD_STATUS = "downloadStatus"
    RATING = "rating"
    DATE_ADDED = "dateAdded"

    @property
    def display_name(self) -> str:
        return _SORT_NAMES[self]


_SORT_NAMES = {
    SortBy.PUB_DATE_NEWEST: "Newest First",
    SortBy.PUB_DATE_OLDEST: "Oldest First",
    SortBy.DURATION: "Duration",
    SortBy.TITLE: "Title",
    SortBy.PLAY_STATUS: "Play Status",
    SortBy.DOWNLOAD_STATUS: "Download Status",
    SortBy.RATING: "Rating",
    SortBy.DATE_ADDED: "Date Added",
}


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class SmartList:
    """A named rule set with sort, limit and refresh settings."""

    name: str
    rules: RuleSet
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    description: str | None = None
    sort_by: SortBy = SortBy.PUB_DATE_NEWEST
    max_episodes: int | None = None
    auto_update: bool = True
    refresh_interval: float = DEFAULT_REFRESH_INTERVAL  # seconds
    created_at: datetime = field(default_factory=_utc_now)
    last_updated: datetime = field(default_factory=_utc_now)
    is_system_generated: bool = False

    def __post_init__(self) -> None:
        if self.max_episodes is not None and self.max_episodes <= 0:
            raise RuleValidationError(
                f"max_episodes must be positive or None, got {self.max_episodes}"
            )
        if self.refresh_interval < 0:
            raise RuleValidationError(
                f"refresh_interval must not be negative, got {self.refresh_interval}"
            )

    def needs_update(self, now: datetime | None = None) -> bool:
        """Check whether the refresh interval has elapsed since the last update."""
        if not self.auto_update:
            return False
        elapsed = as_aware(now or _utc_now()) - as_aware(self.last_updated)
        return elapsed >= timedelta(seconds=self.refresh_interval)

    def with_last_updated(self, moment: datetime) -> SmartList:
        return replace(self, last_updated=moment)


class TemplateCategory(Enum):
    RECENT = "recent"
    DURATION = "duration"
    STATUS = "status"
    RATING = "rating"
    CONTENT = "content"
    PODCAST = "podcast"

    @property
    def display_name(self) -> str:
        if self is TemplateCategory.STATUS:
            return "Play Status"
        return self.value.title()


@dataclass(frozen=True)
class RuleTemplate:
    """A reusable rule set offered when creating a smart list."""

    name: str
    description: str
    rules: RuleSet
    category: TemplateCategory
    id: str = field(default_factory=lambda: str(uuid.uuid4()))


def _unplayed() -> Rule:
    return Rule(
        RuleType.PLAY_STATUS,
        Comparison.EQUALS,
        EpisodeStatusValue(EpisodePlayStatus.UNPLAYED),
    )


BUILTIN_SMART_LISTS: tuple[SmartList, ...] = (
    SmartList(
        id="recent_unplayed",
        name="Recent Unplayed",
        description="Unplayed episodes from the last 7 days",
        rules=RuleSet(
            (
                _unplayed(),
                Rule(
                    RuleType.PUB_DATE,
                    Comparison.WITHIN,
                    RelativeDateValue(RelativeDatePeriod.LAST_7_DAYS),
                ),
            ),
            Logic.AND,
        ),
        sort_by=SortBy.PUB_DATE_NEWEST,
        max_episodes=50,
        is_system_generated=True,
    ),
    SmartList(
        id="downloaded_interviews",
        name="Downloaded Interviews",
        description="Downloaded episodes with 'interview' in the title",
        rules=RuleSet(
            (
                Rule(
                    RuleType.DOWNLOAD_STATUS,
                    Comparison.EQUALS,
                    DownloadStatusValue(EpisodeDownloadStatus.DOWNLOADED),
                ),
                Rule(RuleType.TITLE, Comparison.CONTAINS, StringValue("interview")),
            ),
            Logic.AND,
        ),
        sort_by=SortBy.PUB_DATE_NEWEST,
        is_system_generated=True,
    ),
    SmartList(
        id="long_unplayed",
        name="Long Unplayed Episodes",
        description="Unplayed episodes longer than 60 minutes",
        rules=RuleSet(
            (
                _unplayed(),
                Rule(RuleType.DURATION, Comparison.GREATER_THAN, TimeIntervalValue(3600)),
            ),
            Logic.AND,
        ),
        sort_by=SortBy.DURATION,
        max_episodes=30,
        is_system_generated=True,
    ),
    SmartList(
        id="quick_episodes",
        name="Quick Episodes",
        description="Unplayed episodes under 20 minutes",
        rules=RuleSet(
            (
                _unplayed(),
                Rule(RuleType.DURATION, Comparison.LESS_THAN, TimeIntervalValue(1200)),
            ),
            Logic.AND,
        ),
        sort_by=SortBy.DURATION,
        max_episodes=25,
        is_system_generated=True,
    ),
    SmartList(
        id="highly_rated",
        name="Highly Rated",
        description="Episodes rated 4 stars or higher",
        rules=RuleSet(
            (Rule(RuleType.RATING, Comparison.GREATER_THAN, IntegerValue(3)),),
            Logic.AND,
        ),
        sort_by=SortBy.RATING,
        max_episodes=50,
        is_system_generated=True,
    ),
    SmartList(
        id="in_progress",
        name="Continue Listening",
        description="Episodes that are partially played",
        rules=RuleSet(
            (
                Rule(
                    RuleType.PLAY_STATUS,
                    Comparison.EQUALS,
                    EpisodeStatusValue(EpisodePlayStatus.IN_PROGRESS),
                ),
            ),
            Logic.AND,
        ),
        sort_by=SortBy.DATE_ADDED,
        max_episodes=20,
        is_system_generated=True,
    ),
)


BUILTIN_TEMPLATES: tuple[RuleTemplate, ...] = (
    RuleTemplate(
        name="Today's Episodes",
        description="Episodes published today",
        rules=RuleSet(
            (Rule(RuleType.PUB_DATE, Comparison.WITHIN, RelativeDateValue(RelativeDatePeriod.TODAY)),)
        ),
        category=TemplateCategory.RECENT,
    ),
    RuleTemplate(
        name="This Week's Episodes",
        description="Episodes published this week",
        rules=RuleSet(
            (
                Rule(
                    RuleType.PUB_DATE,
                    Comparison.WITHIN,
                    RelativeDateValue(RelativeDatePeriod.THIS_WEEK),
                ),
            )
        ),
        category=TemplateCategory.RECENT,
    ),
    RuleTemplate(
        name="Short Episodes",
        description="Episodes under 15 minutes",
        rules=RuleSet((Rule(RuleType.DURATION, Comparison.LESS_THAN, TimeIntervalValue(900)),)),
        category=TemplateCategory.DURATION,
    ),
    RuleTemplate(
        name="Long Episodes",
        description="Episodes over 90 minutes",
        rules=RuleSet((Rule(RuleType.DURATION, Comparison.GREATER_THAN, TimeIntervalValue(5400)),)),
        category=TemplateCategory.DURATION,
    ),
    RuleTemplate(
        name="Downloaded Unplayed",
        description="Downloaded episodes that haven't been played",
        rules=RuleSet(
            (
                Rule(
                    RuleType.DOWNLOAD_STATUS,
                    Comparison.EQUALS,
                    DownloadStatusValue(EpisodeDownloadStatus.DOWNLOADED),
                ),
                _unplayed(),
            ),
            Logic.AND,
        ),
        category=TemplateCategory.STATUS,
    ),
    RuleTemplate(
        name="News Episodes",
        description="Episodes with 'news' in the title",
        rules=RuleSet((Rule(RuleType.TITLE, Comparison.CONTAINS, StringValue("news")),)),
        category=TemplateCategory.CONTENT,
    ),
    RuleTemplate(
        name="Interview Episodes",
        description="Episodes with 'interview' in the title or description",
        rules=RuleSet(
            (
                Rule(RuleType.TITLE, Comparison.CONTAINS, StringValue("interview")),
                Rule(RuleType.DESCRIPTION, Comparison.CONTAINS, StringValue("interview")),
            ),
            Logic.OR,
        ),
        category=TemplateCategory.CONTENT,
    ),
)


def get_builtin_smart_list(list_id: str) -> SmartList | None:
    """Look up a built-in smart list by its id."""
    for smart_list in BUILTIN_SMART_LISTS:
        if smart_list.id == list_id:
            return smart_list
    return None
