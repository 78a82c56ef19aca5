"""Editable drafts for rules and search terms.

A draft holds every value shape a rule might need so an editor can switch
rule types and comparisons without losing input. `build()` turns a complete
draft into an immutable `Rule` or `SearchTerm`.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from podlists.core.errors import RuleValidationError
from podlists.core.models import EpisodeDownloadStatus, EpisodePlayStatus
from podlists.core.periods import RelativeDatePeriod, as_aware
from podlists.core.rules import (
    BooleanValue,
    Comparison,
    DateRangeValue,
    DateValue,
    DownloadStatusValue,
    EpisodeStatusValue,
    IntegerValue,
    NumberRangeValue,
    RelativeDateValue,
    Rule,
    RuleType,
    RuleValue,
    StringValue,
    TimeIntervalValue,
    expected_value_type,
)
from podlists.core.search import BooleanOperator, SearchField, SearchQuery, SearchTerm

DEFAULT_INTERVAL = 1800.0  # 30 minutes
DEFAULT_RATING = 4


def _today() -> datetime:
    return datetime.now(UTC).replace(hour=0, minute=0, second=0, microsecond=0)


@dataclass
class RuleDraft:
    """Mutable rule under construction."""

    type: RuleType = RuleType.PLAY_STATUS
    comparison: Comparison = Comparison.EQUALS
    is_negated: bool = False
    id: str | None = None

    string_value: str = ""
    int_value: int = DEFAULT_RATING
    bool_value: bool = True
    date_value: datetime = field(default_factory=_today)
    start_date: datetime = field(default_factory=lambda: _today() - timedelta(days=7))
    end_date: datetime = field(default_factory=_today)
    time_interval: float = DEFAULT_INTERVAL
    range_low: float = 0.0
    range_high: float = DEFAULT_INTERVAL
    relative_period: RelativeDatePeriod = RelativeDatePeriod.LAST_7_DAYS
    episode_status: EpisodePlayStatus = EpisodePlayStatus.UNPLAYED
    download_status: EpisodeDownloadStatus = EpisodeDownloadStatus.DOWNLOADED

    def set_type(self, rule_type: RuleType) -> None:
        """Switch rule type, resetting the comparison and value slots it uses."""
        self.type = rule_type
        if self.comparison not in rule_type.available_comparisons:
            self.comparison = rule_type.available_comparisons[0]

        if rule_type is RuleType.PLAY_STATUS:
            self.episode_status = EpisodePlayStatus.UNPLAYED
        elif rule_type is RuleType.DOWNLOAD_STATUS:
            self.download_status = EpisodeDownloadStatus.DOWNLOADED
        elif rule_type in (RuleType.DURATION, RuleType.PLAYBACK_POSITION):
            self.time_interval = DEFAULT_INTERVAL
            self.range_low = 0.0
            self.range_high = DEFAULT_INTERVAL
        elif rule_type is RuleType.RATING:
            self.int_value = DEFAULT_RATING
            self.range_low = 1.0
            self.range_high = 5.0
        elif rule_type.is_text:
            self.string_value = ""
        elif rule_type in (RuleType.DATE_ADDED, RuleType.PUB_DATE):
            self.date_value = _today()
            self.start_date = _today() - timedelta(days=7)
            self.end_date = _today()
            self.relative_period = RelativeDatePeriod.LAST_7_DAYS
        else:
            self.bool_value = True

    def value(self) -> RuleValue:
        """Assemble the value variant the current type and comparison expect."""
        expected = expected_value_type(self.type, self.comparison)
        if expected is EpisodeStatusValue:
            return EpisodeStatusValue(self.episode_status)
        if expected is DownloadStatusValue:
            return DownloadStatusValue(self.download_status)
        if expected is BooleanValue:
            return BooleanValue(self.bool_value)
        if expected is StringValue:
            return StringValue(self.string_value)
        if expected is DateValue:
            return DateValue(self.date_value)
        if expected is DateRangeValue:
            return DateRangeValue(self.start_date, self.end_date)
        if expected is RelativeDateValue:
            return RelativeDateValue(self.relative_period)
        if expected is NumberRangeValue:
            return NumberRangeValue(self.range_low, self.range_high)
        if expected is IntegerValue:
            return IntegerValue(self.int_value)
        return TimeIntervalValue(self.time_interval)

    def is_buildable(self) -> bool:
        if self.comparison not in self.type.available_comparisons:
            return False
        if self.type.is_text and not self.string_value.strip():
            return False
        if self.comparison is Comparison.BETWEEN:
            if self.type in (RuleType.DATE_ADDED, RuleType.PUB_DATE):
                return as_aware(self.start_date) <= as_aware(self.end_date)
            return self.range_low <= self.range_high
        return True

    def build(self) -> Rule | None:
        """Return the finished rule, or None while the draft is incomplete."""
        if not self.is_buildable():
            return None
        try:
            if self.id is None:
                return Rule(self.type, self.comparison, self.value(), self.is_negated)
            return Rule(self.type, self.comparison, self.value(), self.is_negated, id=self.id)
        except RuleValidationError:
            return None

    @classmethod
    def from_rule(cls, rule: Rule) -> RuleDraft:
        """Load an existing rule into a draft for editing."""
        draft = cls(rule.type, rule.comparison, rule.is_negated, rule.id)
        value = rule.value

        if isinstance(value, EpisodeStatusValue):
            draft.episode_status = value.status
        elif isinstance(value, DownloadStatusValue):
            draft.download_status = value.status
        elif isinstance(value, BooleanValue):
            draft.bool_value = value.value
        elif isinstance(value, StringValue):
            draft.string_value = value.value
        elif isinstance(value, DateValue):
            draft.date_value = value.value
        elif isinstance(value, DateRangeValue):
            draft.start_date = value.start
            draft.end_date = value.end
        elif isinstance(value, RelativeDateValue):
            draft.relative_period = value.period
        elif isinstance(value, NumberRangeValue):
            draft.range_low = value.low
            draft.range_high = value.high
        elif isinstance(value, IntegerValue):
            draft.int_value = value.value
        elif isinstance(value, TimeIntervalValue):
            draft.time_interval = value.seconds
        return draft


@dataclass
class SearchTermDraft:
    """Mutable search term under construction."""

    text: str = ""
    field: SearchField | None = None
    is_negated: bool = False
    is_phrase: bool = False

    def is_buildable(self) -> bool:
        return bool(self.text.strip())

    def build(self) -> SearchTerm | None:
        if not self.is_buildable():
            return None
        return SearchTerm(self.text, self.field, self.is_negated, self.is_phrase)

    @classmethod
    def from_term(cls, term: SearchTerm) -> SearchTermDraft:
        return cls(term.text, term.field, term.is_negated, term.is_phrase)


def build_query(
    drafts: Sequence[SearchTermDraft],
    operators: Sequence[BooleanOperator] = (),
) -> SearchQuery:
    """Assemble a query from the buildable drafts.

    ``operators[i]`` sits between ``drafts[i]`` and ``drafts[i + 1]``. When a
    draft is skipped, the next kept draft is joined with the operator that
    preceded it; missing operators become AND.
    """
    terms: list[SearchTerm] = []
    joins: list[BooleanOperator] = []

    for index, draft in enumerate(drafts):
        term = draft.build()
        if term is None:
            continue
        if terms:
            preceding = operators[index - 1] if 0 < index <= len(operators) else None
            joins.append(preceding or BooleanOperator.AND)
        terms.append(term)

    return SearchQuery.from_parts(terms, joins)
