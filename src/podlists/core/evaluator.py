"""Smart list rule evaluation.

Evaluates rule sets against episode collections and orders the result.
Every function here is pure: inputs are never mutated and the same inputs
(including the evaluation context) always give the same output.
"""

from __future__ import annotations

import logging
import unicodedata
from collections.abc import Iterable, Sequence
from datetime import datetime

from podlists.core.errors import RuleValidationError
from podlists.core.models import Episode, EpisodeDownloadStatus, EpisodePlayStatus
from podlists.core.periods import EvaluationContext, as_aware
from podlists.core.rules import (
    BooleanValue,
    Comparison,
    DateRangeValue,
    DateValue,
    DownloadStatusValue,
    EpisodeStatusValue,
    IntegerValue,
    Logic,
    NumberRangeValue,
    RelativeDateValue,
    Rule,
    RuleSet,
    RuleType,
    RuleValue,
    SmartList,
    SortBy,
    StringValue,
    TimeIntervalValue,
)

logger = logging.getLogger(__name__)

# Numeric equality tolerance (durations and positions are floating point seconds)
NUMBER_TOLERANCE = 0.01


# Single-rule matching


def matches(rule: Rule, episode: Episode, context: EvaluationContext | None = None) -> bool:
    """Check whether an episode satisfies one rule.

    The raw comparison result is inverted when ``rule.is_negated`` is set.
    A missing attribute (no publication date, duration, rating or description)
    never matches before negation is applied.

    Args:
        rule: The rule to apply.
        episode: Episode to test.
        context: Clock used for relative periods and calendar-day equality.
            Defaults to the current moment in local time.

    Returns:
        True if the episode matches.
    """
    context = context or EvaluationContext()
    return _raw_match(rule, episode, context) != rule.is_negated


def _raw_match(rule: Rule, episode: Episode, context: EvaluationContext) -> bool:
    rule_type = rule.type

    if rule_type is RuleType.PLAY_STATUS:
        return _match_status(episode.play_status, rule.comparison, rule.value)
    if rule_type is RuleType.DOWNLOAD_STATUS:
        return _match_status(episode.download_status, rule.comparison, rule.value)
    if rule_type is RuleType.DATE_ADDED:
        return _match_date(episode.date_added, rule.comparison, rule.value, context)
    if rule_type is RuleType.PUB_DATE:
        if episode.pub_date is None:
            return False
        return _match_date(episode.pub_date, rule.comparison, rule.value, context)
    if rule_type is RuleType.DURATION:
        if episode.duration is None:
            return False
        return _match_number(episode.duration, rule.comparison, rule.value)
    if rule_type is RuleType.RATING:
        if episode.rating is None:
            return False
        return _match_number(float(episode.rating), rule.comparison, rule.value)
    if rule_type is RuleType.PLAYBACK_POSITION:
        return _match_number(float(episode.playback_position), rule.comparison, rule.value)
    if rule_type is RuleType.PODCAST:
        return _match_text(episode.podcast_title, rule.comparison, rule.value)
    if rule_type is RuleType.TITLE:
        return _match_text(episode.title, rule.comparison, rule.value)
    if rule_type is RuleType.DESCRIPTION:
        if episode.description is None:
            return False
        return _match_text(episode.description, rule.comparison, rule.value)
    if rule_type is RuleType.IS_FAVORITED:
        return _match_boolean(episode.is_favorited, rule.comparison, rule.value)
    if rule_type is RuleType.IS_BOOKMARKED:
        return _match_boolean(episode.is_bookmarked, rule.comparison, rule.value)
    if rule_type is RuleType.IS_ARCHIVED:
        return _match_boolean(episode.is_archived, rule.comparison, rule.value)

    raise RuleValidationError(f"Unhandled rule type: {rule_type}")


def _match_status(
    actual: EpisodePlayStatus | EpisodeDownloadStatus,
    comparison: Comparison,
    value: RuleValue,
) -> bool:
    if not isinstance(value, (EpisodeStatusValue, DownloadStatusValue)):
        return False
    if comparison is Comparison.EQUALS:
        return actual is value.status
    if comparison is Comparison.NOT_EQUALS:
        return actual is not value.status
    return False


def _match_boolean(actual: bool, comparison: Comparison, value: RuleValue) -> bool:
    if not isinstance(value, BooleanValue):
        return False
    if comparison is Comparison.EQUALS:
        return actual == value.value
    if comparison is Comparison.NOT_EQUALS:
        return actual != value.value
    return False


def _match_number(actual: float, comparison: Comparison, value: RuleValue) -> bool:
    if isinstance(value, NumberRangeValue):
        if comparison is Comparison.BETWEEN:
            return value.low <= actual <= value.high
        return False

    if isinstance(value, IntegerValue):
        target = float(value.value)
    elif isinstance(value, TimeIntervalValue):
        target = float(value.seconds)
    else:
        return False

    if comparison is Comparison.EQUALS:
        return abs(actual - target) < NUMBER_TOLERANCE
    if comparison is Comparison.NOT_EQUALS:
        return abs(actual - target) >= NUMBER_TOLERANCE
    if comparison is Comparison.LESS_THAN:
        return actual < target
    if comparison is Comparison.GREATER_THAN:
        return actual > target
    return False


def _match_text(actual: str, comparison: Comparison, value: RuleValue) -> bool:
    if not isinstance(value, StringValue):
        return False

    text = actual.casefold()
    target = value.value.casefold()

    if comparison is Comparison.EQUALS:
        return text == target
    if comparison is Comparison.NOT_EQUALS:
        return text != target
    if comparison is Comparison.CONTAINS:
        return target in text
    if comparison is Comparison.NOT_CONTAINS:
        return target not in text
    if comparison is Comparison.STARTS_WITH:
        return text.startswith(target)
    if comparison is Comparison.ENDS_WITH:
        return text.endswith(target)
    return False


def _match_date(
    actual: datetime,
    comparison: Comparison,
    value: RuleValue,
    context: EvaluationContext,
) -> bool:
    moment = context.localize(actual)

    if isinstance(value, DateValue):
        target = context.localize(value.value)
        if comparison is Comparison.EQUALS:
            return moment.date() == target.date()
        if comparison is Comparison.NOT_EQUALS:
            return moment.date() != target.date()
        if comparison is Comparison.BEFORE:
            return moment < target
        if comparison is Comparison.AFTER:
            return moment > target
        return False

    if isinstance(value, DateRangeValue):
        if comparison is Comparison.BETWEEN:
            return context.localize(value.start) <= moment <= context.localize(value.end)
        return False

    if isinstance(value, RelativeDateValue):
        if comparison is Comparison.WITHIN:
            return moment in context.window(value.period)
        return False

    return False


# Rule-set evaluation


def evaluate(
    rule_set: RuleSet,
    episodes: Iterable[Episode],
    context: EvaluationContext | None = None,
) -> list[Episode]:
    """Filter episodes down to those satisfying a rule set.

    An empty rule set matches nothing; callers must add at least one rule
    before a list selects anything. Input order is preserved.

    Args:
        rule_set: Rules and the logic that combines them.
        episodes: Episodes to filter.
        context: Clock for relative date rules, resolved once per call.

    Returns:
        Matching episodes, in input order.
    """
    if rule_set.is_empty:
        logger.debug("Empty rule set matches no episodes")
        return []

    context = context or EvaluationContext()
    combine = all if rule_set.logic is Logic.AND else any

    selected = [
        episode
        for episode in episodes
        if combine(matches(rule, episode, context) for rule in rule_set.rules)
    ]
    logger.debug(
        "Rule set (%d rules, %s) matched %d episodes",
        len(rule_set.rules),
        rule_set.logic.value,
        len(selected),
    )
    return selected


# Sorting and limiting

_PLAY_STATUS_ORDER = {
    EpisodePlayStatus.UNPLAYED: 0,
    EpisodePlayStatus.IN_PROGRESS: 1,
    EpisodePlayStatus.PLAYED: 2,
}

_DOWNLOAD_STATUS_ORDER = {
    EpisodeDownloadStatus.DOWNLOADED: 0,
    EpisodeDownloadStatus.DOWNLOADING: 1,
    EpisodeDownloadStatus.PAUSED: 2,
    EpisodeDownloadStatus.NOT_DOWNLOADED: 3,
    EpisodeDownloadStatus.FAILED: 4,
}


def _timestamp(moment: datetime) -> float:
    return as_aware(moment).timestamp()


def _title_key(episode: Episode) -> str:
    return unicodedata.normalize("NFKD", episode.title).casefold()


def _sorted_with_missing_last(
    episodes: Sequence[Episode],
    value_of,
    descending: bool,
) -> list[Episode]:
    present = [e for e in episodes if value_of(e) is not None]
    missing = [e for e in episodes if value_of(e) is None]
    # sorted() is stable, and stays stable with reverse=True
    return sorted(present, key=value_of, reverse=descending) + missing


def sort_episodes(episodes: Sequence[Episode], sort_by: SortBy) -> list[Episode]:
    """Sort episodes by a smart list ordering.

    Sorting is stable: episodes with equal keys keep their input order.
    Episodes missing the sort attribute go last.
    """
    if sort_by is SortBy.PUB_DATE_NEWEST:
        return _sorted_with_missing_last(
            episodes, lambda e: None if e.pub_date is None else _timestamp(e.pub_date), True
        )
    if sort_by is SortBy.PUB_DATE_OLDEST:
        return _sorted_with_missing_last(
            episodes, lambda e: None if e.pub_date is None else _timestamp(e.pub_date), False
        )
    if sort_by is SortBy.DATE_ADDED:
        return sorted(episodes, key=lambda e: _timestamp(e.date_added), reverse=True)
    if sort_by is SortBy.DURATION:
        return _sorted_with_missing_last(episodes, lambda e: e.duration, False)
    if sort_by is SortBy.TITLE:
        return sorted(episodes, key=_title_key)
    if sort_by is SortBy.RATING:
        return _sorted_with_missing_last(episodes, lambda e: e.rating, True)
    if sort_by is SortBy.PLAY_STATUS:
        return sorted(episodes, key=lambda e: _PLAY_STATUS_ORDER[e.play_status])
    if sort_by is SortBy.DOWNLOAD_STATUS:
        return sorted(episodes, key=lambda e: _DOWNLOAD_STATUS_ORDER[e.download_status])

    raise RuleValidationError(f"Unhandled sort order: {sort_by}")


def sort_and_limit(
    episodes: Sequence[Episode],
    sort_by: SortBy,
    max_episodes: int | None = None,
) -> list[Episode]:
    """Sort episodes, then keep at most ``max_episodes`` of them.

    Args:
        episodes: Episodes to order.
        sort_by: Ordering to apply.
        max_episodes: Cap on the result length, None for no cap.

    Returns:
        The sorted, possibly truncated list.

    Raises:
        RuleValidationError: If max_episodes is zero or negative.
    """
    if max_episodes is not None and max_episodes <= 0:
        raise RuleValidationError(f"max_episodes must be positive or None, got {max_episodes}")

    ordered = sort_episodes(episodes, sort_by)
    if max_episodes is None:
        return ordered
    return ordered[:max_episodes]


def evaluate_smart_list(
    smart_list: SmartList,
    episodes: Iterable[Episode],
    context: EvaluationContext | None = None,
) -> list[Episode]:
    """Evaluate a smart list's rules, then apply its sort order and cap."""
    selected = evaluate(smart_list.rules, episodes, context)
    return sort_and_limit(selected, smart_list.sort_by, smart_list.max_episodes)
