"""Tests for rule construction and smart list definitions."""

from datetime import UTC, datetime, timedelta

import pytest

from podlists.core.errors import RuleValidationError
from podlists.core.models import EpisodePlayStatus
from podlists.core.periods import RelativeDatePeriod
from podlists.core.rules import (
    BUILTIN_SMART_LISTS,
    BUILTIN_TEMPLATES,
    BooleanValue,
    Comparison,
    DateRangeValue,
    DateValue,
    DoubleValue,
    EpisodeStatusValue,
    IntegerValue,
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
    expected_value_type,
    format_interval,
    get_builtin_smart_list,
)


class TestAvailableComparisons:
    def test_status_and_boolean_types(self) -> None:
        for rule_type in (RuleType.PLAY_STATUS, RuleType.IS_FAVORITED, RuleType.IS_ARCHIVED):
            assert rule_type.available_comparisons == (Comparison.EQUALS, Comparison.NOT_EQUALS)

    def test_date_types_support_within(self) -> None:
        assert Comparison.WITHIN in RuleType.PUB_DATE.available_comparisons
        assert Comparison.LESS_THAN not in RuleType.DATE_ADDED.available_comparisons

    def test_numeric_types_support_ranges(self) -> None:
        for rule_type in (RuleType.DURATION, RuleType.RATING, RuleType.PLAYBACK_POSITION):
            assert Comparison.BETWEEN in rule_type.available_comparisons
            assert Comparison.CONTAINS not in rule_type.available_comparisons

    def test_text_types_default_to_contains(self) -> None:
        for rule_type in (RuleType.TITLE, RuleType.PODCAST, RuleType.DESCRIPTION):
            assert rule_type.is_text
            assert rule_type.available_comparisons[0] is Comparison.CONTAINS


class TestExpectedValueType:
    @pytest.mark.parametrize(
        ("rule_type", "comparison", "expected"),
        [
            (RuleType.PLAY_STATUS, Comparison.EQUALS, EpisodeStatusValue),
            (RuleType.IS_BOOKMARKED, Comparison.EQUALS, BooleanValue),
            (RuleType.TITLE, Comparison.STARTS_WITH, StringValue),
            (RuleType.PUB_DATE, Comparison.BEFORE, DateValue),
            (RuleType.PUB_DATE, Comparison.BETWEEN, DateRangeValue),
            (RuleType.DATE_ADDED, Comparison.WITHIN, RelativeDateValue),
            (RuleType.DURATION, Comparison.GREATER_THAN, TimeIntervalValue),
            (RuleType.PLAYBACK_POSITION, Comparison.BETWEEN, NumberRangeValue),
            (RuleType.RATING, Comparison.EQUALS, IntegerValue),
            (RuleType.RATING, Comparison.BETWEEN, NumberRangeValue),
        ],
    )
    def test_variant(self, rule_type: RuleType, comparison: Comparison, expected: type) -> None:
        assert expected_value_type(rule_type, comparison) is expected


class TestRuleValidation:
    def test_valid_rule(self) -> None:
        rule = Rule(RuleType.RATING, Comparison.GREATER_THAN, IntegerValue(3))

        assert rule.id
        assert not rule.is_negated

    def test_rejects_unavailable_comparison(self) -> None:
        with pytest.raises(RuleValidationError, match="not valid"):
            Rule(RuleType.TITLE, Comparison.GREATER_THAN, StringValue("x"))

    def test_rejects_mismatched_value(self) -> None:
        with pytest.raises(RuleValidationError, match="requires a string value"):
            Rule(RuleType.TITLE, Comparison.CONTAINS, IntegerValue(3))

    def test_rejects_relative_period_with_before(self) -> None:
        with pytest.raises(RuleValidationError):
            Rule(
                RuleType.PUB_DATE,
                Comparison.BEFORE,
                RelativeDateValue(RelativeDatePeriod.LAST_7_DAYS),
            )

    def test_double_value_is_never_expected(self) -> None:
        with pytest.raises(RuleValidationError):
            Rule(RuleType.DURATION, Comparison.EQUALS, DoubleValue(1.5))

    def test_rejects_inverted_number_range(self) -> None:
        with pytest.raises(RuleValidationError, match="starts after it ends"):
            Rule(RuleType.DURATION, Comparison.BETWEEN, NumberRangeValue(600, 60))

    def test_rejects_inverted_date_range(self) -> None:
        start = datetime(2024, 2, 1, tzinfo=UTC)
        with pytest.raises(RuleValidationError):
            Rule(RuleType.PUB_DATE, Comparison.BETWEEN, DateRangeValue(start, start - timedelta(1)))

    def test_equal_range_bounds_are_allowed(self) -> None:
        Rule(RuleType.RATING, Comparison.BETWEEN, NumberRangeValue(4, 4))

    def test_validation_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            Rule(RuleType.IS_FAVORITED, Comparison.CONTAINS, BooleanValue(True))


class TestRuleDescription:
    def test_description(self) -> None:
        rule = Rule(RuleType.RATING, Comparison.GREATER_THAN, IntegerValue(3))
        assert rule.description == "Rating is greater than 3"

    def test_negated_description(self) -> None:
        rule = Rule(
            RuleType.PLAY_STATUS,
            Comparison.EQUALS,
            EpisodeStatusValue(EpisodePlayStatus.PLAYED),
            is_negated=True,
        )
        assert rule.description == "NOT (Play Status is Played)"

    def test_negated_toggles_and_keeps_id(self) -> None:
        rule = Rule(RuleType.TITLE, Comparison.CONTAINS, StringValue("news"))

        flipped = rule.negated()

        assert flipped.is_negated
        assert flipped.id == rule.id
        assert flipped.negated() == rule


class TestRuleValues:
    def test_base_class_is_abstract(self) -> None:
        with pytest.raises(TypeError):
            RuleValue()

    def test_variants_display_their_value(self) -> None:
        assert BooleanValue(True).display_value == "Yes"
        assert IntegerValue(4).display_value == "4"


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [(0, "0s"), (45, "45s"), (1800, "30m"), (3900, "1h 5m"), (3661, "1h 1m 1s")],
)
def test_format_interval(seconds: float, expected: str) -> None:
    assert format_interval(seconds) == expected


class TestSmartList:
    def test_defaults(self) -> None:
        smart_list = SmartList(name="Everything", rules=RuleSet())

        assert smart_list.sort_by is SortBy.PUB_DATE_NEWEST
        assert smart_list.max_episodes is None
        assert smart_list.auto_update

    @pytest.mark.parametrize("limit", [0, -3])
    def test_rejects_non_positive_limit(self, limit: int) -> None:
        with pytest.raises(RuleValidationError):
            SmartList(name="Bad", rules=RuleSet(), max_episodes=limit)

    def test_needs_update_after_interval(self) -> None:
        updated = datetime(2024, 1, 1, 12, tzinfo=UTC)
        smart_list = SmartList(name="L", rules=RuleSet(), last_updated=updated)

        assert not smart_list.needs_update(updated + timedelta(seconds=299))
        assert smart_list.needs_update(updated + timedelta(seconds=300))

    def test_naive_last_updated_is_utc(self) -> None:
        smart_list = SmartList(name="L", rules=RuleSet(), last_updated=datetime(2024, 1, 1, 12))

        assert not smart_list.needs_update(datetime(2024, 1, 1, 12, 4, tzinfo=UTC))
        assert smart_list.needs_update(datetime(2024, 1, 1, 12, 5, tzinfo=UTC))

    def test_naive_now_is_utc(self) -> None:
        updated = datetime(2024, 1, 1, 12, tzinfo=UTC)
        smart_list = SmartList(name="L", rules=RuleSet(), last_updated=updated)

        assert not smart_list.needs_update(datetime(2024, 1, 1, 12, 4))
        assert smart_list.needs_update(datetime(2024, 6, 1))

    def test_manual_lists_never_need_update(self) -> None:
        updated = datetime(2024, 1, 1, tzinfo=UTC)
        smart_list = SmartList(name="L", rules=RuleSet(), auto_update=False, last_updated=updated)

        assert not smart_list.needs_update(updated + timedelta(days=30))

    def test_with_last_updated(self) -> None:
        smart_list = SmartList(name="L", rules=RuleSet())
        moment = datetime(2030, 1, 1, tzinfo=UTC)

        assert smart_list.with_last_updated(moment).last_updated == moment

    def test_rule_set_converts_to_tuple(self) -> None:
        rule = Rule(RuleType.IS_FAVORITED, Comparison.EQUALS, BooleanValue(True))
        rule_set = RuleSet([rule])

        assert rule_set.rules == (rule,)
        assert len(rule_set) == 1
        assert not rule_set.is_empty


class TestBuiltins:
    def test_builtin_ids_are_unique(self) -> None:
        ids = [smart_list.id for smart_list in BUILTIN_SMART_LISTS]
        assert len(ids) == len(set(ids))

    def test_builtins_are_system_generated(self) -> None:
        assert all(smart_list.is_system_generated for smart_list in BUILTIN_SMART_LISTS)

    def test_lookup(self) -> None:
        smart_list = get_builtin_smart_list("highly_rated")

        assert smart_list is not None
        assert smart_list.sort_by is SortBy.RATING

    def test_lookup_unknown(self) -> None:
        assert get_builtin_smart_list("nope") is None

    def test_templates_have_rules(self) -> None:
        assert BUILTIN_TEMPLATES
        assert all(not template.rules.is_empty for template in BUILTIN_TEMPLATES)
