"""Plain-dict interchange format for episodes, rules, smart lists and queries.

Enum members are written as their string values, datetimes as ISO-8601
strings and rule values as ``{"kind": ..., ...}`` objects, so everything
round-trips through JSON.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any, TypeVar

from podlists.core.errors import CodecError, PodlistsError
from podlists.core.models import Episode, EpisodeDownloadStatus, EpisodePlayStatus
from podlists.core.periods import RelativeDatePeriod
from podlists.core.rules import (
    DEFAULT_REFRESH_INTERVAL,
    BooleanValue,
    Comparison,
    DateRangeValue,
    DateValue,
    DoubleValue,
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
from podlists.core.search import BooleanOperator, SearchField, SearchQuery, SearchTerm

T = TypeVar("T")


# Field helpers


def _require(data: dict[str, Any], key: str) -> Any:
    try:
        return data[key]
    except KeyError:
        raise CodecError(f"Missing required field '{key}'") from None


def _date_to_str(moment: datetime | None) -> str | None:
    return moment.isoformat() if moment is not None else None


def _date_from_str(value: Any, key: str) -> datetime:
    if not isinstance(value, str):
        raise CodecError(f"Field '{key}' must be an ISO-8601 string, got {type(value).__name__}")
    try:
        return datetime.fromisoformat(value)
    except ValueError as e:
        raise CodecError(f"Field '{key}' is not a valid ISO-8601 datetime: {value!r}") from e


def _optional_date(data: dict[str, Any], key: str) -> datetime | None:
    value = data.get(key)
    return None if value is None else _date_from_str(value, key)


def _enum(enum_cls: type[T], value: Any, key: str) -> T:
    try:
        return enum_cls(value)  # type: ignore[call-arg]
    except ValueError:
        allowed = ", ".join(str(m.value) for m in enum_cls)  # type: ignore[attr-defined]
        raise CodecError(f"Invalid {key} {value!r} (expected one of: {allowed})") from None


def _typed(data: dict[str, Any], key: str, kind: type | tuple[type, ...], default: Any = ...) -> Any:
    value = _require(data, key) if default is ... else data.get(key, default)
    if value is None and default is None:
        return None
    # bool is an int subclass; keep the two apart
    if isinstance(value, bool) and bool not in (kind if isinstance(kind, tuple) else (kind,)):
        raise CodecError(f"Field '{key}' has the wrong type: bool")
    if not isinstance(value, kind):
        raise CodecError(f"Field '{key}' has the wrong type: {type(value).__name__}")
    return value


def _mapping(data: Any, what: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise CodecError(f"Expected an object for {what}, got {type(data).__name__}")
    return data


# Episodes


def _episode_to_dict(episode: Episode) -> dict[str, Any]:
    return {
        "id": episode.id,
        "title": episode.title,
        "podcast_title": episode.podcast_title,
        "podcast_id": episode.podcast_id,
        "pub_date": _date_to_str(episode.pub_date),
        "date_added": _date_to_str(episode.date_added),
        "duration": episode.duration,
        "playback_position": episode.playback_position,
        "rating": episode.rating,
        "is_played": episode.is_played,
        "is_favorited": episode.is_favorited,
        "is_bookmarked": episode.is_bookmarked,
        "is_archived": episode.is_archived,
        "download_status": episode.download_status.value,
        "description": episode.description,
    }


def _episode_from_dict(data: dict[str, Any]) -> Episode:
    kwargs: dict[str, Any] = {
        "id": _typed(data, "id", str),
        "title": _typed(data, "title", str),
        "podcast_title": _typed(data, "podcast_title", str, ""),
        "podcast_id": _typed(data, "podcast_id", str, None),
        "pub_date": _optional_date(data, "pub_date"),
        "duration": _typed(data, "duration", (int, float), None),
        "playback_position": _typed(data, "playback_position", int, 0),
        "rating": _typed(data, "rating", int, None),
        "is_played": _typed(data, "is_played", bool, False),
        "is_favorited": _typed(data, "is_favorited", bool, False),
        "is_bookmarked": _typed(data, "is_bookmarked", bool, False),
        "is_archived": _typed(data, "is_archived", bool, False),
        "download_status": _enum(
            EpisodeDownloadStatus,
            data.get("download_status", EpisodeDownloadStatus.NOT_DOWNLOADED.value),
            "download_status",
        ),
        "description": _typed(data, "description", str, None),
    }
    if data.get("date_added") is not None:
        kwargs["date_added"] = _date_from_str(data["date_added"], "date_added")
    if kwargs["duration"] is not None:
        kwargs["duration"] = float(kwargs["duration"])
    return Episode(**kwargs)


# Rule values


def _value_to_dict(value: RuleValue) -> dict[str, Any]:
    if isinstance(value, (BooleanValue, IntegerValue, DoubleValue, StringValue)):
        return {"kind": value.kind, "value": value.value}
    if isinstance(value, DateValue):
        return {"kind": value.kind, "value": value.value.isoformat()}
    if isinstance(value, DateRangeValue):
        return {
            "kind": value.kind,
            "start": value.start.isoformat(),
            "end": value.end.isoformat(),
        }
    if isinstance(value, TimeIntervalValue):
        return {"kind": value.kind, "seconds": value.seconds}
    if isinstance(value, NumberRangeValue):
        return {"kind": value.kind, "low": value.low, "high": value.high}
    if isinstance(value, RelativeDateValue):
        return {"kind": value.kind, "period": value.period.value}
    if isinstance(value, (EpisodeStatusValue, DownloadStatusValue)):
        return {"kind": value.kind, "status": value.status.value}
    raise CodecError(f"Cannot encode rule value of type {type(value).__name__}")


def _value_from_dict(data: dict[str, Any]) -> RuleValue:
    kind = _require(data, "kind")

    if kind == BooleanValue.kind:
        return BooleanValue(_typed(data, "value", bool))
    if kind == IntegerValue.kind:
        return IntegerValue(_typed(data, "value", int))
    if kind == DoubleValue.kind:
        return DoubleValue(float(_typed(data, "value", (int, float))))
    if kind == StringValue.kind:
        return StringValue(_typed(data, "value", str))
    if kind == DateValue.kind:
        return DateValue(_date_from_str(_require(data, "value"), "value"))
    if kind == DateRangeValue.kind:
        return DateRangeValue(
            _date_from_str(_require(data, "start"), "start"),
            _date_from_str(_require(data, "end"), "end"),
        )
    if kind == TimeIntervalValue.kind:
        return TimeIntervalValue(float(_typed(data, "seconds", (int, float))))
    if kind == NumberRangeValue.kind:
        return NumberRangeValue(
            float(_typed(data, "low", (int, float))),
            float(_typed(data, "high", (int, float))),
        )
    if kind == RelativeDateValue.kind:
        return RelativeDateValue(_enum(RelativeDatePeriod, _require(data, "period"), "period"))
    if kind == EpisodeStatusValue.kind:
        return EpisodeStatusValue(_enum(EpisodePlayStatus, _require(data, "status"), "status"))
    if kind == DownloadStatusValue.kind:
        return DownloadStatusValue(
            _enum(EpisodeDownloadStatus, _require(data, "status"), "status")
        )
    raise CodecError(f"Unknown rule value kind {kind!r}")


# Rules and smart lists


def _rule_to_dict(rule: Rule) -> dict[str, Any]:
    return {
        "id": rule.id,
        "type": rule.type.value,
        "comparison": rule.comparison.value,
        "value": _value_to_dict(rule.value),
        "is_negated": rule.is_negated,
    }


def _rule_from_dict(data: dict[str, Any]) -> Rule:
    rule_type = _enum(RuleType, _require(data, "type"), "rule type")
    comparison = _enum(Comparison, _require(data, "comparison"), "comparison")
    value = _value_from_dict(_mapping(_require(data, "value"), "rule value"))
    is_negated = _typed(data, "is_negated", bool, False)
    try:
        if "id" in data:
            return Rule(rule_type, comparison, value, is_negated, id=_typed(data, "id", str))
        return Rule(rule_type, comparison, value, is_negated)
    except PodlistsError as e:
        raise CodecError(f"Invalid rule: {e}") from e


def _rule_set_to_dict(rule_set: RuleSet) -> dict[str, Any]:
    return {
        "logic": rule_set.logic.value,
        "rules": [_rule_to_dict(rule) for rule in rule_set.rules],
    }


def _rule_set_from_dict(data: dict[str, Any]) -> RuleSet:
    rules = _typed(data, "rules", list, [])
    return RuleSet(
        tuple(_rule_from_dict(_mapping(item, "rule")) for item in rules),
        _enum(Logic, data.get("logic", Logic.AND.value), "logic"),
    )


def _smart_list_to_dict(smart_list: SmartList) -> dict[str, Any]:
    return {
        "id": smart_list.id,
        "name": smart_list.name,
        "description": smart_list.description,
        "rules": _rule_set_to_dict(smart_list.rules),
        "sort_by": smart_list.sort_by.value,
        "max_episodes": smart_list.max_episodes,
        "auto_update": smart_list.auto_update,
        "refresh_interval": smart_list.refresh_interval,
        "created_at": _date_to_str(smart_list.created_at),
        "last_updated": _date_to_str(smart_list.last_updated),
        "is_system_generated": smart_list.is_system_generated,
    }


def _smart_list_from_dict(
    data: dict[str, Any],
    default_sort: SortBy = SortBy.PUB_DATE_NEWEST,
    default_refresh_interval: float = DEFAULT_REFRESH_INTERVAL,
) -> SmartList:
    kwargs: dict[str, Any] = {
        "name": _typed(data, "name", str),
        "rules": _rule_set_from_dict(_mapping(_require(data, "rules"), "rule set")),
        "description": _typed(data, "description", str, None),
        "sort_by": _enum(SortBy, data.get("sort_by", default_sort.value), "sort_by"),
        "max_episodes": _typed(data, "max_episodes", int, None),
        "auto_update": _typed(data, "auto_update", bool, True),
        "is_system_generated": _typed(data, "is_system_generated", bool, False),
    }
    if "id" in data:
        kwargs["id"] = _typed(data, "id", str)
    refresh_interval = _typed(data, "refresh_interval", (int, float), None)
    kwargs["refresh_interval"] = float(
        default_refresh_interval if refresh_interval is None else refresh_interval
    )
    for key in ("created_at", "last_updated"):
        if data.get(key) is not None:
            kwargs[key] = _date_from_str(data[key], key)
    try:
        return SmartList(**kwargs)
    except PodlistsError as e:
        raise CodecError(f"Invalid smart list: {e}") from e


# Search


def _term_to_dict(term: SearchTerm) -> dict[str, Any]:
    return {
        "text": term.text,
        "field": term.field.value if term.field is not None else None,
        "is_negated": term.is_negated,
        "is_phrase": term.is_phrase,
    }


def _term_from_dict(data: dict[str, Any]) -> SearchTerm:
    field_value = data.get("field")
    return SearchTerm(
        _typed(data, "text", str),
        _enum(SearchField, field_value, "field") if field_value is not None else None,
        _typed(data, "is_negated", bool, False),
        _typed(data, "is_phrase", bool, False),
    )


def _query_to_dict(query: SearchQuery) -> dict[str, Any]:
    return {
        "terms": [_term_to_dict(term) for term in query.terms],
        "operators": [operator.value for operator in query.operators],
    }


def _query_from_dict(data: dict[str, Any]) -> SearchQuery:
    terms = _typed(data, "terms", list, [])
    operators = _typed(data, "operators", list, [])
    try:
        return SearchQuery(
            tuple(_term_from_dict(_mapping(item, "search term")) for item in terms),
            tuple(_enum(BooleanOperator, item, "operator") for item in operators),
        )
    except PodlistsError as e:
        raise CodecError(f"Invalid search query: {e}") from e


# Public API

_ENCODERS: dict[type, Callable[[Any], dict[str, Any]]] = {
    Episode: _episode_to_dict,
    Rule: _rule_to_dict,
    RuleSet: _rule_set_to_dict,
    SmartList: _smart_list_to_dict,
    SearchTerm: _term_to_dict,
    SearchQuery: _query_to_dict,
}

_DECODERS: dict[type, Callable[[dict[str, Any]], Any]] = {
    Episode: _episode_from_dict,
    RuleValue: _value_from_dict,
    Rule: _rule_from_dict,
    RuleSet: _rule_set_from_dict,
    SmartList: _smart_list_from_dict,
    SearchTerm: _term_from_dict,
    SearchQuery: _query_from_dict,
}


def to_dict(obj: object) -> dict[str, Any]:
    """Encode a domain object as a JSON-compatible dict.

    Raises:
        CodecError: If the object's type has no encoding.
    """
    if isinstance(obj, RuleValue):
        return _value_to_dict(obj)
    encoder = _ENCODERS.get(type(obj))
    if encoder is None:
        raise CodecError(f"Cannot encode objects of type {type(obj).__name__}")
    return encoder(obj)


def from_dict(cls: type[T], data: Any) -> T:
    """Decode a dict produced by `to_dict` back into an instance of ``cls``.

    ``cls`` may be `RuleValue` or any of its variants; the ``kind`` field
    picks the variant.

    Raises:
        CodecError: If the data is malformed or ``cls`` has no decoding.
    """
    mapping = _mapping(data, cls.__name__)
    if issubclass(cls, RuleValue):
        value = _value_from_dict(mapping)
        if not isinstance(value, cls):
            raise CodecError(f"Expected a {cls.__name__}, got kind {mapping['kind']!r}")
        return value
    decoder = _DECODERS.get(cls)
    if decoder is None:
        raise CodecError(f"Cannot decode objects of type {cls.__name__}")
    return decoder(mapping)


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text())
    except FileNotFoundError:
        raise CodecError(f"File not found: {path}") from None
    except json.JSONDecodeError as e:
        raise CodecError(f"Invalid JSON in {path}: {e}") from e


def load_episodes(path: Path) -> list[Episode]:
    """Read a JSON file holding a list of episode objects.

    A top-level object with an ``episodes`` key is accepted too.
    """
    data = _read_json(path)
    if isinstance(data, dict):
        data = data.get("episodes")
    if not isinstance(data, list):
        raise CodecError(f"Expected a list of episodes in {path}")
    return [from_dict(Episode, item) for item in data]


def load_smart_list(
    path: Path,
    default_sort: SortBy = SortBy.PUB_DATE_NEWEST,
    default_refresh_interval: float = DEFAULT_REFRESH_INTERVAL,
) -> SmartList:
    """Read a smart list from a JSON file.

    ``default_sort`` and ``default_refresh_interval`` fill in a list that
    leaves ``sort_by`` or ``refresh_interval`` out.
    """
    data = _mapping(_read_json(path), SmartList.__name__)
    return _smart_list_from_dict(data, default_sort, default_refresh_interval)
