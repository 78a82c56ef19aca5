"""Core modules for podlists."""

from podlists.core.config import (
    Config,
    EvaluationConfig,
    SearchConfig,
    SmartListConfig,
    get_config,
    load_config,
)
from podlists.core.errors import (
    CodecError,
    ConfigError,
    PodlistsError,
    QueryShapeError,
    RuleValidationError,
)
from podlists.core.evaluator import (
    evaluate,
    evaluate_smart_list,
    matches,
    sort_and_limit,
    sort_episodes,
)
from podlists.core.periods import EvaluationContext, RelativeDatePeriod, Weekday
from podlists.core.search import (
    BooleanOperator,
    SearchField,
    SearchQuery,
    SearchResult,
    SearchTerm,
    format_query,
    parse_query,
    search_episodes,
)

__all__ = [
    "Config",
    "EvaluationConfig",
    "SearchConfig",
    "SmartListConfig",
    "get_config",
    "load_config",
    "CodecError",
    "ConfigError",
    "PodlistsError",
    "QueryShapeError",
    "RuleValidationError",
    "evaluate",
    "evaluate_smart_list",
    "matches",
    "sort_and_limit",
    "sort_episodes",
    "EvaluationContext",
    "RelativeDatePeriod",
    "Weekday",
    "BooleanOperator",
    "SearchField",
    "SearchQuery",
    "SearchResult",
    "SearchTerm",
    "format_query",
    "parse_query",
    "search_episodes",
]
