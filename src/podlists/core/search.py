"""Advanced episode search queries.

A query is a sequence of terms joined by AND/OR operators, evaluated strictly
left to right with no precedence. Terms may be scoped to one field
(``title:news``), negated (``-news``) or quoted as phrases.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum

from podlists.core.errors import QueryShapeError
from podlists.core.models import Episode
from podlists.core.periods import as_aware

logger = logging.getLogger(__name__)


class BooleanOperator(Enum):
    """Operator joining two adjacent search terms."""

    AND = "AND"
    OR = "OR"

    @property
    def display_name(self) -> str:
        return self.value.lower()


class SearchField(Enum):
    """Episode field a search term can be restricted to."""

    TITLE = "title"
    DESCRIPTION = "description"
    PODCAST = "podcast"
    DURATION = "duration"
    DATE = "date"

    @property
    def display_name(self) -> str:
        return self.value.title()


# Fields searched by terms without an explicit field
DEFAULT_FIELDS = (SearchField.TITLE, SearchField.DESCRIPTION, SearchField.PODCAST)

# Relative importance of a hit in each field
FIELD_WEIGHTS = {
    SearchField.TITLE: 3.0,
    SearchField.PODCAST: 2.0,
    SearchField.DESCRIPTION: 1.0,
    SearchField.DURATION: 0.5,
    SearchField.DATE: 0.5,
}

# Score for a full match in each field before weighting
BASE_SCORES = {
    SearchField.TITLE: 10.0,
    SearchField.PODCAST: 7.0,
    SearchField.DESCRIPTION: 5.0,
    SearchField.DURATION: 3.0,
    SearchField.DATE: 3.0,
}

# Words that would be read back as operators if left unquoted
OPERATOR_KEYWORDS = frozenset({"AND", "OR", "NOT"})


@dataclass(frozen=True)
class SearchTerm:
    """One atomic text-matching unit of a query."""

    text: str
    field: SearchField | None = None
    is_negated: bool = False
    is_phrase: bool = False


@dataclass(frozen=True)
class SearchQuery:
    """Terms joined by positional boolean operators.

    ``operators[i]`` joins ``terms[i]`` and ``terms[i + 1]``, so there is
    always exactly one operator fewer than there are terms.
    """

    terms: tuple[SearchTerm, ...] = ()
    operators: tuple[BooleanOperator, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "terms", tuple(self.terms))
        object.__setattr__(self, "operators", tuple(self.operators))
        expected = max(0, len(self.terms) - 1)
        if len(self.operators) != expected:
            raise QueryShapeError(
                f"A query with {len(self.terms)} terms needs {expected} operators, "
                f"got {len(self.operators)}"
            )

    @classmethod
    def from_parts(
        cls,
        terms: Sequence[SearchTerm],
        operators: Sequence[BooleanOperator] = (),
    ) -> SearchQuery:
        """Build a query, padding missing operators with AND and dropping extras."""
        return cls(tuple(terms), tuple(_normalize_operators(len(terms), operators)))

    @property
    def is_empty(self) -> bool:
        return not self.terms

    @property
    def text(self) -> str:
        return format_query(self.terms, self.operators)


def _normalize_operators(
    term_count: int,
    operators: Sequence[BooleanOperator],
) -> list[BooleanOperator]:
    needed = max(0, term_count - 1)
    normalized = list(operators[:needed])
    if len(normalized) < needed:
        logger.debug(
            "Padding %d missing operator(s) with AND", needed - len(normalized)
        )
        normalized.extend([BooleanOperator.AND] * (needed - len(normalized)))
    return normalized


# Formatting


def _quote(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _is_ambiguous(text: str) -> bool:
    """Check whether raw text would be misread by the query parser."""
    return (
        not text
        or any(ch.isspace() for ch in text)
        or '"' in text
        or ":" in text
        or text.startswith("-")
        or text.upper() in OPERATOR_KEYWORDS
    )


def format_term(term: SearchTerm) -> str:
    """Render one term as query text.

    Phrases are always quoted; other text is quoted only when it would be
    ambiguous (whitespace, quotes, colons, a leading dash or an operator
    keyword). Embedded backslashes and quotes are escaped inside quotes.
    """
    prefix = "-" if term.is_negated else ""
    if term.field is not None:
        prefix += f"{term.field.value}:"

    if term.is_phrase or _is_ambiguous(term.text):
        return prefix + _quote(term.text)
    return prefix + term.text


def format_query(
    terms: Sequence[SearchTerm],
    operators: Sequence[BooleanOperator],
) -> str:
    """Render terms and operators as a single query string.

    Operators are applied positionally. When fewer than ``len(terms) - 1``
    operators are given, the missing ones are rendered as AND; surplus
    operators are ignored.

    Example:
        >>> format_query(
        ...     [SearchTerm("news", SearchField.TITLE),
        ...      SearchTerm("30 minutes", SearchField.DURATION, is_negated=True)],
        ...     [BooleanOperator.AND],
        ... )
        'title:news AND -duration:"30 minutes"'
    """
    if not terms:
        return ""

    joined = _normalize_operators(len(terms), operators)
    parts = [format_term(terms[0])]
    for operator, term in zip(joined, terms[1:]):
        parts.append(operator.value)
        parts.append(format_term(term))
    return " ".join(parts)


# Parsing


def _tokenize(text: str) -> list[str]:
    """Split on whitespace outside double quotes, keeping quotes and escapes."""
    tokens: list[str] = []
    current: list[str] = []
    in_quotes = False
    escaped = False

    for char in text:
        if escaped:
            current.append(char)
            escaped = False
        elif in_quotes and char == "\\":
            current.append(char)
            escaped = True
        elif char == '"':
            in_quotes = not in_quotes
            current.append(char)
        elif char.isspace() and not in_quotes:
            if current:
                tokens.append("".join(current))
                current = []
        else:
            current.append(char)

    if current:
        tokens.append("".join(current))
    return tokens


def _unescape(body: str) -> str:
    result: list[str] = []
    chars = iter(body)
    for char in chars:
        if char == "\\":
            result.append(next(chars, "\\"))
        else:
            result.append(char)
    return "".join(result)


def _is_quoted(token: str) -> bool:
    """True when the token is one complete quoted string."""
    if len(token) < 2 or not (token.startswith('"') and token.endswith('"')):
        return False
    return _tokenize(token) == [token] and _closing_quote_index(token) == len(token) - 1


def _closing_quote_index(token: str) -> int:
    escaped = False
    for index, char in enumerate(token[1:], start=1):
        if escaped:
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == '"':
            return index
    return -1


def parse_term(token: str, negated: bool = False) -> SearchTerm:
    """Parse one query token into a search term."""
    text = token
    if len(text) > 1 and text.startswith("-"):
        negated = True
        text = text[1:]

    field = None
    if ":" in text and not text.startswith('"'):
        name, rest = text.split(":", 1)
        try:
            field = SearchField(name.lower())
            text = rest
        except ValueError:
            field = None

    if _is_quoted(text):
        return SearchTerm(_unescape(text[1:-1]), field, negated, is_phrase=True)
    return SearchTerm(text, field, negated)


def parse_query(text: str) -> SearchQuery:
    """Parse query text into terms and operators.

    ``AND``/``OR`` (any case) join terms; ``NOT`` negates the following term.
    Adjacent terms are joined with an implicit AND; operators with no term on
    one side are dropped, and when operators repeat the last one wins.
    """
    terms: list[SearchTerm] = []
    operators: list[BooleanOperator] = []
    pending_operator: BooleanOperator | None = None
    pending_negation = False

    for token in _tokenize(text.strip()):
        keyword = token.upper()
        if keyword in ("AND", "OR"):
            if terms:
                pending_operator = BooleanOperator(keyword)
            continue
        if keyword == "NOT":
            pending_negation = True
            continue

        if terms:
            operators.append(pending_operator or BooleanOperator.AND)
        terms.append(parse_term(token, negated=pending_negation))
        pending_operator = None
        pending_negation = False

    return SearchQuery(tuple(terms), tuple(operators))


# Matching


def _duration_words(seconds: float) -> str:
    hours, remainder = divmod(int(seconds), 3600)
    minutes = remainder // 60
    parts = []
    if hours:
        parts.append(f"{hours} hour" + ("s" if hours != 1 else ""))
    if minutes or not hours:
        parts.append(f"{minutes} minute" + ("s" if minutes != 1 else ""))
    return " ".join(parts)


def field_text(episode: Episode, field: SearchField) -> str:
    """Return the searchable text of one episode field."""
    if field is SearchField.TITLE:
        return episode.title
    if field is SearchField.DESCRIPTION:
        return episode.description or ""
    if field is SearchField.PODCAST:
        return episode.podcast_title
    if field is SearchField.DURATION:
        if episode.duration is None:
            return ""
        return _duration_words(episode.duration)
    if episode.pub_date is None:
        return ""
    published = as_aware(episode.pub_date)
    return f"{published:%Y-%m-%d} {published:%B} {published.day}, {published.year}"


def _field_score(text: str, term: SearchTerm, field: SearchField) -> float:
    haystack = text.casefold()
    needle = term.text.casefold()

    if term.is_phrase:
        if needle and needle in haystack:
            return BASE_SCORES[field]
        return 0.0

    words = needle.split()
    if not words:
        return 0.0
    found = sum(1 for word in words if word in haystack)
    return (found / len(words)) * BASE_SCORES[field]


def _fields_for(term: SearchTerm) -> tuple[SearchField, ...]:
    return (term.field,) if term.field is not None else DEFAULT_FIELDS


def term_score(term: SearchTerm, episode: Episode) -> float:
    """Weighted relevance of a term's text in an episode, ignoring negation."""
    return sum(
        _field_score(field_text(episode, field), term, field) * FIELD_WEIGHTS[field]
        for field in _fields_for(term)
    )


def term_matches(term: SearchTerm, episode: Episode) -> bool:
    """Check whether a term matches an episode; negation inverts the result."""
    return (term_score(term, episode) > 0) != term.is_negated


def query_matches(query: SearchQuery, episode: Episode) -> bool:
    """Fold term matches left to right with the query's operators.

    An empty query matches nothing.
    """
    if query.is_empty:
        return False

    result = term_matches(query.terms[0], episode)
    for operator, term in zip(query.operators, query.terms[1:]):
        if operator is BooleanOperator.AND:
            result = result and term_matches(term, episode)
        else:
            result = result or term_matches(term, episode)
    return result


@dataclass(frozen=True)
class SearchResult:
    """An episode matched by a query, with its relevance score."""

    episode: Episode
    score: float
    matched_fields: tuple[SearchField, ...] = ()


def _matched_fields(query: SearchQuery, episode: Episode) -> tuple[SearchField, ...]:
    fields: list[SearchField] = []
    for term in query.terms:
        if term.is_negated:
            continue
        for field in _fields_for(term):
            if field not in fields and _field_score(field_text(episode, field), term, field) > 0:
                fields.append(field)
    return tuple(fields)


def search_episodes(
    query: SearchQuery,
    episodes: Iterable[Episode],
    include_archived: bool = False,
) -> list[SearchResult]:
    """Run a query over episodes and rank the matches.

    Args:
        query: Parsed or built query.
        episodes: Episodes to search.
        include_archived: Search archived episodes too.

    Returns:
        Matching episodes ordered by descending score; equal scores keep
        input order.
    """
    if query.is_empty:
        return []

    results = []
    for episode in episodes:
        if episode.is_archived and not include_archived:
            continue
        if not query_matches(query, episode):
            continue
        score = sum(
            term_score(term, episode) for term in query.terms if not term.is_negated
        )
        results.append(SearchResult(episode, score, _matched_fields(query, episode)))

    return sorted(results, key=lambda result: result.score, reverse=True)
