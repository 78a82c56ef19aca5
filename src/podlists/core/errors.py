"""Custom exceptions for podlists."""


class PodlistsError(Exception):
    """Base exception for all podlists errors."""

    pass


class ConfigError(PodlistsError):
    """Configuration-related errors."""

    pass


class RuleValidationError(PodlistsError, ValueError):
    """A rule, rule value or smart list was constructed with inconsistent data."""

    pass


class QueryShapeError(PodlistsError, ValueError):
    """A search query has the wrong number of boolean operators."""

    pass


class CodecError(PodlistsError):
    """Interchange data could not be decoded."""

    pass
