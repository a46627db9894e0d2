class MatchEngineError(Exception):
    """Base exception for the project."""


class SearchUnavailable(MatchEngineError):
    """The search provider failed for one item."""


class CacheCorruption(MatchEngineError):
    """A cached entry did not hold a sequence of candidate products."""


class InvalidInput(MatchEngineError):
    """A cart item or option value that cannot be resolved."""


class PricingUnavailable(MatchEngineError):
    """The multi-store pricing lookup failed."""


class InvalidBatchInput(MatchEngineError, TypeError):
    """The batch itself is malformed (not a sequence of items)."""


class ConfigError(MatchEngineError, RuntimeError):
    """Missing or placeholder configuration."""


class InvalidOptions(MatchEngineError, ValueError):
    """An out-of-range validation option passed by the caller."""
