from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from typing import Any, Mapping

from .errors import ConfigError, InvalidOptions


REQUIRED_KEYS = [
    "CART_MATCHER_SEARCH_URL",
    "CART_MATCHER_API_TOKEN",
]

OPTIONAL_KEYS = [
    "CART_MATCHER_PRICING_URL",
    "CART_MATCHER_ZIP_CODE",
    "CART_MATCHER_TIMEOUT_S",
    "CART_MATCHER_LOG_LEVEL",
]

_PLACEHOLDERS = {"PLACEHOLDER", "MASKED", "CHANGEME", ""}


@dataclass(frozen=True)
class ValidationOptions:
    include_alternatives: bool = True
    min_confidence: float = 0.0
    max_alternatives: int = 3
    include_pricing: bool = True
    window_size: int = 3
    pacing_delay_ms: int = 500
    cache_ttl_ms: int = 15 * 60 * 1000

    # Candidates requested from the search provider per item.
    max_results: int = 10
    retailer_id: str | None = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.min_confidence <= 1.0:
            raise InvalidOptions(f"min_confidence must be within [0, 1], got {self.min_confidence}")
        if self.max_alternatives < 0:
            raise InvalidOptions(f"max_alternatives must be >= 0, got {self.max_alternatives}")
        if self.window_size < 1:
            raise InvalidOptions(f"window_size must be >= 1, got {self.window_size}")
        if self.pacing_delay_ms < 0:
            raise InvalidOptions(f"pacing_delay_ms must be >= 0, got {self.pacing_delay_ms}")
        if self.cache_ttl_ms < 0:
            raise InvalidOptions(f"cache_ttl_ms must be >= 0, got {self.cache_ttl_ms}")
        if self.max_results < 1:
            raise InvalidOptions(f"max_results must be >= 1, got {self.max_results}")

    @property
    def pacing_delay_s(self) -> float:
        return self.pacing_delay_ms / 1000.0

    @property
    def cache_ttl_s(self) -> float:
        return self.cache_ttl_ms / 1000.0

    def with_changes(self, **changes: Any) -> "ValidationOptions":
        return replace(self, **changes)

    @staticmethod
    def from_dict(values: Mapping[str, Any]) -> "ValidationOptions":
        """Build options from snake_case or camelCase keys; unknown keys are ignored."""
        known = {f.name for f in fields(ValidationOptions)}
        kwargs: dict[str, Any] = {}
        for key, val in values.items():
            name = _snake(key)
            if name in known:
                kwargs[name] = val
        return ValidationOptions(**kwargs)


def _snake(key: str) -> str:
    out = []
    for ch in key:
        if ch.isupper():
            out.append("_")
            out.append(ch.lower())
        else:
            out.append(ch)
    return "".join(out)


@dataclass(frozen=True)
class Config:
    search_url: str
    api_token: str
    pricing_url: str | None = None
    zip_code: str = "95670"
    timeout_s: float = 30.0

    @staticmethod
    def load_from_env(environ: Mapping[str, str] | None = None) -> "Config":
        env = os.environ if environ is None else environ

        values: dict[str, str] = {}
        for k in REQUIRED_KEYS:
            if k not in env:
                raise ConfigError(f"Missing environment variable: {k}")
            val = env[k]
            if not val or val.strip() in _PLACEHOLDERS:
                raise ConfigError(f"Environment variable {k} is still a placeholder")
            values[k] = val

        timeout = env.get("CART_MATCHER_TIMEOUT_S") or "30"
        try:
            timeout_s = float(timeout)
        except ValueError:
            raise ConfigError(f"CART_MATCHER_TIMEOUT_S is not a number: {timeout!r}")

        pricing_url = (env.get("CART_MATCHER_PRICING_URL") or "").strip()
        return Config(
            search_url=values["CART_MATCHER_SEARCH_URL"].rstrip("/"),
            api_token=values["CART_MATCHER_API_TOKEN"],
            pricing_url=pricing_url.rstrip("/") or None,
            zip_code=(env.get("CART_MATCHER_ZIP_CODE") or "95670").strip(),
            timeout_s=timeout_s,
        )
