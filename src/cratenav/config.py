"""Application configuration defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

DEFAULT_METADATA_FILENAME = "ro-crate-metadata.json"
ENV_PREFIX = "CRATENAV_"


def _env_float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(ENV_PREFIX + key)
    if raw is None or not raw.strip():
        return default
    return float(raw)


def _env_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(ENV_PREFIX + key)
    if raw is None or not raw.strip():
        return default
    return int(raw)


@dataclass(slots=True)
class AppConfig:
    cors_proxy_url: str = ""
    metadata_filename: str = DEFAULT_METADATA_FILENAME
    request_timeout: float = 30.0
    search_threshold: float = 0.3
    min_match_chars: int = 2
    search_limit: int = 50
    max_flatten_depth: int = 10
    part_property: str = "hasPart"

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "AppConfig":
        """Build a config from ``CRATENAV_*`` environment variables."""
        env = os.environ if env is None else env
        defaults = cls()
        return cls(
            cors_proxy_url=env.get(ENV_PREFIX + "CORS_PROXY_URL", defaults.cors_proxy_url),
            metadata_filename=env.get(
                ENV_PREFIX + "METADATA_FILENAME", defaults.metadata_filename
            ),
            request_timeout=_env_float(env, "REQUEST_TIMEOUT", defaults.request_timeout),
            search_threshold=_env_float(env, "SEARCH_THRESHOLD", defaults.search_threshold),
            min_match_chars=_env_int(env, "MIN_MATCH_CHARS", defaults.min_match_chars),
            search_limit=_env_int(env, "SEARCH_LIMIT", defaults.search_limit),
            max_flatten_depth=_env_int(env, "MAX_FLATTEN_DEPTH", defaults.max_flatten_depth),
            part_property=env.get(ENV_PREFIX + "PART_PROPERTY", defaults.part_property),
        )

    def proxied_url(self, url: str) -> str:
        """Prefix ``url`` with the CORS proxy, if one is configured."""
        if not self.cors_proxy_url:
            return url
        proxy = self.cors_proxy_url if self.cors_proxy_url.endswith("/") else f"{self.cors_proxy_url}/"
        return f"{proxy}{url}"
