"""Configuration loader for storage, relay and auth settings."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Mapping, MutableMapping, Optional

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:  # pragma: no cover
    import tomli as tomllib  # type: ignore

from pydantic import BaseModel


BASE_DIR = Path(__file__).resolve().parents[1]
DEFAULT_CONFIG_PATH = BASE_DIR.parent / "config" / "settings.toml"


class StorageSettings(BaseModel):
    endpoint: str = ""
    region: str = "auto"
    access_key: str = ""
    secret_key: str = ""
    bucket: str = ""
    domain: str = ""  # Public domain; resolved URLs become {domain}/{key}


class RelaySettings(BaseModel):
    max_attempts: int = 3
    base_delay_seconds: float = 1.0
    fetch_timeout_seconds: float = 30.0
    empty_body_retryable: bool = True


class AuthSettings(BaseModel):
    api_tokens: str = ""

    def token_set(self) -> set[str]:
        return {item.strip() for item in self.api_tokens.split(",") if item.strip()}


class AppSettings(BaseModel):
    storage: StorageSettings = StorageSettings()
    relay: RelaySettings = RelaySettings()
    auth: AuthSettings = AuthSettings()


def _load_toml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("rb") as fp:
        return tomllib.load(fp)


def _get_env_with_fallback(env_name: str) -> str | None:
    """Read ``env_name``, falling back to its lowercase/hyphenated form.

    Some container platforms only accept lowercase alphanumeric names with
    hyphens, so ``STORAGE_BUCKET`` may arrive as ``storage-bucket``. Empty
    strings are treated as unset so they don't override settings.toml.
    """
    value = os.getenv(env_name)
    if value is not None and value != "":
        return value
    value = os.getenv(env_name.lower().replace("_", "-"))
    if value is not None and value != "":
        return value
    return None


SECTION_MAPPING: Dict[str, Dict[str, str]] = {
    "storage": {
        "STORAGE_ENDPOINT": "endpoint",
        "STORAGE_REGION": "region",
        "STORAGE_ACCESS_KEY": "access_key",
        "STORAGE_SECRET_KEY": "secret_key",
        "STORAGE_BUCKET": "bucket",
        "STORAGE_DOMAIN": "domain",
    },
    "relay": {
        "RELAY_MAX_ATTEMPTS": "max_attempts",
        "RELAY_BASE_DELAY": "base_delay_seconds",
        "RELAY_FETCH_TIMEOUT": "fetch_timeout_seconds",
        "RELAY_EMPTY_BODY_RETRYABLE": "empty_body_retryable",
    },
    "auth": {
        "API_TOKENS": "api_tokens",
    },
}


def _env_override() -> Dict[str, Any]:
    result: Dict[str, Any] = {}
    for section, mapping in SECTION_MAPPING.items():
        values = {field: _get_env_with_fallback(env_name) for env_name, field in mapping.items()}
        filtered = {k: v for k, v in values.items() if v is not None}
        if filtered:
            result[section] = filtered
    return result


def _deep_merge(base: MutableMapping[str, Any], overrides: Mapping[str, Any]) -> MutableMapping[str, Any]:
    for key, value in overrides.items():
        if isinstance(value, Mapping):
            node = base.setdefault(key, {})
            if isinstance(node, MutableMapping):
                _deep_merge(node, value)
            else:
                base[key] = value
        else:
            base[key] = value
    return base


def _normalize_config(data: Dict[str, Any]) -> Dict[str, Any]:
    normalized: Dict[str, Any] = {}
    for section, values in data.items():
        mapping = SECTION_MAPPING.get(section, {})
        normalized_section: Dict[str, Any] = {}
        if isinstance(values, Mapping):
            for key, value in values.items():
                normalized_key = mapping.get(key, key.lower())
                normalized_section[normalized_key] = value
        normalized[section] = normalized_section
    return normalized


def load_settings(config_path: Optional[Path] = None) -> AppSettings:
    """Load settings from a TOML file, overridden by environment variables."""

    path = config_path or DEFAULT_CONFIG_PATH
    data: Dict[str, Any] = _normalize_config(_load_toml(path))
    merged = _deep_merge(data, _env_override())
    return AppSettings(**merged)


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Cached accessor using the default configuration path."""

    return load_settings()


__all__ = [
    "AppSettings",
    "AuthSettings",
    "RelaySettings",
    "StorageSettings",
    "get_settings",
    "load_settings",
]
