"""Helper utilities for detecting placeholder configuration values."""

from __future__ import annotations

from typing import Optional


def is_placeholder_value(value: str | None) -> bool:
    if not value:
        return True
    normalized = value.strip().lower()
    placeholders = [
        "replace-with",
        "your-",
        "changeme",
        "dummy",
    ]
    return any(token in normalized for token in placeholders)


def configured(value: str | None) -> Optional[str]:
    """Return ``value`` unless it is empty or a placeholder."""
    return None if is_placeholder_value(value) else value
