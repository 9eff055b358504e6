"""Shared utility functions."""
import re
from datetime import datetime
from typing import Dict, Union
from urllib.parse import quote

INVALID_TIME = "Invalid time"
AVATAR_URL_TEMPLATE = "https://api.dicebear.com/6.x/avataaars/svg?seed={seed}"
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def parse_timestamp(value: Union[str, int, float]) -> datetime:
    """Parse an ISO-8601 string or epoch milliseconds into a datetime.

    Aware values are converted to local time. Raises ValueError when the
    value does not describe a valid instant.
    """
    if isinstance(value, bool):
        raise ValueError(f"not a timestamp: {value!r}")
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000)
        except (OverflowError, OSError) as exc:
            raise ValueError(f"timestamp out of range: {value!r}") from exc
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"not a timestamp: {value!r}")
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone()
    return parsed


def format_display_time(value: Union[str, int, float, None]) -> str:
    """Return ``HH:MM`` for a message timestamp, or ``"Invalid time"``."""
    try:
        return parse_timestamp(value).strftime("%H:%M")
    except (TypeError, ValueError):
        return INVALID_TIME


def avatar_url(username: str) -> str:
    """Deterministic avatar for a username; no image is fetched."""
    return AVATAR_URL_TEMPLATE.format(seed=quote(username, safe=""))


def validate_registration(email: str, username: str, password: str) -> Dict[str, str]:
    """Return a mapping of field name to error message; empty when valid."""
    errors: Dict[str, str] = {}
    if not EMAIL_PATTERN.match(email):
        errors["email"] = "Please enter a valid email address"
    if len(username) < 6:
        errors["username"] = "Username must be at least 6 characters"
    if len(password) < 6:
        errors["password"] = "Password must be at least 6 characters"
    return errors
