"""Input checks shared by the API routes and the API client."""
import re
from typing import Any, Iterable, List, Mapping

MIN_PASSWORD_LENGTH = 6

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def is_valid_email(value: Any) -> bool:
    return isinstance(value, str) and _EMAIL_RE.match(value) is not None


def is_valid_password(value: Any) -> bool:
    return isinstance(value, str) and len(value) >= MIN_PASSWORD_LENGTH


def missing_fields(payload: Mapping[str, Any], names: Iterable[str]) -> List[str]:
    """Names whose value is absent, None or an empty string."""
    return [n for n in names if payload.get(n) in (None, "")]
