"""Input Validation: pure checks that run before any store access.

Invariants:
    - Every failure raises InvalidRequestError (400), never a bare ValueError
    - Identifiers are positive ints; digit strings are accepted and converted
    - Nothing here touches IO
"""

from app.core.errors import InvalidRequestError

EXPO_TOKEN_PREFIX = "ExponentPushToken["


def parse_identifier(value: object, name: str = "id") -> int:
    """Return value as a positive int or raise InvalidRequestError."""
    if isinstance(value, bool):
        raise InvalidRequestError(f"Invalid {name}: {value!r}")
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str) and value.strip().isdigit():
        parsed = int(value.strip())
    else:
        raise InvalidRequestError(f"Invalid {name}: {value!r}")
    if parsed <= 0:
        raise InvalidRequestError(f"Invalid {name}: {value!r}")
    return parsed


def check_not_self(subject_id: int, object_id: int, action: str) -> None:
    """Reject self-referential relations (following or blocking oneself)."""
    if subject_id == object_id:
        raise InvalidRequestError(f"Cannot {action} yourself")


def normalize_text(value: str | None, field_name: str, max_length: int) -> str:
    """Strip and bound a user-supplied text field."""
    text = (value or "").strip()
    if not text:
        raise InvalidRequestError(f"{field_name} is required")
    if len(text) > max_length:
        raise InvalidRequestError(
            f"{field_name} exceeds {max_length} characters",
        )
    return text


def looks_like_expo_token(token: str | None) -> bool:
    return bool(token) and token.startswith(EXPO_TOKEN_PREFIX)
