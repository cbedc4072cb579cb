"""Dedupe Keys: deterministic string keys behind every at-most-once guarantee.

Invariants:
    - Pure functions of their inputs: identical inputs give identical keys
      across calls and across process restarts
    - Notification key layout: <type>:<entity_id|none>:<actor|system>:<recipient>
    - Direct conversation key layout: direct:<min>:<max> (numeric order)
"""

from enum import Enum


def _text(value: object) -> str:
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def generate_dedupe_key(
    notification_type: object,
    entity_id: object | None,
    actor_id: object | None,
    recipient_id: object,
) -> str:
    """Key for one logical notification event."""
    entity = _text(entity_id) if entity_id not in (None, "") else "none"
    actor = _text(actor_id) if actor_id not in (None, "") else "system"
    return f"{_text(notification_type)}:{entity}:{actor}:{_text(recipient_id)}"


def direct_conversation_key(user_a: int, user_b: int) -> str:
    """Canonical key for the single direct conversation of an unordered pair."""
    low, high = sorted((int(user_a), int(user_b)))
    return f"direct:{low}:{high}"
