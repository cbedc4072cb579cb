"""Domain Types: rich types that replace bare primitives across the codebase.

Invariants:
    - All valid states encoded as Enums; persisted as their .value string
    - Result objects are frozen dataclasses (no mutation after a service returns)
    - Collection names are module constants, shared by services and the store

Design Decisions:
    - str Enums: serialize to JSON without custom encoders
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


Record = dict[str, Any]


# ─── Collections ─────────────────────────────────────────────────

USERS = "users"
POSTS = "posts"
COMMENTS = "comments"
STORIES = "stories"
RELATIONS = "relations"
NOTIFICATIONS = "notifications"
USER_DEVICES = "user_devices"
CONVERSATIONS = "conversations"
CONVERSATION_MEMBERS = "conversation_members"
MESSAGES = "messages"


# ─── Enums ───────────────────────────────────────────────────────

class RelationType(str, Enum):
    """Directed social-graph edges stored in the relations collection."""
    LIKE = "like"
    COMMENT_LIKE = "comment_like"
    BOOKMARK = "bookmark"
    FOLLOW = "follow"
    BLOCK = "block"


class RelationState(str, Enum):
    """The two states of every relation toggle."""
    ACTIVE = "active"
    INACTIVE = "inactive"


class PushStatus(str, Enum):
    """Notification push lifecycle: pending -> sent | failed | skipped (terminal)."""
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"


class NotificationType(str, Enum):
    FOLLOW = "follow"
    LIKE_POST = "like_post"
    LIKE_COMMENT = "like_comment"
    COMMENT_POST = "comment_post"
    REPLY_COMMENT = "reply_comment"
    MENTION = "mention"
    MESSAGE = "message"
    STORY_REPLY = "story_reply"
    EVENT_INVITE = "event_invite"
    SYSTEM = "system"


class EntityType(str, Enum):
    POST = "post"
    COMMENT = "comment"
    STORY = "story"
    USER = "user"
    MESSAGE = "message"
    EVENT = "event"


# ─── Value Objects ───────────────────────────────────────────────

@dataclass(frozen=True)
class Principal:
    """The authenticated caller."""
    user_id: int


@dataclass(frozen=True)
class ToggleResult:
    """Converged state of a relation after toggle(); counts are re-queried totals."""
    state: RelationState
    changed: bool
    counts: dict[str, int] = field(default_factory=dict)

    @property
    def active(self) -> bool:
        return self.state is RelationState.ACTIVE


@dataclass(frozen=True)
class ResolveResult:
    conversation: Record
    created: bool


@dataclass
class Page:
    """One page of records from DocumentStore.find()."""
    docs: list[Record]
    total_docs: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        if self.limit <= 0:
            return 1
        return max(1, -(-self.total_docs // self.limit))

    @property
    def has_next_page(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev_page(self) -> bool:
        return self.page > 1

    def as_body(self, docs: list[Record] | None = None) -> dict[str, Any]:
        """Paged response body; docs replaces self.docs when the caller
        decorated or joined the records."""
        return {
            "docs": self.docs if docs is None else docs,
            "total_docs": self.total_docs,
            "total_pages": self.total_pages,
            "page": self.page,
            "has_next_page": self.has_next_page,
            "has_prev_page": self.has_prev_page,
        }


@dataclass(frozen=True)
class PushMessage:
    """One message in a push gateway batch (one per device token)."""
    to: str
    title: str
    body: str
    data: dict[str, Any] = field(default_factory=dict)
    sound: str | None = "default"
    channel_id: str = "default"

    def to_payload(self) -> dict[str, Any]:
        return {
            "to": self.to,
            "title": self.title,
            "body": self.body,
            "data": self.data,
            "sound": self.sound,
            "channelId": self.channel_id,
        }


@dataclass(frozen=True)
class PushTicket:
    """Gateway verdict for one submitted message, same order as the batch."""
    status: str
    error_reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"


@dataclass(frozen=True)
class PushResult:
    sent: int
    failed: int

    @property
    def push_status(self) -> PushStatus:
        if self.sent > 0:
            return PushStatus.SENT
        if self.failed > 0:
            return PushStatus.FAILED
        return PushStatus.SKIPPED


@dataclass(frozen=True)
class NotificationRequest:
    """Everything notify() needs: the in-app record fields plus push text."""
    recipient_id: int
    type: NotificationType
    actor_id: int | None = None
    entity_type: EntityType | None = None
    entity_id: str | None = None
    conversation_id: int | None = None
    text: str | None = None
    dedupe_key: str | None = None
    skip_push: bool = False
    push_title: str = ""
    push_body: str = ""
    push_data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class NotifyOutcome:
    notification_id: int
    is_duplicate: bool
    push_status: PushStatus | None = None


@dataclass(frozen=True)
class HandlerOutcome:
    """What a handler hands back to its route: the response body plus the
    notifications to dispatch once the response is committed."""
    body: dict[str, Any]
    notifications: tuple[NotificationRequest, ...] = ()
