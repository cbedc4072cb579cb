"""ORM Models: SQLAlchemy declarative models for all domain entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - Every model is registered here so Base.metadata is complete before
      create_all or Alembic autogenerate runs
"""

from app.models.user import User  # noqa: F401
from app.models.post import Post  # noqa: F401
from app.models.comment import Comment  # noqa: F401
from app.models.story import Story  # noqa: F401
from app.models.relation import Relation  # noqa: F401
from app.models.notification import Notification  # noqa: F401
from app.models.user_device import UserDevice  # noqa: F401
from app.models.conversation import Conversation  # noqa: F401
from app.models.conversation_member import ConversationMember  # noqa: F401
from app.models.message import Message  # noqa: F401
