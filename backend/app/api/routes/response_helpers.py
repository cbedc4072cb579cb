"""Response Helpers: hand a handler outcome back to FastAPI.

Notifications run as a background task, after the response is sent and
the request's own writes are committed; their failures never reach the
caller.
"""

from fastapi import BackgroundTasks

from app.core.domain_types import HandlerOutcome
from app.core.repository_protocols import PushGateway
from app.services.notification_dispatcher import dispatch_in_background


def respond(
    outcome: HandlerOutcome,
    background_tasks: BackgroundTasks,
    gateway: PushGateway,
) -> dict:
    """Schedule the outcome's notifications and return its body."""
    if outcome.notifications:
        background_tasks.add_task(
            dispatch_in_background, list(outcome.notifications), gateway,
        )
    return outcome.body
