from app.services.session_service import (
    add_turn,
    escalate_session,
    find_or_create_session,
    get_recent_turns,
    get_session_summary,
)
from app.services.state_machine import (
    InvalidTransitionError,
    SessionStatus,
    can_transition,
    transition,
)
from app.services.verification import WebhookVerificationError, verify_subscription

__all__ = [
    "find_or_create_session",
    "add_turn",
    "get_recent_turns",
    "escalate_session",
    "get_session_summary",
    "SessionStatus",
    "InvalidTransitionError",
    "can_transition",
    "transition",
    "WebhookVerificationError",
    "verify_subscription",
]
