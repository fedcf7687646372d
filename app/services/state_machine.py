from enum import Enum


class SessionStatus(str, Enum):
    ACTIVE = "active"
    ESCALATED = "escalated"
    RESOLVED = "resolved"
    ARCHIVED = "archived"


# Operator-driven edges. ARCHIVED is terminal; ESCALATED -> ESCALATED reassigns the agent.
VALID_TRANSITIONS = {
    SessionStatus.ACTIVE: [SessionStatus.ESCALATED, SessionStatus.RESOLVED, SessionStatus.ARCHIVED],
    SessionStatus.ESCALATED: [
        SessionStatus.ESCALATED,
        SessionStatus.ACTIVE,
        SessionStatus.RESOLVED,
        SessionStatus.ARCHIVED,
    ],
    SessionStatus.RESOLVED: [SessionStatus.ACTIVE, SessionStatus.ESCALATED, SessionStatus.ARCHIVED],
    SessionStatus.ARCHIVED: [],
}


class InvalidTransitionError(Exception):
    def __init__(self, from_status: SessionStatus, to_status: SessionStatus):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(f"Invalid transition: {from_status.value} -> {to_status.value}")


def can_transition(from_status: SessionStatus, to_status: SessionStatus) -> bool:
    return to_status in VALID_TRANSITIONS.get(from_status, [])


def transition(from_status: SessionStatus, to_status: SessionStatus) -> SessionStatus:
    """Return the new status. Raises InvalidTransitionError if the edge is not allowed."""
    if not can_transition(from_status, to_status):
        raise InvalidTransitionError(from_status, to_status)
    return to_status


def is_terminal(status: SessionStatus) -> bool:
    return not VALID_TRANSITIONS.get(status)


def escalate(current: SessionStatus) -> SessionStatus:
    return transition(current, SessionStatus.ESCALATED)


def resolve(current: SessionStatus) -> SessionStatus:
    return transition(current, SessionStatus.RESOLVED)


def reopen(current: SessionStatus) -> SessionStatus:
    return transition(current, SessionStatus.ACTIVE)


def archive(current: SessionStatus) -> SessionStatus:
    return transition(current, SessionStatus.ARCHIVED)
