from .errors import (
    AuthenticationFailed,
    ConfigurationMissing,
    DownstreamUnavailable,
    DutyError,
    InvalidRotationState,
    NoMembersAvailable,
    NotEnoughMembers,
    RotationStateConflict,
    StaleRotationState,
)
from .models import ListCursorState, Member, PointerState, RotationState, Selection


__all__ = [
    "AuthenticationFailed",
    "ConfigurationMissing",
    "DownstreamUnavailable",
    "DutyError",
    "InvalidRotationState",
    "ListCursorState",
    "Member",
    "NoMembersAvailable",
    "NotEnoughMembers",
    "PointerState",
    "RotationState",
    "RotationStateConflict",
    "Selection",
    "StaleRotationState",
]
