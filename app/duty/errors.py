class DutyError(Exception):
    """Base class for every failure raised by the duty rotation engine."""


class ConfigurationMissing(DutyError):
    pass


class AuthenticationFailed(DutyError):
    pass


class NoMembersAvailable(DutyError):
    pass


class InvalidRotationState(DutyError):
    pass


class StaleRotationState(InvalidRotationState):
    """The reselection was requested from an announcement that is no longer current."""


class RotationStateConflict(InvalidRotationState):
    """The conditional state write lost against a concurrent update."""


class NotEnoughMembers(DutyError):
    pass


class DownstreamUnavailable(DutyError):
    pass
