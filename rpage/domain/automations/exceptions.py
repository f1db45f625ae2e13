"""Automation domain specific exceptions."""


class AutomationError(Exception):
    """Base class for automation related domain errors."""


class AutomationNotFoundError(AutomationError):
    """Raised when the requested automation could not be found."""


class AutomationAlreadyExistsError(AutomationError):
    """Raised when creating an automation with an id that is already taken."""


class InvalidStatusTransitionError(AutomationError):
    """Raised when a status change skips the idle → running → terminal lifecycle."""
