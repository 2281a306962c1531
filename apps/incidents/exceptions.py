"""Errors raised when an incident operation is rejected."""


class IncidentError(ValueError):
    """Base class for rejected incident operations."""


class IncidentTransitionError(IncidentError):
    """The requested status change is not allowed from the current status."""


class DuplicateOpenIncidentError(IncidentError):
    """The operation would leave an application with two OPEN incidents."""
