"""
Error taxonomy for the patient portal core.

Both error kinds are caller-recoverable: the caller re-prompts the user instead
of crashing. They subclass ValueError so generic input handling still catches them.
"""


class PortalError(Exception):
    """Base class for errors raised by the portal core."""


class ParseError(PortalError, ValueError):
    """Malformed time label or date string."""

    def __init__(self, message: str, value: object = None) -> None:
        super().__init__(message)
        self.value = value


class ValidationError(PortalError, ValueError):
    """Input that parsed but is not acceptable (non-numeric value, missing field, past slot)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field
