"""Exceptions raised by the domain layer and translated by the blueprints."""


class ConsoleError(Exception):
    """Base class for errors reported back to the operator."""

    kind = "error"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message, "kind": self.kind}


class NotFound(ConsoleError):
    """A stock take, scan or inventory unit does not exist."""

    kind = "not_found"
    status_code = 404


class InvalidState(ConsoleError):
    """The operation is not allowed in the stock take's current status."""

    kind = "invalid_state"


class DuplicateScan(ConsoleError):
    kind = "duplicate_scan"


class ValidationError(ConsoleError):
    kind = "validation_error"


class UpstreamFailure(ConsoleError):
    """A collaborator (the products registry) rejected a follow-up update.

    Not raised by the stock take service: a failed follow-up is returned next
    to the primary result through :meth:`as_outcome`.
    """

    kind = "upstream_failure"
    status_code = 502

    def as_outcome(self, cause: str) -> dict:
        """Describe the failure as a ``{"success": False, ...}`` outcome."""
        return dict(self.to_dict(), success=False, cause=cause)


__all__ = [
    "ConsoleError",
    "NotFound",
    "InvalidState",
    "DuplicateScan",
    "ValidationError",
    "UpstreamFailure",
]
