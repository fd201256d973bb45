"""Gating error taxonomy.

Services raise these; :mod:`moca_gate.middleware.error_handler` renders them as
``{"error": ..., "message": ...}`` with the status code carried by the class.
"""

from __future__ import annotations


class GatingError(Exception):
    """Base class for every error that maps to a client-facing response."""

    status_code: int = 400
    error: str = "Bad request"

    def __init__(self, message: str | None = None, *, error: str | None = None) -> None:
        super().__init__(message or error or self.error)
        self.message = message
        if error is not None:
            self.error = error

    def to_body(self) -> dict[str, str]:
        """JSON body for the error response."""
        body = {"error": self.error}
        if self.message is not None:
            body["message"] = self.message
        return body


class ValidationError(GatingError):
    """Malformed or incomplete input."""

    error = "Validation failed"


class ConflictError(GatingError):
    """The email or wallet already has a registration."""

    error = "Already registered"


class NotEligibleError(GatingError):
    """The wallet holds no NFT staked long enough."""

    status_code = 403
    error = "Not eligible"


class InvalidCredentialError(GatingError):
    """Invite code missing, inactive or exhausted."""

    error = "Invalid invite code"


class RateLimitError(GatingError):
    status_code = 429
    error = "Rate limit exceeded"


class UnauthorizedError(GatingError):
    status_code = 401
    error = "Unauthorized"


class DependencyError(GatingError):
    """Datastore or blockchain RPC failure.

    The message given at the raise site is for the logs only; clients always
    receive the generic body.
    """

    status_code = 500
    error = "Internal server error"
    public_message = "An error occurred while processing your request"

    def to_body(self) -> dict[str, str]:
        return {"error": self.error, "message": self.public_message}


class CodeGenerationError(DependencyError):
    """Every generated invite code collided with an existing one."""
