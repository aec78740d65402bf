# util/errors.py
from fastapi import HTTPException, status
from util.enums import ErrorMessage


class AppError(HTTPException):
    # Flow: raise AppError to short-circuit with a typed status & message.
    def __init__(
        self, message: str, http_status: int = status.HTTP_400_BAD_REQUEST
    ) -> None:
        super().__init__(status_code=http_status, detail=message)

    @classmethod
    def of(cls, error: ErrorMessage, suffix: str = "") -> "AppError":
        message = error.value.message + (f": {suffix}" if suffix else "")
        return cls(message, error.value.http_status)


class ValidationError(AppError):
    """Bad, oversized or unsupported file, or a missing required field. Never retried."""


class NotFoundError(AppError):
    """Unknown submission or paper id."""

    def __init__(
        self, message: str, http_status: int = status.HTTP_404_NOT_FOUND
    ) -> None:
        super().__init__(message, http_status)


class ForbiddenError(AppError):
    def __init__(
        self, message: str, http_status: int = status.HTTP_403_FORBIDDEN
    ) -> None:
        super().__init__(message, http_status)


class StateConflictError(AppError):
    """
    A workflow guard refused the call. `guard` names the check that failed
    (self_approval, double_approval, terminal_state, ...).
    """

    def __init__(self, error: ErrorMessage) -> None:
        self.guard = error.name.lower()
        self.message = error.value.message
        HTTPException.__init__(
            self,
            status_code=error.value.http_status,
            detail={"ok": False, "error": self.guard, "message": self.message},
        )


class DependencyDegraded(Exception):
    """An external collaborator is unreachable; callers degrade instead of failing."""


class EmbeddingUnavailable(DependencyDegraded):
    pass


class LedgerUnavailable(DependencyDegraded):
    pass
