"""
Application error types.

Services raise these; the exception handlers in ``inflio.main`` turn them
into JSON responses carrying ``detail`` and ``code``.
"""
from typing import Optional


class AppError(Exception):
    """Base application error with a machine-readable code and HTTP status."""

    def __init__(self, message: str, code: str, status_code: int = 500):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code}


class NotFoundError(AppError):
    def __init__(self, message: str, code: str = "NOT_FOUND"):
        super().__init__(message, code, 404)


class ValidationError(AppError):
    def __init__(self, message: str, code: str = "VALIDATION_ERROR"):
        super().__init__(message, code, 400)


class AIError(AppError):
    """Failure of an AI provider call, flagged with whether it may be retried."""

    def __init__(
        self,
        message: str,
        original_error: Optional[BaseException] = None,
        retryable: bool = True,
    ):
        super().__init__(message, "AI_ERROR", 500)
        self.original_error = original_error
        self.retryable = retryable
