"""
Hookups — HTTP exception type shared by gates, services and route handlers.

Anything raised as an ``HttpException`` is rendered by the handler in
``app.api.error_handlers`` with its own message and status code.
"""

from __future__ import annotations

DEFAULT_STATUS_CODE = 500


class HttpException(Exception):
    """An error that knows which HTTP status it should be rendered with."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code or DEFAULT_STATUS_CODE

    @property
    def status(self) -> str:
        """``"fail"`` for client errors, ``"error"`` for server errors."""
        return "fail" if 400 <= self.status_code < 500 else "error"

    @classmethod
    def from_error(cls, error: Exception) -> "HttpException":
        """Re-wrap any exception, keeping its message and status code.

        Errors without a ``status_code`` attribute become 500s.
        """
        message = getattr(error, "message", None) or str(error)
        return cls(message, getattr(error, "status_code", None))

    def to_response(self) -> dict:
        return {"status": self.status, "message": self.message}

    def __repr__(self) -> str:
        return f"<HttpException {self.status_code} {self.message!r}>"
