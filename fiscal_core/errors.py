"""
Error taxonomy for the data-access core.

Backend failures are normalized into ApiError so callers can show the most
specific message the backend produced. The backend answers errors with one of
three envelope shapes:

    {"success": false, "message": "...", "errors": [{"field": ..., "message": ...}]}
    {"success": false, "message": "...", "code": "...", "details": {...}}
    {"success": false, "message": "..."}
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional

if TYPE_CHECKING:
    from fiscal_core.domain.models import MutationAttempt

GENERIC_ERROR_MESSAGE = "Unexpected error contacting the server"


class FiscalCoreError(Exception):
    """Base class for every error raised by this package."""


class ApiError(FiscalCoreError):
    """
    A request to the upstream API failed.

    `status_code` is None when no response was received at all.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        backend_message: Optional[str] = None,
        validation_errors: Optional[List[Dict[str, Any]]] = None,
        code: Optional[str] = None,
        details: Any = None,
        method: Optional[str] = None,
        url: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.backend_message = backend_message
        self.validation_errors = validation_errors or []
        self.code = code
        self.details = details
        self.method = method
        self.url = url

    @property
    def is_validation_error(self) -> bool:
        return bool(self.validation_errors) or self.code is not None

    @classmethod
    def from_payload(
        cls,
        status_code: Optional[int],
        payload: Any,
        *,
        method: Optional[str] = None,
        url: Optional[str] = None,
    ) -> "ApiError":
        """Build the most specific error the response body allows."""
        error_cls = AuthenticationError if status_code == 401 else cls
        if not isinstance(payload, dict):
            message = f"HTTP {status_code}" if status_code else GENERIC_ERROR_MESSAGE
            return error_cls(message, status_code=status_code, method=method, url=url)

        backend_message = payload.get("message") or payload.get("error")
        errors = payload.get("errors")
        if isinstance(errors, list) and errors:
            parts = []
            for err in errors:
                if isinstance(err, dict):
                    where = err.get("field") or err.get("location") or "?"
                    parts.append(f"{where}: {err.get('message', '')}")
            message = f"{backend_message or 'Validation error'}: {'; '.join(parts)}"
            return error_cls(
                message,
                status_code=status_code,
                backend_message=backend_message,
                validation_errors=[e for e in errors if isinstance(e, dict)],
                method=method,
                url=url,
            )

        return error_cls(
            backend_message or (f"HTTP {status_code}" if status_code else GENERIC_ERROR_MESSAGE),
            status_code=status_code,
            backend_message=backend_message,
            code=payload.get("code"),
            details=payload.get("details"),
            method=method,
            url=url,
        )


class AuthenticationError(ApiError):
    """The session token is missing, invalid or expired (HTTP 401)."""


class TransportError(ApiError):
    """No response was received (timeout, DNS, refused connection)."""


class SweepTruncatedError(FiscalCoreError):
    """An exhaustive sweep hit its page ceiling while the upstream reported more data."""

    def __init__(self, collection: str, pages: int, items: int) -> None:
        super().__init__(
            f"Sweep of '{collection}' stopped after {pages} pages ({items} items) "
            "while the server still reported more data"
        )
        self.collection = collection
        self.pages = pages
        self.items = items


class MutationError(FiscalCoreError):
    """Every strategy of a mutation chain failed."""

    def __init__(
        self,
        message: str,
        *,
        last_error: Optional[BaseException],
        attempts: List["MutationAttempt"],
        real_errors: List[BaseException],
    ) -> None:
        super().__init__(message)
        self.last_error = last_error
        self.attempts = attempts
        self.real_errors = real_errors

    @property
    def status_code(self) -> Optional[int]:
        return getattr(self.last_error, "status_code", None)


def user_message(exc: BaseException) -> str:
    """
    Most specific user-facing message for an exception, or a generic one.
    """
    if isinstance(exc, MutationError):
        if exc.real_errors:
            return user_message(exc.real_errors[-1])
        if exc.last_error is not None:
            return user_message(exc.last_error)
        return str(exc) or GENERIC_ERROR_MESSAGE
    if isinstance(exc, ApiError):
        return str(exc) or exc.backend_message or GENERIC_ERROR_MESSAGE
    if isinstance(exc, FiscalCoreError):
        return str(exc) or GENERIC_ERROR_MESSAGE
    return GENERIC_ERROR_MESSAGE


__all__ = [
    "GENERIC_ERROR_MESSAGE",
    "ApiError",
    "AuthenticationError",
    "FiscalCoreError",
    "MutationError",
    "SweepTruncatedError",
    "TransportError",
    "user_message",
]
