"""
Typed error kinds raised by the domain and translated from the store.

Callers branch on the class (or ``kind``), never on message text.
"""
from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Sequence

OPAQUE_MESSAGE = "Server Error"


class DomainError(Exception):
    kind = "DomainError"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def public_message(self) -> str:
        return self.message


class NotFoundError(DomainError):
    """Entity missing, or the caller may not see it. The two are not told apart."""

    kind = "NotFound"
    status_code = 404


class ConflictError(DomainError):
    kind = "Conflict"
    status_code = 409


class BadRequestError(DomainError):
    kind = "BadRequest"
    status_code = 400

    def __init__(
        self,
        message: str,
        fields: Optional[Mapping[str, str]] = None,
        ids: Sequence[str] = (),
    ) -> None:
        super().__init__(message)
        self.fields: Dict[str, str] = dict(fields or {})
        self.ids = tuple(ids)

    @classmethod
    def from_fields(cls, fields: Mapping[str, str]) -> "BadRequestError":
        summary = ", ".join(f"{name}: {msg}" for name, msg in fields.items())
        return cls(f"Validation failed: {summary}", fields=fields)


class AuthenticationError(DomainError):
    kind = "AuthError"
    status_code = 401


class TransientError(DomainError):
    """Store connectivity or timeout failure; safe to retry."""

    kind = "Transient"
    status_code = 503


class FatalError(DomainError):
    kind = "Fatal"
    status_code = 500

    @property
    def public_message(self) -> str:
        return OPAQUE_MESSAGE


def error_payload(err: BaseException, expose_details: bool = False) -> Dict[str, Any]:
    """
    Shape an error for an untrusted caller.

    Internal detail of Fatal and unclassified errors is only included
    when expose_details is set (non-production).
    """
    if isinstance(err, DomainError):
        payload: Dict[str, Any] = {
            "message": err.public_message,
            "type": err.kind,
            "status": err.status_code,
        }
        if isinstance(err, BadRequestError):
            if err.fields:
                payload["fields"] = dict(err.fields)
            if err.ids:
                payload["ids"] = list(err.ids)
        if expose_details and isinstance(err, FatalError):
            payload["detail"] = err.message
        return payload

    payload = {"message": OPAQUE_MESSAGE, "type": FatalError.kind, "status": FatalError.status_code}
    if expose_details:
        payload["detail"] = str(err)
    return payload


class FieldErrors:
    """Collects per-field messages so one error reports every bad field."""

    def __init__(self) -> None:
        self._errors: Dict[str, str] = {}

    def add(self, field: str, message: str) -> None:
        self._errors.setdefault(field, message)

    def raise_if_any(self) -> None:
        if self._errors:
            raise BadRequestError.from_fields(self._errors)
