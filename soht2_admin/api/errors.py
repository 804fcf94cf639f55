from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import httpx


@dataclass(frozen=True)
class FieldError:
    field: str | None
    message: str


@dataclass(eq=False)
class ApiError(Exception):
    """Server answered with a non-2xx status.

    ``status`` is 0 when the error was converted from a ``TransportError``.
    """

    status: int
    message: str
    errors: list[FieldError] = field(default_factory=list)
    path: str | None = None

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message

    @property
    def display_message(self) -> str:
        if self.errors and self.errors[0].message:
            return self.errors[0].message
        return self.message or "Unexpected error"

    @classmethod
    def from_response(cls, response: httpx.Response) -> ApiError:
        status = int(response.status_code)
        text = ""
        try:
            text = response.text.strip()
        except (UnicodeDecodeError, httpx.ResponseNotRead):
            text = ""
        fallback = f"{status} {response.reason_phrase}".strip()
        if text:
            fallback = f"{fallback}: {text[:240]}"
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if not isinstance(payload, dict):
            return cls(status=status, message=fallback)
        return cls(
            status=int(payload.get("status") or status),
            message=str(payload.get("message") or payload.get("error") or fallback),
            errors=_parse_field_errors(payload.get("errors")),
            path=payload.get("path") if isinstance(payload.get("path"), str) else None,
        )


class TransportError(Exception):
    """No response was received (connection refused, DNS failure, timeout)."""

    def __init__(self, message: str, *, url: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.url = url

    def to_api_error(self) -> ApiError:
        return ApiError(status=0, message=self.message, path=self.url)


def as_api_error(exc: ApiError | TransportError) -> ApiError:
    if isinstance(exc, TransportError):
        return exc.to_api_error()
    return exc


def _parse_field_errors(raw: Any) -> list[FieldError]:
    if not isinstance(raw, list):
        return []
    errors: list[FieldError] = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        message = item.get("defaultMessage") or item.get("message")
        if not message:
            continue
        name = item.get("field")
        errors.append(FieldError(field=str(name) if name else None, message=str(message)))
    return errors
