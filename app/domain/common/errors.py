# app/domain/common/errors.py
from __future__ import annotations


class DomainError(Exception):
    """
    A failed session operation. The record is left unchanged.
    `code` is stable and goes on the wire; `message` is for humans.
    """
    default_code = "INVALID"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class NotFound(DomainError):
    default_code = "NOT_FOUND"


class Unauthorized(DomainError):
    default_code = "UNAUTHORIZED"


class Invalid(DomainError):
    default_code = "INVALID"


class TransientIO(DomainError):
    default_code = "TRANSIENT_IO"
