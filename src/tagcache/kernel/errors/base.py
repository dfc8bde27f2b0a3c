"""Root error class for the tagcache error hierarchy."""

from __future__ import annotations

import json
from typing import Any


class BaseError(Exception):
    """Root of every error tagcache raises.

    Callers and log processors branch on ``code``, never on the message.
    ``detail`` names the cache key, backend or setting involved and must be
    JSON-serialisable; ``cause`` is also installed as ``__cause__`` so
    tracebacks show the backend exception underneath.
    """

    default_code: str = "base_error"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        detail: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code if code else self.default_code
        self.detail: dict[str, Any] = dict(detail) if detail else {}
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, default=str)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"

    def to_dict(self) -> dict[str, Any]:
        """Plain dict suitable for an HTTP error body."""
        body: dict[str, Any] = dict(code=self.code, message=self.message, detail=self.detail)
        if self.cause is not None:
            body["cause"] = repr(self.cause)
        return body

    def log_fields(self) -> dict[str, Any]:
        """Fields for a structlog event; the cause is reduced to its type name."""
        fields: dict[str, Any] = {"code": self.code, "error": self.message}
        if self.detail:
            fields["detail"] = self.detail
        if self.cause is not None:
            fields["cause"] = type(self.cause).__name__
        return fields


__all__ = ["BaseError"]
