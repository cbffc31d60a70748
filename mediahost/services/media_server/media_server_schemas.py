from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class HttpResult(BaseModel):
    """Normalized outcome of one HTTP management call.

    `available` is False for transport errors, timeouts and non-2xx responses.
    """

    available: bool
    status_code: int | None = None
    data: Any = None
    error: str | None = None

    @classmethod
    def ok(cls, status_code: int, data: Any = None) -> HttpResult:
        return cls(available=True, status_code=status_code, data=data)

    @classmethod
    def unavailable(cls, error: str, status_code: int | None = None) -> HttpResult:
        return cls(available=False, status_code=status_code, error=error)

    @property
    def not_found(self) -> bool:
        return self.status_code == 404
