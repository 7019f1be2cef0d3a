from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

from duoplay.game.sessions.messages import error_message

T = TypeVar("T")


@dataclass(slots=True)
class OperationResult(Generic[T]):
    success: bool
    data: T | None = None
    error: str | None = None
    code: str | None = None

    @classmethod
    def ok(cls, data: T | None = None) -> OperationResult[T]:
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, code: str) -> OperationResult[T]:
        return cls(success=False, error=error_message(code), code=code)
