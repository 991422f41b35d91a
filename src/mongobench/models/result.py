from dataclasses import dataclass
from typing import Any, Optional

from ..enum import Status


@dataclass(frozen=True)
class OperationResult:
    """
    Outcome of a record operation.

    Exceptions raised by the store and business-rule outcomes (nothing found,
    nothing modified, inconsistent data) are both reported through this type,
    never raised to the harness.

    Attributes:
        status (Status): `OK`, `ERROR` or `UNEXPECTED_STATE`.
        message (Optional[str]): Diagnostic for non-OK outcomes.
        data (Any): The read record (`dict[str, bytes]`) or the scanned records
            (`list[dict[str, bytes]]`); None for write operations.
    """

    status: Status
    message: Optional[str] = None
    data: Any = None

    @classmethod
    def ok(cls, data: Any = None) -> "OperationResult":
        return cls(Status.OK, data=data)

    @classmethod
    def error(cls, message: str) -> "OperationResult":
        return cls(Status.ERROR, message=message)

    @classmethod
    def unexpected(cls, message: str) -> "OperationResult":
        return cls(Status.UNEXPECTED_STATE, message=message)

    @property
    def is_ok(self) -> bool:
        return self.status is Status.OK
