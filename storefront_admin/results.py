"""Result values returned by services and the order workflow.

Operations report expected failures (missing rows, short stock, bad input,
constraint violations) as a ``Failure`` inside a ``Result`` instead of raising,
so callers branch on ``result.ok`` at each step.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    INSUFFICIENT_STOCK = "insufficient_stock"
    VALIDATION = "validation"
    CONFLICT = "conflict"
    PERSISTENCE = "persistence"


class Failure(BaseModel):
    """Reason an operation did not complete."""

    kind: ErrorKind
    message: str


class Result(BaseModel):
    """Either a value or a failure, never both."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    value: Any = None
    error: Optional[Failure] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Any = None) -> "Result":
        return cls(value=value)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> "Result":
        return cls(error=Failure(kind=kind, message=message))


def not_found(entity: str, entity_id: Any) -> Result:
    return Result.failure(ErrorKind.NOT_FOUND, f"{entity} {entity_id} not found")


def insufficient_stock(product_id: Any, requested: int, available: int) -> Result:
    return Result.failure(
        ErrorKind.INSUFFICIENT_STOCK,
        f"Insufficient stock for product {product_id}: need {requested}, have {available}",
    )
