"""
Typed bind values.

Plain Python values can always be bound directly. ``Bind`` is for the cases
where the kind or direction has to be stated: CLOB inputs, REF CURSOR
outputs and OUT / IN OUT parameters.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Union

from orabatch.exception import ValidationError


class BindKind(Enum):
    STRING = "string"
    NUMBER = "number"
    DATE = "date"
    CLOB = "clob"
    CURSOR = "cursor"


class BindDirection(Enum):
    IN = "in"
    OUT = "out"
    IN_OUT = "in_out"


@dataclass(frozen=True)
class Bind:
    kind: BindKind
    value: Any = None
    direction: BindDirection = BindDirection.IN
    max_size: Optional[int] = None

    def __post_init__(self) -> None:
        if self.kind is BindKind.CURSOR and self.direction is not (
            BindDirection.OUT
        ):
            raise ValidationError("Cursor binds can only be OUT parameters")
        if self.direction is BindDirection.OUT and self.value is not None:
            raise ValidationError("OUT binds cannot carry a value")

    @property
    def is_output(self) -> bool:
        return self.direction is not BindDirection.IN

    @classmethod
    def string(cls, value: Optional[str], max_size: Optional[int] = None):
        return cls(BindKind.STRING, value, max_size=max_size)

    @classmethod
    def number(cls, value: Union[int, float, Decimal, None]):
        return cls(BindKind.NUMBER, value)

    @classmethod
    def date(cls, value: Union[date, datetime, None]):
        return cls(BindKind.DATE, value)

    @classmethod
    def clob(cls, value: Optional[str]):
        return cls(BindKind.CLOB, value)

    @classmethod
    def cursor(cls):
        return cls(BindKind.CURSOR, direction=BindDirection.OUT)

    @classmethod
    def out(cls, kind: BindKind, max_size: Optional[int] = None):
        return cls(kind, direction=BindDirection.OUT, max_size=max_size)

    @classmethod
    def in_out(
        cls, kind: BindKind, value: Any, max_size: Optional[int] = None
    ):
        return cls(
            kind, value, direction=BindDirection.IN_OUT, max_size=max_size
        )
