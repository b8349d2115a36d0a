"""
A value that holds exactly one of two alternatives.

``Left`` and ``Right`` are separate classes, so an ``Either`` can never carry
both sides or neither. Callers branch with ``isinstance``.
"""

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

L = TypeVar("L")
R = TypeVar("R")
T = TypeVar("T")


@dataclass(frozen=True)
class Left(Generic[L]):
    """The first alternative."""

    value: L

    def __str__(self) -> str:
        return f"Either on Left: {self.value}"


@dataclass(frozen=True)
class Right(Generic[R]):
    """The second alternative."""

    value: R

    def __str__(self) -> str:
        return f"Either on Right: {self.value}"


Either = Union[Left[L], Right[R]]


def is_left(either: "Either[L, R]") -> bool:
    return isinstance(either, Left)


def is_right(either: "Either[L, R]") -> bool:
    return isinstance(either, Right)


def to_normal(either: "Either[T, T]") -> T:
    """Return the active value when both sides share a type."""
    if isinstance(either, (Left, Right)):
        return either.value
    raise TypeError(f"Expected Left or Right, got {type(either).__name__}")
