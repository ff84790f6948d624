"""Shared behaviour of the prime field and its extensions."""

from __future__ import annotations

import itertools
import operator
from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import TypeVar

F = TypeVar("F", bound="FieldExpOps")


class FieldExpOps(ABC):
    """Exponentiation, doubling and inversion for field elements.

    Subclasses supply multiplication, addition, ``one()`` and ``inverse()``.
    """

    __slots__ = ()

    @classmethod
    @abstractmethod
    def one(cls: type[F]) -> F:
        """Return the multiplicative identity."""

    @abstractmethod
    def inverse(self: F) -> F:
        """Return the multiplicative inverse; raise ZeroDivisionError for zero."""

    def square(self: F) -> F:
        """Return ``self * self``."""
        return self * self

    def pow(self: F, exp: int) -> F:
        """Return ``self`` raised to the non-negative power ``exp``."""
        if exp < 0:
            raise ValueError("exponent must be non-negative")
        result = type(self).one()
        base = self
        while exp > 0:
            if exp & 1:
                result = result * base
            base = base.square()
            exp >>= 1
        return result

    def double(self: F) -> F:
        """Return ``self + self``."""
        return self + self


def batch_inverse(column: Iterable[F]) -> list[F]:
    """Invert every element of ``column`` with a single field inversion."""
    values = list(column)
    if not values:
        return []

    prefix = list(itertools.accumulate(values, operator.mul))
    running_inverse = prefix[-1].inverse()

    inverses = []
    for value, product_before in zip(reversed(values[1:]), reversed(prefix[:-1])):
        inverses.append(product_before * running_inverse)
        running_inverse = running_inverse * value
    inverses.append(running_inverse)
    inverses.reverse()
    return inverses


def elements_to_bytes(values: Iterable[object]) -> bytes:
    """Concatenate the little-endian byte representations of field elements."""
    return b"".join(bytes(value) for value in values)