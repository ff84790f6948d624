"""The complex extension of the Mersenne-31 field."""

from __future__ import annotations

from functools import total_ordering

from .base import FieldExpOps
from .m31 import M31

P2 = 4611686014132420609  # (2 ** 31 - 1) ** 2


@total_ordering
class CM31(FieldExpOps):
    """An element ``a + bi`` of ``M31[i] / (i^2 + 1)``."""

    __slots__ = ("a", "b")

    EXTENSION_DEGREE = 2

    def __init__(self, a: M31 | None = None, b: M31 | None = None) -> None:
        a = M31.zero() if a is None else a
        b = M31.zero() if b is None else b
        if not isinstance(a, M31) or not isinstance(b, M31):
            raise TypeError("CM31 coordinates must be M31 elements")
        self.a = a
        self.b = b

    @classmethod
    def from_u32_unchecked(cls, a: int, b: int) -> CM31:
        """Build an element from raw coordinate values without reducing them."""
        return cls(M31.from_u32_unchecked(a), M31.from_u32_unchecked(b))

    @classmethod
    def from_m31(cls, a: M31, b: M31) -> CM31:
        return cls(a, b)

    @classmethod
    def zero(cls) -> CM31:
        return cls(M31.zero(), M31.zero())

    @classmethod
    def one(cls) -> CM31:
        return cls(M31.one(), M31.zero())

    def is_zero(self) -> bool:
        return self.a.is_zero() and self.b.is_zero()

    def inverse(self) -> CM31:
        if self.is_zero():
            raise ZeroDivisionError("0 has no inverse")
        # 1 / (a + bi) = (a - bi) / (a^2 + b^2).
        return CM31(self.a, -self.b) * (self.a.square() + self.b.square()).inverse()

    def complex_conjugate(self) -> CM31:
        return CM31(self.a, -self.b)

    def to_m31(self) -> M31:
        """Return the real part; raise ValueError if the imaginary part is not zero."""
        if not self.b.is_zero():
            raise ValueError("element does not lie in the base field")
        return self.a

    def __add__(self, other: object) -> CM31:
        if isinstance(other, CM31):
            return CM31(self.a + other.a, self.b + other.b)
        if isinstance(other, M31):
            return CM31(self.a + other, self.b)
        return NotImplemented

    def __radd__(self, other: object) -> CM31:
        if isinstance(other, M31):
            return self + other
        return NotImplemented

    def __sub__(self, other: object) -> CM31:
        if isinstance(other, CM31):
            return CM31(self.a - other.a, self.b - other.b)
        if isinstance(other, M31):
            return CM31(self.a - other, self.b)
        return NotImplemented

    def __rsub__(self, other: object) -> CM31:
        if isinstance(other, M31):
            return -self + other
        return NotImplemented

    def __mul__(self, other: object) -> CM31:
        if isinstance(other, CM31):
            # (a + bi) * (c + di) = (ac - bd) + (ad + bc)i.
            return CM31(
                self.a * other.a - self.b * other.b,
                self.a * other.b + self.b * other.a,
            )
        if isinstance(other, M31):
            return CM31(self.a * other, self.b * other)
        return NotImplemented

    def __rmul__(self, other: object) -> CM31:
        if isinstance(other, M31):
            return self * other
        return NotImplemented

    def __truediv__(self, other: object) -> CM31:
        if isinstance(other, CM31):
            return self * other.inverse()
        if isinstance(other, M31):
            return CM31(self.a / other, self.b / other)
        return NotImplemented

    def __rtruediv__(self, other: object) -> CM31:
        if isinstance(other, M31):
            return self.inverse() * other
        return NotImplemented

    def __neg__(self) -> CM31:
        return CM31(-self.a, -self.b)

    def _key(self) -> tuple[int, int]:
        return (self.a.value, self.b.value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CM31):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, CM31):
            return NotImplemented
        return self._key() < other._key()

    def __hash__(self) -> int:
        return hash(("CM31",) + self._key())

    def __bytes__(self) -> bytes:
        return bytes(self.a) + bytes(self.b)

    def __str__(self) -> str:
        return f"{self.a} + {self.b}i"

    def __repr__(self) -> str:
        return f"CM31({self.a.value}, {self.b.value})"