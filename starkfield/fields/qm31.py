"""The degree-4 secure extension of the Mersenne-31 field."""

from __future__ import annotations

from collections.abc import Sequence
from functools import total_ordering

from .base import FieldExpOps
from .cm31 import CM31
from .m31 import M31

P4 = 21267647892944572736998860269687930881  # (2 ** 31 - 1) ** 4
R = CM31.from_u32_unchecked(2, 1)
SECURE_EXTENSION_DEGREE = 4


@total_ordering
class QM31(FieldExpOps):
    """An element ``a + bu`` of ``CM31[u] / (u^2 - 2 - i)``."""

    __slots__ = ("a", "b")

    EXTENSION_DEGREE = SECURE_EXTENSION_DEGREE

    def __init__(self, a: CM31 | None = None, b: CM31 | None = None) -> None:
        a = CM31.zero() if a is None else a
        b = CM31.zero() if b is None else b
        if not isinstance(a, CM31) or not isinstance(b, CM31):
            raise TypeError("QM31 coordinates must be CM31 elements")
        self.a = a
        self.b = b

    @classmethod
    def from_u32_unchecked(cls, a: int, b: int, c: int, d: int) -> QM31:
        """Build an element from raw coordinate values without reducing them."""
        return cls(CM31.from_u32_unchecked(a, b), CM31.from_u32_unchecked(c, d))

    @classmethod
    def from_m31(cls, a: M31, b: M31, c: M31, d: M31) -> QM31:
        return cls(CM31(a, b), CM31(c, d))

    @classmethod
    def from_m31_array(cls, array: Sequence[M31]) -> QM31:
        if len(array) != SECURE_EXTENSION_DEGREE:
            raise ValueError(f"expected {SECURE_EXTENSION_DEGREE} coordinates")
        return cls.from_m31(*array)

    def to_m31_array(self) -> list[M31]:
        return [self.a.a, self.a.b, self.b.a, self.b.b]

    @classmethod
    def from_partial_evals(cls, evals: Sequence[QM31]) -> QM31:
        """Combine the evaluations of the four coordinate polynomials at a point."""
        if len(evals) != SECURE_EXTENSION_DEGREE:
            raise ValueError(f"expected {SECURE_EXTENSION_DEGREE} evaluations")
        result = evals[0]
        result = result + evals[1] * cls.from_u32_unchecked(0, 1, 0, 0)
        result = result + evals[2] * cls.from_u32_unchecked(0, 0, 1, 0)
        result = result + evals[3] * cls.from_u32_unchecked(0, 0, 0, 1)
        return result

    def mul_cm31(self, rhs: CM31) -> QM31:
        return QM31(self.a * rhs, self.b * rhs)

    @classmethod
    def zero(cls) -> QM31:
        return cls(CM31.zero(), CM31.zero())

    @classmethod
    def one(cls) -> QM31:
        return cls(CM31.one(), CM31.zero())

    def is_zero(self) -> bool:
        return self.a.is_zero() and self.b.is_zero()

    def inverse(self) -> QM31:
        if self.is_zero():
            raise ZeroDivisionError("0 has no inverse")
        # (a + bu)^-1 = (a - bu) / (a^2 - (2 + i) b^2).
        b2 = self.b.square()
        ib2 = CM31(-b2.b, b2.a)
        denom = self.a.square() - (b2 + b2 + ib2)
        denom_inverse = denom.inverse()
        return QM31(self.a * denom_inverse, -self.b * denom_inverse)

    def complex_conjugate(self) -> QM31:
        return QM31(self.a, -self.b)

    def to_m31(self) -> M31:
        """Return the base field value; raise ValueError if the element is not in it."""
        if not self.b.is_zero():
            raise ValueError("element does not lie in the base field")
        return self.a.to_m31()

    def __add__(self, other: object) -> QM31:
        if isinstance(other, QM31):
            return QM31(self.a + other.a, self.b + other.b)
        if isinstance(other, M31):
            return QM31(self.a + other, self.b)
        return NotImplemented

    def __radd__(self, other: object) -> QM31:
        if isinstance(other, M31):
            return self + other
        return NotImplemented

    def __sub__(self, other: object) -> QM31:
        if isinstance(other, QM31):
            return QM31(self.a - other.a, self.b - other.b)
        if isinstance(other, M31):
            return QM31(self.a - other, self.b)
        return NotImplemented

    def __rsub__(self, other: object) -> QM31:
        if isinstance(other, M31):
            return -self + other
        return NotImplemented

    def __mul__(self, other: object) -> QM31:
        if isinstance(other, QM31):
            # (a + bu) * (c + du) = (ac + rbd) + (ad + bc)u.
            return QM31(
                self.a * other.a + R * self.b * other.b,
                self.a * other.b + self.b * other.a,
            )
        if isinstance(other, M31):
            return QM31(self.a * other, self.b * other)
        return NotImplemented

    def __rmul__(self, other: object) -> QM31:
        if isinstance(other, M31):
            return self * other
        return NotImplemented

    def __truediv__(self, other: object) -> QM31:
        if isinstance(other, QM31):
            return self * other.inverse()
        if isinstance(other, M31):
            return QM31(self.a / other, self.b / other)
        return NotImplemented

    def __rtruediv__(self, other: object) -> QM31:
        if isinstance(other, M31):
            return self.inverse() * other
        return NotImplemented

    def __neg__(self) -> QM31:
        return QM31(-self.a, -self.b)

    def _key(self) -> tuple[int, int, int, int]:
        return tuple(coord.value for coord in self.to_m31_array())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, QM31):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, QM31):
            return NotImplemented
        return self._key() < other._key()

    def __hash__(self) -> int:
        return hash(("QM31",) + self._key())

    def __bytes__(self) -> bytes:
        return bytes(self.a) + bytes(self.b)

    def __str__(self) -> str:
        return f"({self.a}) + ({self.b})u"

    def __repr__(self) -> str:
        return "QM31({}, {}, {}, {})".format(*self._key())


SecureField = QM31