"""The Mersenne-31 prime field."""

from __future__ import annotations

from functools import total_ordering

from .base import FieldExpOps

MODULUS_BITS = 31
N_BYTES_FELT = 4
P = 2147483647  # 2 ** 31 - 1


@total_ordering
class M31(FieldExpOps):
    """An element of the field of integers modulo ``2**31 - 1``."""

    __slots__ = ("_value",)

    def __init__(self, value: int = 0) -> None:
        if value < 0:
            raise ValueError("M31 value must be non-negative")
        self._value = value % P

    @property
    def value(self) -> int:
        """The canonical integer representative in ``[0, P)``."""
        return self._value

    @classmethod
    def _raw(cls, value: int) -> M31:
        element = object.__new__(cls)
        element._value = value
        return element

    @classmethod
    def partial_reduce(cls, val: int) -> M31:
        """Return ``val % P`` for ``val`` in ``[0, 2P)``."""
        return cls._raw(val - P if val >= P else val)

    @classmethod
    def reduce(cls, val: int) -> M31:
        """Return ``val % P`` for ``val`` in ``[0, P**2)``."""
        return cls._raw(((((val >> MODULUS_BITS) + val + 1) >> MODULUS_BITS) + val) & P)

    @classmethod
    def from_u32_unchecked(cls, arg: int) -> M31:
        """Wrap ``arg`` without reducing it."""
        return cls._raw(arg)

    @classmethod
    def zero(cls) -> M31:
        return cls._raw(0)

    @classmethod
    def one(cls) -> M31:
        return cls._raw(1)

    def is_zero(self) -> bool:
        return self._value == 0

    def inverse(self) -> M31:
        if self.is_zero():
            raise ZeroDivisionError("0 has no inverse")
        return pow2147483645(self)

    def complex_conjugate(self) -> M31:
        return self

    def __add__(self, other: object) -> M31:
        if not isinstance(other, M31):
            return NotImplemented
        return M31.partial_reduce(self._value + other._value)

    def __sub__(self, other: object) -> M31:
        if not isinstance(other, M31):
            return NotImplemented
        return M31.partial_reduce(self._value + P - other._value)

    def __mul__(self, other: object) -> M31:
        if not isinstance(other, M31):
            return NotImplemented
        return M31.reduce(self._value * other._value)

    def __truediv__(self, other: object) -> M31:
        if not isinstance(other, M31):
            return NotImplemented
        return self * other.inverse()

    def __neg__(self) -> M31:
        return M31.partial_reduce(P - self._value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, M31):
            return NotImplemented
        return self._value == other._value

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, M31):
            return NotImplemented
        return self._value < other._value

    def __hash__(self) -> int:
        return hash(("M31", self._value))

    def __int__(self) -> int:
        return self._value

    def __bytes__(self) -> bytes:
        return self._value.to_bytes(N_BYTES_FELT, "little")

    def __str__(self) -> str:
        return str(self._value)

    def __repr__(self) -> str:
        return f"M31({self._value})"


BaseField = M31


def _sqn(v, n: int):
    for _ in range(n):
        v = v.square()
    return v


def pow2147483645(v):
    """Return ``v ** (2**31 - 3)``, the inverse of ``v`` in M31, via an addition chain."""
    t0 = _sqn(v, 2) * v
    t1 = _sqn(t0, 1) * t0
    t2 = _sqn(t1, 3) * t0
    t3 = _sqn(t2, 1) * t0
    t4 = _sqn(t3, 8) * t3
    t5 = _sqn(t4, 8) * t3
    return _sqn(t5, 7) * t2