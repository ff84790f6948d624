"""Polynomials, fractions and helpers used by the lookup protocols."""

from __future__ import annotations

import operator
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from functools import reduce
from itertools import zip_longest
from typing import Any

from ..fields.qm31 import QM31, SecureField


class UnivariatePoly:
    """A univariate polynomial stored as monomial-basis coefficients, lowest first."""

    __slots__ = ("_coeffs",)

    def __init__(self, coeffs: Iterable[Any] = ()) -> None:
        self._coeffs = list(coeffs)
        self._truncate_leading_zeros()

    @classmethod
    def _raw(cls, coeffs: Iterable[Any]) -> UnivariatePoly:
        poly = object.__new__(cls)
        poly._coeffs = list(coeffs)
        return poly

    @property
    def coeffs(self) -> tuple:
        return tuple(self._coeffs)

    def _truncate_leading_zeros(self) -> None:
        while self._coeffs and self._coeffs[-1].is_zero():
            self._coeffs.pop()

    def eval_at_point(self, x: Any) -> Any:
        return horner_eval(self._coeffs, x)

    @classmethod
    def interpolate_lagrange(cls, xs: Sequence[Any], ys: Sequence[Any]) -> UnivariatePoly:
        """Return the polynomial through the points ``(xs[i], ys[i])``."""
        xs, ys = list(xs), list(ys)
        if len(xs) != len(ys):
            raise ValueError("xs and ys differ in length")

        result = cls.zero()
        for i, (xi, yi) in enumerate(zip(xs, ys)):
            others = [xj for j, xj in enumerate(xs) if j != i]
            prod = yi
            for xj in others:
                prod = prod / (xi - xj)

            x = cls._raw([type(xi).zero(), type(xi).one()])
            term = cls([prod])
            for xj in others:
                term = term * (x - cls([xj]))
            result = result + term

        return cls(result._coeffs)

    def degree(self) -> int:
        """Return the number of stored coefficients minus one, at least zero."""
        return max(len(self._coeffs) - 1, 0)

    @classmethod
    def zero(cls) -> UnivariatePoly:
        return cls._raw([])

    def is_zero(self) -> bool:
        return all(coeff.is_zero() for coeff in self._coeffs)

    def __mul__(self, other: object) -> UnivariatePoly:
        if isinstance(other, UnivariatePoly):
            if self.is_zero() or other.is_zero():
                return UnivariatePoly.zero()
            lhs = UnivariatePoly(self._coeffs)._coeffs
            rhs = UnivariatePoly(other._coeffs)._coeffs
            result = [type(lhs[0]).zero()] * (len(lhs) + len(rhs) - 1)
            for i, coeff_a in enumerate(lhs):
                for j, coeff_b in enumerate(rhs):
                    result[i + j] = result[i + j] + coeff_a * coeff_b
            return UnivariatePoly(result)
        return UnivariatePoly._raw(coeff * other for coeff in self._coeffs)

    def __rmul__(self, other: object) -> UnivariatePoly:
        if isinstance(other, UnivariatePoly):
            return NotImplemented
        return self * other

    def __add__(self, other: object) -> UnivariatePoly:
        if not isinstance(other, UnivariatePoly):
            return NotImplemented
        return UnivariatePoly._raw(
            b if a is None else a if b is None else a + b
            for a, b in zip_longest(self._coeffs, other._coeffs)
        )

    def __sub__(self, other: object) -> UnivariatePoly:
        if not isinstance(other, UnivariatePoly):
            return NotImplemented
        return self + (-other)

    def __neg__(self) -> UnivariatePoly:
        return UnivariatePoly._raw(-coeff for coeff in self._coeffs)

    def __len__(self) -> int:
        return len(self._coeffs)

    def __getitem__(self, index):
        return self._coeffs[index]

    def __iter__(self) -> Iterator[Any]:
        return iter(self._coeffs)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, UnivariatePoly):
            return NotImplemented
        return self._coeffs == other._coeffs

    def __repr__(self) -> str:
        return f"UnivariatePoly({self._coeffs!r})"


def horner_eval(coeffs: Sequence[Any], x: Any) -> Any:
    """Evaluate the polynomial with ``coeffs`` (lowest first) at ``x``."""
    acc = type(x).zero()
    for coeff in reversed(coeffs):
        acc = acc * x + coeff
    return acc


def random_linear_combination(v: Sequence[SecureField], alpha: SecureField) -> SecureField:
    """Return ``v[0] + alpha * v[1] + ... + alpha^(n-1) * v[n-1]``."""
    return horner_eval(v, alpha)


def eq(x: Sequence[Any], y: Sequence[Any]) -> Any:
    """Evaluate the Lagrange kernel of the boolean hypercube at ``(x, y)``.

    Empty points give the secure field's one.
    """
    x, y = list(x), list(y)
    if len(x) != len(y):
        raise ValueError("points differ in length")
    if not x:
        return QM31.one()
    one = type(x[0]).one()
    return reduce(
        operator.mul,
        (xi * yi + (one - xi) * (one - yi) for xi, yi in zip(x, y)),
    )


def fold_mle_evals(assignment: SecureField, eval0: Any, eval1: Any) -> SecureField:
    """Return ``eq(0, assignment) * eval0 + eq(1, assignment) * eval1``."""
    return assignment * (eval1 - eval0) + eval0


@dataclass(frozen=True)
class Fraction:
    """A projective fraction ``numerator / denominator``."""

    numerator: Any
    denominator: Any

    def __add__(self, other: object) -> Fraction:
        if not isinstance(other, Fraction):
            return NotImplemented
        return Fraction(
            other.denominator * self.numerator + self.denominator * other.numerator,
            self.denominator * other.denominator,
        )

    def __radd__(self, other: object) -> Fraction:
        # Lets the builtin sum() start from its integer zero.
        if isinstance(other, int) and other == 0:
            return self
        return NotImplemented

    @classmethod
    def zero(cls) -> Fraction:
        """Return ``0 / 1`` over the secure field."""
        return cls(QM31.zero(), QM31.one())

    def is_zero(self) -> bool:
        return self.numerator.is_zero() and not self.denominator.is_zero()


@dataclass(frozen=True)
class Reciprocal:
    """The fraction ``1 / x``."""

    x: Any

    def __add__(self, other: object) -> Fraction:
        if not isinstance(other, Reciprocal):
            return NotImplemented
        # 1/a + 1/b = (a + b) / (a * b)
        return Fraction(self.x + other.x, self.x * other.x)

    def __sub__(self, other: object) -> Fraction:
        if not isinstance(other, Reciprocal):
            return NotImplemented
        # 1/a - 1/b = (b - a) / (a * b)
        return Fraction(other.x - self.x, self.x * other.x)