"""Multilinear extensions stored as evaluations over the boolean hypercube."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from functools import reduce
import operator
from typing import Any

from ..fields.m31 import M31
from ..fields.qm31 import QM31, SecureField
from .utils import UnivariatePoly, fold_mle_evals

__all__ = ["Mle"]


def _to_secure(value: Any) -> SecureField:
    if isinstance(value, QM31):
        return value
    if isinstance(value, M31):
        zero = M31.zero()
        return QM31.from_m31(value, zero, zero, zero)
    raise TypeError(f"cannot lift {type(value).__name__} into the secure field")


class Mle:
    """A multilinear polynomial given by its evaluations on ``{0, 1}^n``.

    The first variable selects between the lower and upper half of the
    evaluations, the second between the quarters of each half, and so on.
    """

    __slots__ = ("_evals",)

    def __init__(self, evals: Iterable[Any]) -> None:
        values = list(evals)
        n = len(values)
        if n == 0 or n & (n - 1):
            raise ValueError("number of evaluations must be a power of two")
        self._evals = values

    @property
    def evals(self) -> list:
        """A copy of the stored evaluations."""
        return list(self._evals)

    def n_variables(self) -> int:
        """Return the number of variables of the polynomial."""
        return len(self._evals).bit_length() - 1

    def fix_first_variable(self, assignment: SecureField) -> Mle:
        """Return the secure field polynomial with the first variable set to ``assignment``."""
        if self.n_variables() == 0:
            raise ValueError("polynomial has no variables to fix")
        half = len(self._evals) // 2
        return Mle(
            fold_mle_evals(assignment, lhs, rhs)
            for lhs, rhs in zip(self._evals[:half], self._evals[half:])
        )

    def eval_at_point(self, point: Sequence[SecureField]) -> SecureField:
        """Evaluate the polynomial at ``point``, one coordinate per leading variable."""
        if len(point) > self.n_variables():
            raise ValueError("point has more coordinates than the polynomial has variables")
        values = [_to_secure(v) for v in self._evals]
        for p_i in point:
            half = len(values) // 2
            # Equivalent to `eq(0, p_i) * lhs + eq(1, p_i) * rhs`.
            values = [p_i * (rhs - lhs) + lhs for lhs, rhs in zip(values[:half], values[half:])]
        return values[0]

    def sum_as_poly_in_first_variable(self, claim: SecureField) -> UnivariatePoly:
        """Return ``f(t) = sum_x g(t, x)``, using ``claim = f(0) + f(1)``."""
        if self.n_variables() == 0:
            raise ValueError("polynomial has no variables to sum over")
        half = len(self._evals) // 2
        y0 = reduce(operator.add, (_to_secure(v) for v in self._evals[:half]), QM31.zero())
        y1 = claim - y0
        return UnivariatePoly.interpolate_lagrange([QM31.zero(), QM31.one()], [y0, y1])

    def __len__(self) -> int:
        return len(self._evals)

    def __iter__(self) -> Iterator[Any]:
        return iter(self._evals)

    def __getitem__(self, index):
        return self._evals[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Mle):
            return NotImplemented
        return self._evals == other._evals

    def __repr__(self) -> str:
        return f"Mle({self._evals!r})"