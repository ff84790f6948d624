"""Sum-check protocol proving claims about ``sum_x g(x)`` over ``{0, 1}^n``."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Protocol

from ..fields.m31 import M31
from ..fields.qm31 import QM31, SecureField
from .utils import UnivariatePoly

__all__ = [
    "MAX_DEGREE",
    "MultivariatePolyOracle",
    "SumcheckDegreeInvalidError",
    "SumcheckError",
    "SumcheckProof",
    "SumcheckSumInvalidError",
    "partially_verify",
    "prove_batch",
]

MAX_DEGREE = 3
"""Max degree of the round polynomials the verifier accepts."""


class Channel(Protocol):
    def mix_felts(self, felts: list[SecureField]) -> None: ...

    def draw_felt(self) -> SecureField: ...


class MultivariatePolyOracle(ABC):
    """Something that can be seen as a multivariate polynomial ``g(x_0, ..., x_{n-1})``."""

    @abstractmethod
    def n_variables(self) -> int:
        """Return the number of variables in ``g``."""

    @abstractmethod
    def sum_as_poly_in_first_variable(self, claim: SecureField) -> UnivariatePoly:
        """Return ``f(x_0) = sum g(x_0, x_1, ...)`` over the remaining hypercube.

        ``claim`` equals ``f(0) + f(1)``.
        """

    @abstractmethod
    def fix_first_variable(self, challenge: SecureField) -> MultivariatePolyOracle:
        """Return the oracle for ``g(challenge, x_1, ..., x_{n-1})``."""


@dataclass
class SumcheckProof:
    """The round polynomials of a sum-check proof."""

    round_polys: list[UnivariatePoly] = field(default_factory=list)


class SumcheckError(Exception):
    """Sum-check verification failed."""


class SumcheckDegreeInvalidError(SumcheckError):
    def __init__(self, round: int) -> None:
        super().__init__(f"degree of the polynomial in round {round} is too high")
        self.round = round


class SumcheckSumInvalidError(SumcheckError):
    def __init__(self, claim: SecureField, sum: SecureField, round: int) -> None:
        super().__init__(
            f"sum does not match the claim in round {round} (sum {sum}, claim {claim})"
        )
        self.claim = claim
        self.sum = sum
        self.round = round


def _random_linear_combination(polys: list[UnivariatePoly], alpha: SecureField) -> UnivariatePoly:
    acc = UnivariatePoly.zero()
    for poly in reversed(polys):
        acc = acc * alpha + poly
    return acc


def prove_batch(
    claims: list[SecureField],
    multivariate_polys: list[Any],
    lambda_: SecureField,
    channel: Channel,
) -> tuple[SumcheckProof, list[SecureField], list[Any], list[SecureField]]:
    """Run sum-check on ``h = g_0 + lambda * g_1 + ...``.

    Polynomials with fewer variables are folded in the latest possible rounds.
    Returns ``(proof, assignment, constant_oracles, claimed_evals)``.
    """
    polys = list(multivariate_polys)
    if not polys:
        raise ValueError("no multivariate polynomials provided")
    claims = list(claims)
    if len(claims) != len(polys):
        raise ValueError("number of claims does not match number of polynomials")

    n_variables = max(poly.n_variables() for poly in polys)

    # Scale the claims to the sum over `h`'s hypercube.
    claims = [
        claim * M31(1 << (n_variables - poly.n_variables()))
        for claim, poly in zip(claims, polys)
    ]

    round_polys = []
    assignment = []
    two = M31(2)

    for round in range(n_variables):
        n_remaining_rounds = n_variables - round

        this_round_polys = []
        for i, (poly, claim) in enumerate(zip(polys, claims)):
            if n_remaining_rounds == poly.n_variables():
                round_poly = poly.sum_as_poly_in_first_variable(claim)
            else:
                round_poly = UnivariatePoly([claim / two])

            eval_at_0 = round_poly.eval_at_point(QM31.zero())
            eval_at_1 = round_poly.eval_at_point(QM31.one())
            if eval_at_0 + eval_at_1 != claim:
                raise ValueError(f"round polynomial inconsistent with claim: i={i}, round={round}")
            if round_poly.degree() > MAX_DEGREE:
                raise ValueError(f"round polynomial degree too high: i={i}, round={round}")
            this_round_polys.append(round_poly)

        round_poly = _random_linear_combination(this_round_polys, lambda_)
        channel.mix_felts(list(round_poly))
        challenge = channel.draw_felt()

        claims = [poly.eval_at_point(challenge) for poly in this_round_polys]
        polys = [
            poly.fix_first_variable(challenge)
            if n_remaining_rounds == poly.n_variables()
            else poly
            for poly in polys
        ]

        round_polys.append(round_poly)
        assignment.append(challenge)

    return SumcheckProof(round_polys), assignment, polys, claims


def partially_verify(
    claim: SecureField, proof: SumcheckProof, channel: Channel
) -> tuple[list[SecureField], SecureField]:
    """Check each round of ``proof`` against the running claim.

    Returns ``(assignment, claimed_eval)``; the caller must check the final
    evaluation. Raises a ``SumcheckError`` on failure.
    """
    assignment = []

    for round, round_poly in enumerate(proof.round_polys):
        if round_poly.degree() > MAX_DEGREE:
            raise SumcheckDegreeInvalidError(round)

        total = round_poly.eval_at_point(QM31.zero()) + round_poly.eval_at_point(QM31.one())
        if claim != total:
            raise SumcheckSumInvalidError(claim, total, round)

        channel.mix_felts(list(round_poly))
        challenge = channel.draw_felt()
        claim = round_poly.eval_at_point(challenge)
        assignment.append(challenge)

    return assignment, claim