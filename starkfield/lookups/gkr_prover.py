"""Batch prover for GKR proofs of grand product and LogUp lookup circuits."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, replace
from typing import Any, Protocol

from ..fields.m31 import M31
from ..fields.qm31 import QM31, SecureField
from . import sumcheck
from .gkr_verifier import GkrArtifact, GkrBatchProof, GkrMask
from .mle import Mle
from .sumcheck import MultivariatePolyOracle
from .utils import Fraction, Reciprocal, UnivariatePoly, eq, random_linear_combination

__all__ = [
    "EqEvals",
    "GkrMultivariatePolyOracle",
    "GrandProductLayer",
    "Layer",
    "LogUpGenericLayer",
    "LogUpMultiplicitiesLayer",
    "LogUpSinglesLayer",
    "NotConstantPolyError",
    "correct_sum_as_poly_in_first_variable",
    "gen_eq_evals",
    "prove_batch",
]


class Channel(Protocol):
    def mix_felts(self, felts: list[SecureField]) -> None: ...

    def draw_felt(self) -> SecureField: ...


def _lift(value: Any) -> SecureField:
    if isinstance(value, QM31):
        return value
    zero = M31.zero()
    return QM31.from_m31(value, zero, zero, zero)


def _pairs(values: Sequence[Any]) -> list[tuple[Any, Any]]:
    values = list(values)
    return list(zip(values[::2], values[1::2]))


def gen_eq_evals(y: Sequence[SecureField], v: SecureField) -> Mle:
    """Return evaluations ``eq(x, y) * v`` for all ``x`` in ``{0, 1}^n``.

    The first coordinate of ``x`` selects the lower or upper half of the result.
    """
    evals = [v]
    for y_i in reversed(list(y)):
        scaled = [e * y_i for e in evals]
        evals = [e - s for e, s in zip(evals, scaled)] + scaled
    return Mle(evals)


@dataclass(frozen=True)
class EqEvals:
    """Evaluations of ``eq(x, y)`` on all hypercube points ``x = (0, x_1, ..., x_{n-1})``."""

    y: tuple
    evals: Mle

    @classmethod
    def generate(cls, y: Sequence[SecureField]) -> EqEvals:
        y = tuple(y)
        if not y:
            return cls(y, Mle([QM31.one()]))
        evals = gen_eq_evals(y[1:], eq([QM31.zero()], [y[0]]))
        return cls(y, evals)

    def __getitem__(self, index):
        return self.evals[index]

    def __len__(self) -> int:
        return len(self.evals)

    def __iter__(self) -> Iterator[SecureField]:
        return iter(self.evals)


def _eq_prefix(eq_evals: EqEvals, n_terms: int) -> list[SecureField]:
    if len(eq_evals) < n_terms:
        raise ValueError("not enough eq evaluations for the layer")
    return list(eq_evals)[:n_terms]


def _grand_product_sums(
    eq_evals: EqEvals, values: Sequence[Any], n_terms: int
) -> tuple[SecureField, SecureField]:
    pairs = _pairs(values)
    eval_at_0 = QM31.zero()
    eval_at_2 = QM31.zero()
    for eq_eval, (r0i0, r0i1), (r1i0, r1i1) in zip(
        _eq_prefix(eq_evals, n_terms), pairs[:n_terms], pairs[n_terms:]
    ):
        # inp(r, 2, x) = 2 * inp(r, 1, x) - inp(r, 0, x)
        r2i0 = r1i0.double() - r0i0
        r2i1 = r1i1.double() - r0i1
        eval_at_0 = eval_at_0 + eq_eval * (r0i0 * r0i1)
        eval_at_2 = eval_at_2 + eq_eval * (r2i0 * r2i1)
    return eval_at_0, eval_at_2


def _logup_sums(
    eq_evals: EqEvals,
    numerators: Sequence[Any],
    denominators: Sequence[Any],
    n_terms: int,
    lambda_: SecureField,
) -> tuple[SecureField, SecureField]:
    num_pairs = _pairs(numerators)
    den_pairs = _pairs(denominators)
    eval_at_0 = QM31.zero()
    eval_at_2 = QM31.zero()
    for eq_eval, (n0i0, n0i1), (d0i0, d0i1), (n1i0, n1i1), (d1i0, d1i1) in zip(
        _eq_prefix(eq_evals, n_terms),
        num_pairs[:n_terms],
        den_pairs[:n_terms],
        num_pairs[n_terms:],
        den_pairs[n_terms:],
    ):
        n2i0 = n1i0.double() - n0i0
        d2i0 = d1i0.double() - d0i0
        n2i1 = n1i1.double() - n0i1
        d2i1 = d1i1.double() - d0i1
        at_r0 = Fraction(n0i0, d0i0) + Fraction(n0i1, d0i1)
        at_r2 = Fraction(n2i0, d2i0) + Fraction(n2i1, d2i1)
        eval_at_0 = eval_at_0 + eq_eval * (at_r0.numerator + lambda_ * at_r0.denominator)
        eval_at_2 = eval_at_2 + eq_eval * (at_r2.numerator + lambda_ * at_r2.denominator)
    return eval_at_0, eval_at_2


def _logup_singles_sums(
    eq_evals: EqEvals, denominators: Sequence[Any], n_terms: int, lambda_: SecureField
) -> tuple[SecureField, SecureField]:
    pairs = _pairs(denominators)
    eval_at_0 = QM31.zero()
    eval_at_2 = QM31.zero()
    for eq_eval, (d0i0, d0i1), (d1i0, d1i1) in zip(
        _eq_prefix(eq_evals, n_terms), pairs[:n_terms], pairs[n_terms:]
    ):
        d2i0 = d1i0.double() - d0i0
        d2i1 = d1i1.double() - d0i1
        at_r0 = Reciprocal(d0i0) + Reciprocal(d0i1)
        at_r2 = Reciprocal(d2i0) + Reciprocal(d2i1)
        eval_at_0 = eval_at_0 + eq_eval * (at_r0.numerator + lambda_ * at_r0.denominator)
        eval_at_2 = eval_at_2 + eq_eval * (at_r2.numerator + lambda_ * at_r2.denominator)
    return eval_at_0, eval_at_2


def _next_logup_layer(numerators: Sequence[Any], denominators: Sequence[Any]) -> Layer:
    fractions = [
        Fraction(n0, d0) + Fraction(n1, d1)
        for (n0, n1), (d0, d1) in zip(_pairs(numerators), _pairs(denominators))
    ]
    return LogUpGenericLayer(
        numerators=Mle(_lift(f.numerator) for f in fractions),
        denominators=Mle(f.denominator for f in fractions),
    )


class Layer(ABC):
    """A layer in a binary tree structured GKR circuit."""

    @abstractmethod
    def _shape_mle(self) -> Mle:
        """The column whose size determines the layer's number of variables."""

    @abstractmethod
    def _next(self) -> Layer:
        """Compute the next layer, half the size of this one."""

    @abstractmethod
    def _output_values(self) -> list[SecureField]:
        """Return the column outputs of an output layer."""

    @abstractmethod
    def _fix(self, x0: SecureField) -> Layer:
        """Fix the first variable of every column to ``x0``."""

    @abstractmethod
    def _sums(
        self, eq_evals: EqEvals, n_terms: int, lambda_: SecureField
    ) -> tuple[SecureField, SecureField]:
        """Return the uncorrected round sums at ``t = 0`` and ``t = 2``."""

    @abstractmethod
    def _mask_columns(self) -> list[list[SecureField]]:
        """Return both values of every column of a one-variable layer."""

    def n_variables(self) -> int:
        """Return the number of variables interpolating the layer's gate values."""
        return self._shape_mle().n_variables()

    def _is_output_layer(self) -> bool:
        return self.n_variables() == 0

    def next_layer(self) -> Layer | None:
        """Return the next layer, or ``None`` for an output layer."""
        if self._is_output_layer():
            return None
        return self._next()

    def _try_into_output_layer_values(self) -> list[SecureField]:
        if not self._is_output_layer():
            raise ValueError("layer is not an output layer")
        return self._output_values()

    def _fix_first_variable(self, x0: SecureField) -> Layer:
        if self.n_variables() == 0:
            return self
        return self._fix(x0)

    def _into_multivariate_poly(
        self, lambda_: SecureField, eq_evals: EqEvals
    ) -> GkrMultivariatePolyOracle:
        return GkrMultivariatePolyOracle(
            eq_evals=eq_evals,
            input_layer=self,
            eq_fixed_var_correction=QM31.one(),
            lambda_=lambda_,
        )


@dataclass(frozen=True, eq=False)
class GrandProductLayer(Layer):
    mle: Mle

    def _shape_mle(self) -> Mle:
        return self.mle

    def _next(self) -> Layer:
        return GrandProductLayer(Mle(a * b for a, b in _pairs(self.mle)))

    def _output_values(self) -> list[SecureField]:
        return [_lift(self.mle[0])]

    def _fix(self, x0: SecureField) -> Layer:
        return GrandProductLayer(self.mle.fix_first_variable(x0))

    def _sums(self, eq_evals, n_terms, lambda_):
        return _grand_product_sums(eq_evals, list(self.mle), n_terms)

    def _mask_columns(self) -> list[list[SecureField]]:
        return [[_lift(v) for v in self.mle]]


@dataclass(frozen=True, eq=False)
class LogUpGenericLayer(Layer):
    numerators: Mle
    denominators: Mle

    def _shape_mle(self) -> Mle:
        return self.denominators

    def _next(self) -> Layer:
        return _next_logup_layer(list(self.numerators), list(self.denominators))

    def _output_values(self) -> list[SecureField]:
        return [_lift(self.numerators[0]), self.denominators[0]]

    def _fix(self, x0: SecureField) -> Layer:
        return LogUpGenericLayer(
            self.numerators.fix_first_variable(x0),
            self.denominators.fix_first_variable(x0),
        )

    def _sums(self, eq_evals, n_terms, lambda_):
        return _logup_sums(
            eq_evals, list(self.numerators), list(self.denominators), n_terms, lambda_
        )

    def _mask_columns(self) -> list[list[SecureField]]:
        return [[_lift(v) for v in self.numerators], [_lift(v) for v in self.denominators]]


@dataclass(frozen=True, eq=False)
class LogUpMultiplicitiesLayer(Layer):
    """LogUp layer with base field numerators."""

    numerators: Mle
    denominators: Mle

    def _shape_mle(self) -> Mle:
        return self.denominators

    def _next(self) -> Layer:
        return _next_logup_layer(list(self.numerators), list(self.denominators))

    def _output_values(self) -> list[SecureField]:
        return [_lift(self.numerators[0]), self.denominators[0]]

    def _fix(self, x0: SecureField) -> Layer:
        return LogUpGenericLayer(
            self.numerators.fix_first_variable(x0),
            self.denominators.fix_first_variable(x0),
        )

    def _sums(self, eq_evals, n_terms, lambda_):
        return _logup_sums(
            eq_evals, list(self.numerators), list(self.denominators), n_terms, lambda_
        )

    def _mask_columns(self) -> list[list[SecureField]]:
        return [[_lift(v) for v in self.numerators], [_lift(v) for v in self.denominators]]


@dataclass(frozen=True, eq=False)
class LogUpSinglesLayer(Layer):
    """LogUp layer whose numerators all equal one."""

    denominators: Mle

    def _shape_mle(self) -> Mle:
        return self.denominators

    def _next(self) -> Layer:
        denominators = list(self.denominators)
        return _next_logup_layer([M31.one()] * len(denominators), denominators)

    def _output_values(self) -> list[SecureField]:
        return [QM31.one(), self.denominators[0]]

    def _fix(self, x0: SecureField) -> Layer:
        return LogUpSinglesLayer(self.denominators.fix_first_variable(x0))

    def _sums(self, eq_evals, n_terms, lambda_):
        return _logup_singles_sums(eq_evals, list(self.denominators), n_terms, lambda_)

    def _mask_columns(self) -> list[list[SecureField]]:
        return [[QM31.one(), QM31.one()], [_lift(v) for v in self.denominators]]


class NotConstantPolyError(ValueError):
    """A polynomial expected to be constant is not."""

    def __init__(self) -> None:
        super().__init__("polynomial is not constant")


@dataclass(frozen=True, eq=False)
class GkrMultivariatePolyOracle(MultivariatePolyOracle):
    """The polynomial relating two consecutive GKR layers, fed by ``input_layer``."""

    eq_evals: EqEvals
    input_layer: Layer
    eq_fixed_var_correction: SecureField
    lambda_: SecureField

    def n_variables(self) -> int:
        return self.input_layer.n_variables() - 1

    def _is_constant(self) -> bool:
        return self.n_variables() == 0

    def sum_as_poly_in_first_variable(self, claim: SecureField) -> UnivariatePoly:
        n_variables = self.n_variables()
        if n_variables <= 0:
            raise ValueError("oracle has no variables to sum over")
        n_terms = 1 << (n_variables - 1)
        eval_at_0, eval_at_2 = self.input_layer._sums(self.eq_evals, n_terms, self.lambda_)
        eval_at_0 = eval_at_0 * self.eq_fixed_var_correction
        eval_at_2 = eval_at_2 * self.eq_fixed_var_correction
        return correct_sum_as_poly_in_first_variable(
            eval_at_0, eval_at_2, claim, self.eq_evals.y, n_variables
        )

    def fix_first_variable(self, challenge: SecureField) -> GkrMultivariatePolyOracle:
        if self._is_constant():
            return self
        y = self.eq_evals.y
        z0 = y[len(y) - self.n_variables()]
        return replace(
            self,
            eq_fixed_var_correction=self.eq_fixed_var_correction * eq([challenge], [z0]),
            input_layer=self.input_layer._fix_first_variable(challenge),
        )

    def _try_into_mask(self) -> GkrMask:
        if not self._is_constant():
            raise NotConstantPolyError()
        return GkrMask(self.input_layer._mask_columns())


def correct_sum_as_poly_in_first_variable(
    f_at_0: SecureField,
    f_at_2: SecureField,
    claim: SecureField,
    y: Sequence[SecureField],
    k: int,
) -> UnivariatePoly:
    """Compute ``r(t) = sum_x eq((t, x), y[-k:]) * p(t, x)`` from ``f(0)`` and ``f(2)``.

    ``claim`` must equal ``r(0) + r(1)``; ``r`` has degree at most 3.
    """
    if k == 0:
        raise ValueError("k must be non-zero")
    y = list(y)
    n = len(y)
    if k > n:
        raise ValueError("k exceeds the length of y")

    zero, one = QM31.zero(), QM31.one()
    two = one.double()

    a_const = eq([zero] * (n - k + 1), y[: n - k + 1]).inverse()
    y_nk = y[n - k]
    # Root of eq(t, y[n - k]).
    b_const = (one - y_nk) / (one - y_nk.double())

    r_at_0 = f_at_0 * eq([zero], [y_nk]) * a_const
    r_at_1 = claim - r_at_0
    r_at_2 = f_at_2 * eq([two], [y_nk]) * a_const

    return UnivariatePoly.interpolate_lagrange(
        [zero, one, two, b_const], [r_at_0, r_at_1, r_at_2, zero]
    )


def _gen_layers(input_layer: Layer) -> list[Layer]:
    layers = [input_layer]
    while (nxt := layers[-1].next_layer()) is not None:
        layers.append(nxt)
    if len(layers) != input_layer.n_variables() + 1:
        raise AssertionError("unexpected number of circuit layers")
    return layers


def prove_batch(
    channel: Channel, input_layer_by_instance: Sequence[Layer]
) -> tuple[GkrBatchProof, GkrArtifact]:
    """Batch prove lookup circuits with GKR.

    The input layers should be committed to the channel beforehand.
    """
    input_layers = list(input_layer_by_instance)
    if not input_layers:
        raise ValueError("no input layers provided")
    n_instances = len(input_layers)
    n_layers_by_instance = [layer.n_variables() for layer in input_layers]
    if min(n_layers_by_instance) == 0:
        raise ValueError("input layers must have at least one variable")
    n_layers = max(n_layers_by_instance)

    layers_by_instance = [iter(reversed(_gen_layers(layer))) for layer in input_layers]

    output_claims_by_instance: list[list[SecureField] | None] = [None] * n_instances
    layer_masks_by_instance: list[list[GkrMask]] = [[] for _ in range(n_instances)]
    sumcheck_proofs = []

    ood_point: list[SecureField] = []
    claims_to_verify_by_instance: list[list[SecureField] | None] = [None] * n_instances

    for layer in range(n_layers):
        n_remaining_layers = n_layers - layer

        for instance, layers in enumerate(layers_by_instance):
            if n_layers_by_instance[instance] == n_remaining_layers:
                values = next(layers)._try_into_output_layer_values()
                claims_to_verify_by_instance[instance] = list(values)
                output_claims_by_instance[instance] = list(values)

        for claims_to_verify in claims_to_verify_by_instance:
            if claims_to_verify is not None:
                channel.mix_felts(claims_to_verify)

        eq_evals = EqEvals.generate(ood_point)
        sumcheck_alpha = channel.draw_felt()
        instance_lambda = channel.draw_felt()

        oracles = []
        sumcheck_claims = []
        sumcheck_instances = []
        for instance, claims_to_verify in enumerate(claims_to_verify_by_instance):
            if claims_to_verify is None:
                continue
            current = next(layers_by_instance[instance])
            oracles.append(current._into_multivariate_poly(instance_lambda, eq_evals))
            sumcheck_claims.append(random_linear_combination(claims_to_verify, instance_lambda))
            sumcheck_instances.append(instance)

        sumcheck_proof, sumcheck_ood_point, constant_oracles, _ = sumcheck.prove_batch(
            sumcheck_claims, oracles, sumcheck_alpha, channel
        )
        sumcheck_proofs.append(sumcheck_proof)

        masks = [oracle._try_into_mask() for oracle in constant_oracles]
        for instance, mask in zip(sumcheck_instances, masks):
            channel.mix_felts(mask.flattened())
            layer_masks_by_instance[instance].append(mask)

        challenge = channel.draw_felt()
        ood_point = list(sumcheck_ood_point) + [challenge]

        for instance, mask in zip(sumcheck_instances, masks):
            claims_to_verify_by_instance[instance] = mask.reduce_at_point(challenge)

    proof = GkrBatchProof(
        sumcheck_proofs=sumcheck_proofs,
        layer_masks_by_instance=layer_masks_by_instance,
        output_claims_by_instance=[list(c) for c in output_claims_by_instance],
    )
    artifact = GkrArtifact(
        ood_point=ood_point,
        claims_to_verify_by_instance=[list(c) for c in claims_to_verify_by_instance],
        n_variables_by_instance=n_layers_by_instance,
    )
    return proof, artifact