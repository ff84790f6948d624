"""Batch verifier for GKR proofs of grand product and LogUp lookup circuits."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from ..fields.m31 import M31
from ..fields.qm31 import SecureField
from . import sumcheck
from .sumcheck import SumcheckError, SumcheckProof
from .utils import Fraction, eq, fold_mle_evals, random_linear_combination

__all__ = [
    "CircuitCheckFailureError",
    "Gate",
    "GkrArtifact",
    "GkrBatchProof",
    "GkrError",
    "GkrMask",
    "InvalidMaskError",
    "InvalidSumcheckError",
    "MalformedProofError",
    "NumInstancesMismatchError",
    "partially_verify_batch",
]


class Channel(Protocol):
    def mix_felts(self, felts: list[SecureField]) -> None: ...

    def draw_felt(self) -> SecureField: ...


class _InvalidNumMaskColumnsError(ValueError):
    """The mask has the wrong number of columns for the gate."""


class GkrMask:
    """Two evaluations of each column in a GKR layer."""

    __slots__ = ("_columns",)

    def __init__(self, columns: Iterable[Sequence[SecureField]]) -> None:
        cols = []
        for column in columns:
            pair = tuple(column)
            if len(pair) != 2:
                raise ValueError("each mask column must hold exactly two values")
            cols.append(pair)
        self._columns = tuple(cols)

    @property
    def columns(self) -> tuple[tuple[SecureField, SecureField], ...]:
        return self._columns

    def to_rows(self) -> tuple[list[SecureField], list[SecureField]]:
        """Return the first and the second value of every column as two rows."""
        return [a for a, _ in self._columns], [b for _, b in self._columns]

    def reduce_at_point(self, x: SecureField) -> list[SecureField]:
        """Return ``p_i(x)`` for each column ``i``, where ``p_i`` interpolates it on ``{0, 1}``."""
        return [fold_mle_evals(x, v0, v1) for v0, v1 in self._columns]

    def flattened(self) -> list[SecureField]:
        return [value for column in self._columns for value in column]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GkrMask):
            return NotImplemented
        return self._columns == other._columns

    def __repr__(self) -> str:
        return f"GkrMask({list(self._columns)!r})"


class Gate(Enum):
    """How a binary tree circuit turns two input rows into one output row."""

    LOG_UP = "log_up"
    GRAND_PRODUCT = "grand_product"

    def eval(self, mask: GkrMask) -> list[SecureField]:
        """Return the output of the gate applied to ``mask``."""
        columns = mask.columns
        if self is Gate.LOG_UP:
            if len(columns) != 2:
                raise _InvalidNumMaskColumnsError("LogUp gate needs two mask columns")
            (numerator_a, numerator_b), (denominator_a, denominator_b) = columns
            res = Fraction(numerator_a, denominator_a) + Fraction(numerator_b, denominator_b)
            return [res.numerator, res.denominator]
        if len(columns) != 1:
            raise _InvalidNumMaskColumnsError("grand product gate needs one mask column")
        (a, b), = columns
        return [a * b]


@dataclass
class GkrBatchProof:
    """A batch GKR proof."""

    sumcheck_proofs: list[SumcheckProof] = field(default_factory=list)
    layer_masks_by_instance: list[list[GkrMask]] = field(default_factory=list)
    output_claims_by_instance: list[list[SecureField]] = field(default_factory=list)


@dataclass
class GkrArtifact:
    """Values obtained from running the GKR protocol."""

    ood_point: list[SecureField]
    claims_to_verify_by_instance: list[list[SecureField]]
    n_variables_by_instance: list[int]


class GkrError(Exception):
    """GKR verification failed."""


class MalformedProofError(GkrError):
    def __init__(self) -> None:
        super().__init__("proof data is invalid")


class InvalidMaskError(GkrError):
    def __init__(self, instance: int, instance_layer: int) -> None:
        super().__init__(f"mask in layer {instance_layer} of instance {instance} is invalid")
        self.instance = instance
        self.instance_layer = instance_layer


class NumInstancesMismatchError(GkrError):
    def __init__(self, given: int, proof: int) -> None:
        super().__init__(
            f"provided an invalid number of instances (given {given}, proof expects {proof})"
        )
        self.given = given
        self.proof = proof


class InvalidSumcheckError(GkrError):
    def __init__(self, layer: int, source: SumcheckError) -> None:
        super().__init__(f"sum-check invalid in layer {layer}: {source}")
        self.layer = layer
        self.source = source


class CircuitCheckFailureError(GkrError):
    def __init__(self, claim: SecureField, output: SecureField, layer: int) -> None:
        super().__init__(
            f"circuit check failed in layer {layer} (calculated {output}, claim {claim})"
        )
        self.claim = claim
        self.output = output
        self.layer = layer


def partially_verify_batch(
    gate_by_instance: Sequence[Gate],
    proof: GkrBatchProof,
    channel: Channel,
) -> GkrArtifact:
    """Partially verify a batch GKR proof.

    The claimed input layer evaluations in the returned artifact are not
    checked here; the caller must check them.
    """
    masks_by_instance = proof.layer_masks_by_instance
    sumcheck_proofs = proof.sumcheck_proofs

    if len(masks_by_instance) != len(proof.output_claims_by_instance):
        raise MalformedProofError()

    n_instances = len(masks_by_instance)
    if n_instances == 0:
        raise MalformedProofError()
    n_layers_by_instance = [len(masks) for masks in masks_by_instance]
    n_layers = max(n_layers_by_instance)

    if n_layers != len(sumcheck_proofs):
        raise MalformedProofError()

    if len(gate_by_instance) != n_instances:
        raise NumInstancesMismatchError(len(gate_by_instance), n_instances)

    ood_point: list[SecureField] = []
    claims_to_verify_by_instance: list[list[SecureField] | None] = [None] * n_instances

    for layer, sumcheck_proof in enumerate(sumcheck_proofs):
        n_remaining_layers = n_layers - layer

        for instance, n_instance_layers in enumerate(n_layers_by_instance):
            if n_instance_layers == n_remaining_layers:
                claims_to_verify_by_instance[instance] = list(
                    proof.output_claims_by_instance[instance]
                )

        for claims_to_verify in claims_to_verify_by_instance:
            if claims_to_verify is not None:
                channel.mix_felts(claims_to_verify)

        sumcheck_alpha = channel.draw_felt()
        instance_lambda = channel.draw_felt()

        sumcheck_claims = []
        sumcheck_instances = []
        for instance, claims_to_verify in enumerate(claims_to_verify_by_instance):
            if claims_to_verify is None:
                continue
            n_unused = n_layers - n_layers_by_instance[instance]
            doubling_factor = M31(1 << n_unused)
            claim = random_linear_combination(claims_to_verify, instance_lambda) * doubling_factor
            sumcheck_claims.append(claim)
            sumcheck_instances.append(instance)

        sumcheck_claim = random_linear_combination(sumcheck_claims, sumcheck_alpha)
        try:
            sumcheck_ood_point, sumcheck_eval = sumcheck.partially_verify(
                sumcheck_claim, sumcheck_proof, channel
            )
        except SumcheckError as error:
            raise InvalidSumcheckError(layer, error) from error

        def instance_mask(instance: int) -> GkrMask:
            n_unused = n_layers - n_layers_by_instance[instance]
            return masks_by_instance[instance][layer - n_unused]

        layer_evals = []
        for instance in sumcheck_instances:
            n_unused = n_layers - n_layers_by_instance[instance]
            try:
                gate_output = gate_by_instance[instance].eval(instance_mask(instance))
            except _InvalidNumMaskColumnsError as error:
                raise InvalidMaskError(instance, layer - n_unused) from error
            eq_eval = eq(ood_point[n_unused:], sumcheck_ood_point[n_unused:])
            layer_evals.append(eq_eval * random_linear_combination(gate_output, instance_lambda))

        layer_eval = random_linear_combination(layer_evals, sumcheck_alpha)
        if sumcheck_eval != layer_eval:
            raise CircuitCheckFailureError(sumcheck_eval, layer_eval, layer)

        for instance in sumcheck_instances:
            channel.mix_felts(instance_mask(instance).flattened())

        challenge = channel.draw_felt()
        ood_point = list(sumcheck_ood_point)
        ood_point.append(challenge)

        for instance in sumcheck_instances:
            claims_to_verify_by_instance[instance] = instance_mask(instance).reduce_at_point(
                challenge
            )

    if any(claims is None for claims in claims_to_verify_by_instance):
        raise MalformedProofError()

    return GkrArtifact(
        ood_point=ood_point,
        claims_to_verify_by_instance=[list(claims) for claims in claims_to_verify_by_instance],
        n_variables_by_instance=n_layers_by_instance,
    )