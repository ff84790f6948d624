import hashlib

import pytest

from starkfield.fields.base import elements_to_bytes
from starkfield.fields.m31 import P
from starkfield.fields.qm31 import QM31
from starkfield.lookups.gkr_verifier import (
    CircuitCheckFailureError,
    Gate,
    GkrBatchProof,
    GkrMask,
    InvalidMaskError,
    InvalidSumcheckError,
    MalformedProofError,
    NumInstancesMismatchError,
    partially_verify_batch,
)
from starkfield.lookups.mle import Mle
from starkfield.lookups.sumcheck import SumcheckDegreeInvalidError, SumcheckProof
from starkfield.lookups.utils import Fraction, UnivariatePoly


class _Channel:
    def __init__(self):
        self._state = hashlib.sha256(b"seed").digest()

    def mix_felts(self, felts):
        self._state = hashlib.sha256(self._state + elements_to_bytes(felts)).digest()

    def draw_felt(self):
        self._state = hashlib.sha256(self._state + b"draw").digest()
        words = [
            int.from_bytes(self._state[i : i + 4], "little") % P for i in range(0, 16, 4)
        ]
        return QM31.from_u32_unchecked(*words)


def q(a, b=0, c=0, d=0):
    return QM31.from_u32_unchecked(a, b, c, d)


def grand_product_proof(a, b):
    return GkrBatchProof(
        sumcheck_proofs=[SumcheckProof([])],
        layer_masks_by_instance=[[GkrMask([(a, b)])]],
        output_claims_by_instance=[[a * b]],
    )


def test_single_layer_grand_product_verifies():
    a, b = q(3, 1), q(7, 0, 2)
    artifact = partially_verify_batch([Gate.GRAND_PRODUCT], grand_product_proof(a, b), _Channel())
    assert artifact.n_variables_by_instance == [1]
    assert len(artifact.ood_point) == 1
    expected = Mle([a, b]).eval_at_point(artifact.ood_point)
    assert artifact.claims_to_verify_by_instance == [[expected]]


def test_verification_is_deterministic():
    a, b = q(5), q(9)
    first = partially_verify_batch([Gate.GRAND_PRODUCT], grand_product_proof(a, b), _Channel())
    second = partially_verify_batch([Gate.GRAND_PRODUCT], grand_product_proof(a, b), _Channel())
    assert first.ood_point == second.ood_point


def test_single_layer_logup_verifies():
    n0, n1, d0, d1 = q(1), q(2), q(5, 1), q(6, 0, 0, 3)
    proof = GkrBatchProof(
        sumcheck_proofs=[SumcheckProof([])],
        layer_masks_by_instance=[[GkrMask([(n0, n1), (d0, d1)])]],
        output_claims_by_instance=[[n0 * d1 + n1 * d0, d0 * d1]],
    )
    artifact = partially_verify_batch([Gate.LOG_UP], proof, _Channel())
    point = artifact.ood_point
    assert artifact.claims_to_verify_by_instance == [
        [Mle([n0, n1]).eval_at_point(point), Mle([d0, d1]).eval_at_point(point)]
    ]


def test_two_instances_verify():
    a0, b0, a1, b1 = q(2), q(3), q(4, 4), q(8, 1)
    proof = GkrBatchProof(
        sumcheck_proofs=[SumcheckProof([])],
        layer_masks_by_instance=[[GkrMask([(a0, b0)])], [GkrMask([(a1, b1)])]],
        output_claims_by_instance=[[a0 * b0], [a1 * b1]],
    )
    artifact = partially_verify_batch([Gate.GRAND_PRODUCT] * 2, proof, _Channel())
    assert artifact.n_variables_by_instance == [1, 1]
    point = artifact.ood_point
    assert artifact.claims_to_verify_by_instance == [
        [Mle([a0, b0]).eval_at_point(point)],
        [Mle([a1, b1]).eval_at_point(point)],
    ]


def test_wrong_output_claim_fails_circuit_check():
    a, b = q(3), q(4)
    proof = grand_product_proof(a, b)
    proof.output_claims_by_instance = [[a * b + q(1)]]
    with pytest.raises(CircuitCheckFailureError) as info:
        partially_verify_batch([Gate.GRAND_PRODUCT], proof, _Channel())
    assert info.value.layer == 0
    assert info.value.claim == a * b + q(1)
    assert info.value.output == a * b


def test_gate_count_mismatch():
    with pytest.raises(NumInstancesMismatchError) as info:
        partially_verify_batch(
            [Gate.GRAND_PRODUCT] * 2, grand_product_proof(q(1), q(2)), _Channel()
        )
    assert (info.value.given, info.value.proof) == (2, 1)


def test_mask_and_output_count_mismatch_is_malformed():
    proof = grand_product_proof(q(1), q(2))
    proof.output_claims_by_instance.append([q(1)])
    with pytest.raises(MalformedProofError):
        partially_verify_batch([Gate.GRAND_PRODUCT], proof, _Channel())


def test_sumcheck_count_mismatch_is_malformed():
    proof = grand_product_proof(q(1), q(2))
    proof.sumcheck_proofs.append(SumcheckProof([]))
    with pytest.raises(MalformedProofError):
        partially_verify_batch([Gate.GRAND_PRODUCT], proof, _Channel())


def test_wrong_gate_reports_invalid_mask():
    with pytest.raises(InvalidMaskError) as info:
        partially_verify_batch([Gate.LOG_UP], grand_product_proof(q(1), q(2)), _Channel())
    assert (info.value.instance, info.value.instance_layer) == (0, 0)


def test_high_degree_round_poly_is_invalid_sumcheck():
    proof = grand_product_proof(q(1), q(2))
    proof.sumcheck_proofs = [SumcheckProof([UnivariatePoly([q(1)] * 5)])]
    with pytest.raises(InvalidSumcheckError) as info:
        partially_verify_batch([Gate.GRAND_PRODUCT], proof, _Channel())
    assert info.value.layer == 0
    assert isinstance(info.value.source, SumcheckDegreeInvalidError)


def test_grand_product_gate_eval():
    assert Gate.GRAND_PRODUCT.eval(GkrMask([(q(6), q(7))])) == [q(6) * q(7)]


def test_logup_gate_eval_matches_fraction_sum():
    n0, n1, d0, d1 = q(1), q(2), q(3), q(6)
    expected = Fraction(n0, d0) + Fraction(n1, d1)
    out = Gate.LOG_UP.eval(GkrMask([(n0, n1), (d0, d1)]))
    assert out == [expected.numerator, expected.denominator]
    assert out[0] / out[1] == q(2) / q(3)


def test_gate_eval_rejects_wrong_column_count():
    with pytest.raises(ValueError):
        Gate.GRAND_PRODUCT.eval(GkrMask([(q(1), q(2)), (q(3), q(4))]))


def test_mask_to_rows_and_reduce():
    mask = GkrMask([(q(1), q(2)), (q(3), q(4))])
    assert mask.to_rows() == ([q(1), q(3)], [q(2), q(4)])
    assert mask.reduce_at_point(QM31.zero()) == [q(1), q(3)]
    assert mask.reduce_at_point(QM31.one()) == [q(2), q(4)]


def test_mask_rejects_column_without_two_values():
    with pytest.raises(ValueError):
        GkrMask([(q(1),)])