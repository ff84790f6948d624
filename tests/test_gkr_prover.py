import hashlib
import operator
from functools import reduce

import pytest

from starkfield.fields.m31 import M31
from starkfield.fields.qm31 import QM31
from starkfield.lookups.gkr_prover import (
    EqEvals,
    GkrMultivariatePolyOracle,
    GrandProductLayer,
    LogUpGenericLayer,
    LogUpMultiplicitiesLayer,
    LogUpSinglesLayer,
    correct_sum_as_poly_in_first_variable,
    gen_eq_evals,
    prove_batch,
)
from starkfield.lookups.gkr_verifier import Gate, GkrError, partially_verify_batch
from starkfield.lookups.mle import Mle
from starkfield.lookups.utils import eq


class _Channel:
    def __init__(self) -> None:
        self._digest = bytes(32)
        self._n_draws = 0

    def mix_felts(self, felts):
        data = b"".join(bytes(f) for f in felts)
        self._digest = hashlib.blake2s(self._digest + data).digest()
        self._n_draws = 0

    def draw_felt(self):
        data = hashlib.blake2s(self._digest + self._n_draws.to_bytes(4, "little")).digest()
        self._n_draws += 1
        coords = [M31(int.from_bytes(data[4 * i : 4 * i + 4], "little")) for i in range(4)]
        return QM31.from_m31_array(coords)

    def draw_felts(self, n):
        return [self.draw_felt() for _ in range(n)]


def make_channel():
    return _Channel()


def _product(values):
    return reduce(operator.mul, values)


def test_prove_batch_works():
    log_n = 5
    channel = make_channel()
    col0 = Mle(channel.draw_felts(1 << log_n))
    col1 = Mle(channel.draw_felts(1 << log_n))
    input_layers = [GrandProductLayer(col0), GrandProductLayer(col1)]
    proof, prover_artifact = prove_batch(make_channel(), input_layers)

    artifact = partially_verify_batch([Gate.GRAND_PRODUCT] * 2, proof, make_channel())

    assert artifact.n_variables_by_instance == [log_n, log_n]
    assert len(proof.output_claims_by_instance) == 2
    assert len(artifact.claims_to_verify_by_instance) == 2
    assert proof.output_claims_by_instance[0] == [_product(col0)]
    assert proof.output_claims_by_instance[1] == [_product(col1)]
    assert artifact.claims_to_verify_by_instance[0] == [col0.eval_at_point(artifact.ood_point)]
    assert artifact.claims_to_verify_by_instance[1] == [col1.eval_at_point(artifact.ood_point)]
    assert prover_artifact.ood_point == artifact.ood_point


def test_prove_batch_with_different_sizes_works():
    log_n0, log_n1 = 5, 7
    channel = make_channel()
    col0 = Mle(channel.draw_felts(1 << log_n0))
    col1 = Mle(channel.draw_felts(1 << log_n1))
    input_layers = [GrandProductLayer(col0), GrandProductLayer(col1)]
    proof, _ = prove_batch(make_channel(), input_layers)

    artifact = partially_verify_batch([Gate.GRAND_PRODUCT] * 2, proof, make_channel())

    assert artifact.n_variables_by_instance == [log_n0, log_n1]
    assert proof.output_claims_by_instance[0] == [_product(col0)]
    assert proof.output_claims_by_instance[1] == [_product(col1)]
    ood_point = artifact.ood_point
    n_vars = len(ood_point)
    assert artifact.claims_to_verify_by_instance[0] == [
        col0.eval_at_point(ood_point[n_vars - log_n0 :])
    ]
    assert artifact.claims_to_verify_by_instance[1] == [
        col1.eval_at_point(ood_point[n_vars - log_n1 :])
    ]


def test_logup_generic_proof_verifies():
    channel = make_channel()
    numerators = Mle(channel.draw_felts(8))
    denominators = Mle(channel.draw_felts(8))
    proof, _ = prove_batch(make_channel(), [LogUpGenericLayer(numerators, denominators)])

    artifact = partially_verify_batch([Gate.LOG_UP], proof, make_channel())

    numerator, denominator = proof.output_claims_by_instance[0]
    expected = reduce(operator.add, (n / d for n, d in zip(numerators, denominators)))
    assert numerator / denominator == expected
    assert artifact.claims_to_verify_by_instance[0] == [
        numerators.eval_at_point(artifact.ood_point),
        denominators.eval_at_point(artifact.ood_point),
    ]


def test_logup_singles_proof_verifies():
    channel = make_channel()
    denominators = Mle(channel.draw_felts(8))
    proof, _ = prove_batch(make_channel(), [LogUpSinglesLayer(denominators)])

    artifact = partially_verify_batch([Gate.LOG_UP], proof, make_channel())

    numerator, denominator = proof.output_claims_by_instance[0]
    expected = reduce(operator.add, (d.inverse() for d in denominators))
    assert numerator / denominator == expected
    assert artifact.claims_to_verify_by_instance[0] == [
        QM31.one(),
        denominators.eval_at_point(artifact.ood_point),
    ]


def test_logup_multiplicities_proof_verifies():
    channel = make_channel()
    numerators = Mle(M31(v) for v in [3, 1, 4, 1, 5, 9, 2, 6])
    denominators = Mle(channel.draw_felts(8))
    proof, _ = prove_batch(
        make_channel(), [LogUpMultiplicitiesLayer(numerators, denominators)]
    )

    artifact = partially_verify_batch([Gate.LOG_UP], proof, make_channel())

    assert artifact.claims_to_verify_by_instance[0] == [
        numerators.eval_at_point(artifact.ood_point),
        denominators.eval_at_point(artifact.ood_point),
    ]


def test_tampered_output_claim_fails_verification():
    channel = make_channel()
    col = Mle(channel.draw_felts(8))
    proof, _ = prove_batch(make_channel(), [GrandProductLayer(col)])
    proof.output_claims_by_instance[0][0] = proof.output_claims_by_instance[0][0] + QM31.one()

    with pytest.raises(GkrError):
        partially_verify_batch([Gate.GRAND_PRODUCT], proof, make_channel())


def test_prove_batch_rejects_empty_input():
    with pytest.raises(ValueError):
        prove_batch(make_channel(), [])


def test_prove_batch_rejects_layer_without_variables():
    with pytest.raises(ValueError):
        prove_batch(make_channel(), [GrandProductLayer(Mle([QM31.one()]))])


def test_gen_eq_evals_matches_eq():
    channel = make_channel()
    y = channel.draw_felts(2)
    v = channel.draw_felt()
    zero, one = QM31.zero(), QM31.one()

    evals = gen_eq_evals(y, v)

    assert len(evals) == 4
    for index, value in enumerate(evals):
        x = [one if (index >> 1) & 1 else zero, one if index & 1 else zero]
        assert value == eq(x, y) * v


def test_eq_evals_generate_empty():
    evals = EqEvals.generate([])
    assert list(evals) == [QM31.one()]
    assert evals.y == ()


def test_eq_evals_generate_values():
    channel = make_channel()
    y = channel.draw_felts(3)
    zero, one = QM31.zero(), QM31.one()

    evals = EqEvals.generate(y)

    assert len(evals) == 4
    for index in range(4):
        x = [zero, one if (index >> 1) & 1 else zero, one if index & 1 else zero]
        assert evals[index] == eq(x, y)


def test_grand_product_next_layer():
    values = [QM31.from_u32_unchecked(v, 0, 0, 0) for v in (2, 3, 5, 7)]
    layer = GrandProductLayer(Mle(values))

    nxt = layer.next_layer()

    assert layer.n_variables() == 2
    assert list(nxt.mle) == [values[0] * values[1], values[2] * values[3]]
    output = nxt.next_layer()
    assert output.n_variables() == 0
    assert output.next_layer() is None


def test_logup_singles_next_layer_is_generic():
    denominators = [QM31.from_u32_unchecked(v, 0, 0, 0) for v in (2, 3)]
    nxt = LogUpSinglesLayer(Mle(denominators)).next_layer()

    assert isinstance(nxt, LogUpGenericLayer)
    assert nxt.numerators[0] / nxt.denominators[0] == (
        denominators[0].inverse() + denominators[1].inverse()
    )


def test_correct_sum_rejects_bad_k():
    y = make_channel().draw_felts(2)
    zero = QM31.zero()
    with pytest.raises(ValueError):
        correct_sum_as_poly_in_first_variable(zero, zero, zero, y, 0)
    with pytest.raises(ValueError):
        correct_sum_as_poly_in_first_variable(zero, zero, zero, y, 3)


def test_correct_sum_invariants():
    channel = make_channel()
    y = channel.draw_felts(3)
    f_at_0, f_at_2, claim = channel.draw_felts(3)

    poly = correct_sum_as_poly_in_first_variable(f_at_0, f_at_2, claim, y, 2)

    zero, one = QM31.zero(), QM31.one()
    assert poly.eval_at_point(zero) + poly.eval_at_point(one) == claim
    assert poly.degree() <= 3
    y_nk = y[1]
    root = (one - y_nk) / (one - y_nk.double())
    assert eq([root], [y_nk]) == zero
    assert poly.eval_at_point(root) == zero


def test_oracle_round_polynomial_matches_next_layer():
    channel = make_channel()
    layer = GrandProductLayer(Mle(channel.draw_felts(8)))
    y = channel.draw_felts(2)
    next_mle = layer.next_layer().mle
    claim = next_mle.eval_at_point(y)
    oracle = GkrMultivariatePolyOracle(
        eq_evals=EqEvals.generate(y),
        input_layer=layer,
        eq_fixed_var_correction=QM31.one(),
        lambda_=channel.draw_felt(),
    )

    poly = oracle.sum_as_poly_in_first_variable(claim)

    zero, one = QM31.zero(), QM31.one()
    assert oracle.n_variables() == 2
    expected_at_0 = eq([zero], [y[0]]) * next_mle.fix_first_variable(zero).eval_at_point(y[1:])
    expected_at_1 = eq([one], [y[0]]) * next_mle.fix_first_variable(one).eval_at_point(y[1:])
    assert poly.eval_at_point(zero) == expected_at_0
    assert poly.eval_at_point(one) == expected_at_1


def test_constant_oracle_fix_first_variable_returns_itself():
    layer = GrandProductLayer(Mle([QM31.one(), QM31.one()]))
    oracle = GkrMultivariatePolyOracle(
        eq_evals=EqEvals.generate([]),
        input_layer=layer,
        eq_fixed_var_correction=QM31.one(),
        lambda_=QM31.one(),
    )

    assert oracle.n_variables() == 0
    assert oracle.fix_first_variable(QM31.one()) is oracle
    with pytest.raises(ValueError):
        oracle.sum_as_poly_in_first_variable(QM31.one())