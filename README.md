# starkfield

Finite-field arithmetic and interactive-proof building blocks over the
Mersenne prime `P = 2^31 - 1`. Pure Python, no dependencies.

## What it contains

- `starkfield.fields.m31`: `M31`, the base field, with `reduce`,
  `partial_reduce` and inversion through `pow2147483645`. Also the constants
  `P`, `MODULUS_BITS` and `N_BYTES_FELT`, and the alias `BaseField`.
- `starkfield.fields.cm31`: `CM31`, the complex extension `M31[i] / (i^2 + 1)`.
- `starkfield.fields.qm31`: `QM31` (alias `SecureField`), the degree-4
  secure field `CM31[u] / (u^2 - 2 - i)`, with `from_m31_array`,
  `to_m31_array`, `from_partial_evals` and `mul_cm31`.
- `starkfield.fields.base`: `FieldExpOps` (`square`, `pow`, `double`),
  `batch_inverse` (one field inversion for a whole list) and
  `elements_to_bytes` (little-endian bytes of field elements).
- `starkfield.fields.secure_column`: `SecureColumnByCoords`, a column of
  secure field values stored as four base-field coordinate columns.
- `starkfield.lookups.utils`: `UnivariatePoly` (with `interpolate_lagrange`),
  `Fraction`, `Reciprocal`, `horner_eval`, `eq`, `fold_mle_evals` and
  `random_linear_combination`.
- `starkfield.lookups.mle`: `Mle`, multilinear extensions stored as
  evaluations on the boolean hypercube, with `fix_first_variable`,
  `eval_at_point` and `sum_as_poly_in_first_variable`.
- `starkfield.lookups.sumcheck`: batched sum-check, `prove_batch` and
  `partially_verify`, plus the `MultivariatePolyOracle` base class.
- `starkfield.lookups.gkr_prover`: `prove_batch` for GKR circuits built from
  `GrandProductLayer`, `LogUpGenericLayer`, `LogUpMultiplicitiesLayer` and
  `LogUpSinglesLayer` input layers.
- `starkfield.lookups.gkr_verifier`: `partially_verify_batch`, with the
  `Gate` enum (`LOG_UP`, `GRAND_PRODUCT`), `GkrMask`, `GkrBatchProof` and
  `GkrArtifact`.

## Installing

    pip install .

To run the tests:

    pip install ".[test]"
    pytest

## Field arithmetic

    from starkfield.fields.qm31 import QM31

    a = QM31.from_u32_unchecked(1, 2, 3, 4)
    b = QM31.from_u32_unchecked(4, 5, 6, 7)
    assert (a * b) / b == a
    assert a * a.inverse() == QM31.one()

Inverting zero raises `ZeroDivisionError`.

## Channels

The sum-check and GKR functions take a `channel` argument: any object with
`mix_felts(felts)` and `draw_felt()` returning a `QM31`. The package does not
ship a channel; prover and verifier must use channels that start in the same
state. A simple hash-based one:

    import hashlib

    from starkfield.fields.base import elements_to_bytes
    from starkfield.fields.m31 import P
    from starkfield.fields.qm31 import QM31

    class HashChannel:
        def __init__(self):
            self.digest = b""
            self.counter = 0

        def mix_felts(self, felts):
            self.digest = hashlib.sha256(self.digest + elements_to_bytes(felts)).digest()
            self.counter = 0

        def draw_felt(self):
            self.counter += 1
            data = hashlib.sha256(self.digest + self.counter.to_bytes(4, "little")).digest()
            words = [int.from_bytes(data[i:i + 4], "little") % P for i in range(0, 16, 4)]
            return QM31.from_u32_unchecked(*words)

## Sum-check

    from starkfield.lookups.mle import Mle
    from starkfield.lookups.sumcheck import partially_verify, prove_batch

    values = [QM31.from_u32_unchecked(v, 0, 0, 0) for v in range(1, 9)]
    claim = sum(values, QM31.zero())
    mle = Mle(values)

    proof, *_ = prove_batch([claim], [mle], QM31.one(), HashChannel())
    assignment, evaluation = partially_verify(claim, proof, HashChannel())
    assert evaluation == mle.eval_at_point(assignment)

`partially_verify` raises `SumcheckDegreeInvalidError` or
`SumcheckSumInvalidError` (both subclasses of `SumcheckError`).

## GKR

    from starkfield.lookups.gkr_prover import GrandProductLayer, prove_batch
    from starkfield.lookups.gkr_verifier import Gate, partially_verify_batch

    mle = Mle(values)
    proof, _ = prove_batch(HashChannel(), [GrandProductLayer(mle)])
    artifact = partially_verify_batch([Gate.GRAND_PRODUCT], proof, HashChannel())
    assert artifact.claims_to_verify_by_instance[0] == [mle.eval_at_point(artifact.ood_point)]

The verification is partial: the claims in the returned `GkrArtifact` about
the input layer at `ood_point` are left for the caller to check. Failures
raise subclasses of `GkrError`: `MalformedProofError`, `InvalidMaskError`,
`NumInstancesMismatchError`, `InvalidSumcheckError` and
`CircuitCheckFailureError`.

## What it does not do

The package has no polynomial commitment scheme, no Merkle trees, no
hash-based channel and no serialization of proofs. It provides the field
arithmetic and the sum-check and GKR protocols; committing to inputs and
drawing challenges are up to the caller.