"""
BLS threshold signatures over BLS12-381.

Public keys (and public polynomial evaluations) are G1 points, signatures are G2 points
hashed to the curve with the ``BLS_SIG_BLS12381G2_XMD:SHA-256_SSWU_RO_NUL_`` suite.
A partial signature carries the index of the share that produced it so that
aggregation can interpolate at zero over the signers.
"""

from collections.abc import Iterable

from randcast.curve import (
    G1,
    G1Point,
    G2Point,
    Scalar,
    curve_order,
    g1_from_hex,
    g2_from_hex,
    g2_to_hex,
    hash_to_g2,
    is_inf,
    multiply,
    neg,
    pairing_product_is_one,
    scalar_from_hex,
)
from randcast.custom_types import AggregatedSignature, HexStr, PartialSignature, Share, eval_point
from randcast.exceptions import DeserializationError, InsufficientPartialSignaturesError, MalformedShareError
from randcast.poly import PublicPolynomial, interpolate_at_zero


def _verify_points(public_key: G1Point, message: bytes, signature: G2Point) -> bool:
    if is_inf(public_key) or is_inf(signature):
        return False
    # e(signature, G1) == e(H(m), public_key)
    return pairing_product_is_one([(signature, neg(G1)), (hash_to_g2(message), public_key)])


def sign(private_key: Scalar, message: bytes) -> HexStr:
    return g2_to_hex(multiply(hash_to_g2(message), private_key % curve_order))


def verify(public_key: HexStr, message: bytes, signature: HexStr) -> bool:
    try:
        public_key_point = g1_from_hex(public_key)
        signature_point = g2_from_hex(signature)
    except DeserializationError:
        return False
    return _verify_points(public_key_point, message, signature_point)


def partial_sign(share: Share, message: bytes) -> PartialSignature:
    try:
        scalar = scalar_from_hex(share.value)
    except DeserializationError as e:
        raise MalformedShareError(f"Share {share.index} can not be decoded") from e
    if scalar == 0:
        raise MalformedShareError(f"Share {share.index} is zero")
    return PartialSignature(index=share.index, value=sign(scalar, message))


def partial_verify(public_polynomial: PublicPolynomial, message: bytes, partial_signature: PartialSignature) -> bool:
    """Verify a partial signature against the public share of the signer it claims to come from."""
    if partial_signature.index < 0:
        return False
    try:
        signature_point = g2_from_hex(partial_signature.value)
    except DeserializationError:
        return False
    public_share = public_polynomial.eval(eval_point(partial_signature.index))
    return _verify_points(public_share, message, signature_point)


def aggregate(threshold: int, partial_signatures: Iterable[PartialSignature]) -> AggregatedSignature:
    if threshold < 1:
        raise ValueError("Threshold must be positive")
    distinct: dict[int, PartialSignature] = {}
    for partial_signature in partial_signatures:
        distinct.setdefault(partial_signature.index, partial_signature)
    if len(distinct) < threshold:
        raise InsufficientPartialSignaturesError(
            f"Need {threshold} distinct partial signatures to aggregate, got {len(distinct)}"
        )
    chosen = sorted(distinct.values(), key=lambda partial: partial.index)[:threshold]
    points = [(eval_point(partial.index), g2_from_hex(partial.value)) for partial in chosen]
    return g2_to_hex(interpolate_at_zero(points))
