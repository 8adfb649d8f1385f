"""
Adapter over the BLS12-381 arithmetic of ``py_ecc``.

Public keys and Feldman commitments live in G1, signatures in G2.
Every value that leaves this module is a hex string of the compressed encoding.
"""

import secrets
from hashlib import sha256
from typing import TypeAlias

from py_ecc.bls.g2_primitives import G1_to_pubkey, G2_to_signature, pubkey_to_G1, signature_to_G2, subgroup_check
from py_ecc.bls.hash_to_curve import hash_to_G2
from py_ecc.fields import optimized_bls12_381_FQ as FQ
from py_ecc.fields import optimized_bls12_381_FQ2 as FQ2
from py_ecc.optimized_bls12_381 import (
    FQ12,
    G1,
    add,
    curve_order,
    eq,
    final_exponentiate,
    is_inf,
    multiply,
    neg,
    pairing,
)
from py_ecc.typing import Optimized_Point3D

from randcast.custom_types import HexStr
from randcast.exceptions import DeserializationError

Scalar: TypeAlias = int
G1Point: TypeAlias = Optimized_Point3D[FQ]
G2Point: TypeAlias = Optimized_Point3D[FQ2]

DST = b"BLS_SIG_BLS12381G2_XMD:SHA-256_SSWU_RO_NUL_"
SCALAR_SIZE = 32
G1_SIZE = 48
G2_SIZE = 96


def _decode_hex(data: HexStr, size: int) -> bytes:
    try:
        raw = bytes.fromhex(data)
    except (TypeError, ValueError) as e:
        raise DeserializationError(f"Value is not valid hex: {data!r}") from e
    if len(raw) != size:
        raise DeserializationError(f"Expected {size} bytes, got {len(raw)}")
    return raw


def random_scalar() -> Scalar:
    return secrets.randbelow(curve_order - 1) + 1


def scalar_to_hex(scalar: Scalar) -> HexStr:
    return (scalar % curve_order).to_bytes(SCALAR_SIZE, "big").hex()


def scalar_from_hex(data: HexStr) -> Scalar:
    scalar = int.from_bytes(_decode_hex(data, SCALAR_SIZE), "big")
    if scalar >= curve_order:
        raise DeserializationError("Scalar is not reduced modulo the curve order")
    return scalar


def g1_to_hex(point: G1Point) -> HexStr:
    return bytes(G1_to_pubkey(point)).hex()


def g1_from_hex(data: HexStr) -> G1Point:
    raw = _decode_hex(data, G1_SIZE)
    try:
        point = pubkey_to_G1(raw)
    except ValueError as e:
        raise DeserializationError(f"Invalid G1 point: {e}") from e
    if not subgroup_check(point):
        raise DeserializationError("G1 point is not in the prime order subgroup")
    return point


def g2_to_hex(point: G2Point) -> HexStr:
    return bytes(G2_to_signature(point)).hex()


def g2_from_hex(data: HexStr) -> G2Point:
    raw = _decode_hex(data, G2_SIZE)
    try:
        point = signature_to_G2(raw)
    except ValueError as e:
        raise DeserializationError(f"Invalid G2 point: {e}") from e
    if not subgroup_check(point):
        raise DeserializationError("G2 point is not in the prime order subgroup")
    return point


def g1_mul_generator(scalar: Scalar) -> G1Point:
    return multiply(G1, scalar % curve_order)


def hash_to_g2(message: bytes) -> G2Point:
    return hash_to_G2(message, DST, sha256)


def pairing_product_is_one(pairs: list[tuple[G2Point, G1Point]]) -> bool:
    """
    Check that the product of the pairings of every (G2, G1) pair is the identity.
    A single final exponentiation is shared by all the Miller loops.
    """
    product = FQ12.one()
    for q, p in pairs:
        product *= pairing(q, p, final_exponentiate=False)
    return final_exponentiate(product) == FQ12.one()
