import os
from hashlib import sha256

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from randcast.curve import Scalar, g1_from_hex, g1_to_hex, multiply
from randcast.custom_types import HexStr

JOINT_KEY_INFO = b"randcast-dkg-share"
NONCE_SIZE = 12


def _joint_key(private_key: Scalar, public_key: HexStr) -> bytes:
    shared_point = multiply(g1_from_hex(public_key), private_key)
    return HKDF(algorithm=hashes.SHA256(), length=32, salt=None, info=JOINT_KEY_INFO).derive(
        bytes.fromhex(g1_to_hex(shared_point))
    )


def encrypt_with_joint_key(
    data: bytes, private_key: Scalar, partner_public_key: HexStr, associated_data: bytes = b""
) -> tuple[HexStr, HexStr]:
    """
    Encrypt data with AES-GCM under the Diffie-Hellman key shared with the partner.
    Returns the hex encoded nonce and ciphertext.
    """
    nonce = os.urandom(NONCE_SIZE)
    ciphertext = AESGCM(_joint_key(private_key, partner_public_key)).encrypt(nonce, data, associated_data)
    return nonce.hex(), ciphertext.hex()


def decrypt_with_joint_key(
    nonce: HexStr, ciphertext: HexStr, private_key: Scalar, partner_public_key: HexStr, associated_data: bytes = b""
) -> bytes:
    """
    Decrypt data produced by ``encrypt_with_joint_key``.
    Raises ``cryptography.exceptions.InvalidTag`` when the ciphertext was not meant for this key.
    """
    return AESGCM(_joint_key(private_key, partner_public_key)).decrypt(
        bytes.fromhex(nonce), bytes.fromhex(ciphertext), associated_data
    )


def derive_message(seed: str, task_index: int, entropy: bytes) -> HexStr:
    return sha256(seed.encode("utf-8") + task_index.to_bytes(8, "big") + entropy).hexdigest()


def derive_randomness(signature: HexStr) -> HexStr:
    return sha256(bytes.fromhex(signature)).hexdigest()
