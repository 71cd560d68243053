"""
Shared pytest fixtures for kms-eth-sdk tests.

This module provides common fixtures used across all test files,
including DER encoding helpers, well-known key vectors and an
in-memory KMS.
"""

import pytest

from kms_eth_sdk.signers import KmsSigner, MemoryKmsClient

# Private key 1: its public key is the secp256k1 generator point G
KEY_ONE = (1).to_bytes(32, "big")
KEY_ONE_ADDRESS = "0x7E5F4552091A69125d5DfCb7b8C2659029395Bdf"
GENERATOR_X = "79be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798"
GENERATOR_Y = "483ada7726a3c4655da4fbfc0e1108a8fd17b448a68554199c47d08ffb10d4b8"

KEY_TWO = bytes.fromhex("11" * 32)


def der_integer(value: int) -> bytes:
    """Minimal DER INTEGER for a non-negative value."""
    body = value.to_bytes((value.bit_length() + 8) // 8, "big")
    return b"\x02" + bytes([len(body)]) + body


def der_sequence(*items: bytes) -> bytes:
    """DER SEQUENCE with a short-form length."""
    body = b"".join(items)
    return b"\x30" + bytes([len(body)]) + body


def der_signature(r: int, s: int) -> bytes:
    """DER ECDSA-Sig-Value for (r, s)."""
    return der_sequence(der_integer(r), der_integer(s))


@pytest.fixture
def generator_public_key_der():
    """DER SubjectPublicKeyInfo of the generator point (private key 1)."""
    return bytes.fromhex(
        "3056301006072a8648ce3d020106052b8104000a034200"
        "04" + GENERATOR_X + GENERATOR_Y
    )


@pytest.fixture
def digest():
    """A fixed 32-byte digest."""
    return bytes.fromhex(
        "1c8aff950685c2ed4bc3174f3472287b56d9517b9c948127319a09a7a36deac8"
    )


@pytest.fixture
def memory_kms():
    """In-memory KMS holding two known keys."""
    with pytest.warns(UserWarning):
        return MemoryKmsClient({"key-one": KEY_ONE, "key-two": KEY_TWO})


@pytest.fixture
def kms_signer(memory_kms):
    """KmsSigner backed by the in-memory KMS (private key 1)."""
    return KmsSigner("key-one", client=memory_kms)
