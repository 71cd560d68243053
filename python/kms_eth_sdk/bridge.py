"""
Location: python/kms_eth_sdk/bridge.py

Summary:
    Signature format bridge. Turns an opaque DER ECDSA signature from a
    KMS into a canonical, recoverable 65-byte Ethereum signature, and
    derives Ethereum addresses from DER public keys.

Usage:
    Used by signers/kms.py. The KMS signing primitive is injected as an
    async callable so the bridge can be exercised with fixed DER fixtures.

Example:
    from kms_eth_sdk.bridge import derive_address, sign_digest_and_recover

    address = derive_address(der_public_key)
    signature = await sign_digest_and_recover(
        digest,
        lambda d: kms_client.sign(key_id, d),
        address,
    )
"""

import logging
from typing import Awaitable, Callable

from eth_keys import keys
from eth_keys.exceptions import BadSignature
from eth_utils import ValidationError, keccak, to_checksum_address

from .asn1 import extract_public_key_point, extract_signature_fields
from .errors import MalformedPublicKey, MalformedSignature, RecoveryMismatch

logger = logging.getLogger(__name__)

# secp256k1 group order
SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
SECP256K1_HALF_N = SECP256K1_N // 2

# Tried in this order; the first match wins.
RECOVERY_IDS = (27, 28)

COMPONENT_SIZE = 32
SIGNATURE_SIZE = 65
DIGEST_SIZE = 32
UNCOMPRESSED_POINT_PREFIX = 0x04

KmsSignFn = Callable[[bytes], Awaitable[bytes]]


def normalize_to_fixed_width(raw: bytes, width: int = COMPONENT_SIZE) -> bytes:
    """
    Fit a variable-length DER integer into exactly `width` bytes.

    Keeps the last `width` bytes (dropping any DER sign-byte padding)
    and left-pads shorter values with zeros.

    Args:
        raw: Integer bytes as extracted from the DER structure
        width: Output width in bytes

    Returns:
        Big-endian bytes of length `width`
    """
    return bytes(raw[-width:]).rjust(width, b"\x00")


def canonicalize_s(s: int) -> int:
    """
    Return the low-s form of an ECDSA s value (EIP-2).

    (r, s) and (r, n - s) are both valid for the same message and key;
    Ethereum only accepts s <= n/2.
    """
    if s > SECP256K1_HALF_N:
        return SECP256K1_N - s
    return s


def assemble_signature(r: bytes, s: bytes, v: int) -> bytes:
    """Concatenate r(32) || s(32) || v(1)."""
    return bytes(r) + bytes(s) + bytes([v])


def recover_address(digest: bytes, signature: bytes) -> str:
    """
    Recover the checksummed signer address from a 65-byte signature.

    Args:
        digest: The 32-byte hash that was signed
        signature: r || s || v with v in {27, 28}

    Returns:
        The EIP-55 checksummed address

    Raises:
        eth_keys.exceptions.BadSignature: If no public key can be recovered
        eth_utils.ValidationError: If r, s or v are out of range
    """
    r = int.from_bytes(signature[:32], "big")
    s = int.from_bytes(signature[32:64], "big")
    v = signature[64] - 27
    sig = keys.Signature(vrs=(v, r, s))
    return sig.recover_public_key_from_msg_hash(digest).to_checksum_address()


def _matches(digest: bytes, candidate: bytes, expected_address: str) -> bool:
    try:
        recovered = recover_address(digest, candidate)
    except (BadSignature, ValidationError) as e:
        logger.debug("Recovery with v=%d failed: %s", candidate[64], e)
        return False
    return recovered.lower() == expected_address.lower()


def _check_range(name: str, value: int) -> None:
    if not 0 < value < SECP256K1_N:
        raise MalformedSignature(
            f"signature component {name} is outside the secp256k1 range"
        )


async def sign_digest_and_recover(
    digest: bytes,
    kms_sign: KmsSignFn,
    expected_address: str,
) -> bytes:
    """
    Sign a digest through the KMS and return an Ethereum signature.

    Steps:
    1. Ask the KMS for a DER signature over the digest
    2. Extract r and s and fit each into 32 bytes
    3. Canonicalize s to the low-s form
    4. Try v = 27 then v = 28, returning the first candidate that
       recovers to `expected_address` (case-insensitive)

    Args:
        digest: The 32-byte hash to sign
        kms_sign: Async callable returning a DER signature for a digest
        expected_address: Address the final signature must recover to

    Returns:
        The 65-byte signature r || s || v

    Raises:
        ValueError: If the digest is not 32 bytes
        MalformedSignature: If the KMS response cannot be decoded
        RecoveryMismatch: If neither recovery id matches the address
    """
    digest = bytes(digest)
    if len(digest) != DIGEST_SIZE:
        raise ValueError(f"digest must be {DIGEST_SIZE} bytes, got {len(digest)}")

    der = await kms_sign(digest)
    r_raw, s_raw = extract_signature_fields(der)

    r_bytes = normalize_to_fixed_width(r_raw)
    r = int.from_bytes(r_bytes, "big")
    s = int.from_bytes(normalize_to_fixed_width(s_raw), "big")
    _check_range("r", r)
    _check_range("s", s)

    s_bytes = canonicalize_s(s).to_bytes(COMPONENT_SIZE, "big")

    for v in RECOVERY_IDS:
        candidate = assemble_signature(r_bytes, s_bytes, v)
        if _matches(digest, candidate, expected_address):
            logger.debug("Recovered %s with v=%d", expected_address, v)
            return candidate

    logger.warning("No recovery id reproduces address %s", expected_address)
    raise RecoveryMismatch(expected_address)


def derive_address(der_public_key: bytes) -> str:
    """
    Derive the Ethereum address for a DER-encoded secp256k1 public key.

    The address is the low 20 bytes of keccak-256 over the 64-byte
    uncompressed point (format prefix removed).

    Args:
        der_public_key: DER SubjectPublicKeyInfo bytes

    Returns:
        The EIP-55 checksummed address with 0x prefix

    Raises:
        MalformedPublicKey: If the key does not hold an uncompressed point
    """
    point = extract_public_key_point(der_public_key)
    if len(point) != 65 or point[0] != UNCOMPRESSED_POINT_PREFIX:
        raise MalformedPublicKey(
            f"expected 65-byte uncompressed point (0x04||x||y), got {len(point)} bytes"
        )
    return to_checksum_address(keccak(point[1:])[-20:])
