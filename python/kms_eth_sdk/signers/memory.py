"""
Location: python/kms_eth_sdk/signers/memory.py

Summary:
    Development-only in-memory KMS. Holds secp256k1 keys in process memory
    and answers sign/get_public_key with the same DER encodings AWS KMS
    returns. NEVER use in production with real funds.

Usage:
    Used during development and testing to drive KmsSigner without a
    real key-management service.

Example:
    from kms_eth_sdk.signers import KmsSigner, MemoryKmsClient

    # WARNING: Development only!
    kms = MemoryKmsClient({"dev-key": bytes.fromhex("11" * 32)})
    signer = KmsSigner("dev-key", client=kms)
"""

import warnings
from typing import Optional

from coincurve import PrivateKey

from ..errors import KeyRetrievalFailed, SigningFailed

# SEQUENCE { SEQUENCE { id-ecPublicKey, secp256k1 }, BIT STRING (66 bytes) }
SECP256K1_SPKI_PREFIX = bytes.fromhex(
    "3056301006072a8648ce3d020106052b8104000a034200"
)


def encode_public_key_der(uncompressed_point: bytes) -> bytes:
    """Wrap a 65-byte uncompressed point in a DER SubjectPublicKeyInfo."""
    if len(uncompressed_point) != 65:
        raise ValueError(
            f"expected 65-byte uncompressed point, got {len(uncompressed_point)}"
        )
    return SECP256K1_SPKI_PREFIX + uncompressed_point


class MemoryKmsClient:
    """
    Development-only KmsClient that keeps private keys in memory.

    WARNING: Never use in production with real funds! Keys are held in
    process memory, which defeats the point of a KMS.

    Attributes:
        sign_calls: Number of sign() calls served
        public_key_calls: Number of get_public_key() calls served
    """

    def __init__(self, keys: Optional[dict[str, bytes]] = None):
        """
        Initialize the memory KMS.

        Args:
            keys: Optional mapping of key id to 32-byte private key

        Warns:
            UserWarning: Always warns that this is for development only
        """
        warnings.warn(
            "MemoryKmsClient is for development only. Do not use with real funds!",
            UserWarning,
            stacklevel=2
        )
        self._keys: dict[str, PrivateKey] = {}
        self.sign_calls = 0
        self.public_key_calls = 0
        for key_id, secret in (keys or {}).items():
            self.add_key(key_id, secret)

    def add_key(self, key_id: str, private_key: Optional[bytes] = None) -> None:
        """
        Register a key, generating a random one if none is given.

        Args:
            key_id: Identifier used in sign/get_public_key calls
            private_key: Optional 32-byte secp256k1 private key
        """
        self._keys[key_id] = PrivateKey(private_key) if private_key else PrivateKey()

    async def sign(self, key_id: str, digest: bytes) -> bytes:
        """
        Sign a digest, returning a DER ECDSA signature without recovery id.

        Raises:
            SigningFailed: If the key id is unknown
        """
        key = self._keys.get(key_id)
        if key is None:
            raise SigningFailed(f"Unknown key {key_id}")
        self.sign_calls += 1
        return key.sign(bytes(digest), hasher=None)

    async def get_public_key(self, key_id: str) -> bytes:
        """
        Return the DER SubjectPublicKeyInfo for a key.

        Raises:
            KeyRetrievalFailed: If the key id is unknown
        """
        key = self._keys.get(key_id)
        if key is None:
            raise KeyRetrievalFailed(f"Unknown key {key_id}")
        self.public_key_calls += 1
        return encode_public_key_der(key.public_key.format(compressed=False))

    def __len__(self) -> int:
        """Return the number of registered keys."""
        return len(self._keys)
