"""
Location: python/kms_eth_sdk/__init__.py

Summary:
    Main package initialization for kms-eth-sdk. Exports all public classes
    and functions for convenient importing.

Usage:
    from kms_eth_sdk import KmsSigner, derive_address, RecoveryMismatch

    # Or import specific modules
    from kms_eth_sdk.signers import MemoryKmsClient
    from kms_eth_sdk.safe import SafeApiClient

Version: 0.1.0
"""

from .asn1 import extract_public_key_point, extract_signature_fields
from .bridge import (
    RECOVERY_IDS,
    SECP256K1_N,
    canonicalize_s,
    derive_address,
    normalize_to_fixed_width,
    recover_address,
    sign_digest_and_recover,
)
from .errors import (
    KmsSignerError,
    MalformedSignature,
    MalformedPublicKey,
    SigningFailed,
    KeyRetrievalFailed,
    RecoveryMismatch,
    SafeServiceError,
)
from .signer import Signer, BaseSigner, hash_message, hash_typed_data
from .signers import KmsSigner, KmsClient, AwsKmsClient, MemoryKmsClient
from .types import (
    KmsSignerConfig,
    SafeConfig,
    RecoverableSignature,
    SafeTransactionData,
)

__version__ = "0.1.0"

__all__ = [
    # Signers
    "KmsSigner",
    "KmsClient",
    "AwsKmsClient",
    "MemoryKmsClient",
    "Signer",
    "BaseSigner",
    # Types
    "KmsSignerConfig",
    "SafeConfig",
    "RecoverableSignature",
    "SafeTransactionData",
    # Exceptions
    "KmsSignerError",
    "MalformedSignature",
    "MalformedPublicKey",
    "SigningFailed",
    "KeyRetrievalFailed",
    "RecoveryMismatch",
    "SafeServiceError",
    # DER extraction
    "extract_signature_fields",
    "extract_public_key_point",
    # Signature bridge
    "RECOVERY_IDS",
    "SECP256K1_N",
    "normalize_to_fixed_width",
    "canonicalize_s",
    "recover_address",
    "sign_digest_and_recover",
    "derive_address",
    # Hashing
    "hash_message",
    "hash_typed_data",
]
