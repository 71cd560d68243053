"""
Location: python/kms_eth_sdk/signers/__init__.py

Summary:
    Signers package for kms-eth-sdk. Provides the KMS-backed signer, the
    AWS KMS client, and a development-only in-memory KMS.

Usage:
    from kms_eth_sdk.signers import KmsSigner, AwsKmsClient, MemoryKmsClient
"""

from .kms import AwsKmsClient, KmsClient, KmsSigner
from .memory import MemoryKmsClient

__all__ = ["KmsSigner", "KmsClient", "AwsKmsClient", "MemoryKmsClient"]
