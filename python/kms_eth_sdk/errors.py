"""
Location: python/kms_eth_sdk/errors.py

Summary:
    Exception hierarchy for kms-eth-sdk. Every error raised by the SDK
    derives from KmsSignerError so callers can catch them in one place.

Usage:
    Raised by asn1.py (malformed DER), bridge.py (recovery failures),
    signers/kms.py (empty KMS responses) and safe.py (transaction
    service failures).

Example:
    from kms_eth_sdk.errors import KmsSignerError, RecoveryMismatch

    try:
        signature = await signer.sign_digest(digest)
    except RecoveryMismatch:
        # KMS key does not match the expected address
        raise
"""

from typing import Optional


class KmsSignerError(Exception):
    """Base exception for all kms-eth-sdk errors."""
    pass


class MalformedSignature(KmsSignerError):
    """Exception raised when a DER signature cannot be decoded into (r, s)."""
    pass


class MalformedPublicKey(KmsSignerError):
    """Exception raised when a DER public key has no decodable point."""
    pass


class SigningFailed(KmsSignerError):
    """Exception raised when the KMS returns no signature."""
    pass


class KeyRetrievalFailed(KmsSignerError):
    """Exception raised when the KMS returns no public key."""
    pass


class RecoveryMismatch(KmsSignerError):
    """
    Exception raised when no recovery id reproduces the expected address.

    Indicates a KMS/extraction defect or a key mismatch. Never retried.

    Attributes:
        expected_address: The address the signature had to recover to
    """

    def __init__(self, expected_address: str):
        self.expected_address = expected_address
        super().__init__(
            f"Signature does not recover to {expected_address} "
            "with any recovery id"
        )


class SafeServiceError(KmsSignerError):
    """
    Exception raised when the Safe transaction service rejects a request.

    Attributes:
        status_code: HTTP status code returned by the service
        body: Response body text, if any
    """

    def __init__(self, status_code: int, body: Optional[str] = None):
        self.status_code = status_code
        self.body = body
        message = f"Safe transaction service returned HTTP {status_code}"
        if body:
            message = f"{message}: {body}"
        super().__init__(message)
