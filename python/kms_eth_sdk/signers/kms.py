"""
Location: python/kms_eth_sdk/signers/kms.py

Summary:
    AWS KMS signer for production use. The secp256k1 private key stays in
    AWS Key Management Service; this module turns KMS responses into
    Ethereum signatures and addresses through the signature bridge.

Usage:
    Used in production environments for secure Ethereum signing.
    Requires boto3 to be installed (pip install kms-eth-sdk[aws]) unless
    a custom KmsClient is injected.

Example:
    from kms_eth_sdk.signers import KmsSigner

    signer = KmsSigner(
        key_id="arn:aws:kms:us-east-1:123456789:key/abc123",
        region="us-east-1"
    )
    address = await signer.get_address()
    signature = await signer.sign_message("Hello World")
"""

import asyncio
import logging
from typing import Any, Optional, Protocol, Union, runtime_checkable

from eth_utils import to_bytes

from ..bridge import derive_address, sign_digest_and_recover
from ..errors import KeyRetrievalFailed, SigningFailed
from ..signer import BaseSigner
from ..types import KmsSignerConfig

logger = logging.getLogger(__name__)


@runtime_checkable
class KmsClient(Protocol):
    """
    Protocol for the two KMS primitives the signer needs.

    Transport, authentication and retries are the client's concern.
    """

    async def sign(self, key_id: str, digest: bytes) -> bytes:
        """
        Sign a 32-byte digest with the given key.

        Args:
            key_id: KMS key identifier
            digest: The digest to sign

        Returns:
            DER-encoded ECDSA signature

        Raises:
            SigningFailed: If the service returns no signature
        """
        ...

    async def get_public_key(self, key_id: str) -> bytes:
        """
        Fetch the public key of the given key.

        Args:
            key_id: KMS key identifier

        Returns:
            DER-encoded SubjectPublicKeyInfo

        Raises:
            KeyRetrievalFailed: If the service returns no key
        """
        ...


def _boto3_kms_client(region: str, endpoint_url: Optional[str]) -> Any:
    try:
        import boto3
    except ImportError as e:
        raise ImportError(
            "AwsKmsClient requires boto3. "
            "Install with: pip install kms-eth-sdk[aws]"
        ) from e

    client_kwargs = {"region_name": region}
    if endpoint_url:
        client_kwargs["endpoint_url"] = endpoint_url
    return boto3.client("kms", **client_kwargs)


class AwsKmsClient:
    """
    KmsClient backed by the boto3 KMS client.

    boto3 is synchronous, so each call runs in a worker thread.

    Attributes:
        region: AWS region of the KMS endpoint
        signing_algorithm: Algorithm passed to KMS Sign
    """

    def __init__(
        self,
        region: str = "us-east-1",
        endpoint_url: Optional[str] = None,
        signing_algorithm: str = "ECDSA_SHA_256",
        client: Any = None,
    ):
        """
        Initialize the AWS KMS client.

        Args:
            region: AWS region (default us-east-1)
            endpoint_url: Optional endpoint override (e.g. localstack)
            signing_algorithm: KMS signing algorithm (default ECDSA_SHA_256)
            client: Optional preconfigured boto3 KMS client
        """
        self.region = region
        self.signing_algorithm = signing_algorithm
        self._client = client or _boto3_kms_client(region, endpoint_url)

    async def sign(self, key_id: str, digest: bytes) -> bytes:
        response = await asyncio.to_thread(
            self._client.sign,
            KeyId=key_id,
            Message=digest,
            MessageType="DIGEST",
            SigningAlgorithm=self.signing_algorithm,
        )
        signature = response.get("Signature")
        if not signature:
            raise SigningFailed(f"KMS returned no signature for key {key_id}")
        return bytes(signature)

    async def get_public_key(self, key_id: str) -> bytes:
        response = await asyncio.to_thread(self._client.get_public_key, KeyId=key_id)
        public_key = response.get("PublicKey")
        if not public_key:
            raise KeyRetrievalFailed(f"KMS returned no public key for key {key_id}")
        return bytes(public_key)


class KmsSigner(BaseSigner):
    """
    Ethereum signer whose private key lives in a KMS.

    Keys never leave the KMS hardware security modules (HSMs). The signer
    converts the DER signatures KMS returns into low-s r || s || v
    signatures that recover to the key's address.

    The address is fetched once and memoised for the lifetime of the
    instance.

    Attributes:
        key_id: KMS key ID, alias or ARN
        client: KmsClient performing the KMS calls
    """

    def __init__(
        self,
        key_id: str,
        client: Optional[KmsClient] = None,
        region: str = "us-east-1",
        endpoint_url: Optional[str] = None,
    ):
        """
        Initialize the KMS signer.

        Args:
            key_id: KMS key ID, alias or full ARN
            client: Optional KmsClient (defaults to AwsKmsClient)
            region: AWS region used when building the default client
            endpoint_url: Endpoint override used when building the default client
        """
        self.key_id = key_id
        self.client = client or AwsKmsClient(region=region, endpoint_url=endpoint_url)
        self._address: Optional[str] = None

    @classmethod
    def from_config(
        cls,
        config: KmsSignerConfig,
        client: Optional[KmsClient] = None,
    ) -> "KmsSigner":
        """Build a signer from a KmsSignerConfig."""
        if client is None:
            client = AwsKmsClient(
                region=config.region,
                endpoint_url=config.endpoint_url,
                signing_algorithm=config.signing_algorithm,
            )
        return cls(config.key_id, client=client)

    async def get_public_key(self) -> bytes:
        """Return the DER-encoded public key of the KMS key."""
        return await self.client.get_public_key(self.key_id)

    async def get_address(self) -> str:
        """
        Get the Ethereum address of the KMS key.

        The first call fetches the public key from KMS; later calls
        return the memoised value.

        Returns:
            The 0x-prefixed EIP-55 checksummed address

        Raises:
            KeyRetrievalFailed: If KMS returns no public key
            MalformedPublicKey: If the public key cannot be decoded
        """
        if self._address is None:
            self._address = derive_address(await self.get_public_key())
            logger.debug("Resolved address %s for key %s", self._address, self.key_id)
        return self._address

    async def sign_digest(self, digest: Union[bytes, str]) -> str:
        """
        Sign a 32-byte digest using KMS.

        Args:
            digest: The digest as bytes or 0x-prefixed hex

        Returns:
            The 65-byte signature r || s || v as 0x-prefixed hex

        Raises:
            ValueError: If the digest is not 32 bytes
            SigningFailed: If KMS returns no signature
            MalformedSignature: If the KMS signature cannot be decoded
            RecoveryMismatch: If the signature does not recover to the address
        """
        if isinstance(digest, str):
            digest = to_bytes(hexstr=digest)
        address = await self.get_address()
        signature = await sign_digest_and_recover(digest, self._kms_sign, address)
        return "0x" + signature.hex()

    async def _kms_sign(self, digest: bytes) -> bytes:
        logger.debug("Requesting KMS signature with key %s", self.key_id)
        return await self.client.sign(self.key_id, digest)
