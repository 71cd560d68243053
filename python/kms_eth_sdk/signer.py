"""
Location: python/kms_eth_sdk/signer.py

Summary:
    Defines the Signer protocol (interface) for Ethereum digest signing and
    the BaseSigner abstract class, which derives the message and typed-data
    entry points from a single sign_digest() primitive.

Usage:
    Implemented by signers/kms.py. Consumers such as safe.py only depend
    on the Signer protocol.

Example:
    from kms_eth_sdk.signer import BaseSigner

    class HsmSigner(BaseSigner):
        async def get_address(self) -> str:
            ...

        async def sign_digest(self, digest) -> str:
            ...
"""

from abc import ABC, abstractmethod
from typing import Any, Protocol, Union, runtime_checkable

from eth_account.messages import (
    SignableMessage,
    _hash_eip191_message,
    encode_defunct,
    encode_typed_data,
)


@runtime_checkable
class Signer(Protocol):
    """
    Protocol for Ethereum signers.

    Signers are responsible for:
    - Reporting the address their signatures recover to
    - Signing 32-byte digests into 65-byte r || s || v signatures
    """

    async def get_address(self) -> str:
        """
        Get the checksummed address of the signing key.

        Returns:
            The 0x-prefixed EIP-55 address
        """
        ...

    async def sign_digest(self, digest: Union[bytes, str]) -> str:
        """
        Sign a precomputed 32-byte digest.

        Args:
            digest: The digest as bytes or 0x-prefixed hex

        Returns:
            The 65-byte signature as 0x-prefixed hex
        """
        ...


def hash_message(message: Union[str, bytes]) -> bytes:
    """
    Hash a message with the EIP-191 personal-message prefix.

    Text is UTF-8 encoded; bytes are hashed as-is.
    """
    if isinstance(message, str):
        signable = encode_defunct(text=message)
    else:
        signable = encode_defunct(primitive=bytes(message))
    return _hash_signable(signable)


def hash_typed_data(
    domain: dict[str, Any],
    types: dict[str, list[dict[str, str]]],
    value: dict[str, Any],
) -> bytes:
    """
    Compute the EIP-712 digest for typed structured data.

    Args:
        domain: EIP-712 domain fields (name, version, chainId, ...)
        types: Struct type definitions, without EIP712Domain
        value: The message to hash

    Returns:
        The 32-byte digest
    """
    signable = encode_typed_data(
        domain_data=domain,
        message_types=types,
        message_data=value,
    )
    return _hash_signable(signable)


def _hash_signable(signable: SignableMessage) -> bytes:
    return bytes(_hash_eip191_message(signable))


class BaseSigner(ABC):
    """
    Abstract base class for signer implementations.

    Provides sign_message() and sign_typed_data() on top of the
    abstract sign_digest(). Subclasses must implement get_address()
    and sign_digest().
    """

    @abstractmethod
    async def get_address(self) -> str:
        """
        Get the checksummed address of the signing key.

        Returns:
            The 0x-prefixed EIP-55 address
        """
        raise NotImplementedError

    @abstractmethod
    async def sign_digest(self, digest: Union[bytes, str]) -> str:
        """
        Sign a precomputed 32-byte digest.

        Args:
            digest: The digest as bytes or 0x-prefixed hex

        Returns:
            The 65-byte signature as 0x-prefixed hex
        """
        raise NotImplementedError

    async def sign_message(self, message: Union[str, bytes]) -> str:
        """
        Sign a personal message (EIP-191 version 0x45).

        Args:
            message: Text or raw bytes to sign

        Returns:
            The 65-byte signature as 0x-prefixed hex
        """
        return await self.sign_digest(hash_message(message))

    async def sign_typed_data(
        self,
        domain: dict[str, Any],
        types: dict[str, list[dict[str, str]]],
        value: dict[str, Any],
    ) -> str:
        """
        Sign EIP-712 typed structured data.

        Args:
            domain: EIP-712 domain fields
            types: Struct type definitions, without EIP712Domain
            value: The message to sign

        Returns:
            The 65-byte signature as 0x-prefixed hex
        """
        return await self.sign_digest(hash_typed_data(domain, types, value))
