"""
Location: python/kms_eth_sdk/safe.py

Summary:
    Safe multisig integration. Computes SafeTx hashes, produces eth_sign
    style owner signatures through any Signer, and proposes transactions
    to the Safe transaction service.

Usage:
    Consumer of the signature bridge: the KMS-backed signer signs the
    SafeTx hash and the resulting signature is adjusted to the Safe
    eth_sign convention (v + 4) before being proposed.

Example:
    from kms_eth_sdk.safe import SafeApiClient
    from kms_eth_sdk.types import SafeTransactionData

    tx = SafeTransactionData(to=safe_address, value="100", nonce=18)
    async with SafeApiClient("https://safe-transaction-sepolia.safe.global") as api:
        safe_tx_hash = await api.propose_signed_transaction(
            signer, safe_address, chain_id=11155111, tx=tx
        )
"""

import logging
from typing import Any, Optional

import httpx
from eth_account.messages import _hash_eip191_message, encode_typed_data
from eth_utils import to_bytes, to_checksum_address

from .errors import SafeServiceError
from .signer import BaseSigner
from .types import RecoverableSignature, SafeTransactionData

logger = logging.getLogger(__name__)

SAFE_TX_TYPES = {
    "EIP712Domain": [
        {"name": "chainId", "type": "uint256"},
        {"name": "verifyingContract", "type": "address"},
    ],
    "SafeTx": [
        {"name": "to", "type": "address"},
        {"name": "value", "type": "uint256"},
        {"name": "data", "type": "bytes"},
        {"name": "operation", "type": "uint8"},
        {"name": "safeTxGas", "type": "uint256"},
        {"name": "baseGas", "type": "uint256"},
        {"name": "gasPrice", "type": "uint256"},
        {"name": "gasToken", "type": "address"},
        {"name": "refundReceiver", "type": "address"},
        {"name": "nonce", "type": "uint256"},
    ],
}

# Safe marks eth_sign owner signatures by shifting v from 27/28 to 31/32
ETH_SIGN_V_OFFSET = 4


def safe_tx_hash(safe_address: str, chain_id: int, tx: SafeTransactionData) -> str:
    """
    Compute the EIP-712 SafeTx hash the Safe contract asks owners to sign.

    Args:
        safe_address: Address of the Safe (the verifying contract)
        chain_id: EIP-155 chain id
        tx: The transaction to hash

    Returns:
        The 32-byte hash as 0x-prefixed hex
    """
    typed_data = {
        "types": SAFE_TX_TYPES,
        "primaryType": "SafeTx",
        "domain": {
            "chainId": chain_id,
            "verifyingContract": to_checksum_address(safe_address),
        },
        "message": {
            "to": to_checksum_address(tx.to),
            "value": int(tx.value),
            "data": to_bytes(hexstr=tx.data),
            "operation": tx.operation,
            "safeTxGas": int(tx.safe_tx_gas),
            "baseGas": int(tx.base_gas),
            "gasPrice": int(tx.gas_price),
            "gasToken": to_checksum_address(tx.gas_token),
            "refundReceiver": to_checksum_address(tx.refund_receiver),
            "nonce": tx.nonce,
        },
    }
    digest = _hash_eip191_message(encode_typed_data(full_message=typed_data))
    return "0x" + bytes(digest).hex()


def adjust_v_for_eth_sign(signature: str) -> str:
    """
    Convert a personal-message signature into a Safe eth_sign signature.

    Recovery ids 0/1 are first lifted to 27/28, then shifted by 4.

    Args:
        signature: 65-byte signature as hex

    Returns:
        The adjusted signature as 0x-prefixed hex

    Raises:
        ValueError: If v is not one of 0, 1, 27, 28
    """
    sig = RecoverableSignature.from_bytes(signature)
    v = sig.v
    if v in (0, 1):
        v += 27
    if v not in (27, 28):
        raise ValueError(f"unexpected recovery id {sig.v}")
    return RecoverableSignature(r=sig.r, s=sig.s, v=v + ETH_SIGN_V_OFFSET).to_hex()


async def get_safe_signature(signer: BaseSigner, tx_hash: str) -> str:
    """
    Sign a SafeTx hash as an owner using the eth_sign method.

    The hash bytes are signed as an EIP-191 personal message, then v is
    adjusted so the Safe contract knows to apply the message prefix.

    Args:
        signer: Any signer exposing sign_message()
        tx_hash: The SafeTx hash as 0x-prefixed hex

    Returns:
        The owner signature as 0x-prefixed hex
    """
    signature = await signer.sign_message(to_bytes(hexstr=tx_hash))
    return adjust_v_for_eth_sign(signature)


class SafeApiClient:
    """
    Minimal client for the Safe transaction service.

    Attributes:
        base_url: Transaction service base URL
        timeout: Request timeout in seconds
    """

    def __init__(self, tx_service_url: str, timeout: float = 30.0):
        """
        Initialize the Safe API client.

        Args:
            tx_service_url: Transaction service base URL (trailing slash removed)
            timeout: Request timeout in seconds (default 30)
        """
        self.base_url = tx_service_url.rstrip("/")
        self.timeout = timeout
        self._http = httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        await self._http.aclose()

    async def __aenter__(self) -> "SafeApiClient":
        """Enter async context manager."""
        return self

    async def __aexit__(self, *args) -> None:
        """Exit async context manager and close resources."""
        await self.close()

    async def get_nonce(self, safe_address: str) -> int:
        """
        Get the current on-chain nonce of a Safe.

        Raises:
            SafeServiceError: If the service does not answer with 2xx
        """
        url = f"{self.base_url}/api/v1/safes/{to_checksum_address(safe_address)}/"
        response = await self._http.request("GET", url)
        self._check(response)
        return int(response.json()["nonce"])

    async def propose_transaction(
        self,
        safe_address: str,
        tx: SafeTransactionData,
        tx_hash: str,
        sender_address: str,
        signature: str,
        origin: Optional[str] = None,
    ) -> None:
        """
        Propose a signed transaction to the Safe transaction service.

        Args:
            safe_address: Address of the Safe
            tx: The transaction data that was hashed
            tx_hash: The SafeTx hash
            sender_address: Owner address that produced the signature
            signature: The owner's signature
            origin: Optional free-form origin label

        Raises:
            SafeServiceError: If the service does not answer with 2xx
        """
        safe = to_checksum_address(safe_address)
        url = f"{self.base_url}/api/v1/safes/{safe}/multisig-transactions/"
        body: dict[str, Any] = {
            **tx.model_dump(by_alias=True),
            "to": to_checksum_address(tx.to),
            "data": tx.data if tx.data != "0x" else None,
            "contractTransactionHash": tx_hash,
            "sender": to_checksum_address(sender_address),
            "signature": signature,
            "origin": origin,
        }
        response = await self._http.request("POST", url, json=body)
        self._check(response)
        logger.info("Proposed Safe transaction %s for %s", tx_hash, safe)

    async def propose_signed_transaction(
        self,
        signer: BaseSigner,
        safe_address: str,
        chain_id: int,
        tx: SafeTransactionData,
        origin: Optional[str] = None,
    ) -> str:
        """
        Hash, sign and propose a Safe transaction in one step.

        Args:
            signer: Owner signer (e.g. KmsSigner)
            safe_address: Address of the Safe
            chain_id: EIP-155 chain id
            tx: The transaction to propose
            origin: Optional free-form origin label

        Returns:
            The SafeTx hash of the proposed transaction
        """
        tx_hash = safe_tx_hash(safe_address, chain_id, tx)
        sender = await signer.get_address()
        signature = await get_safe_signature(signer, tx_hash)
        await self.propose_transaction(
            safe_address, tx, tx_hash, sender, signature, origin=origin
        )
        return tx_hash

    @staticmethod
    def _check(response: httpx.Response) -> None:
        if response.status_code // 100 != 2:
            raise SafeServiceError(response.status_code, response.text)
