"""
Location: python/kms_eth_sdk/types.py

Summary:
    Pydantic models for kms-eth-sdk. Defines the signer and Safe
    configuration models, the recoverable signature model and the Safe
    multisig transaction payload.

Usage:
    These models are imported by signers/kms.py, safe.py and the
    propose-safe-tx script. Configuration models can be built directly or
    loaded from environment variables with from_env().
    Token amounts are represented as strings to prevent precision loss
    with large values.

Example:
    from kms_eth_sdk.types import KmsSignerConfig, SafeTransactionData

    config = KmsSignerConfig(key_id="alias/eth-signer", region="eu-west-1")
    tx = SafeTransactionData(to="0x...", value="100", nonce=18)
"""

import os
from typing import Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class KmsSignerConfig(BaseModel):
    """
    Configuration for a KMS-backed signer.

    Attributes:
        key_id: KMS key ID, alias or full ARN of a secp256k1 key
        region: AWS region where the key lives
        endpoint_url: Optional endpoint override (e.g. localstack)
        signing_algorithm: KMS signing algorithm for digest signing
    """
    key_id: str = Field(alias="keyId", min_length=1)
    region: str = "us-east-1"
    endpoint_url: Optional[str] = Field(None, alias="endpointUrl")
    signing_algorithm: str = Field("ECDSA_SHA_256", alias="signingAlgorithm")

    model_config = {"populate_by_name": True}

    @classmethod
    def from_env(cls) -> "KmsSignerConfig":
        """
        Build a config from KMS_KEY_ID, AWS_REGION and AWS_ENDPOINT_URL.

        Raises:
            pydantic.ValidationError: If KMS_KEY_ID is unset or empty
        """
        return cls(
            key_id=os.environ.get("KMS_KEY_ID", ""),
            region=os.environ.get("AWS_REGION", "us-east-1"),
            endpoint_url=os.environ.get("AWS_ENDPOINT_URL") or None,
        )


class SafeConfig(BaseModel):
    """
    Configuration for proposing transactions to a Safe.

    Attributes:
        safe_address: Address of the Safe contract
        chain_id: EIP-155 chain id the Safe is deployed on
        tx_service_url: Base URL of the Safe transaction service
    """
    safe_address: str = Field(alias="safeAddress")
    chain_id: int = Field(alias="chainId", gt=0)
    tx_service_url: str = Field(alias="txServiceUrl")

    model_config = {"populate_by_name": True}

    @classmethod
    def from_env(cls) -> "SafeConfig":
        """Build a config from SAFE_ADDRESS, SAFE_CHAIN_ID and SAFE_TX_SERVICE_URL."""
        return cls(
            safe_address=os.environ.get("SAFE_ADDRESS", ""),
            chain_id=int(os.environ.get("SAFE_CHAIN_ID", "0")),
            tx_service_url=os.environ.get("SAFE_TX_SERVICE_URL", ""),
        )


class RecoverableSignature(BaseModel):
    """
    A 65-byte Ethereum signature split into its components.

    Attributes:
        r: The r component as an integer
        s: The s component as an integer
        v: The recovery id (27 or 28, or Safe-adjusted 31/32)
    """
    r: int = Field(ge=0, lt=2**256)
    s: int = Field(ge=0, lt=2**256)
    v: int = Field(ge=0, le=255)

    @classmethod
    def from_bytes(cls, data: Union[bytes, str]) -> "RecoverableSignature":
        """
        Parse r || s || v from bytes or a 0x-prefixed hex string.

        Raises:
            ValueError: If the input is not 65 bytes long
        """
        if isinstance(data, str):
            data = bytes.fromhex(data[2:] if data.startswith("0x") else data)
        if len(data) != 65:
            raise ValueError(f"signature must be 65 bytes, got {len(data)}")
        return cls(
            r=int.from_bytes(data[:32], "big"),
            s=int.from_bytes(data[32:64], "big"),
            v=data[64],
        )

    def to_bytes(self) -> bytes:
        """Return r(32) || s(32) || v(1)."""
        return (
            self.r.to_bytes(32, "big")
            + self.s.to_bytes(32, "big")
            + bytes([self.v])
        )

    def to_hex(self) -> str:
        """Return the signature as a 0x-prefixed hex string."""
        return "0x" + self.to_bytes().hex()


class SafeTransactionData(BaseModel):
    """
    A Safe multisig transaction, as hashed by the Safe contract (SafeTx).

    Attributes:
        to: Destination address
        value: Wei amount as string for precision
        data: Call data as 0x-prefixed hex
        operation: 0 for CALL, 1 for DELEGATECALL
        safe_tx_gas: Gas forwarded to the inner call
        base_gas: Gas costs independent of the inner call
        gas_price: Gas price used for the refund calculation
        gas_token: Token used for the refund (zero address for ETH)
        refund_receiver: Refund recipient (zero address for tx.origin)
        nonce: Safe nonce of this transaction
    """
    to: str
    value: str = "0"
    data: str = "0x"
    operation: Literal[0, 1] = 0
    safe_tx_gas: str = Field("0", alias="safeTxGas")
    base_gas: str = Field("0", alias="baseGas")
    gas_price: str = Field("0", alias="gasPrice")
    gas_token: str = Field(ZERO_ADDRESS, alias="gasToken")
    refund_receiver: str = Field(ZERO_ADDRESS, alias="refundReceiver")
    nonce: int = Field(ge=0)

    model_config = {"populate_by_name": True}

    @field_validator("data")
    @classmethod
    def _check_hex_data(cls, v: str) -> str:
        if not v.startswith("0x"):
            raise ValueError("data must be 0x-prefixed hex")
        bytes.fromhex(v[2:])
        return v
