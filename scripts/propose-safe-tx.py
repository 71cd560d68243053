#!/usr/bin/env python3
"""
Propose a Safe multisig transaction signed by a KMS-held owner key.
Run with: python scripts/propose-safe-tx.py --to 0x... --value 100

Configuration is read from the environment:
    KMS_KEY_ID, AWS_REGION, AWS_ENDPOINT_URL      (signer)
    SAFE_ADDRESS, SAFE_CHAIN_ID, SAFE_TX_SERVICE_URL  (Safe)

When --nonce is omitted the Safe's current nonce is fetched from the
transaction service.
"""
import argparse
import asyncio
import logging
import sys

from pydantic import ValidationError

from kms_eth_sdk import KmsSignerError, KmsSigner
from kms_eth_sdk.safe import SafeApiClient
from kms_eth_sdk.types import KmsSignerConfig, SafeConfig, SafeTransactionData

logger = logging.getLogger("propose-safe-tx")


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--to", help="destination address (defaults to the Safe itself)")
    parser.add_argument("--value", default="0", help="value in wei")
    parser.add_argument("--data", default="0x", help="call data as 0x-hex")
    parser.add_argument("--operation", type=int, choices=(0, 1), default=0)
    parser.add_argument("--nonce", type=int, help="Safe nonce (fetched when omitted)")
    parser.add_argument("--origin", help="origin label stored by the service")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


async def propose(args: argparse.Namespace) -> str:
    signer = KmsSigner.from_config(KmsSignerConfig.from_env())
    safe = SafeConfig.from_env()

    async with SafeApiClient(safe.tx_service_url) as api:
        nonce = args.nonce
        if nonce is None:
            nonce = await api.get_nonce(safe.safe_address)

        tx = SafeTransactionData(
            to=args.to or safe.safe_address,
            value=args.value,
            data=args.data,
            operation=args.operation,
            nonce=nonce,
        )
        return await api.propose_signed_transaction(
            signer, safe.safe_address, safe.chain_id, tx, origin=args.origin
        )


def main(argv: list[str]) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        tx_hash = asyncio.run(propose(args))
    except ValidationError as e:
        logger.error("Invalid configuration: %s", e)
        return 2
    except KmsSignerError as e:
        logger.error("Proposal failed: %s", e)
        return 1

    print(f"Created the Safe transaction {tx_hash}")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
