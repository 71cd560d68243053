"""
Tests for kms_eth_sdk.bridge module.

Tests width normalization, low-s canonicalization, recovery id search
and address derivation, using the in-memory KMS and fixed DER fixtures.
"""

import pytest
from unittest.mock import patch

from coincurve import PrivateKey
from eth_keys import keys

from kms_eth_sdk.asn1 import extract_signature_fields
from kms_eth_sdk.bridge import (
    RECOVERY_IDS,
    SECP256K1_N,
    canonicalize_s,
    derive_address,
    normalize_to_fixed_width,
    recover_address,
    sign_digest_and_recover,
)
from kms_eth_sdk.errors import MalformedPublicKey, MalformedSignature, RecoveryMismatch
from kms_eth_sdk.signers.memory import encode_public_key_der

from conftest import KEY_ONE, KEY_ONE_ADDRESS, KEY_TWO, der_signature

HALF_N = SECP256K1_N // 2


def fixed_sign(der: bytes):
    """Build a kms_sign callable that always returns the same DER."""
    async def kms_sign(digest: bytes) -> bytes:
        return der
    return kms_sign


def memory_sign(memory_kms, key_id: str):
    """Build a kms_sign callable backed by the in-memory KMS."""
    async def kms_sign(digest: bytes) -> bytes:
        return await memory_kms.sign(key_id, digest)
    return kms_sign


def high_s_sign(memory_kms, key_id: str):
    """Build a kms_sign callable that returns the malleable high-s form."""
    async def kms_sign(digest: bytes) -> bytes:
        r, s = extract_signature_fields(await memory_kms.sign(key_id, digest))
        return der_signature(
            int.from_bytes(r, "big"),
            SECP256K1_N - int.from_bytes(s, "big"),
        )
    return kms_sign


class TestNormalizeToFixedWidth:
    """Tests for normalize_to_fixed_width function."""

    @pytest.mark.parametrize("length", range(1, 34))
    def test_always_32_bytes(self, length):
        """Test that every input length from 1 to 33 yields 32 bytes."""
        assert len(normalize_to_fixed_width(b"\x01" * length)) == 32

    def test_pads_short_values(self):
        """Test left zero padding."""
        assert normalize_to_fixed_width(b"\x01") == b"\x00" * 31 + b"\x01"

    def test_drops_sign_byte(self):
        """Test that the DER sign byte of a 33-byte integer is removed."""
        value = b"\xff" * 32
        assert normalize_to_fixed_width(b"\x00" + value) == value

    def test_idempotent(self):
        """Test that 32-byte input is returned unchanged."""
        value = bytes(range(32))
        once = normalize_to_fixed_width(value)
        assert once == value
        assert normalize_to_fixed_width(once) == once


class TestCanonicalizeS:
    """Tests for canonicalize_s function."""

    def test_low_s_unchanged(self):
        """Test that values up to n/2 are kept."""
        assert canonicalize_s(1) == 1
        assert canonicalize_s(HALF_N) == HALF_N

    def test_high_s_flipped(self):
        """Test that values above n/2 become n - s."""
        assert canonicalize_s(HALF_N + 1) == SECP256K1_N - (HALF_N + 1)
        assert canonicalize_s(SECP256K1_N - 1) == 1

    @pytest.mark.parametrize("s", [1, 2, HALF_N - 1, HALF_N, HALF_N + 1, SECP256K1_N - 1])
    def test_idempotent(self, s):
        """Test canonicalize_s(canonicalize_s(s)) == canonicalize_s(s)."""
        once = canonicalize_s(s)
        assert canonicalize_s(once) == once
        assert once <= HALF_N


class TestDeriveAddress:
    """Tests for derive_address function."""

    def test_known_vector(self, generator_public_key_der):
        """Test that private key 1 derives its well-known address."""
        assert derive_address(generator_public_key_der) == KEY_ONE_ADDRESS

    def test_deterministic(self, generator_public_key_der):
        """Test that the same key always yields the same address."""
        assert derive_address(generator_public_key_der) == derive_address(
            generator_public_key_der
        )

    def test_matches_coincurve_key(self):
        """Test derivation for a key generated with coincurve."""
        key = PrivateKey(KEY_TWO)
        der = encode_public_key_der(key.public_key.format(compressed=False))
        expected = keys.PrivateKey(KEY_TWO).public_key.to_checksum_address()
        assert derive_address(der) == expected

    def test_rejects_compressed_point(self):
        """Test that a compressed point is not accepted."""
        key = PrivateKey(KEY_ONE)
        compressed = key.public_key.format(compressed=True)
        algorithm = bytes.fromhex("301006072a8648ce3d020106052b8104000a")
        bit_string = b"\x03" + bytes([len(compressed) + 1]) + b"\x00" + compressed
        body = algorithm + bit_string
        der = b"\x30" + bytes([len(body)]) + body
        with pytest.raises(MalformedPublicKey):
            derive_address(der)


class TestSignDigestAndRecover:
    """Tests for sign_digest_and_recover function."""

    async def test_recovers_expected_address(self, memory_kms, digest):
        """Test that the result recovers to the expected address."""
        signature = await sign_digest_and_recover(
            digest, memory_sign(memory_kms, "key-one"), KEY_ONE_ADDRESS
        )

        assert len(signature) == 65
        assert signature[64] in RECOVERY_IDS
        assert recover_address(digest, signature) == KEY_ONE_ADDRESS

    async def test_output_is_low_s(self, memory_kms, digest):
        """Test that s <= n/2 in the output."""
        signature = await sign_digest_and_recover(
            digest, memory_sign(memory_kms, "key-one"), KEY_ONE_ADDRESS
        )
        assert int.from_bytes(signature[32:64], "big") <= HALF_N

    async def test_high_s_input_is_canonicalized(self, memory_kms, digest):
        """Test that a high-s KMS signature is flipped and still recovers."""
        signature = await sign_digest_and_recover(
            digest, high_s_sign(memory_kms, "key-one"), KEY_ONE_ADDRESS
        )

        assert int.from_bytes(signature[32:64], "big") <= HALF_N
        assert recover_address(digest, signature) == KEY_ONE_ADDRESS

    async def test_address_comparison_is_case_insensitive(self, memory_kms, digest):
        """Test that a lower-cased expected address still matches."""
        signature = await sign_digest_and_recover(
            digest, memory_sign(memory_kms, "key-one"), KEY_ONE_ADDRESS.lower()
        )
        assert recover_address(digest, signature) == KEY_ONE_ADDRESS

    async def test_key_mismatch_raises(self, memory_kms, digest):
        """Test that a signature from another key raises RecoveryMismatch."""
        with pytest.raises(RecoveryMismatch) as exc:
            await sign_digest_and_recover(
                digest, memory_sign(memory_kms, "key-two"), KEY_ONE_ADDRESS
            )
        assert exc.value.expected_address == KEY_ONE_ADDRESS

    async def test_s_flip_scenario(self):
        """Test r = 1, s = n - 1 over a zero digest flips s to 1."""
        der = der_signature(1, SECP256K1_N - 1)
        with patch(
            "kms_eth_sdk.bridge.recover_address", return_value=KEY_ONE_ADDRESS
        ):
            signature = await sign_digest_and_recover(
                b"\x00" * 32, fixed_sign(der), KEY_ONE_ADDRESS
            )

        assert signature[:32] == (1).to_bytes(32, "big")
        assert signature[32:64] == (1).to_bytes(32, "big")

    async def test_v_27_tried_first(self, digest):
        """Test that v = 27 is returned when both ids would match."""
        with patch(
            "kms_eth_sdk.bridge.recover_address", return_value=KEY_ONE_ADDRESS
        ) as mock_recover:
            signature = await sign_digest_and_recover(
                digest, fixed_sign(der_signature(5, 7)), KEY_ONE_ADDRESS
            )

        assert signature[64] == 27
        mock_recover.assert_called_once()

    async def test_v_28_after_27(self, digest):
        """Test that v = 28 is tried only after v = 27 fails."""
        other = "0x0000000000000000000000000000000000000001"
        with patch(
            "kms_eth_sdk.bridge.recover_address",
            side_effect=[other, KEY_ONE_ADDRESS],
        ) as mock_recover:
            signature = await sign_digest_and_recover(
                digest, fixed_sign(der_signature(5, 7)), KEY_ONE_ADDRESS
            )

        assert signature[64] == 28
        tried = [call.args[1][64] for call in mock_recover.call_args_list]
        assert tried == [27, 28]

    async def test_neither_id_matches(self, digest):
        """Test that RecoveryMismatch is raised and nothing is returned."""
        other = "0x0000000000000000000000000000000000000001"
        with patch("kms_eth_sdk.bridge.recover_address", return_value=other):
            with pytest.raises(RecoveryMismatch):
                await sign_digest_and_recover(
                    digest, fixed_sign(der_signature(5, 7)), KEY_ONE_ADDRESS
                )

    async def test_rejects_bad_digest_length(self, memory_kms):
        """Test that digests other than 32 bytes are refused before signing."""
        with pytest.raises(ValueError):
            await sign_digest_and_recover(
                b"\x00" * 31, memory_sign(memory_kms, "key-one"), KEY_ONE_ADDRESS
            )
        assert memory_kms.sign_calls == 0

    async def test_malformed_der(self, digest):
        """Test that an undecodable KMS response raises MalformedSignature."""
        with pytest.raises(MalformedSignature):
            await sign_digest_and_recover(
                digest, fixed_sign(b"\x30\x00"), KEY_ONE_ADDRESS
            )

    @pytest.mark.parametrize("r,s", [(0, 1), (1, 0), (SECP256K1_N, 1)])
    async def test_out_of_range_components(self, digest, r, s):
        """Test that r or s outside (0, n) raise MalformedSignature."""
        with pytest.raises(MalformedSignature):
            await sign_digest_and_recover(
                digest, fixed_sign(der_signature(r, s)), KEY_ONE_ADDRESS
            )
