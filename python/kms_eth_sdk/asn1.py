"""
Location: python/kms_eth_sdk/asn1.py

Summary:
    Minimal DER field extractor. Pulls the INTEGER value blocks out of an
    ECDSA-Sig-Value and the curve point out of a SubjectPublicKeyInfo
    without building a general ASN.1 object model.

Usage:
    Used by bridge.py to unpack raw KMS responses. Only SEQUENCE,
    INTEGER and BIT STRING are understood.

Example:
    from kms_eth_sdk.asn1 import extract_signature_fields

    r_raw, s_raw = extract_signature_fields(der_signature)
"""

from .errors import MalformedPublicKey, MalformedSignature

TAG_INTEGER = 0x02
TAG_BIT_STRING = 0x03
TAG_SEQUENCE = 0x30


class _DerError(ValueError):
    pass


def _read_element(data: bytes, offset: int) -> tuple[int, bytes, int]:
    """
    Read one tag-length-value element.

    Args:
        data: The DER buffer
        offset: Position of the tag byte

    Returns:
        Tuple of (tag, value bytes, offset after the element)

    Raises:
        _DerError: If the element is truncated or uses an indefinite length
    """
    if offset + 2 > len(data):
        raise _DerError(f"truncated element header at offset {offset}")

    tag = data[offset]
    offset += 1
    length = data[offset]
    offset += 1

    if length & 0x80:
        num_len_bytes = length & 0x7F
        if num_len_bytes == 0:
            raise _DerError("indefinite length is not allowed in DER")
        if offset + num_len_bytes > len(data):
            raise _DerError("truncated long-form length")
        length = int.from_bytes(data[offset:offset + num_len_bytes], "big")
        offset += num_len_bytes

    end = offset + length
    if end > len(data):
        raise _DerError(
            f"element at offset {offset} declares {length} bytes, "
            f"only {len(data) - offset} available"
        )
    return tag, data[offset:end], end


def _read_children(data: bytes) -> list[tuple[int, bytes]]:
    """Return the (tag, value) children of the outer SEQUENCE."""
    tag, body, _ = _read_element(data, 0)
    if tag != TAG_SEQUENCE:
        raise _DerError(f"expected SEQUENCE tag (0x30), got {tag:#04x}")

    children = []
    offset = 0
    while offset < len(body):
        child_tag, value, offset = _read_element(body, offset)
        children.append((child_tag, value))
    return children


def extract_signature_fields(der: bytes) -> tuple[bytes, bytes]:
    """
    Extract the r and s value blocks from a DER ECDSA signature.

    ASN.1: SEQUENCE { INTEGER r, INTEGER s }

    The returned buffers are the raw INTEGER contents. They may carry a
    leading 0x00 sign byte or be shorter than 32 bytes.

    Args:
        der: DER-encoded signature bytes

    Returns:
        Tuple of (r bytes, s bytes)

    Raises:
        MalformedSignature: If two INTEGER fields cannot be decoded
    """
    try:
        children = _read_children(bytes(der))
    except _DerError as e:
        raise MalformedSignature(f"Invalid DER signature: {e}") from e

    if len(children) < 2:
        raise MalformedSignature(
            f"DER signature must contain two INTEGER fields, found {len(children)}"
        )
    for tag, value in children[:2]:
        if tag != TAG_INTEGER or not value:
            raise MalformedSignature(
                f"expected non-empty INTEGER (0x02), got tag {tag:#04x}"
            )
    return children[0][1], children[1][1]


def extract_public_key_point(der: bytes) -> bytes:
    """
    Extract the encoded curve point from a DER SubjectPublicKeyInfo.

    ASN.1: SEQUENCE { AlgorithmIdentifier, BIT STRING subjectPublicKey }

    The BIT STRING unused-bits byte is dropped, so the result starts with
    the point format byte (0x04 for an uncompressed point).

    Args:
        der: DER-encoded public key bytes

    Returns:
        The point bytes, format prefix included

    Raises:
        MalformedPublicKey: If the second field is absent or not a BIT STRING
    """
    try:
        children = _read_children(bytes(der))
    except _DerError as e:
        raise MalformedPublicKey(f"Invalid DER public key: {e}") from e

    if len(children) < 2:
        raise MalformedPublicKey("DER public key has no subjectPublicKey field")

    tag, value = children[1]
    if tag != TAG_BIT_STRING:
        raise MalformedPublicKey(
            f"expected BIT STRING tag (0x03), got {tag:#04x}"
        )
    if len(value) < 2:
        raise MalformedPublicKey("subjectPublicKey BIT STRING is empty")
    if value[0] != 0x00:
        raise MalformedPublicKey(f"unexpected unused-bits byte: {value[0]:#x}")
    return value[1:]
