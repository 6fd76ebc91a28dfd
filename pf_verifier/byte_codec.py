# pf_verifier/byte_codec.py

import binascii

from pf_verifier.errors import FormatError


def hex_to_bytes(hex_str: str, field: str = "hex") -> bytes:
    """Decodes a hex string (optional 0x prefix, any case) into raw bytes."""
    if not isinstance(hex_str, str):
        raise FormatError(field, f"expected a hex string, got {type(hex_str).__name__}")
    clean = hex_str[2:] if hex_str[:2] in ("0x", "0X") else hex_str
    if len(clean) % 2 != 0:
        raise FormatError(field, f"odd-length hex string ({len(clean)} chars)")
    try:
        return binascii.unhexlify(clean)
    except ValueError as e:
        raise FormatError(field, f"not a hex string: {e}") from e


def bytes_to_hex(data: bytes) -> str:
    return bytes(data).hex()


def str_to_bytes(s: str) -> bytes:
    return s.encode("utf-8")


def concat_bytes(*chunks: bytes) -> bytes:
    # bytes.join always allocates a new buffer, even for a single memoryview chunk.
    return b"".join(chunks)


def nonce_to_str(nonce, field: str = "nonce") -> str:
    """
    Stringifies a nonce exactly the way the game server does before hashing it.

    Integers become plain decimal ("7", never "07" or "+7"). A float is only
    accepted when it holds an integer value, since "7.0" would silently hash
    to a different round.
    """
    if isinstance(nonce, bool):
        raise FormatError(field, "bool is not a valid nonce")
    if isinstance(nonce, str):
        return nonce
    if isinstance(nonce, int):
        return str(nonce)
    if isinstance(nonce, float):
        if not nonce.is_integer():
            raise FormatError(field, f"non-integral numeric nonce {nonce!r}")
        return str(int(nonce))
    raise FormatError(field, f"expected str or int, got {type(nonce).__name__}")
