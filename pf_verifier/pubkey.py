# pf_verifier/pubkey.py

import base58

from pf_verifier.errors import FormatError

# Bitcoin/Solana alphabet: no 0, O, I or l.
ALPHABET = base58.BITCOIN_ALPHABET.decode("ascii")
_ALPHABET_SET = frozenset(ALPHABET)

PUBKEY_LEN = 32


def base58_decode(s: str, field: str = "base58") -> bytes:
    """Decodes base58 text. Every leading '1' becomes one leading zero byte."""
    if not isinstance(s, str):
        raise FormatError(field, f"expected a base58 string, got {type(s).__name__}")
    bad = sorted(set(s) - _ALPHABET_SET)
    if bad:
        raise FormatError(field, f"invalid base58 character(s) {''.join(bad)!r}")
    try:
        return base58.b58decode(s)
    except ValueError as e:
        raise FormatError(field, str(e)) from e


def decode_player_pubkey(pubkey_b58: str, field: str = "player_pubkey") -> bytes:
    """Decodes a Solana wallet address into its 32 raw ed25519 key bytes."""
    from nacl.signing import VerifyKey
    from nacl.exceptions import ValueError as NaclValueError

    raw = base58_decode(pubkey_b58, field=field)
    try:
        verify_key = VerifyKey(raw)
    except NaclValueError as e:
        raise FormatError(field, f"expected {PUBKEY_LEN} key bytes, got {len(raw)}") from e
    return bytes(verify_key)
