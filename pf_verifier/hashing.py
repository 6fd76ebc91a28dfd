# pf_verifier/hashing.py

import hmac
import hashlib
import logging
from typing import Iterable, Union, Dict, Any

from pf_verifier.byte_codec import concat_bytes, str_to_bytes
from pf_verifier.errors import CryptoUnavailableError

logger = logging.getLogger("pf_verifier")

Part = Union[bytes, bytearray, memoryview, str]


def _require_sha256() -> None:
    if "sha256" not in hashlib.algorithms_available:
        raise CryptoUnavailableError("SHA-256 is not available from hashlib in this interpreter")


def hmac_sha256(key: bytes, parts: Iterable[Part]) -> bytes:
    """
    HMAC-SHA256 over the concatenation of `parts`.

    Parts are joined into one message before signing. Strings are UTF-8
    encoded. Feeding the parts to the HMAC one by one gives the same digest
    in theory, but the game server signs one buffer and that is what we copy.
    """
    _require_sha256()
    message = concat_bytes(*(str_to_bytes(p) if isinstance(p, str) else bytes(p) for p in parts))
    return hmac.new(bytes(key), message, hashlib.sha256).digest()


def sha256(data: Part) -> bytes:
    _require_sha256()
    if isinstance(data, str):
        data = str_to_bytes(data)
    return hashlib.sha256(bytes(data)).digest()


def crypto_status() -> Dict[str, Any]:
    status: Dict[str, Any] = {
        "backend": "hashlib",
        "sha256": False,
        "error": None,
    }
    try:
        _require_sha256()
        status["sha256"] = True
    except CryptoUnavailableError as e:
        status["error"] = str(e)
        logger.warning(f"[CRYPTO] {e}")
    return status
