import hashlib
import hmac

import base58
import pytest

SERVER_SEED = "9f3c1a0be27d4c55a0f1e6d2b8c94e7713a5d0c2f8e1b6a4c3d9e0f1a2b3c4d5"
ZERO_SEED = "00" * 32
PLAYER = base58.b58encode(bytes(range(1, 33))).decode("ascii")


def oracle_hmac(seed_hex: str, message: bytes) -> bytes:
    return hmac.new(bytes.fromhex(seed_hex), message, hashlib.sha256).digest()


@pytest.fixture
def server_seed():
    return SERVER_SEED


@pytest.fixture
def player():
    return PLAYER
