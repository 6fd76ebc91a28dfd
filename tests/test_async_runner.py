import asyncio
import time

import pytest

from pf_verifier.async_runner import run_verification, verify_many
from pf_verifier.errors import FormatError
from pf_verifier.game_logic import verify_coinflip, verify_dice, verify_mines

from conftest import PLAYER, SERVER_SEED


def test_run_verification_returns_sync_result():
    out = asyncio.run(run_verification(verify_dice, SERVER_SEED, "abc", nonce=1))
    assert out == verify_dice(SERVER_SEED, "abc", 1)


def test_run_verification_propagates_errors():
    with pytest.raises(FormatError):
        asyncio.run(run_verification(verify_dice, "0xZZ", "abc", 1))


def test_run_verification_timeout():
    with pytest.raises(asyncio.TimeoutError):
        asyncio.run(run_verification(time.sleep, 0.2, timeout=0.01))


def test_verify_many_keeps_order():
    calls = [
        (verify_dice, (SERVER_SEED, "abc", 1), {}),
        (verify_coinflip, (SERVER_SEED, "a", "b", 2), {}),
        (verify_mines, (SERVER_SEED, "abc", 3, PLAYER, 5, 5, 3), {"first_safe_index": 12}),
    ]
    results = asyncio.run(verify_many(calls))
    assert results == [func(*args, **kwargs) for func, args, kwargs in calls]
