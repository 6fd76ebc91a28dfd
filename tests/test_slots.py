import pytest

from pf_verifier.slots import (
    CDF,
    PAYTABLE,
    SLOT_SYMBOLS,
    PayRow,
    SlotsRng,
    build_grid,
    replay_slots,
    slots_payout_lamports,
)

from conftest import SERVER_SEED, oracle_hmac


def u32_stream(seed_hex, prefix, count):
    """u32 values of blocks HMAC(seed, prefix ++ u32le(k)), each read big-endian."""
    out = []
    k = 0
    while len(out) < count:
        block = oracle_hmac(seed_hex, prefix + k.to_bytes(4, "little"))
        out.extend(int.from_bytes(block[i:i + 4], "big") for i in range(0, 32, 4))
        k += 1
    return out[:count]


def symbol(u):
    return SLOT_SYMBOLS[u * len(SLOT_SYMBOLS) // 2 ** 32]


def expected_spin(seed_hex, client_seed, nonce):
    us = iter(u32_stream(seed_hex, f"{client_seed}{nonce}".encode(), 200))
    r = next(us) / 2 ** 32
    cum = 0.0
    outcome = next(p for p in PAYTABLE if p.key == "loss")
    for p in PAYTABLE:
        if p.key == "jackpot":
            continue
        cum += p.freq
        if r < cum:
            outcome = p
            break

    grid = [symbol(next(us)) for _ in range(9)]
    if outcome.type == "triple":
        mid = [outcome.symbol] * 3
    elif outcome.type == "near":
        s = symbol(next(us))
        odd = next(us) * 3 // 2 ** 32
        t = symbol(next(us))
        while t == s:
            t = symbol(next(us))
        mid = [s, s, s]
        mid[odd] = t
    else:
        a = symbol(next(us))
        b = symbol(next(us))
        while b == a:
            b = symbol(next(us))
        c = symbol(next(us))
        while c in (a, b):
            c = symbol(next(us))
        mid = [a, b, c]
    grid[3:6] = mid
    return outcome, grid


def test_rng_reads_counter_blocks_big_endian():
    rng = SlotsRng(SERVER_SEED, "abc", 5)
    assert [rng.next_u32() for _ in range(10)] == u32_stream(SERVER_SEED, b"abc5", 10)
    assert rng.blocks_used == 2


def test_rng_int_range():
    rng = SlotsRng(SERVER_SEED, "abc", 6)
    values = {rng.next_int(0, 2) for _ in range(300)}
    assert values == {0, 1, 2}
    assert all(0.0 <= rng.next_float() < 1.0 for _ in range(100))


def test_cdf_skips_jackpot_and_sums_to_one():
    assert "jackpot" not in [row.key for row, _ in CDF]
    assert CDF[-1][0].key == "loss"
    assert CDF[-1][1] == pytest.approx(1.0)


def test_replay_matches_hand_computed_stream():
    seen = set()
    for nonce in range(200):
        outcome, grid = expected_spin(SERVER_SEED, "spin", nonce)
        out = replay_slots(SERVER_SEED, "spin", nonce)
        assert out.outcome == outcome.key
        assert out.payout_mul == outcome.payout_mul
        assert list(out.grid) == grid
        assert out.first_hmac_hex == oracle_hmac(SERVER_SEED, f"spin{nonce}".encode()).hex()
        seen.add(outcome.type)
    assert seen == {"near", "triple", "loss"}


@pytest.mark.parametrize("nonce", range(5))
def test_grid_pay_line_by_outcome_type(nonce):
    triple = PayRow("triple_pepe", "triple", 20, 0.0, "pepe")
    near = PayRow("near_miss", "near", 0.8, 0.0)
    loss = PayRow("loss", "loss", 0, 0.0)

    grid = build_grid(SlotsRng(SERVER_SEED, "g", nonce), triple)
    assert grid[3:6] == ["pepe"] * 3

    mid = build_grid(SlotsRng(SERVER_SEED, "g", nonce), near)[3:6]
    assert len(set(mid)) == 2
    assert max(mid.count(s) for s in mid) == 2

    grid = build_grid(SlotsRng(SERVER_SEED, "g", nonce), loss)
    assert len(grid) == 9
    assert len(set(grid[3:6])) == 3
    assert set(grid) <= set(SLOT_SYMBOLS)


def test_top_and_bottom_rows_do_not_depend_on_outcome():
    grids = [
        build_grid(SlotsRng(SERVER_SEED, "g", 1), row)
        for row in (PAYTABLE[0], PAYTABLE[1], PAYTABLE[-1])
    ]
    for grid in grids[1:]:
        assert grid[:3] == grids[0][:3]
        assert grid[6:] == grids[0][6:]


@pytest.mark.parametrize(
    "bet, mul, fee, expected",
    [
        (1_000_000, 1.5, 0.05, 1_450_000),
        (1_000_000, 0.8, 0.05, 750_000),
        (1_000_000, 100, 0.0, 100_000_000),
        (1_000_000, 0, 0.05, 0),
        (3, 1.5, 0.05, 4),
        (0, 50, 0.05, 0),
    ],
)
def test_slots_payout_lamports(bet, mul, fee, expected):
    assert slots_payout_lamports(bet, mul, fee) == expected


def test_payout_never_negative_when_fee_exceeds_gross():
    assert slots_payout_lamports(1_000_000, 0.01, 0.05) == 0
