# pf_verifier/slots.py

import logging
import math
from dataclasses import dataclass
from itertools import accumulate
from typing import List, Optional, Sequence, Tuple, TypeVar

from pf_verifier.byte_codec import hex_to_bytes, nonce_to_str, str_to_bytes
from pf_verifier.game_logic import first_hmac
from pf_verifier.hashing import hmac_sha256

logger = logging.getLogger("pf_verifier")

T = TypeVar("T")

SLOT_SYMBOLS = ("floki", "wif", "brett", "shiba", "bonk", "doge", "pepe", "sol", "zoggy")
SLOTS_CELLS = 9
MID_START = 3  # the middle row (cells 3..5) is the pay line

PAYOUT_SCALE = 1_000_000


@dataclass(frozen=True)
class PayRow:
    key: str
    type: str  # "near", "triple" or "loss"
    payout_mul: float
    freq: float
    symbol: Optional[str] = None


PAYTABLE = (
    PayRow("near_miss", "near", 0.8, 0.24999992500002252),
    PayRow("triple_floki", "triple", 1.5, 0.04999998500000451, "floki"),
    PayRow("triple_wif", "triple", 1.5, 0.04999998500000451, "wif"),
    PayRow("triple_brett", "triple", 1.5, 0.04999998500000451, "brett"),
    PayRow("triple_shiba", "triple", 3, 0.023609992917002123, "shiba"),
    PayRow("triple_bonk", "triple", 6, 0.011804996458501062, "bonk"),
    PayRow("triple_doge", "triple", 10, 0.007082997875100638, "doge"),
    PayRow("triple_pepe", "triple", 20, 0.003541998937400319, "pepe"),
    PayRow("triple_sol", "triple", 50, 0.001416999574900128, "sol"),
    PayRow("triple_zoggy", "triple", 100, 0.000708299787510064, "zoggy"),
    PayRow("jackpot", "triple", 1000, 0, "zoggy"),
    PayRow("loss", "loss", 0, 0.5518348344495496),
)

LOSS = next(p for p in PAYTABLE if p.key == "loss")

# The jackpot is never drawn by the RNG; it is awarded out of band.
_DRAWABLE = [p for p in PAYTABLE if p.key != "jackpot"]
CDF: Tuple[Tuple[PayRow, float], ...] = tuple(zip(_DRAWABLE, accumulate(p.freq for p in _DRAWABLE)))


class SlotsRng:
    """
    Counter-mode HMAC keystream used by the slots server.

    Block k is HMAC(server_seed, client_seed ++ nonce ++ u32le(k)), k = 0, 1, ...
    Each 32-byte block is read as eight big-endian u32 values before the
    next block is drawn.
    """

    def __init__(self, server_seed_hex: str, client_seed: Optional[str], nonce) -> None:
        self._key = hex_to_bytes(server_seed_hex, field="server_seed_hex")
        self._prefix = str_to_bytes(client_seed or "") + str_to_bytes(nonce_to_str(nonce))
        self._counter = 0
        self._pool = b""

    def _refill(self) -> bytes:
        block = hmac_sha256(self._key, [self._prefix, self._counter.to_bytes(4, "little")])
        self._counter += 1
        return block

    @property
    def blocks_used(self) -> int:
        return self._counter

    def next_u32(self) -> int:
        if len(self._pool) < 4:
            self._pool = self._refill()
        x = int.from_bytes(self._pool[:4], "big")
        self._pool = self._pool[4:]
        return x

    def next_float(self) -> float:
        return self.next_u32() / 2 ** 32

    def next_int(self, lo: int, hi: int) -> int:
        """Uniform int in [lo, hi], both ends included."""
        return lo + math.floor(self.next_float() * (hi - lo + 1))

    def pick(self, seq: Sequence[T]) -> T:
        return seq[self.next_int(0, len(seq) - 1)]


def pick_outcome(rng: SlotsRng) -> PayRow:
    r = rng.next_float()
    for row, cum in CDF:
        if r < cum:
            return row
    return LOSS


def _pick_not(rng: SlotsRng, *exclude: str) -> str:
    while True:
        s = rng.pick(SLOT_SYMBOLS)
        if s not in exclude:
            return s


def build_grid(rng: SlotsRng, outcome: PayRow) -> List[str]:
    """
    Fills the 3x3 grid row by row, then rewrites the pay line for the outcome.

    All nine cells are drawn first, so the top and bottom rows consume the
    same keystream positions whatever the outcome is.
    """
    grid = [rng.pick(SLOT_SYMBOLS) for _ in range(SLOTS_CELLS)]

    if outcome.type == "triple":
        mid = [outcome.symbol] * 3
    elif outcome.type == "near":
        s = rng.pick(SLOT_SYMBOLS)
        odd = rng.next_int(0, 2)
        t = _pick_not(rng, s)
        mid = [t if i == odd else s for i in range(3)]
    else:
        first = rng.pick(SLOT_SYMBOLS)
        second = _pick_not(rng, first)
        mid = [first, second, _pick_not(rng, first, second)]

    grid[MID_START:MID_START + 3] = mid
    return grid


def _to_micro(x: float) -> int:
    # half-up, as the game server rounds
    return math.floor(x * PAYOUT_SCALE + 0.5)


def slots_payout_lamports(bet_lamports: int, payout_mul: float, fee_pct: float) -> int:
    """Gross payout minus the house fee on the bet, both in 1e-6 fixed point; never negative."""
    gross = bet_lamports * _to_micro(payout_mul) // PAYOUT_SCALE
    fee = bet_lamports * _to_micro(fee_pct) // PAYOUT_SCALE
    return gross - fee if gross > fee else 0


@dataclass(frozen=True)
class SlotsOutcome:
    outcome: str
    payout_mul: float
    grid: Tuple[str, ...]
    first_hmac_hex: str


def replay_slots(server_seed_hex: str, client_seed: Optional[str], nonce) -> SlotsOutcome:
    """Replays a slots spin: outcome from the first draw, then the grid from the following draws."""
    rng = SlotsRng(server_seed_hex, client_seed, nonce)
    outcome = pick_outcome(rng)
    grid = build_grid(rng, outcome)
    logger.debug(f"slots nonce={nonce!r} outcome={outcome.key} blocks={rng.blocks_used}")
    return SlotsOutcome(
        outcome=outcome.key,
        payout_mul=outcome.payout_mul,
        grid=tuple(grid),
        # the published first HMAC is the plain client_seed ++ nonce block, no counter
        first_hmac_hex=first_hmac(server_seed_hex, client_seed, nonce),
    )
