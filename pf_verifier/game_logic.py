# pf_verifier/game_logic.py

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union

from pf_verifier import config
from pf_verifier.byte_codec import bytes_to_hex, hex_to_bytes, nonce_to_str, str_to_bytes
from pf_verifier.errors import DomainError
from pf_verifier.hashing import hmac_sha256
from pf_verifier.pubkey import decode_player_pubkey

logger = logging.getLogger("pf_verifier")

Nonce = Union[str, int]


class Game(str, Enum):
    dice = "dice"
    crash = "crash"
    coinflip = "coinflip"
    mines = "mines"
    slots = "slots"
    plinko = "plinko"


@dataclass(frozen=True)
class DiceOutcome:
    roll: int
    hmac_hex: str


@dataclass(frozen=True)
class CrashOutcome:
    crash_at_mul: float
    r: float
    n64: str  # decimal string, the value does not fit a double
    hmac_hex: str


@dataclass(frozen=True)
class CoinflipOutcome:
    outcome: str
    bit: int
    hmac_hex: str


@dataclass(frozen=True)
class MinesOutcome:
    bomb_indices: Tuple[int, ...]
    first_hmac_hex: str
    seed_key_hex: str
    draws: int


@dataclass(frozen=True)
class HmacCheck:
    hmac_hex: str
    matches: Optional[bool] = None


GameOutcome = Union[DiceOutcome, CrashOutcome, CoinflipOutcome, MinesOutcome, HmacCheck]


def _u32be(digest: bytes) -> int:
    return int.from_bytes(digest[:4], "big")


def _u64be(digest: bytes) -> int:
    return int.from_bytes(digest[:8], "big")


def _server_key(server_seed_hex: str) -> bytes:
    return hex_to_bytes(server_seed_hex, field="server_seed_hex")


def _round_digest(server_seed_hex: str, client_seed: Optional[str], nonce: Nonce) -> bytes:
    """HMAC(server_seed, client_seed ++ nonce), the first keystream block of every single-seed game."""
    return hmac_sha256(_server_key(server_seed_hex), [client_seed or "", nonce_to_str(nonce)])


def verify_dice(server_seed_hex: str, client_seed: Optional[str], nonce: Nonce) -> DiceOutcome:
    """
    Recomputes a dice roll in [1, 100].

    The first 4 digest bytes are read big-endian and reduced mod 100, small
    bias towards low rolls included: the game server uses the same formula.
    """
    digest = _round_digest(server_seed_hex, client_seed, nonce)
    roll = _u32be(digest) % 100 + 1
    logger.debug(f"dice nonce={nonce!r} roll={roll}")
    return DiceOutcome(roll=roll, hmac_hex=bytes_to_hex(digest))


def crash_multiplier(digest: bytes) -> Tuple[float, float, int]:
    """
    Maps the first 8 digest bytes to a crash multiplier.

    The top 53 bits of the big-endian u64 become a uniform r in [0, 1), and
    0.99 / (1 - r) gives the usual heavy-tailed crash curve. r is capped just
    below 1 and the result is clamped to [1.01x, 10000x].

    Returns (crash_at_mul, r, n64).
    """
    n64 = _u64be(digest)
    r = (n64 >> 11) / 2 ** 53
    m = config.CRASH_HOUSE_EDGE / (1 - min(r, config.CRASH_R_CAP))
    crash_at_mul = min(max(m, config.CRASH_MIN_MUL), config.CRASH_MAX_MUL)
    return crash_at_mul, r, n64


def verify_crash(server_seed_hex: str, client_seed: Optional[str], nonce: Nonce) -> CrashOutcome:
    digest = _round_digest(server_seed_hex, client_seed, nonce)
    crash_at_mul, r, n64 = crash_multiplier(digest)
    logger.debug(f"crash nonce={nonce!r} crash_at={crash_at_mul:.6f}x")
    return CrashOutcome(crash_at_mul=crash_at_mul, r=r, n64=str(n64), hmac_hex=bytes_to_hex(digest))


def verify_coinflip(
    server_seed_hex: str,
    client_seed_a: Optional[str],
    client_seed_b: Optional[str],
    nonce: Nonce,
) -> CoinflipOutcome:
    """
    Recomputes a two-player coinflip.

    Message is "A|B|nonce". The pipes are signed too; without them "ab"+"c"
    and "a"+"bc" would hash the same. Lowest bit of the first digest byte:
    0 is heads, 1 is tails.
    """
    digest = hmac_sha256(
        _server_key(server_seed_hex),
        [client_seed_a or "", "|", client_seed_b or "", "|", nonce_to_str(nonce)],
    )
    bit = digest[0] & 1
    return CoinflipOutcome(outcome="heads" if bit == 0 else "tails", bit=bit, hmac_hex=bytes_to_hex(digest))


def first_hmac(server_seed_hex: str, client_seed: Optional[str], nonce: Nonce) -> str:
    return bytes_to_hex(_round_digest(server_seed_hex, client_seed, nonce))


def verify_first_hmac(
    server_seed_hex: str,
    client_seed: Optional[str],
    nonce: Nonce,
    expected_hmac_hex: Optional[str] = None,
) -> HmacCheck:
    """
    Slots/plinko: checks only the first keystream block against the reveal.

    The multi-stage draws are not replayed here; slots.replay_slots does that for slots.
    """
    hmac_hex = first_hmac(server_seed_hex, client_seed, nonce)
    matches = None
    if expected_hmac_hex is not None:
        matches = expected_hmac_hex.strip().lower() == hmac_hex
    return HmacCheck(hmac_hex=hmac_hex, matches=matches)


def _check_mines_params(rows: int, cols: int, mine_count: int) -> int:
    if rows <= 0:
        raise DomainError("rows", f"must be positive, got {rows}")
    if cols <= 0:
        raise DomainError("cols", f"must be positive, got {cols}")
    total = rows * cols
    if mine_count < 0:
        raise DomainError("mine_count", f"must not be negative, got {mine_count}")
    if mine_count >= total:
        raise DomainError("mine_count", f"{mine_count} mines leave no safe tile on a {rows}x{cols} grid")
    return total


def verify_mines(
    server_seed_hex: str,
    client_seed: Optional[str],
    nonce: Nonce,
    player_pubkey: str,
    rows: int,
    cols: int,
    mine_count: int,
    first_safe_index: Optional[int] = None,
) -> MinesOutcome:
    """
    Rebuilds the bomb layout of a mines round.

    1. seed_key = HMAC(server_seed, pubkey(32) ++ nonce ++ client_seed), so two
       players sharing a server seed never get the same board.
    2. Draw i = 0, 1, 2, ...: idx = u32be(HMAC(seed_key, str(i))) % tiles.
       A draw equal to first_safe_index is thrown away, a duplicate adds
       nothing. Stop once mine_count distinct tiles are collected.

    The draw order has to match the server exactly because i is hashed on
    every iteration. Draws are capped at MINES_DRAW_FACTOR * tiles.
    """
    total = _check_mines_params(rows, cols, mine_count)
    pk_bytes = decode_player_pubkey(player_pubkey)
    nonce_str = nonce_to_str(nonce)
    seed_key = hmac_sha256(
        _server_key(server_seed_hex),
        [pk_bytes, str_to_bytes(nonce_str), str_to_bytes(client_seed or "")],
    )

    max_draws = config.MINES_DRAW_FACTOR * total
    picked = set()
    i = 0
    while len(picked) < mine_count:
        if i >= max_draws:
            raise DomainError(
                "mine_count",
                f"only {len(picked)} of {mine_count} bombs placed after {max_draws} draws",
            )
        digest = hmac_sha256(seed_key, [str(i)])
        i += 1
        idx = _u32be(digest) % total
        if first_safe_index is not None and idx == first_safe_index:
            continue
        picked.add(idx)

    logger.debug(f"mines nonce={nonce!r} grid={rows}x{cols} mines={mine_count} draws={i}")
    return MinesOutcome(
        bomb_indices=tuple(sorted(picked)),
        first_hmac_hex=first_hmac(server_seed_hex, client_seed, nonce_str),
        seed_key_hex=bytes_to_hex(seed_key),
        draws=i,
    )


def mines_multiplier(safe_opened: int, total_tiles: int, mines: int, rtp_bps: int = 10000) -> float:
    """Fair cash-out multiplier after `safe_opened` safe picks, scaled by RTP and floored at 1x."""
    if safe_opened <= 0:
        return 1.0
    if safe_opened > total_tiles - mines:
        raise DomainError("safe_opened", f"{safe_opened} safe picks on a board with {total_tiles - mines} safe tiles")
    m = 1.0
    for i in range(safe_opened):
        m *= (total_tiles - i) / (total_tiles - mines - i)
    m *= rtp_bps / 10000
    return max(1.0, m)


_VERIFIERS = {
    Game.dice: verify_dice,
    Game.crash: verify_crash,
    Game.coinflip: verify_coinflip,
    Game.mines: verify_mines,
    Game.slots: verify_first_hmac,
    Game.plinko: verify_first_hmac,
}


def parse_game(game: Union[Game, str]) -> Game:
    try:
        return Game(game)
    except ValueError:
        raise DomainError("game", f"unknown game {game!r}") from None


def verify_game(game: Union[Game, str], **params) -> GameOutcome:
    """Runs the verifier for `game` with keyword parameters named as in the per-game functions."""
    return _VERIFIERS[parse_game(game)](**params)
