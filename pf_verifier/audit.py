# pf_verifier/audit.py

import json
import logging
import math
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from pf_verifier import config
from pf_verifier.byte_codec import bytes_to_hex, hex_to_bytes, nonce_to_str, str_to_bytes
from pf_verifier.errors import DomainError, VerificationError
from pf_verifier.game_logic import (
    Game,
    mines_multiplier,
    parse_game,
    verify_coinflip,
    verify_crash,
    verify_dice,
    verify_mines,
)
from pf_verifier.hashing import hmac_sha256, sha256
from pf_verifier.slots import replay_slots, slots_payout_lamports

logger = logging.getLogger("pf_verifier")

_HEX64 = re.compile(r"[0-9a-fA-F]{64}")

Row = Mapping[str, Any]


@dataclass(frozen=True)
class VerifyStatus:
    """Result of auditing one resolved round: verified, pending, mismatch or error."""

    kind: str
    details: str = ""
    computed: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.kind == "verified"


VERIFIED = VerifyStatus("verified")


def verify_commitment(server_seed_hex: str, server_seed_hash: Optional[str]) -> bool:
    """
    Checks the revealed server seed against the hash published before the round.

    The commitment is SHA-256 over the raw seed bytes (not over the hex text).
    Legacy rows without a commitment pass.
    """
    if not server_seed_hash:
        return True
    digest = sha256(hex_to_bytes(server_seed_hex, field="server_seed_hex"))
    return server_seed_hash.strip().lower() == bytes_to_hex(digest)


def _is_hex32(value: Any) -> bool:
    return isinstance(value, str) and _HEX64.fullmatch(value) is not None


def _stored_matches(stored: Optional[str], computed_hex: str) -> bool:
    if not stored:
        return True
    return stored.strip().lower() == computed_hex


def _json_list(value: Union[str, List[int], None]) -> List[int]:
    if value is None or value == "":
        return []
    if isinstance(value, str):
        value = json.loads(value)
    return [int(v) for v in value]


def _lamports(value: Any) -> int:
    if value is None or value == "":
        return 0
    if isinstance(value, int):
        return value
    return int(str(value))


def _number(value: Any) -> Optional[float]:
    """Stored numeric column as a float, or None when it is missing or not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    try:
        x = float(value)
    except (TypeError, ValueError):
        return None
    return x if math.isfinite(x) else None


def _mismatch(issues: List[str], computed: Dict[str, Any]) -> VerifyStatus:
    return VerifyStatus("mismatch", "; ".join(issues), computed)


def _audit_dice(row: Row) -> VerifyStatus:
    out = verify_dice(row["server_seed_hex"], row.get("client_seed"), row["nonce"])
    want = row.get("roll")
    roll_match = _number(want) == out.roll
    hmac_match = _stored_matches(row.get("first_hmac_hex"), out.hmac_hex)
    if roll_match and hmac_match:
        return VERIFIED

    issues = []
    if not roll_match:
        issues.append(f"Roll mismatch (computed {out.roll} != stored {want})")
    if not hmac_match:
        issues.append("HMAC mismatch")
    return _mismatch(issues, {"roll": out.roll, "hmac_hex": out.hmac_hex})


def _audit_coinflip(row: Row) -> VerifyStatus:
    out = verify_coinflip(
        row["server_seed_hex"], row.get("client_seed_a"), row.get("client_seed_b"), row["nonce"]
    )
    outcome_match = _number(row.get("outcome")) == out.bit
    hmac_match = _stored_matches(row.get("first_hmac_hex"), out.hmac_hex)
    if outcome_match and hmac_match:
        return VERIFIED

    issues = []
    if not outcome_match:
        issues.append(f"Outcome mismatch (computed {out.bit} != stored {row.get('outcome')})")
    if not hmac_match:
        issues.append("HMAC mismatch")
    return _mismatch(issues, {"outcome": out.bit, "hmac_hex": out.hmac_hex})


def _audit_crash(row: Row) -> VerifyStatus:
    out = verify_crash(row["server_seed_hex"], row.get("client_seed"), row["nonce"])
    want = _number(row.get("crash_at_mul"))
    mul_match = False
    if want is not None:
        diff = abs(out.crash_at_mul - want)
        mul_match = diff <= config.CRASH_TOLERANCE or diff / max(1.0, want) < config.CRASH_TOLERANCE
    hmac_match = _stored_matches(row.get("first_hmac_hex"), out.hmac_hex)
    if mul_match and hmac_match:
        return VERIFIED

    issues = []
    if not mul_match:
        issues.append(f"Crash multiplier mismatch (computed {out.crash_at_mul:.6f} != stored {row.get('crash_at_mul')})")
    if not hmac_match:
        issues.append("HMAC mismatch")
    return _mismatch(issues, {"crash_at_mul": out.crash_at_mul, "hmac_hex": out.hmac_hex})


def _audit_mines(row: Row) -> VerifyStatus:
    rows, cols, mines = int(row["rows"]), int(row["cols"]), int(row["mines"])
    total = rows * cols
    opened = _json_list(row.get("opened_json"))

    # Older rows do not persist the first pick; the server excluded the first opened tile.
    first_safe = row.get("first_safe_index")
    if first_safe is None:
        first_safe = opened[0] if opened else 0

    out = verify_mines(
        row["server_seed_hex"],
        row.get("client_seed"),
        row["nonce"],
        row["player"],
        rows,
        cols,
        mines,
        first_safe_index=int(first_safe),
    )
    bombs = set(out.bomb_indices)

    # The mines reveal publishes the per-round seed key as its first HMAC.
    hmac_match = _stored_matches(row.get("first_hmac_hex"), out.seed_key_hex)
    commit_match = verify_commitment(row["server_seed_hex"], row.get("server_seed_hash"))

    bombs_ok = True
    if row.get("bomb_indices"):
        bombs_ok = set(_json_list(row["bomb_indices"])) == bombs

    safe_count = len([i for i in opened if i not in bombs])
    safe_all_good = safe_count == len(opened)

    rtp_bps = row.get("rtp_bps")
    rtp_bps = config.MINES_RTP_BPS if rtp_bps is None else int(rtp_bps)
    mult = mines_multiplier(safe_count, total, mines, rtp_bps)
    payout_calc = _lamports(row["bet_lamports"]) * math.floor(mult * 10000) // 10000
    payout_stored = _lamports(row.get("payout_lamports"))
    payout_match = payout_calc == payout_stored or payout_stored == 0

    if hmac_match and commit_match and bombs_ok and safe_all_good and payout_match:
        return VERIFIED

    issues = []
    if not hmac_match:
        issues.append("HMAC mismatch")
    if not commit_match:
        issues.append("Commitment hash mismatch")
    if not bombs_ok:
        issues.append("Bomb layout mismatch")
    if not safe_all_good:
        issues.append("Opened contains a bomb")
    if not payout_match:
        issues.append(f"Payout mismatch (calc {payout_calc} != stored {payout_stored})")
    return _mismatch(
        issues,
        {"bombs_match": bombs_ok, "payout_calc": str(payout_calc), "hmac_hex": out.seed_key_hex},
    )


def _first_present(row: Row, *keys: str) -> Any:
    return next((row[k] for k in keys if row.get(k) is not None), None)


def _grid_matches(stored: Union[str, List[str], None], grid: Iterable[str]) -> bool:
    if not stored:
        return True
    if isinstance(stored, str):
        stored = json.loads(stored)
    return list(stored) == list(grid)


def _audit_slots(row: Row) -> VerifyStatus:
    out = replay_slots(row["server_seed_hex"], row.get("client_seed"), row["nonce"])
    hmac_match = _stored_matches(row.get("first_hmac_hex"), out.first_hmac_hex)
    commit_match = verify_commitment(row["server_seed_hex"], row.get("server_seed_hash"))

    fee_pct = row.get("fee_pct")
    fee_pct = config.SLOTS_FEE_PCT if fee_pct is None else float(fee_pct)
    bet = _lamports(_first_present(row, "bet_lamports", "bet_amount", "bet_amount_lamports"))
    payout_calc = slots_payout_lamports(bet, out.payout_mul, fee_pct)
    payout_stored = _lamports(_first_present(row, "payout_lamports", "payout"))
    payout_match = payout_calc == payout_stored

    grid_ok = _grid_matches(row.get("grid_json"), out.grid)

    if hmac_match and commit_match and payout_match and grid_ok:
        return VERIFIED

    issues = []
    if not hmac_match:
        issues.append("HMAC mismatch")
    if not commit_match:
        issues.append("Commitment hash mismatch")
    if not payout_match:
        issues.append(f"Payout mismatch (calc {payout_calc} != stored {payout_stored})")
    if not grid_ok:
        issues.append("Grid mismatch")
    return _mismatch(
        issues,
        {
            "payout_calc": str(payout_calc),
            "hmac_hex": out.first_hmac_hex,
            "outcome": out.outcome,
            "grid_match": grid_ok,
        },
    )


def _audit_plinko(row: Row) -> VerifyStatus:
    key = hex_to_bytes(row["server_seed_hex"], field="server_seed_hex")
    base = [str_to_bytes(row.get("client_seed") or ""), str_to_bytes(nonce_to_str(row["nonce"]))]
    # Current servers append a little-endian u32 ball counter (0 for the first block).
    v2 = bytes_to_hex(hmac_sha256(key, base + [bytes(4)]))
    v1 = bytes_to_hex(hmac_sha256(key, base))

    stored = (row.get("first_hmac_hex") or "").strip().lower()
    match_v2 = v2 == stored if stored else True
    match_v1 = v1 == stored if stored else False
    commit_match = verify_commitment(row["server_seed_hex"], row.get("server_seed_hash"))
    if (match_v2 or match_v1) and commit_match:
        return VERIFIED

    issues = []
    if not commit_match:
        issues.append("Commitment hash mismatch")
    if not (match_v2 or match_v1):
        issues.append("HMAC mismatch")
    return _mismatch(issues, {"hmac_hex": v2 if match_v2 else v1})


_AUDITORS = {
    Game.dice: _audit_dice,
    Game.coinflip: _audit_coinflip,
    Game.crash: _audit_crash,
    Game.mines: _audit_mines,
    Game.slots: _audit_slots,
    Game.plinko: _audit_plinko,
}


def detect_game(row: Row) -> Game:
    """Guesses the game of a resolved row from the columns the game server sends for it."""
    if "roll" in row and "player" in row and "target" in row:
        return Game.dice
    if "player_a" in row and "player_b" in row and "outcome" in row:
        return Game.coinflip
    if "crash_at_mul" in row and "client_seed" in row and "bet_lamports" in row:
        return Game.crash
    if (
        "balls" in row and "rows" in row and "diff" in row and "client_seed" in row
        and ("unit_lamports" in row or "payout" in row)
    ):
        return Game.plinko
    if "rows" in row and "cols" in row and "mines" in row and "client_seed" in row:
        return Game.mines
    if (
        "client_seed" in row and "server_seed_hash" in row
        and "rows" not in row and "crash_at_mul" not in row
    ):
        return Game.slots
    raise DomainError("row", f"cannot tell the game from columns {sorted(row)}")


def audit_round(game: Union[Game, str], row: Row) -> VerifyStatus:
    """
    Re-derives a resolved round and compares it with what the game server stored.

    Rows whose server seed has not been revealed yet come back as pending.
    Any input problem is reported as an error status for this row only.
    """
    game = parse_game(game)
    if not _is_hex32(row.get("server_seed_hex")):
        return VerifyStatus("pending", "Waiting for server seed reveal")
    try:
        status = _AUDITORS[game](row)
    except (VerificationError, ValueError, KeyError, TypeError) as e:
        logger.warning(f"[AUDIT] {game.value} round {row.get('id')} failed: {e!r}")
        return VerifyStatus("error", str(e))
    if status.kind == "mismatch":
        logger.warning(f"[AUDIT] {game.value} round {row.get('id')} mismatch: {status.details}")
    return status


def audit_rows(rows: Iterable[Row], game: Union[Game, str, None] = None) -> List[VerifyStatus]:
    results = []
    for row in rows:
        try:
            row_game = parse_game(game) if game is not None else detect_game(row)
        except DomainError as e:
            results.append(VerifyStatus("error", str(e)))
            continue
        results.append(audit_round(row_game, row))

    summary = Counter(s.kind for s in results)
    logger.info(f"[AUDIT] rows={len(results)} " + " ".join(f"{k}={v}" for k, v in sorted(summary.items())))
    return results
