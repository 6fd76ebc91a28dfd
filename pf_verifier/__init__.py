# pf_verifier/__init__.py

import logging

from pf_verifier.errors import CryptoUnavailableError, DomainError, FormatError, VerificationError
from pf_verifier.byte_codec import bytes_to_hex, concat_bytes, hex_to_bytes, nonce_to_str, str_to_bytes
from pf_verifier.hashing import crypto_status, hmac_sha256, sha256
from pf_verifier.pubkey import base58_decode, decode_player_pubkey
from pf_verifier.game_logic import (
    CoinflipOutcome,
    CrashOutcome,
    DiceOutcome,
    Game,
    GameOutcome,
    HmacCheck,
    MinesOutcome,
    crash_multiplier,
    first_hmac,
    mines_multiplier,
    verify_coinflip,
    verify_crash,
    verify_dice,
    verify_first_hmac,
    verify_game,
    verify_mines,
)
from pf_verifier.slots import SlotsOutcome, SlotsRng, replay_slots, slots_payout_lamports
from pf_verifier.audit import VerifyStatus, audit_round, audit_rows, detect_game, verify_commitment
from pf_verifier.async_runner import run_verification, verify_many

logging.getLogger("pf_verifier").addHandler(logging.NullHandler())
