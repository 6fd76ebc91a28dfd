# pf_verifier/config.py

import os

# Upper bound on mines draws is MINES_DRAW_FACTOR * rows * cols.
MINES_DRAW_FACTOR = int(os.getenv("PF_MINES_DRAW_FACTOR", "10"))
if MINES_DRAW_FACTOR < 1:
    raise RuntimeError("PF_MINES_DRAW_FACTOR must be >= 1")

VERIFY_TIMEOUT = float(os.getenv("PF_VERIFY_TIMEOUT", "5.0"))
if VERIFY_TIMEOUT <= 0:
    raise RuntimeError("PF_VERIFY_TIMEOUT must be a positive number of seconds")

# Used by the mines payout audit when a resolved row carries no rtp_bps.
MINES_RTP_BPS = int(os.getenv("PF_MINES_RTP_BPS", "9800"))

LOG_LEVEL = os.getenv("PF_LOG_LEVEL", "INFO").upper()

# Part of the crash contract with the game server, not tunable.
CRASH_HOUSE_EDGE = 0.99
CRASH_R_CAP = 0.999999999999
CRASH_MIN_MUL = 1.01
CRASH_MAX_MUL = 10000.0

# Stored crash multipliers are doubles; allow this much drift when auditing.
CRASH_TOLERANCE = 1e-9

# House fee taken from a slots payout when a resolved row carries no fee_pct.
SLOTS_FEE_PCT = float(os.getenv("PF_SLOTS_FEE_PCT", "0.05"))
if not 0 <= SLOTS_FEE_PCT < 1:
    raise RuntimeError("PF_SLOTS_FEE_PCT must be in [0, 1)")
