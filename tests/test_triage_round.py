import hashlib
import json

import triage_round
from pf_verifier.game_logic import verify_crash, verify_dice, verify_mines

from conftest import PLAYER, SERVER_SEED


def run(capsys, *argv):
    code = triage_round.main(list(argv))
    out = capsys.readouterr().out
    return code, (json.loads(out) if out else None)


def test_dice_report(capsys):
    expected = verify_dice(SERVER_SEED, "abc", "1")
    code, report = run(capsys, "dice", "--server-seed", SERVER_SEED, "--client-seed", "abc", "--nonce", "1", "--expected-hmac", expected.hmac_hex)
    assert code == 0
    assert report["roll"] == expected.roll
    assert report["matches"] is True
    assert report["commitment_ok"] is True


def test_wrong_expected_hmac_exits_1(capsys):
    code, report = run(capsys, "crash", "--server-seed", SERVER_SEED, "--nonce", "5", "--expected-hmac", "00" * 32)
    assert code == 1
    assert report["crash_at_mul"] == verify_crash(SERVER_SEED, "", "5").crash_at_mul
    assert report["matches"] is False


def test_commitment_check(capsys):
    commitment = hashlib.sha256(bytes.fromhex(SERVER_SEED)).hexdigest()
    code, report = run(capsys, "slots", "--server-seed", SERVER_SEED, "--nonce", "5", "--commitment", commitment)
    assert code == 0
    assert report["commitment_ok"] is True
    assert report["matches"] is None

    code, report = run(capsys, "slots", "--server-seed", SERVER_SEED, "--nonce", "5", "--commitment", "00" * 32)
    assert code == 1


def test_mines_report(capsys):
    code, report = run(
        capsys, "mines", "--server-seed", SERVER_SEED, "--client-seed", "abc", "--nonce", "7",
        "--player", PLAYER, "--first-safe", "12",
    )
    assert code == 0
    assert report["bomb_indices"] == list(verify_mines(SERVER_SEED, "abc", "7", PLAYER, 5, 5, 3, 12).bomb_indices)


def test_bad_input_exits_2(capsys):
    code, report = run(capsys, "dice", "--server-seed", "0xZZ", "--nonce", "1")
    assert code == 2
    assert report is None
