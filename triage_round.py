# triage_round.py
#
# Re-derives one revealed round from the command line, e.g.
#   python triage_round.py dice --server-seed <hex> --client-seed abc --nonce 1 --expected-hmac <hex>
#   python triage_round.py mines --server-seed <hex> --client-seed abc --nonce 7 \
#       --player <base58> --rows 5 --cols 5 --mines 3 --first-safe 12

import argparse
import dataclasses
import json
import logging
import sys

from pf_verifier import Game, VerificationError, config, verify_commitment, verify_game

logger = logging.getLogger("pf_verifier")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Recompute a provably-fair round from its revealed seeds.")
    p.add_argument("game", choices=[g.value for g in Game])
    p.add_argument("--server-seed", required=True, help="revealed server seed, hex")
    p.add_argument("--nonce", required=True)
    p.add_argument("--client-seed", default="")
    p.add_argument("--client-seed-a", default="", help="coinflip only")
    p.add_argument("--client-seed-b", default="", help="coinflip only")
    p.add_argument("--player", help="mines only: player wallet, base58")
    p.add_argument("--rows", type=int, default=5)
    p.add_argument("--cols", type=int, default=5)
    p.add_argument("--mines", type=int, default=3)
    p.add_argument("--first-safe", type=int, default=None)
    p.add_argument("--expected-hmac", default=None, help="first HMAC published by the server")
    p.add_argument("--commitment", default=None, help="server seed hash published before the round")
    return p


def game_params(args: argparse.Namespace) -> dict:
    params = {"server_seed_hex": args.server_seed, "nonce": args.nonce}
    if args.game == Game.coinflip.value:
        params.update(client_seed_a=args.client_seed_a, client_seed_b=args.client_seed_b)
        return params
    params["client_seed"] = args.client_seed
    if args.game == Game.mines.value:
        params.update(
            player_pubkey=args.player or "",
            rows=args.rows,
            cols=args.cols,
            mine_count=args.mines,
            first_safe_index=args.first_safe,
        )
    elif args.game in (Game.slots.value, Game.plinko.value):
        params["expected_hmac_hex"] = args.expected_hmac
    return params


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=config.LOG_LEVEL, format="%(levelname)s %(name)s: %(message)s")

    try:
        outcome = verify_game(args.game, **game_params(args))
        commitment_ok = verify_commitment(args.server_seed, args.commitment)
    except VerificationError as e:
        logger.error(f"bad input: {e}")
        return 2

    report = {"game": args.game, **dataclasses.asdict(outcome), "commitment_ok": commitment_ok}
    ok = commitment_ok
    if args.expected_hmac and args.game not in (Game.slots.value, Game.plinko.value):
        computed = report.get("hmac_hex") or report.get("first_hmac_hex")
        report["matches"] = args.expected_hmac.strip().lower() == computed
    if report.get("matches") is False:
        ok = False

    print(json.dumps(report, indent=2))
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
