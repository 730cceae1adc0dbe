"""Operator commands against a running BETOFF server.

Usage:
    python -m tools.betoff_admin import bets.json
    python -m tools.betoff_admin import bets.json --dry-run
    python -m tools.betoff_admin set-rate 92.5
    python -m tools.betoff_admin status 1718000000000 won
    python -m tools.betoff_admin delete 1718000000000
    python -m tools.betoff_admin stats --period WEEK --currency RUB

The admin password is read from --password or BETOFF_ADMIN_PASSWORD.
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path

sys.path.insert(0, "backend")

from betoff.client.api import BetoffClient
from betoff.errors import BetoffError
from betoff.models.bet import BetStatus
from betoff.services.import_service import parse_import_document

logger = logging.getLogger("betoff.tools.admin")

_STATUS_ALIASES = {
    "won": BetStatus.won,
    "lost": BetStatus.lost,
    "pending": BetStatus.pending,
}


async def run(args: argparse.Namespace) -> int:
    async with BetoffClient(args.base_url, password=args.password) as client:
        if args.command == "import":
            items = parse_import_document(Path(args.file).read_bytes())
            print(f"{args.file}: {len(items)} entries")
            if args.dry_run:
                for item in items:
                    print(f"  {item['id']}  {item['status']}  {item['match']}  win_value={item['win_value']}")
                return 0
            ids = await client.import_bets(items)
            print(f"Imported {len(ids)} bets")
        elif args.command == "set-rate":
            rate = await client.set_rate(args.rate)
            print(f"1 USDT = {rate} RUB")
        elif args.command == "status":
            status = _STATUS_ALIASES.get(args.status.lower(), BetStatus.coerce(args.status))
            bet = await client.set_status(args.bet_id, status.value)
            print(json.dumps(bet, ensure_ascii=False, indent=2))
        elif args.command == "delete":
            await client.delete_bet(args.bet_id)
            print(f"Deleted {args.bet_id}")
        elif args.command == "stats":
            stats = await client.fetch_stats(args.period, args.currency)
            print(json.dumps(stats, ensure_ascii=False, indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="BETOFF admin tools")
    parser.add_argument("--base-url", default=os.environ.get("BETOFF_URL", "http://localhost:3001"))
    parser.add_argument("--password", default=os.environ.get("BETOFF_ADMIN_PASSWORD"))
    parser.add_argument("--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    imp = sub.add_parser("import", help="Bulk-add bets from a JSON array file")
    imp.add_argument("file")
    imp.add_argument("--dry-run", action="store_true", help="Only parse and normalize")

    rate = sub.add_parser("set-rate", help="Set RUB per 1 USDT")
    rate.add_argument("rate", type=float)

    status = sub.add_parser("status", help="Quick status switch (won/lost/pending)")
    status.add_argument("bet_id")
    status.add_argument("status")

    delete = sub.add_parser("delete", help="Delete one bet")
    delete.add_argument("bet_id")

    stats = sub.add_parser("stats", help="Server-side statistics")
    stats.add_argument("--period", default="DAY", choices=["DAY", "WEEK", "MONTH"])
    stats.add_argument("--currency", default="USDT", choices=["USDT", "RUB"])
    return parser


def main() -> int:
    args = build_parser().parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    try:
        return asyncio.run(run(args))
    except BetoffError as exc:
        print(f"{type(exc).__name__}: {exc.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
