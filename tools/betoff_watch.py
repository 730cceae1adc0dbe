"""Follow the live dashboard in a terminal.

Usage:
    python -m tools.betoff_watch
    python -m tools.betoff_watch --period WEEK --currency RUB
"""

import argparse
import asyncio
import logging
import os
import sys

sys.path.insert(0, "backend")

from betoff.client.api import BetoffClient
from betoff.client.dashboard import DashboardView
from betoff.client.state import ClientStateFile
from betoff.client.sync import LiveBetsSync
from betoff.middleware.logging import setup_logging
from betoff.services.money import REFERENCE_CURRENCY


async def run(base_url: str, period: str | None, currency: str, state_path: str | None) -> None:
    state_file = ClientStateFile(state_path)
    async with BetoffClient(base_url) as client:
        sync = LiveBetsSync(client, state_file=state_file)
        view = DashboardView(sync, state_file=state_file)
        if period:
            view.set_period(period)
        if currency == REFERENCE_CURRENCY:
            view.toggle_currency()

        def _redraw(_sync: LiveBetsSync) -> None:
            print("\033[2J\033[H" + "\n".join(view.render()), flush=True)

        sync.add_listener(_redraw)
        _redraw(sync)
        await sync.run()


def main() -> None:
    parser = argparse.ArgumentParser(description="Live BETOFF dashboard")
    parser.add_argument("--base-url", default=os.environ.get("BETOFF_URL", "http://localhost:3001"))
    parser.add_argument("--period", choices=["DAY", "WEEK", "MONTH"])
    parser.add_argument("--currency", default="USDT", choices=["USDT", "RUB"])
    parser.add_argument("--state-file", help="Viewer state JSON (default ~/.betoff/viewer.json)")
    args = parser.parse_args()

    setup_logging(logging.WARNING)
    try:
        asyncio.run(run(args.base_url, args.period, args.currency, args.state_file))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
