#!/usr/bin/env python3
"""
Result polling script for the Leafs result tracker.

Runs one poll cycle (e.g. from cron or a systemd timer every minute), or
polls continuously until interrupted.
"""

import sys
import argparse
import logging
import signal

from ..config import settings
from ..database import create_tables
from ..services import ResultPoller

logger = logging.getLogger(__name__)

# Global poller instance for signal handling
poller = None


def signal_handler(signum, frame):
    """Handle shutdown signals."""
    if poller:
        logger.info(f"Received signal {signum}, stopping poller...")
        poller.stop_polling()


def main(argv=None):
    """Main function for the result poller."""
    global poller

    parser = argparse.ArgumentParser(description='Poll for completed Leafs games and store recaps')
    parser.add_argument('--once', action='store_true', help='Run a single poll cycle and exit')
    parser.add_argument('--status', action='store_true', help='Show polling status')
    parser.add_argument('--interval', type=int, help='Seconds between cycles when polling continuously')

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        create_tables()
        logger.info("Database tables initialized")

        poller = ResultPoller()

        if args.status:
            status = poller.get_polling_status()

            print("\n📊 Result Polling Status")
            print("=" * 30)
            print(f"Team: {status['team_code']}")
            print(f"Recap generation: {'enabled' if status['recap_enabled'] else 'disabled'}")
            print(f"Rebuild hook: {'enabled' if status['rebuild_hook_enabled'] else 'disabled'}")
            if 'poll_state_error' in status:
                print(f"Poll state unavailable: {status['poll_state_error']}")
            else:
                print(f"Last processed game: {status['last_processed_game_key'] or '-'}")
                print(f"Next game start (UTC): {status['next_game_start_utc'] or '-'}")
                print(f"Window decision now: {status['window_decision']}")

        elif args.once:
            logger.info("Running a single poll cycle")
            outcome = poller.run_once()

            print("\n🔄 Poll Cycle Result")
            print("=" * 30)
            print(f"State: {outcome.state.value}")
            print(f"Reason: {outcome.reason}")
            if outcome.game_id is not None:
                print(f"Game: {outcome.game_id}")
            if outcome.recap_generated:
                print("Recap generated and stored")

        else:
            if settings.rebuild_on_startup:
                poller.notifier.notify("poller startup")
            poller.start_polling(args.interval)

        return 0

    except Exception as e:
        logger.error(f"Error in result poller: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
