# main.py

"""Entry point for the price_tracker command line."""

import argparse
import logging
import sys

from src.config.logging_config import setup_logging
from src.config.settings import Settings

logger = logging.getLogger("price_tracker.main")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    valid_ids = ", ".join(s["id"] for s in Settings.AVAILABLE_STRATEGIES)

    parser = argparse.ArgumentParser(
        prog="price_tracker",
        description="Track product prices and alert on drops.",
        epilog=f"Dedicated retailers: {valid_ids}",
    )
    parser.add_argument(
        "--db",
        default=None,
        help="SQLite database path (default: data/price_tracker.db).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    scrape = sub.add_parser("scrape", help="Scrape one product page.")
    scrape.add_argument("url")
    scrape.add_argument(
        "-f",
        "--format",
        choices=["json", "table"],
        default="table",
        dest="output_format",
        help="Output format (default: table).",
    )

    track = sub.add_parser("track", help="Track a product URL.")
    track.add_argument("url")
    track.add_argument(
        "-p",
        "--desired-price",
        required=True,
        dest="desired_price",
        help="Alert when the price falls to or below this.",
    )
    track.add_argument(
        "-u", "--user", default="local", help="Subscriber id.",
    )
    track.add_argument(
        "-i",
        "--interval",
        type=int,
        default=None,
        help=(
            "Check interval in minutes (default: "
            f"{Settings.DEFAULT_CHECK_INTERVAL_MINUTES}, minimum "
            f"{Settings.MIN_CHECK_INTERVAL_MINUTES})."
        ),
    )
    track.add_argument(
        "--no-notify",
        action="store_false",
        dest="notify",
        help="Record prices without sending alerts.",
    )

    sub.add_parser("list", help="List tracked targets.")

    history = sub.add_parser("history", help="Show price history.")
    history.add_argument("url")

    sub.add_parser("tick", help="Run one price-check pass now.")
    sub.add_parser("run", help="Run price checks until Ctrl-C.")
    return parser


def _dispatch(args: argparse.Namespace) -> int:
    """Run the selected sub-command and return its exit code."""
    from pathlib import Path

    from src.cli import runner

    services = runner.build_services(Path(args.db) if args.db else None)
    try:
        if args.command == "scrape":
            return runner.cli_scrape(services, args.url, args.output_format)
        if args.command == "track":
            return runner.cli_track(
                services,
                args.url,
                args.desired_price,
                args.user,
                args.interval,
                args.notify,
            )
        if args.command == "list":
            return runner.cli_list(services)
        if args.command == "history":
            return runner.cli_history(services, args.url)
        if args.command == "tick":
            return runner.cli_tick(services)
        return runner.cli_run(services)
    finally:
        services.close()


def main() -> None:
    """Parse arguments, set up logging and run the command."""
    log_file = setup_logging()
    logger.info("price_tracker starting, log file: %s", log_file)

    parser = _build_parser()
    args = parser.parse_args()

    try:
        exit_code = _dispatch(args)
    except Exception:
        logger.critical("Fatal error in %s", args.command, exc_info=True)
        raise
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
