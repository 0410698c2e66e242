"""
Main application entry point.
"""

import logging
import threading

from dotenv import load_dotenv

load_dotenv()

from budgetwatch.app import BudgetWatchApp
from budgetwatch.config import AppConfig, load_config
from budgetwatch.database.connection import Database
from budgetwatch.insights.gemini import InsightsClient
from budgetwatch.notifiers.calendar import create_calendar_notifier

logger = logging.getLogger(__name__)


def build_app(config: AppConfig, db: Database, dry_run: bool = False) -> BudgetWatchApp:
    """Wire the application from configuration."""
    timeout = config.advanced.request_timeout_seconds
    notifier = create_calendar_notifier(
        config.calendar, timezone=config.schedule.timezone, timeout=timeout
    )

    insights = None
    if config.insights.enabled and config.insights.api_key:
        insights = InsightsClient(api_key=config.insights.api_key, model=config.insights.model)

    return BudgetWatchApp(
        db=db,
        config=config,
        notifier=notifier,
        insights=insights,
        dry_run=dry_run,
    )


def main():
    """CLI entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="BudgetWatch Ad Budget Monitor")
    parser.add_argument(
        "--config", default="config.yaml", help="Path to config file"
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug mode")
    parser.add_argument(
        "--dry-run", action="store_true", help="Run without creating calendar events"
    )
    parser.add_argument(
        "--watch", action="store_true", help="Keep running and sync periodically"
    )

    args = parser.parse_args()

    # Load config
    config = load_config(args.config)

    # Setup logging
    log_level = logging.DEBUG if args.debug else config.advanced.log_level
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    # Initialize database
    db = Database(config.database.path)
    db.initialize()

    app = build_app(config, db, dry_run=args.dry_run)
    if args.dry_run:
        logger.info("Dry run mode - no calendar events will be created")

    credential = config.ads_platform.access_token
    if credential:
        app.connect_ads(credential, auto_sync=args.watch)

    entries = app.run_check()
    if credential:
        app.sync_now()
    logger.info(f"Checked {len(app.clients)} clients, {len(entries)} reminder(s) logged")

    if not args.watch:
        db.close()
        return

    stop = threading.Event()
    try:
        # Re-run settlement so day rollovers are picked up
        while not stop.wait(config.sync.interval_seconds):
            app.run_check()
    except KeyboardInterrupt:
        logger.info("Shutting down")
    finally:
        app.close()
        db.close()


if __name__ == "__main__":
    main()
