"""
CLI commands for BudgetWatch.
"""

import argparse
import logging
from decimal import Decimal, InvalidOperation
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

from budgetwatch.app import BudgetWatchApp
from budgetwatch.config import load_config
from budgetwatch.database.connection import Database
from budgetwatch.database.models import Client, Platform
from budgetwatch.exceptions import BudgetWatchError
from budgetwatch.main import build_app
from budgetwatch.platforms.base import AdAccount

PLATFORM_CHOICES = {
    "google": Platform.GOOGLE_ADS,
    "meta": Platform.META_ADS,
    "tiktok": Platform.TIKTOK_ADS,
    "linkedin": Platform.LINKEDIN_ADS,
}


def _amount(value: str) -> Decimal:
    """argparse type for currency amounts."""
    try:
        return Decimal(value)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"Invalid amount: {value}")


def add_client(
    app: BudgetWatchApp,
    name: str,
    company: str,
    platform: str,
    balance: Decimal,
    daily_spend: Decimal,
    currency: Optional[str] = None,
) -> Client:
    """Add a new client account."""
    return app.add_client(
        name=name,
        company=company,
        platform=PLATFORM_CHOICES[platform],
        current_balance=balance,
        daily_spend=daily_spend,
        currency=currency,
    )


def link_client(app: BudgetWatchApp, client_id: str, account_id: str) -> Client:
    """Link a client to one of the connected ad accounts."""
    accounts = app.list_ad_accounts()
    account: Optional[AdAccount] = next((a for a in accounts if a.id == account_id), None)
    if account is None:
        raise BudgetWatchError(f"Ad account not found: {account_id}")
    return app.link_account(client_id, account)


def format_clients(app: BudgetWatchApp) -> list[str]:
    """One line per client with its forecast."""
    predictions = {p.client_id: p for p in app.predictions}
    lines = []
    for client in app.clients:
        pred = predictions.get(client.id)
        synced = " [synced]" if client.is_synced else ""
        forecast = f"{pred.days_remaining} days, {pred.status.value}" if pred else "-"
        lines.append(
            f"{client.id}  {client.company} ({client.platform.value}){synced}: "
            f"{client.currency} {client.current_balance} / {client.daily_spend} per day "
            f"-> {forecast}"
        )
    return lines


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="BudgetWatch CLI")
    parser.add_argument("--config", default="config.yaml", help="Path to config file")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--dry-run", action="store_true", help="Never create calendar events"
    )

    subparsers = parser.add_subparsers(dest="command", help="Command")

    # Client commands
    client_parser = subparsers.add_parser("client", help="Client management")
    client_subparsers = client_parser.add_subparsers(dest="action")

    add_client_parser = client_subparsers.add_parser("add", help="Add client")
    add_client_parser.add_argument("--name", required=True, help="Account manager")
    add_client_parser.add_argument("--company", required=True, help="Company name")
    add_client_parser.add_argument(
        "--platform", required=True, choices=sorted(PLATFORM_CHOICES)
    )
    add_client_parser.add_argument("--balance", required=True, type=_amount)
    add_client_parser.add_argument("--daily-spend", required=True, type=_amount)
    add_client_parser.add_argument("--currency", help="Currency code")

    client_subparsers.add_parser("list", help="List clients with forecasts")

    balance_parser = client_subparsers.add_parser("balance", help="Set balance manually")
    balance_parser.add_argument("--id", required=True, help="Client ID")
    balance_parser.add_argument("--amount", required=True, type=_amount)

    link_parser = client_subparsers.add_parser("link", help="Link to an ad account")
    link_parser.add_argument("--id", required=True, help="Client ID")
    link_parser.add_argument("--account", required=True, help="Ad account ID")

    # Ads platform commands
    accounts_parser = subparsers.add_parser("accounts", help="Ad accounts")
    accounts_subparsers = accounts_parser.add_subparsers(dest="action")
    accounts_subparsers.add_parser("list", help="List ad accounts")

    sync_parser = subparsers.add_parser("sync", help="Balance sync")
    sync_subparsers = sync_parser.add_subparsers(dest="action")
    sync_subparsers.add_parser("run", help="Sync linked clients now")

    # Notification log commands
    logs_parser = subparsers.add_parser("logs", help="Notification history")
    logs_subparsers = logs_parser.add_subparsers(dest="action")
    show_logs_parser = logs_subparsers.add_parser("show", help="Show recent entries")
    show_logs_parser.add_argument("--limit", type=int, default=20)

    subparsers.add_parser("status", help="Portfolio summary")
    subparsers.add_parser("analyze", help="Narrative budget insights")

    # DB commands
    db_parser = subparsers.add_parser("db", help="Database management")
    db_subparsers = db_parser.add_subparsers(dest="action")
    db_subparsers.add_parser("init", help="Create schema")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    config = load_config(args.config)

    # Initialize database
    db = Database(config.database.path)
    db.initialize()

    app = build_app(config, db, dry_run=args.dry_run)
    if config.ads_platform.access_token:
        app.connect_ads(config.ads_platform.access_token, auto_sync=False)

    try:
        _run_command(app, args)
    except BudgetWatchError as e:
        print(f"Error: {e}")
    except KeyError as e:
        print(f"Error: {e.args[0]}")
    finally:
        db.close()


def _run_command(app: BudgetWatchApp, args: argparse.Namespace) -> None:
    if args.command == "client":
        if args.action == "add":
            client = add_client(
                app,
                name=args.name,
                company=args.company,
                platform=args.platform,
                balance=args.balance,
                daily_spend=args.daily_spend,
                currency=args.currency,
            )
            print(f"Created client with ID: {client.id}")
        elif args.action == "list":
            app.run_check()
            for line in format_clients(app):
                print(line)
        elif args.action == "balance":
            client = app.update_balance(args.id, args.amount)
            print(f"{client.company}: balance set to {client.currency} {client.current_balance}")
        elif args.action == "link":
            client = link_client(app, args.id, args.account)
            print(f"{client.company} linked to {client.meta_account_id}")

    elif args.command == "accounts":
        if args.action == "list":
            for account in app.list_ad_accounts():
                print(f"{account.id}: {account.name} ({account.currency} {account.balance})")

    elif args.command == "sync":
        if args.action == "run":
            app.run_check()
            clients = app.sync_now()
            synced = sum(1 for c in clients if c.is_synced)
            print(f"Synced {synced} linked client(s)")

    elif args.command == "logs":
        if args.action == "show":
            for entry in app.notification_history(limit=args.limit):
                print(
                    f"{entry.timestamp:%Y-%m-%d %H:%M} [{entry.status.value}] "
                    f"{entry.client_name}: {entry.message}"
                )

    elif args.command == "status":
        app.run_check()
        summary = app.portfolio_summary()
        print(f"Managed budget: {summary.total_balance}")
        print(f"Daily spend: {summary.total_daily_spend}")
        print(f"Critical: {summary.critical_count}")
        print(f"Warning: {summary.warning_count}")
        print(f"Healthy: {summary.healthy_count}")

    elif args.command == "analyze":
        app.run_check()
        insights = app.run_analysis()
        if insights is None:
            print("Insights unavailable")
            return
        print(insights.summary)
        for item in insights.critical_clients:
            print(f"- {item.client_id}: {item.reason} -> {item.action}")

    elif args.command == "db":
        if args.action == "init":
            print("Database initialized")


if __name__ == "__main__":
    main()
