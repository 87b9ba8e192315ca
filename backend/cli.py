#!/usr/bin/env python3
"""
Transaction Detection CLI - Offline entrypoint for the detection pipeline

Parses individual bank SMS and UPI notifications, replays captured device
events through the dedup store, and manages persisted detection settings.

Usage:
    python cli.py parse-sms --sender VM-HDFCBK --body "..."
    python cli.py replay events.jsonl
    python cli.py status
"""

import asyncio
import json
import sys
import time
from pathlib import Path
from typing import List, Optional

import click
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

# Add the backend directory to Python path
backend_path = Path(__file__).parent
sys.path.insert(0, str(backend_path))

from src.schemas.detection import DetectedTransaction, RawNotification, RawSms
from src.services.transaction_detection import (
    BankSmsParser,
    JsonStateStorage,
    NotificationListener,
    SmsReader,
    TransactionDetectionStore,
    UpiNotificationParser,
    build_notification_transaction,
    build_sms_transaction,
    get_monitored_apps,
)
from src.services.transaction_detection.notification_listener import normalize_notification
from src.services.transaction_detection.platform import DisabledNotificationAccess, DisabledSmsInbox
from src.services.transaction_detection.sms_reader import normalize_sms
from src.utils.logger import get_logger
from src.utils.settings import get_settings

logger = get_logger(__name__)
console = Console()


def _offline_store(state_file: Path) -> TransactionDetectionStore:
    """Store over disabled device bridges, persisting to state_file."""
    return TransactionDetectionStore(
        sms_reader=SmsReader(DisabledSmsInbox()),
        notification_listener=NotificationListener(DisabledNotificationAccess()),
        storage=JsonStateStorage(state_file),
    )


def _now_ms() -> int:
    return int(time.time() * 1000)


def _transactions_table(transactions: List[DetectedTransaction], title: str) -> Table:
    table = Table(title=title, show_header=True)
    table.add_column("ID", style="dim")
    table.add_column("Source", style="cyan")
    table.add_column("Type")
    table.add_column("Amount", justify="right", style="green")
    table.add_column("Merchant")
    table.add_column("Reference", style="dim")
    table.add_column("Time")

    for t in transactions:
        kind_style = "green" if t.kind.value == "income" else "red"
        table.add_row(
            t.id,
            t.source_app or t.bank_name or t.source.value,
            f"[{kind_style}]{t.kind.value}[/{kind_style}]",
            f"₹{t.amount}",
            t.merchant or "-",
            t.reference_id or "-",
            t.timestamp.astimezone().strftime("%Y-%m-%d %H:%M:%S"),
        )
    return table


@click.group()
@click.version_option(version="1.0.0")
def cli():
    """
    🔎 Transaction Detection CLI

    Detect payments from UPI app notifications and bank SMS.
    """
    pass


@cli.command("parse-sms")
@click.option("--sender", required=True, help="SMS sender address (e.g. VM-HDFCBK)")
@click.option("--body", required=True, help="SMS body text")
def parse_sms(sender: str, body: str):
    """
    📩 Parse a single bank SMS

    Examples:

      cli.py parse-sms --sender VM-HDFCBK --body "Rs.1,250.00 debited from A/c XX4321"
    """
    parser = BankSmsParser()
    sms = RawSms(id="cli", sender_address=sender, body=body, timestamp_ms=_now_ms())

    if not parser.is_bank_sms(sender):
        console.print(f"[yellow]⚠️  '{sender}' is not a recognised bank sender[/yellow]")
        sys.exit(1)

    parsed = parser.parse(sms)
    if parsed is None:
        console.print("[yellow]⚠️  Not a transaction SMS[/yellow]")
        sys.exit(1)

    table = Table(title="🏦 Bank Transaction", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Direction", parsed.direction.value)
    table.add_row("Amount", f"₹{parsed.amount}")
    table.add_row("Bank", parsed.bank_name or "-")
    table.add_row("Account", parsed.account_last_digits or "-")
    table.add_row("Merchant", parsed.merchant or "-")
    table.add_row("Balance", f"₹{parsed.balance_after}" if parsed.balance_after is not None else "-")
    table.add_row("Reference", parsed.reference_id or "-")
    console.print(table)


@cli.command("parse-notification")
@click.option("--package", "app_package", required=True, help="Android package of the posting app")
@click.option("--title", default="", help="Notification title")
@click.option("--text", default="", help="Notification text")
@click.option("--big-text", default=None, help="Expanded notification text")
@click.option("--sub-text", default=None, help="Notification sub text")
def parse_notification(
    app_package: str,
    title: str,
    text: str,
    big_text: Optional[str],
    sub_text: Optional[str],
):
    """
    🔔 Parse a single UPI app notification

    Examples:

      cli.py parse-notification --package com.phonepe.app --title "Payment successful" --text "₹500 paid to Ramesh Stores"
    """
    parser = UpiNotificationParser()
    notification = RawNotification(
        app_package=app_package,
        title=title,
        text=text,
        big_text=big_text,
        sub_text=sub_text,
        timestamp_ms=_now_ms(),
    )

    if not parser.is_upi_notification(app_package):
        console.print(f"[yellow]⚠️  '{app_package}' is not a monitored UPI app[/yellow]")
        sys.exit(1)

    parsed = parser.parse(notification)
    if parsed is None:
        console.print("[yellow]⚠️  Not a transaction notification[/yellow]")
        sys.exit(1)

    table = Table(title=f"📱 {parsed.source_app_name} Transaction", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Direction", parsed.direction.value)
    table.add_row("Amount", f"₹{parsed.amount}")
    table.add_row("Merchant", parsed.merchant or "-")
    table.add_row("UPI ID", parsed.upi_id or "-")
    table.add_row("Reference", parsed.reference_id or "-")
    console.print(table)


@cli.command()
@click.argument("events_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--state-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Detection state JSON (defaults to DETECTION_STATE_PATH)",
)
def replay(events_file: Path, state_file: Optional[Path]):
    """
    ⏪ Replay captured device events through the detection store

    EVENTS_FILE holds one JSON object per line: inbox rows
    ({"_id", "address", "body", "date"}) or notification payloads
    ({"package", "title", "text", "bigText", "subText", "time"}).
    A "type" key of "sms" or "notification" overrides detection.
    """
    store = _offline_store(state_file or get_settings().STATE_FILE)

    seen = queued = skipped = 0
    with open(events_file, "r", encoding="utf-8") as f:
        for line_number, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            seen += 1
            try:
                record = json.loads(line)
                kind = record.get("type") or ("sms" if "address" in record else "notification")
                if kind == "sms":
                    transaction = build_sms_transaction(normalize_sms(record))
                else:
                    transaction = build_notification_transaction(normalize_notification(record))
            except (json.JSONDecodeError, ValidationError, AttributeError, TypeError, ValueError) as e:
                console.print(f"[red]❌ Line {line_number}: {e}[/red]")
                skipped += 1
                continue

            if transaction is None:
                skipped += 1
            elif store.add_detected_transaction(transaction):
                queued += 1
            else:
                skipped += 1

    console.print(_transactions_table(store.pending_transactions, "💳 Pending Transactions"))
    console.print(
        Panel.fit(
            f"Events: {seen}  |  Queued: [green]{queued}[/green]  |  Skipped: [yellow]{skipped}[/yellow]",
            border_style="cyan",
        )
    )


@cli.command()
def status():
    """
    📊 Show persisted detection settings and resolution counts
    """
    settings = get_settings()
    store = _offline_store(settings.STATE_FILE)
    detection = store.settings

    table = Table(title="⚙️  Detection Status", show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    def flag(value: bool) -> str:
        return "✅ Enabled" if value else "❌ Disabled"

    table.add_row("State file", str(settings.STATE_FILE))
    table.add_row("Notification listener", flag(detection.notification_listener_enabled))
    table.add_row("SMS reader", flag(detection.sms_reader_enabled))
    table.add_row("Auto-show prompt", flag(detection.auto_show_prompt))
    table.add_row("Notification permission", flag(detection.notification_permission_granted))
    table.add_row("SMS permission", flag(detection.sms_permission_granted))
    table.add_row("Processed", str(len(store.processed_ids)))
    table.add_row("Dismissed", str(len(store.dismissed_ids)))
    console.print(table)


@cli.command("settings")
@click.option("--notifications/--no-notifications", default=None, help="Enable the notification listener")
@click.option("--sms/--no-sms", default=None, help="Enable the SMS reader")
@click.option("--auto-prompt/--no-auto-prompt", default=None, help="Auto-show the confirmation prompt")
def update_settings(notifications: Optional[bool], sms: Optional[bool], auto_prompt: Optional[bool]):
    """
    🔧 Update persisted detection settings

    Examples:

      cli.py settings --no-sms --auto-prompt
    """
    if notifications is None and sms is None and auto_prompt is None:
        console.print("[yellow]Nothing to change.[/yellow]")
        return

    store = _offline_store(get_settings().STATE_FILE)

    async def apply() -> None:
        if notifications is not None:
            await store.toggle_notification_listener(notifications)
        if sms is not None:
            await store.toggle_sms_reader(sms)
        if auto_prompt is not None:
            store.toggle_auto_show_prompt(auto_prompt)

    asyncio.run(apply())
    console.print("[green]✅ Settings updated[/green]")
    for key, value in store.settings.model_dump().items():
        console.print(f"  [cyan]{key}[/cyan]: {value}")


@cli.command("monitored-apps")
def monitored_apps():
    """
    📱 List the UPI apps whose notifications are monitored
    """
    table = Table(title="📱 Monitored UPI Apps", show_header=True)
    table.add_column("Key", style="dim")
    table.add_column("App", style="cyan")
    table.add_column("Package", style="green")
    for app in get_monitored_apps():
        table.add_row(app.key, app.name, app.package_name)
    console.print(table)


@cli.command()
@click.option("--host", default="0.0.0.0", help="Host to bind the server to (default: 0.0.0.0)")
@click.option("--port", default=8000, type=int, help="Port to bind the server to (default: 8000)")
@click.option("--reload/--no-reload", default=True, help="Enable auto-reload on code changes")
def serve(host: str, port: int, reload: bool):
    """
    🚀 Start the FastAPI server
    """
    import uvicorn

    settings = get_settings()

    console.print(f"[bold green]🚀 Starting {settings.APP_NAME} server...[/bold green]")
    console.print(f"[cyan]📡 Host: {host}[/cyan]")
    console.print(f"[cyan]🔌 Port: {port}[/cyan]")
    console.print()

    uvicorn.run("main:app", host=host, port=port, reload=reload, log_level="info")


if __name__ == "__main__":
    cli()
