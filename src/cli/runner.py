# src/cli/runner.py

"""Headless CLI commands over the scraper, store and scheduler."""

import json
import logging
import sys
import threading
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path

from rich.console import Console
from rich.table import Table

from src.notifications.notifier import NotificationSink, build_notifier
from src.scrapers.document_fetcher import DocumentFetcher
from src.scrapers.registry import build_default_registry
from src.services.price_check_scheduler import PriceCheckScheduler
from src.services.scrape_orchestrator import ScrapeOrchestrator
from src.storage.tracking_store import SqliteTrackingStore

logger = logging.getLogger("price_tracker.cli")

# Stderr console for status messages so stdout stays clean for JSON
_err = Console(stderr=True)


@dataclass
class Services:
    """Everything a CLI command may need, wired once per process."""

    store: SqliteTrackingStore
    orchestrator: ScrapeOrchestrator
    notifier: NotificationSink
    scheduler: PriceCheckScheduler

    def close(self) -> None:
        self.store.close()


def build_services(db_path: Path | None = None) -> Services:
    """Construct the registry, fetcher, store, notifier and scheduler."""
    registry = build_default_registry()
    fetcher = DocumentFetcher(registry=registry)
    orchestrator = ScrapeOrchestrator(fetcher, registry)
    store = SqliteTrackingStore(db_path)
    # Shutdown also cuts short webhook retries of an in-flight tick
    cancel = threading.Event()
    notifier = build_notifier(cancel_event=cancel)
    scheduler = PriceCheckScheduler(
        store, orchestrator, notifier, cancel_event=cancel,
    )
    return Services(store, orchestrator, notifier, scheduler)


def parse_desired_price(raw: str) -> Decimal | None:
    """Parse a user-supplied threshold; None when not a positive number."""
    try:
        value = Decimal(raw.strip())
    except (InvalidOperation, AttributeError):
        return None
    if not value.is_finite() or value <= 0:
        return None
    return value


def _fmt_price(price: Decimal | None) -> str:
    return f"{price:,.2f}" if price is not None else "N/A"


def cli_scrape(
    services: Services, url: str, output_format: str = "table",
) -> int:
    """Scrape *url* once and print what was found."""
    _err.print(f"[bold]Scraping:[/bold] {url}")
    result = services.orchestrator.scrape_details(url)
    if result.is_empty:
        _err.print("[yellow]No product details found.[/yellow]")
        return 1

    if output_format == "json":
        json.dump(
            {
                "url": url,
                "name": result.name,
                "image_url": result.image_url,
                "price": (
                    str(result.price) if result.price is not None else None
                ),
            },
            sys.stdout,
            ensure_ascii=False,
            indent=2,
        )
        sys.stdout.write("\n")
        return 0

    table = Table(
        title="Product Details", show_lines=True, title_style="bold cyan",
    )
    table.add_column("Field", style="bold")
    table.add_column("Value", overflow="fold")
    table.add_row("Name", result.name or "—")
    table.add_row("Price", f"[green]{_fmt_price(result.price)}[/green]")
    table.add_row("Image", result.image_url or "—")
    table.add_row("URL", url)
    Console().print(table)
    return 0


def cli_track(
    services: Services,
    url: str,
    desired_price: str,
    user_id: str,
    interval: int | None,
    notify: bool = True,
) -> int:
    """Start tracking *url* for *user_id* below *desired_price*."""
    threshold = parse_desired_price(desired_price)
    if threshold is None:
        _err.print(f"[red]Invalid desired price: {desired_price}[/red]")
        return 1

    details = services.orchestrator.scrape_details(url)
    target = services.store.add_target(
        url,
        name=details.name or "",
        image_url=details.image_url or "",
        last_price=details.price,
    )
    subscription = services.store.add_subscription(
        target.id,
        user_id,
        threshold,
        check_interval_minutes=interval,
        notification_enabled=notify,
    )
    _err.print(
        f"[green]✓ Tracking target {target.id}[/green] "
        f"[dim]{target.name or target.url}[/dim]"
    )
    _err.print(
        f"[dim]current={_fmt_price(target.last_price)} "
        f"desired={_fmt_price(subscription.desired_price)} "
        f"every {subscription.check_interval_minutes}m[/dim]"
    )
    if details.price is None:
        _err.print(
            "[yellow]No price yet, the scheduler will retry.[/yellow]"
        )
    return 0


def cli_list(services: Services) -> int:
    """Print every tracked target with its subscriber count."""
    targets = services.store.list_targets()
    if not targets:
        _err.print("[yellow]Nothing is being tracked.[/yellow]")
        return 0

    table = Table(
        title="Tracked Targets", show_lines=True, title_style="bold cyan",
    )
    table.add_column("ID", style="dim", width=4)
    table.add_column("Name", max_width=50)
    table.add_column("Price", justify="right", style="green")
    table.add_column("Subs", justify="center")
    table.add_column("Last checked", style="dim")
    table.add_column("URL", overflow="fold", style="dim")

    for target in targets:
        subs = services.store.list_subscriptions(target.id)
        checked = (
            target.last_checked_at.strftime("%Y-%m-%d %H:%M")
            if target.last_checked_at else "never"
        )
        table.add_row(
            str(target.id),
            (target.name or "—")[:50],
            _fmt_price(target.last_price),
            str(len(subs)),
            checked,
            target.url,
        )
    Console().print(table)
    return 0


def cli_history(services: Services, url: str) -> int:
    """Print the price history of a tracked URL, newest first."""
    target = services.store.get_target_by_url(url)
    if target is None:
        _err.print(f"[red]Not tracked: {url}[/red]")
        return 1

    history = services.store.get_price_history(target.id)
    if not history:
        _err.print("[yellow]No price history yet.[/yellow]")
        return 0

    table = Table(
        title=f"Price History: {target.name or target.url}",
        title_style="bold cyan",
    )
    table.add_column("Observed at", style="dim")
    table.add_column("Price", justify="right", style="green")
    for obs in history:
        table.add_row(
            obs.observed_at.strftime("%Y-%m-%d %H:%M:%S"),
            _fmt_price(obs.price),
        )
    Console().print(table)
    return 0


def cli_tick(services: Services) -> int:
    """Run a single price-check tick in the foreground."""
    summary = services.scheduler.run_tick()
    _err.print(
        f"[green]✓ checked={summary.checked} skipped={summary.skipped} "
        f"changed={summary.changed} notified={summary.notified}[/green]"
    )
    if summary.failed:
        _err.print(f"[yellow]{summary.failed} target(s) failed[/yellow]")
    return 0


def cli_run(
    services: Services, stop_event: threading.Event | None = None,
) -> int:
    """Run the background scheduler until interrupted."""
    stop = stop_event or threading.Event()
    services.scheduler.start()
    _err.print(
        "[bold]Price checks running.[/bold] [dim]Ctrl-C to stop.[/dim]"
    )
    try:
        while not stop.wait(1.0):
            pass
    except KeyboardInterrupt:
        _err.print("[dim]Stopping...[/dim]")
    finally:
        services.scheduler.shutdown()
    return 0
