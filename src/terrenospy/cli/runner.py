"""CLI runner for the property store.

Run via: python -m terrenospy.cli.runner <command>
Or the installed console script: terrenospy <command>
"""

import argparse
import asyncio
import logging
import sys
from typing import Any, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.prompt import Prompt
from rich.table import Table

from ..auth import AdminSession
from ..config import Settings
from ..display import (
    format_price,
    format_size,
    map_embed_url,
    short_description,
    whatsapp_link,
)
from ..images import prepare_images
from ..models.outcome import RemoteStatus, StoreOutcome
from ..models.property import PropertyRecord, PropertyStatus
from ..store import PropertyStore, SyncScheduler

console = Console()

ADMIN_COMMANDS = {"add", "update", "delete"}


def setup_logging(verbose: bool = False) -> None:
    """Configure logging with Rich handler."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def print_properties(records: list[PropertyRecord], title: str = "Terrenos") -> None:
    if not records:
        console.print("[yellow]No properties found.[/yellow]")
        return

    table = Table(title=f"{title} ({len(records)})")
    table.add_column("ID", style="dim")
    table.add_column("Title", style="bold")
    table.add_column("Location")
    table.add_column("Price", justify="right")
    table.add_column("Size", justify="right")
    table.add_column("Status")

    for record in records:
        title_text = f"⭐ {record.title}" if record.featured else record.title
        table.add_row(
            record.id,
            title_text,
            record.location,
            format_price(record.price),
            format_size(record.size),
            record.status.value,
        )
    console.print(table)


def print_detail(record: PropertyRecord, settings: Settings) -> None:
    console.print(f"[bold]{record.title}[/bold]  [dim]{record.id}[/dim]")
    console.print(f"  Location: {record.location}")
    console.print(f"  Price:    {format_price(record.price)}")
    console.print(f"  Size:     {format_size(record.size)}")
    console.print(f"  Status:   {record.status.value}")
    if record.description:
        console.print(f"  {short_description(record.description, limit=400)}")
    for image in record.images:
        console.print(f"  [dim]image:[/dim] {short_description(image, limit=80)}")
    embed = map_embed_url(record.map_url)
    if embed:
        console.print(f"  Map:      {embed}")
    contact = record.phone or settings.contact_phone or settings.whatsapp
    console.print(f"  Contact:  {whatsapp_link(record, contact)}")
    email = record.email or settings.contact_email
    if email:
        console.print(f"  Email:    {email}")


def print_outcome(outcome: StoreOutcome, action: str) -> None:
    if not outcome.success:
        console.print(f"[red]{action} failed:[/red] {outcome.message}")
        return

    suffix = {
        RemoteStatus.SYNCED: "[green]synced[/green]",
        RemoteStatus.QUEUED: "[yellow]queued for sync[/yellow]",
        RemoteStatus.LOCAL_ONLY: "[yellow]saved locally[/yellow]",
        RemoteStatus.FAILED: "[yellow]saved locally, remote sync failed[/yellow]",
    }[outcome.remote]
    label = f" {outcome.record.id}" if outcome.record else ""
    console.print(f"{action}{label}: {suffix}")
    if outcome.message:
        console.print(f"[dim]{outcome.message}[/dim]")
    if not outcome.cached:
        console.print("[yellow]Local cache unavailable; changes are not durable[/yellow]")


def _record_fields(args: argparse.Namespace, settings: Settings) -> dict[str, Any]:
    """Collect the property options the user actually passed."""
    fields: dict[str, Any] = {}
    for name in ("title", "location", "price", "size", "description", "email", "phone", "map_url"):
        value = getattr(args, name, None)
        if value is not None:
            fields[name] = value
    images = prepare_images(args.images, settings)
    if images:
        fields["images"] = images
    if args.featured is not None:
        fields["featured"] = args.featured
    if args.status is not None:
        fields["status"] = args.status
    return fields


def _admin_credentials(args: argparse.Namespace) -> Optional[tuple[str, str]]:
    """Credentials from the options, prompting for missing ones on a terminal."""
    username, password = args.username, args.password
    if username is None or password is None:
        if not sys.stdin.isatty():
            return None
        if username is None:
            username = Prompt.ask("Username", console=console)
        if password is None:
            password = Prompt.ask("Password", password=True, console=console)
    return username, password


async def run_command(args: argparse.Namespace, settings: Settings) -> int:
    """Execute one CLI command.

    Returns:
        Process exit code
    """
    if args.command in ADMIN_COMMANDS:
        credentials = _admin_credentials(args)
        if credentials is None:
            console.print("[red]Admin commands need --username and --password[/red]")
            return 1
        session = AdminSession(settings)
        if not session.login(*credentials):
            console.print("[red]Invalid admin username or password[/red]")
            return 1

    store = PropertyStore(settings)
    try:
        await store.load()

        if args.command == "list":
            records = store.featured() if args.featured_only else store.list_properties()
            print_properties(records)
            return 0

        if args.command == "search":
            print_properties(store.search(args.term), title=f"Results for {args.term!r}")
            return 0

        if args.command == "show":
            record = store.get_by_id(args.id)
            if record is None:
                console.print(f"[red]Property {args.id} not found[/red]")
                return 1
            print_detail(record, settings)
            return 0

        if args.command == "sync":
            outcome = await store.reconcile()
            if outcome.success:
                console.print(f"[green]Sync complete[/green] ({len(store)} properties)")
            else:
                console.print(f"[red]Sync failed:[/red] {outcome.message}")
            return 0 if outcome.success else 1

        if args.command == "watch":
            scheduler = SyncScheduler(store, interval=args.interval)
            scheduler.start()
            console.print(f"[bold]Syncing every {scheduler.interval:g}s. Ctrl+C to stop.[/bold]")
            try:
                await asyncio.Event().wait()
            finally:
                await scheduler.stop()
            return 0

        if args.command == "add":
            outcome = await store.create(_record_fields(args, settings))
            print_outcome(outcome, "Created")
            return 0 if outcome.success else 1

        if args.command == "update":
            outcome = await store.update(args.id, _record_fields(args, settings))
            print_outcome(outcome, "Updated")
            return 0 if outcome.success else 1

        if args.command == "delete":
            outcome = await store.delete(args.id)
            print_outcome(outcome, "Deleted")
            return 0 if outcome.success else 1

    finally:
        await store.close()

    return 1


def _add_record_options(parser: argparse.ArgumentParser, required: bool) -> None:
    parser.add_argument("--title", required=required, help="Listing headline")
    parser.add_argument("--location", required=required, help="City or neighborhood")
    parser.add_argument("--price", type=int, help="Price in guaraníes (0 = on request)")
    parser.add_argument("--size", type=int, help="Plot size in square meters")
    parser.add_argument("--description")
    parser.add_argument("--email")
    parser.add_argument("--phone")
    parser.add_argument("--map-url", dest="map_url", help="Google Maps link")
    parser.add_argument(
        "--image", dest="images", action="append", default=[],
        help="Image URL or local image file (repeatable)",
    )
    parser.add_argument(
        "--featured", action=argparse.BooleanOptionalAction, default=None,
        help="Mark as featured",
    )
    parser.add_argument(
        "--status", choices=[s.value for s in PropertyStatus], default=None,
    )


def build_parser(settings: Optional[Settings] = None) -> argparse.ArgumentParser:
    settings = settings or Settings()
    parser = argparse.ArgumentParser(
        description="Terrenos PY property store",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  terrenospy list
  terrenospy search luque
  terrenospy add --title "Lote A" --location Luque --price 150000000 --size 360
  terrenospy watch --interval 60

Credentials and the gist are read from TERRENOS_* environment variables.
        """,
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    admin = argparse.ArgumentParser(add_help=False)
    admin.add_argument("--username", help="Admin username (prompted when omitted)")
    admin.add_argument("--password", help="Admin password (prompted when omitted)")

    sub = parser.add_subparsers(dest="command", required=True)

    list_cmd = sub.add_parser("list", help="List all properties")
    list_cmd.add_argument("--featured", dest="featured_only", action="store_true")

    search_cmd = sub.add_parser("search", help="Search title, location, description and price")
    search_cmd.add_argument("term")

    show_cmd = sub.add_parser("show", help="Show one property")
    show_cmd.add_argument("id")

    sub.add_parser("sync", help="Reconcile the local list with the gist")

    watch_cmd = sub.add_parser(
        "watch",
        help="Reconcile periodically until interrupted",
        description=(
            "Reconcile periodically until interrupted. Connectivity is not probed: "
            "a sync that cannot reach the gist fails and is retried on the next tick."
        ),
    )
    watch_cmd.add_argument("--interval", type=float, default=settings.sync_interval_seconds)

    add_cmd = sub.add_parser("add", parents=[admin], help="Create a property")
    _add_record_options(add_cmd, required=True)

    update_cmd = sub.add_parser("update", parents=[admin], help="Update a property")
    update_cmd.add_argument("id")
    _add_record_options(update_cmd, required=False)

    delete_cmd = sub.add_parser("delete", parents=[admin], help="Delete a property")
    delete_cmd.add_argument("id")

    return parser


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point for CLI."""
    settings = Settings()
    args = build_parser(settings).parse_args(argv)

    setup_logging(verbose=args.verbose)

    try:
        sys.exit(asyncio.run(run_command(args, settings)))
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)


if __name__ == "__main__":
    main()
