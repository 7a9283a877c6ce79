"""Charterline entry point.

Changes:
  - 2026-10-10: Added ``pricing`` command (prints the category table with Rich).
  - 2026-10-09: Added ``status`` command for the OAuth token of a domain.
  - 2026-10-08: ``serve`` starts the API server (default command).
"""

import argparse
import asyncio
import logging

from rich.console import Console
from rich.table import Table

from charterline import __version__
from charterline.config import get_settings
from charterline.errors import CharterlineError
from charterline.logging_setup import setup_logging

logger = logging.getLogger(__name__)


def run_status(domain: str) -> int:
    from charterline.integrations.oauth import OAuthGateway

    status = OAuthGateway(get_settings()).status(domain or None)
    console = Console()
    if status["is_authenticated"]:
        state = "[green]authenticated[/green]"
    else:
        state = "[red]not authenticated[/red]"
    console.print(f"Domain [bold]{status['domain']}[/bold]: {state}")
    if status["is_authenticated"]:
        console.print(f"  source: {status['source']}  vendor: {status['vendor_id'] or '-'}")
        console.print(f"  scopes: {', '.join(status['scopes']) or '-'}")
    for step in status["next_steps"]:
        console.print(f"  - {step}")
    return 0 if status["is_authenticated"] else 1


async def run_pricing(activity_id: str) -> int:
    from charterline.booking.pricing import AvailabilityPricingFetcher

    fetcher = AvailabilityPricingFetcher(settings=get_settings())
    try:
        result = await fetcher.fetch(activity_id or None)
    except CharterlineError as e:
        logger.error("Pricing fetch failed: %s", e)
        return 1

    start, end = fetcher.window()
    table = Table(title=f"Activity {result.activity_id} ({start} .. {end})")
    table.add_column("Category")
    table.add_column("Name")
    table.add_column("Price", justify="right")
    for category in result.categories:
        table.add_row(category.category_id, category.name, category.display)
    Console().print(table)
    open_slots = sum(1 for slot in result.availabilities if slot.available)
    Console().print(f"{open_slots} of {len(result.availabilities)} slots available")
    return 0


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Charterline - boat-charter booking integration",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  charterline                        Start the API server (default)
  charterline serve --port 9000      Start the API server on another port
  charterline status                 Show OAuth status for the configured domain
  charterline pricing                Print pricing categories for the default activity
""",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", default=None, help="Override CHARTERLINE_LOG_LEVEL")

    sub = parser.add_subparsers(dest="command")
    serve = sub.add_parser("serve", help="Start the API server")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--dev", action="store_true", help="Auto-reload on source changes")

    status = sub.add_parser("status", help="Show OAuth status")
    status.add_argument("--domain", default="")

    pricing = sub.add_parser("pricing", help="Fetch and print pricing categories")
    pricing.add_argument("--activity-id", default="")

    args = parser.parse_args()
    settings = get_settings()
    setup_logging(level=args.log_level or settings.log_level)

    try:
        if args.command == "status":
            raise SystemExit(run_status(args.domain))
        elif args.command == "pricing":
            raise SystemExit(asyncio.run(run_pricing(args.activity_id)))
        else:
            from charterline.api.serve import run_api_server

            run_api_server(
                host=getattr(args, "host", "127.0.0.1"),
                port=getattr(args, "port", 8000),
                dev=getattr(args, "dev", False),
            )
    except KeyboardInterrupt:
        logger.info("Charterline stopped.")


if __name__ == "__main__":
    main()
