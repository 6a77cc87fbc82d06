"""Product Helper entry point.

Subcommands:
  serve     run the HTTP API for the browser client
  refresh   rebuild the context cache from Shortcut
  status    show whether the context cache exists and is fresh
  chat      interactive planning session in the terminal
"""

import argparse
import asyncio
import logging
import sys

from rich.console import Console

from product_helper import __version__
from product_helper.config import Settings, get_settings
from product_helper.context.cache import get_cache_status
from product_helper.errors import ProductHelperError
from product_helper.logging_setup import setup_logging

logger = logging.getLogger(__name__)


def print_status(settings: Settings, console: Console) -> None:
    status = get_cache_status(settings.cache_path, max_age_days=settings.cache_max_age_days)
    if not status.exists:
        console.print(f"[yellow]No context cache at {settings.cache_path}[/yellow]")
        return
    colour = "yellow" if status.is_stale else "green"
    label = "stale" if status.is_stale else "fresh"
    console.print(
        f"Context cache: [{colour}]{label}[/{colour}] "
        f"(refreshed {status.refreshed_at:%Y-%m-%d %H:%M %Z})"
    )


async def run_refresh(settings: Settings) -> None:
    from product_helper.context.refresh import refresh_cache
    from product_helper.integrations.shortcut import ShortcutClient

    async with ShortcutClient.from_settings(settings) as tracker:
        await refresh_cache(tracker, settings)


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="product-helper",
        description="Planning assistant for objectives, epics and stories",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  product-helper refresh            Fetch SOP, templates and reference objectives
  product-helper chat               Plan in the terminal
  product-helper serve --port 9000  API for the browser client on a custom port
""",
    )
    parser.add_argument("--version", "-v", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", default=None, help="Override the configured log level")

    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=None, help="Bind address (default: settings.web_host)")
    serve.add_argument("--port", "-p", type=int, default=None, help="Port (default: 3001)")

    sub.add_parser("refresh", help="Rebuild the context cache from Shortcut")
    sub.add_parser("status", help="Show context cache status")

    chat = sub.add_parser("chat", help="Interactive terminal session")
    chat.add_argument("--model", "-m", default=None, help="Chat model")

    args = parser.parse_args()
    settings = get_settings()
    setup_logging(level=args.log_level or settings.log_level)
    console = Console()

    try:
        if args.command == "serve":
            from product_helper.api import run_server

            run_server(settings, host=args.host, port=args.port)
        elif args.command == "refresh":
            asyncio.run(run_refresh(settings))
            print_status(settings, console)
        elif args.command == "status":
            print_status(settings, console)
        elif args.command == "chat":
            from product_helper.chat.terminal import run_terminal_chat

            asyncio.run(run_terminal_chat(settings, model=args.model))
    except ProductHelperError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Product Helper stopped.")


if __name__ == "__main__":
    main()
