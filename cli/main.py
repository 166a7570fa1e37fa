"""CLI entry point and argument parsing"""

import argparse
import logging
import os
import sys

from rich.console import Console

from bridge import PulseService
from cli import commands


console = Console()

logger = logging.getLogger(__name__)


def setup_logging(debug: bool = False):
    """Configure the root logger

    Normal runs only surface warnings. Debug runs log everything to the
    console and append it to pulse_debug.log.
    """
    root_logger = logging.getLogger()

    # Clear existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if not debug:
        root_logger.setLevel(logging.WARNING)
        console_handler.setLevel(logging.WARNING)
        return

    root_logger.setLevel(logging.DEBUG)
    console_handler.setLevel(logging.DEBUG)

    log_file = os.path.abspath('pulse_debug.log')
    file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    logger.info(f"Debug logging enabled - appending to {log_file}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Claude Pulse - Claude usage monitor")
    parser.add_argument("--debug", "-d", action="store_true", help="Enable debug logging")
    parser.add_argument("--mock", action="store_true", help="Serve fixed sample usage data instead of calling the API")

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("login", help="Login with your Claude account (OAuth PKCE)")
    logout_parser = subparsers.add_parser("logout", help="Clear stored credentials")
    logout_parser.add_argument("--yes", "-y", action="store_true", help="Don't ask for confirmation")
    subparsers.add_parser("status", help="Fetch usage once and print it as JSON")
    watch_parser = subparsers.add_parser("watch", help="Poll usage periodically")
    watch_parser.add_argument("--interval", type=float, default=None, help="Seconds between fetches")
    subparsers.add_parser("auth-status", help="Show stored credential status")
    serve_parser = subparsers.add_parser("serve", help="Run the local HTTP bridge")
    serve_parser.add_argument("--bind", "-b", default=None, help="Override bind address (default: from config)")
    serve_parser.add_argument("--port", "-p", type=int, default=None, help="Override port (default: from config)")
    return parser


def main(argv=None):
    """Entry point for the CLI"""
    args = build_parser().parse_args(argv)
    setup_logging(args.debug)

    service = PulseService(mock=args.mock, debug=args.debug)
    ok = True

    try:
        if args.command == "login":
            ok = commands.login(service, console)
        elif args.command == "logout":
            ok = commands.logout(service, console, assume_yes=args.yes)
        elif args.command == "status":
            ok = commands.status(service, console)
        elif args.command == "watch":
            if args.interval:
                commands.watch(service, console, interval=args.interval)
            else:
                commands.watch(service, console)
        elif args.command == "auth-status":
            commands.auth_status(service, console)
        elif args.command == "serve":
            commands.serve(service, console, bind_address=args.bind, port=args.port)

    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        console.print("Goodbye!")
    except Exception as e:
        console.print(f"\n[red]Fatal error:[/red] {e}")
        if args.debug:
            import traceback
            traceback.print_exc()
        ok = False

    if not ok:
        sys.exit(1)


if __name__ == "__main__":
    main()
