"""CLI entry point and argument parsing"""

import argparse
import logging
import sys
from typing import List, Optional

from rich.console import Console

from config import get_config_loader
from redirect_auth import ConfigurationError
from cli.commands import run_server, show_authorize_url, verify_token


console = Console()


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser"""
    parser = argparse.ArgumentParser(description="Redirect Auth CLI")
    parser.add_argument("--debug", "-d", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the authentication server")
    serve.add_argument("--bind", "-b", default=None, help="Override bind address (default: from config)")
    serve.add_argument("--port", "-p", type=int, default=None, help="Override port (default: from config)")

    authorize = subparsers.add_parser("authorize-url", help="Print an authorize URL")
    authorize.add_argument("--redirect-uri", required=True, help="Callback URL registered with the provider")

    verify = subparsers.add_parser("verify-token", help="Verify an ID token offline")
    verify.add_argument("token", help="The ID token to verify")
    verify.add_argument("--nonce", default=None, help="Expected nonce claim")

    return parser


def main(argv: Optional[List[str]] = None):
    """Entry point for the CLI"""
    args = build_parser().parse_args(argv)

    # serve --debug installs its own file and console handlers
    logging.basicConfig(level=logging.DEBUG if args.debug else logging.WARNING)

    config = get_config_loader()

    try:
        if args.command == "serve":
            run_server(args.debug, args.bind, args.port, console)
        elif args.command == "authorize-url":
            show_authorize_url(config, args.redirect_uri, console)
        elif args.command == "verify-token":
            if not verify_token(config, args.token, args.nonce, console):
                sys.exit(1)

    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        sys.exit(2)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")


if __name__ == "__main__":
    main()
