"""
Tether command line interface.

Commands:
- serve: run a provider as a ResourceProvider service
- providers: list registered providers and manage the lock file
- call: issue a single RPC against a running service
"""

from __future__ import annotations

import argparse
from typing import Sequence

from tether import __version__


def build_parser() -> argparse.ArgumentParser:
    from tether.providers.cli import add_provider_commands

    parser = argparse.ArgumentParser(
        prog="tether", description="Resource provider protocol tooling"
    )
    parser.add_argument("--version", action="version", version=f"tether {__version__}")
    subparsers = parser.add_subparsers(dest="command")

    serve_parser = subparsers.add_parser("serve", help="Run a provider service")
    serve_parser.add_argument("--provider", help="Registered provider name")
    serve_parser.add_argument("--host", help="Bind address")
    serve_parser.add_argument("--port", type=int, help="Bind port")
    serve_parser.add_argument(
        "--config", dest="config_path", help="YAML file of Configure variables"
    )
    serve_parser.add_argument("--log-level", help="Log level (DEBUG, INFO, ...)")
    serve_parser.add_argument("--log-format", choices=["json", "console"], help="Log output format")

    providers_parser = subparsers.add_parser("providers", help="Provider registry and lock file")
    add_provider_commands(providers_parser)
    providers_parser.set_defaults(command_parser=providers_parser)

    call_parser = subparsers.add_parser("call", help="Issue one RPC to a provider service")
    call_parser.add_argument("method", help="RPC method, e.g. Check or GetPluginInfo")
    call_parser.add_argument("--url", help="Service base URL")
    call_parser.add_argument("--data", help="Request message as JSON")

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "serve":
        from tether.cli.serve import serve_command

        return serve_command(
            provider=args.provider,
            host=args.host,
            port=args.port,
            config_path=args.config_path,
            log_level=args.log_level,
            log_format=args.log_format,
        )

    if args.command == "providers":
        from tether.providers.cli import run_provider_command

        return run_provider_command(args, args.command_parser)

    if args.command == "call":
        from tether.cli.call import call_command

        return call_command(args.method, url=args.url, data=args.data)

    parser.print_help()
    return 1


__all__ = ["build_parser", "main"]
