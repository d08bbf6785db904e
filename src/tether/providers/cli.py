"""`tether providers`: inspect registered providers and manage the lock file."""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path
from typing import Sequence

from tether.cli import ux
from tether.client import ResourceProviderClient
from tether.config import get_settings
from tether.core.errors import ExitCode, ProviderVersionMismatch, main_with_error_handling
from tether.protocol import PluginInfo
from tether.providers.lock import load_lock, save_lock
from tether.providers.registry import ProviderSpec, get_provider_spec, list_providers


def _resolve_lock_path(value: str | None) -> Path:
    return Path(value or get_settings().lock_path).expanduser()


def _add_lockfile_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--lockfile", default=None, help="Path to provider lockfile")


def add_provider_commands(parser: argparse.ArgumentParser) -> None:
    subparsers = parser.add_subparsers(dest="provider_command")

    list_parser = subparsers.add_parser("list", help="List available providers")
    _add_lockfile_argument(list_parser)

    info_parser = subparsers.add_parser("info", help="Show provider details")
    info_parser.add_argument("name", help="Provider name")

    for command, help_text in (
        ("install", "Pin the provider's version in the lockfile"),
        ("update", "Re-pin the provider's version in the lockfile"),
    ):
        pin_parser = subparsers.add_parser(command, help=help_text)
        pin_parser.add_argument("name", help="Provider name")
        _add_lockfile_argument(pin_parser)

    verify_parser = subparsers.add_parser(
        "verify", help="Compare a running service's version with the lockfile"
    )
    verify_parser.add_argument("name", help="Provider name")
    verify_parser.add_argument("--url", help="Service base URL")
    _add_lockfile_argument(verify_parser)


def _registered(name: str, parser: argparse.ArgumentParser) -> ProviderSpec:
    spec = get_provider_spec(name)
    if spec is None:
        parser.error(f"Provider '{name}' is not registered")
    return spec


def _list(args: argparse.Namespace) -> int:
    lock = load_lock(_resolve_lock_path(args.lockfile))
    rows = [
        [spec.name, spec.version or "unknown", lock.get(spec.name) or "-", spec.description or ""]
        for spec in list_providers()
    ]
    ux.print_table("Providers", ["Name", "Version", "Locked", "Description"], rows)
    return 0


def _info(spec: ProviderSpec) -> int:
    provider = spec.factory()
    ux.print_key_value(
        {
            "Name": spec.name,
            "Version": spec.version or "unknown",
            "Description": spec.description or "(not provided)",
            "Required config": ", ".join(sorted(provider.required_config)) or "(none)",
            "Functions": ", ".join(provider.functions) or "(none)",
        },
        title=spec.name,
    )
    return 0


def _pin(spec: ProviderSpec, command: str, lockfile: str | None) -> int:
    lock_path = _resolve_lock_path(lockfile)
    lock = load_lock(lock_path)
    previous = lock.get(spec.name)
    version = spec.version or "unknown"
    lock.set(spec.name, version)
    save_lock(lock, lock_path)

    if command == "update" and previous and previous != version:
        ux.success(f"Updated provider '{spec.name}' from {previous} to {version} in {lock_path}")
    else:
        ux.success(f"Pinned provider '{spec.name}' at {version} in {lock_path}")
    return 0


async def _fetch_plugin_info(url: str) -> PluginInfo:
    async with ResourceProviderClient.from_settings(url) as client:
        return await client.get_plugin_info()


@main_with_error_handling(log_errors=False)
def _verify(name: str, url: str | None, lockfile: str | None) -> int:
    settings = get_settings()
    info = asyncio.run(_fetch_plugin_info(url or f"http://{settings.host}:{settings.port}"))
    lock = load_lock(_resolve_lock_path(lockfile))
    try:
        lock.check_compatible(name, info)
    except ProviderVersionMismatch as e:
        ux.error(str(e))
        raise
    pinned = lock.get(name)
    if pinned is None:
        ux.warning(f"Provider '{name}' is not pinned; service reports {info.version}")
        return ExitCode.WARNING
    ux.success(f"Provider '{name}' matches the pinned version {pinned}")
    return ExitCode.SUCCESS


def run_provider_command(args: argparse.Namespace, parser: argparse.ArgumentParser) -> int:
    command = args.provider_command
    if command == "list":
        return _list(args)
    if command == "info":
        return _info(_registered(args.name, parser))
    if command in {"install", "update"}:
        return _pin(_registered(args.name, parser), command, args.lockfile)
    if command == "verify":
        return _verify(args.name, args.url, args.lockfile)

    parser.print_help()
    return 1


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="tether.providers", description="Tether provider tooling")
    add_provider_commands(parser)
    args = parser.parse_args(argv)
    return run_provider_command(args, parser)


if __name__ == "__main__":  # pragma: no cover - exercised via module entrypoint
    raise SystemExit(main())
