"""Provider lock file: pins the plugin version the engine expects."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict

from tether.core.errors import ConfigurationError, ProviderVersionMismatch
from tether.protocol.messages import PluginInfo

DEFAULT_LOCK_PATH = Path("providers.lock")


@dataclass
class ProviderLock:
    providers: Dict[str, str] = field(default_factory=dict)

    def set(self, name: str, version: str) -> None:
        self.providers[name] = version

    def get(self, name: str) -> str | None:
        return self.providers.get(name)

    def check_compatible(self, name: str, info: PluginInfo) -> None:
        """Raise if ``info`` reports a version other than the pinned one.

        Providers without a pin are accepted.
        """
        pinned = self.get(name)
        if pinned is not None and pinned != info.version:
            raise ProviderVersionMismatch(
                f"provider '{name}' reports version {info.version}, lock pins {pinned}",
                {"provider": name, "pinned": pinned, "reported": info.version},
            )


def load_lock(path: Path | None = None) -> ProviderLock:
    lock_path = path or DEFAULT_LOCK_PATH
    if not lock_path.exists():
        return ProviderLock()
    try:
        data = json.loads(lock_path.read_text())
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid provider lock file {lock_path}: {e}") from e
    providers = data.get("providers", {})
    return ProviderLock(providers=dict(providers))


def save_lock(lock: ProviderLock, path: Path | None = None) -> None:
    lock_path = path or DEFAULT_LOCK_PATH
    payload = {"providers": lock.providers}
    lock_path.write_text(json.dumps(payload, indent=2, sort_keys=True) + "\n")
