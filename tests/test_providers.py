"""Tests for the provider registry, lock file and provider commands."""

import json

import pytest
from tether.cli import main
from tether.core.errors import ConfigurationError, ExitCode, ProviderVersionMismatch
from tether.protocol import PluginInfo
from tether.providers import cli as providers_cli
from tether.providers import create_provider, get_provider_spec, list_providers
from tether.providers.lock import ProviderLock, load_lock, save_lock
from tether.providers.memory import MemoryProvider
from tether.providers.registry import ProviderRegistry


class TestProviderRegistry:
    """Tests for provider registration."""

    def test_memory_provider_is_registered(self):
        """Test the built-in provider registers on import."""
        spec = get_provider_spec("memory")

        assert spec is not None
        assert spec.version == MemoryProvider.version
        assert "memory" in [s.name for s in list_providers()]

    def test_create_provider(self):
        """Test creating a provider passes keyword arguments to the factory."""
        provider = create_provider("memory", id_prefix="mem")

        assert isinstance(provider, MemoryProvider)
        assert not provider.configured

    def test_create_unknown_provider(self):
        """Test creating an unregistered provider is a configuration error."""
        with pytest.raises(ConfigurationError, match="not registered"):
            create_provider("does-not-exist")

    def test_register_requires_name(self):
        """Test registering without a name fails."""
        registry = ProviderRegistry()
        with pytest.raises(ValueError):
            registry.register("", MemoryProvider)

    def test_register_overrides(self):
        """Test registering a name twice keeps the latest factory."""
        registry = ProviderRegistry()
        registry.register("mem", MemoryProvider, version="1")
        registry.register("mem", MemoryProvider, version="2")

        assert [spec.version for spec in registry.list()] == ["2"]


class TestProviderLock:
    """Tests for ProviderLock."""

    def test_set_and_get(self):
        """Test setting and reading a pinned version."""
        lock = ProviderLock()
        lock.set("memory", "0.1.0")

        assert lock.get("memory") == "0.1.0"
        assert lock.get("unknown") is None

    def test_compatible_version(self):
        """Test a matching version passes."""
        lock = ProviderLock(providers={"memory": "0.1.0"})
        lock.check_compatible("memory", PluginInfo(version="0.1.0"))

    def test_unpinned_provider_is_accepted(self):
        """Test providers without a pin are accepted."""
        ProviderLock().check_compatible("memory", PluginInfo(version="9.9.9"))

    def test_version_mismatch(self):
        """Test a different reported version is rejected."""
        lock = ProviderLock(providers={"memory": "0.1.0"})

        with pytest.raises(ProviderVersionMismatch) as exc_info:
            lock.check_compatible("memory", PluginInfo(version="0.2.0"))

        assert exc_info.value.details == {
            "provider": "memory",
            "pinned": "0.1.0",
            "reported": "0.2.0",
        }


class TestLockFile:
    """Tests for load_lock and save_lock."""

    def test_load_nonexistent_returns_empty(self, tmp_path):
        """Test loading a missing lock file returns an empty lock."""
        assert load_lock(tmp_path / "providers.lock").providers == {}

    def test_load_invalid_json(self, tmp_path):
        """Test a corrupt lock file is a configuration error."""
        path = tmp_path / "providers.lock"
        path.write_text("{not json")

        with pytest.raises(ConfigurationError, match="Invalid provider lock file"):
            load_lock(path)

    def test_save_and_load(self, tmp_path):
        """Test saved lock files load back and are pretty printed."""
        path = tmp_path / "providers.lock"
        save_lock(ProviderLock(providers={"memory": "0.1.0", "aws": "5.0.0"}), path)

        content = path.read_text()
        assert content.endswith("\n")
        assert json.loads(content) == {"providers": {"aws": "5.0.0", "memory": "0.1.0"}}
        assert load_lock(path).get("aws") == "5.0.0"


class TestProviderCommands:
    """Tests for `tether providers`."""

    def test_install_writes_lock(self, tmp_path):
        """Test install pins the registered version."""
        path = tmp_path / "providers.lock"

        assert main(["providers", "install", "memory", "--lockfile", str(path)]) == 0
        assert load_lock(path).get("memory") == MemoryProvider.version

    def test_list(self, tmp_path, capsys):
        """Test list shows registered providers."""
        assert main(["providers", "list", "--lockfile", str(tmp_path / "none.lock")]) == 0
        assert "memory" in capsys.readouterr().out

    def test_info(self, capsys):
        """Test info shows required configuration and functions."""
        assert main(["providers", "info", "memory"]) == 0

        out = capsys.readouterr().out
        assert "region" in out
        assert "lookup" in out

    def test_update_reports_previous_version(self, tmp_path, capsys):
        """Test update re-pins an outdated version."""
        path = tmp_path / "providers.lock"
        save_lock(ProviderLock(providers={"memory": "0.0.1"}), path)

        assert main(["providers", "update", "memory", "--lockfile", str(path)]) == 0
        assert "from 0.0.1" in capsys.readouterr().out
        assert load_lock(path).get("memory") == MemoryProvider.version

    def test_install_unknown_provider(self, tmp_path):
        """Test installing an unknown provider exits with a usage error."""
        with pytest.raises(SystemExit):
            main(["providers", "install", "nope", "--lockfile", str(tmp_path / "p.lock")])


class TestRegistryFactories:
    """Tests for factory validation."""

    def test_factory_must_build_a_provider(self):
        """Test a factory returning something else is rejected."""
        registry = ProviderRegistry()
        registry.register("broken", lambda: object())

        with pytest.raises(ConfigurationError, match="not a ResourceProvider"):
            registry.create("broken")

    def test_unknown_provider_lists_available(self):
        """Test the error names the registered providers."""
        registry = ProviderRegistry()
        registry.register("mem", MemoryProvider)

        with pytest.raises(ConfigurationError, match=r"available: mem"):
            registry.create("nope")
        assert "mem" in registry


class TestVerifyCommand:
    """Tests for `tether providers verify`."""

    @pytest.fixture
    def reported(self, monkeypatch):
        versions = {"version": MemoryProvider.version}

        async def fake_fetch(url):
            return PluginInfo(version=versions["version"], name="memory")

        monkeypatch.setattr(providers_cli, "_fetch_plugin_info", fake_fetch)
        return versions

    def test_matching_version(self, tmp_path, reported):
        """Test a service reporting the pinned version passes."""
        path = tmp_path / "providers.lock"
        save_lock(ProviderLock(providers={"memory": MemoryProvider.version}), path)

        code = main(["providers", "verify", "memory", "--url", "http://p", "--lockfile", str(path)])

        assert code == ExitCode.SUCCESS

    def test_mismatch(self, tmp_path, reported):
        """Test a different reported version fails with a config error."""
        path = tmp_path / "providers.lock"
        save_lock(ProviderLock(providers={"memory": "0.0.1"}), path)

        code = main(["providers", "verify", "memory", "--url", "http://p", "--lockfile", str(path)])

        assert code == ExitCode.CONFIG_ERROR

    def test_unpinned(self, tmp_path, reported):
        """Test an unpinned provider is a warning."""
        code = main(
            ["providers", "verify", "memory", "--lockfile", str(tmp_path / "providers.lock")]
        )

        assert code == ExitCode.WARNING
