"""Tests for configuration loading."""

import os
import tempfile
from pathlib import Path

from marginalia.adapters.fs_storage import FsStorage
from marginalia.adapters.rest_store import FallbackNoteStore
from marginalia.config import load_config
from marginalia.runtime import build_runtime


def test_load_config_defaults():
    """Test loading config with defaults when no file exists."""
    with tempfile.TemporaryDirectory() as tmpdir:
        orig_cwd = os.getcwd()
        try:
            os.chdir(tmpdir)
            config = load_config(environ={})
        finally:
            os.chdir(orig_cwd)

    assert config.vault.root == Path("./vault")
    assert config.api.enabled is False
    assert config.server.port == 8765
    assert config.backlinks.min_length == 3
    assert config.backlinks.batch_size == 50


def test_load_config_from_file():
    """Test loading config from a file."""
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "marginalia.toml"
        config_path.write_text("""
[vault]
root = "my-vault"
extra_exclusions = ["templates/"]

[api]
base_url = "http://127.0.0.1:27123"
token = "abc"
timeout = 3

[server]
host = "0.0.0.0"
port = 9000

[backlinks]
min_length = 5
exclude_patterns = ["daily/*"]
""")

        config = load_config(config_path=config_path, environ={})

        assert config.vault.root == Path("my-vault")
        assert config.vault.extra_exclusions == ["templates/"]
        assert config.api.base_url == "http://127.0.0.1:27123"
        assert config.api.token == "abc"
        assert config.api.timeout == 3.0
        assert config.api.enabled is True
        assert config.server.host == "0.0.0.0"
        assert config.server.port == 9000
        options = config.backlinks.to_options()
        assert options.min_length == 5
        assert options.exclude_patterns == ["daily/*"]
        assert options.dry_run is True


def test_load_config_search_vault():
    """A config file inside the vault is found when cwd has none."""
    with tempfile.TemporaryDirectory() as tmpdir:
        vault = Path(tmpdir) / "vault"
        vault.mkdir()
        (vault / "marginalia.toml").write_text("[server]\nport = 7000\n")
        orig_cwd = os.getcwd()
        try:
            os.chdir(tmpdir)
            config = load_config(vault_path=vault, environ={})
        finally:
            os.chdir(orig_cwd)

        assert config.server.port == 7000
        assert config.vault.root == vault


def test_environment_overrides_file():
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "marginalia.toml"
        config_path.write_text('[vault]\nroot = "from-file"\n[api]\ntoken = "file"\n')
        env = {
            "MARGINALIA_VAULT": "/env/vault",
            "MARGINALIA_API_URL": "http://env:1",
            "MARGINALIA_API_TOKEN": "env-token",
        }
        config = load_config(config_path=config_path, environ=env)

        assert config.vault.root == Path("/env/vault")
        assert config.api.base_url == "http://env:1"
        assert config.api.token == "env-token"

        explicit = load_config(config_path=config_path, vault_path=Path("cli"), environ=env)
        assert explicit.vault.root == Path("cli")


def test_build_runtime_file_system_only(monkeypatch):
    monkeypatch.delenv("MARGINALIA_API_URL", raising=False)
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "empty.toml"
        config_path.write_text("")
        rt = build_runtime(vault_path=Path(tmpdir), config_path=config_path)
        assert isinstance(rt.store, FsStorage)
        assert rt.vault.store is rt.store


def test_build_runtime_with_api_url(monkeypatch):
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "empty.toml"
        config_path.write_text("")
        rt = build_runtime(
            vault_path=Path(tmpdir), config_path=config_path, api_url="http://127.0.0.1:1"
        )
        assert isinstance(rt.store, FallbackNoteStore)
        assert rt.config.api.enabled is True
