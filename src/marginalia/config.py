"""Configuration loader for marginalia.toml."""

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .core.model import BacklinkOptions

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # type: ignore

CONFIG_NAME = "marginalia.toml"


@dataclass
class VaultConfig:
    """Vault location and extra exclusions."""
    root: Path
    extra_exclusions: list[str] = field(default_factory=list)


@dataclass
class ApiConfig:
    """Remote note API (Obsidian Local REST API style)."""
    base_url: str | None = None
    token: str = ""
    timeout: float = 10.0
    enabled: bool = False


@dataclass
class ServerConfig:
    """Settings for `marginalia serve`."""
    host: str = "127.0.0.1"
    port: int = 8765


@dataclass
class BacklinkDefaults:
    """Defaults for backlink runs; call options override them."""
    exclude_patterns: list[str] = field(default_factory=list)
    min_length: int = 3
    case_sensitive: bool = False
    whole_words: bool = True
    batch_size: int = 50

    def to_options(self, dry_run: bool = True) -> BacklinkOptions:
        return BacklinkOptions(
            dry_run=dry_run,
            exclude_patterns=list(self.exclude_patterns),
            min_length=self.min_length,
            case_sensitive=self.case_sensitive,
            whole_words=self.whole_words,
            batch_size=self.batch_size,
        )


@dataclass
class MarginaliaConfig:
    """Complete marginalia configuration."""
    vault: VaultConfig
    api: ApiConfig
    server: ServerConfig
    backlinks: BacklinkDefaults


def load_config(
    config_path: Path | None = None,
    vault_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> MarginaliaConfig:
    """
    Load configuration from marginalia.toml, then apply environment overrides.

    Search order:
    1. config_path (if provided)
    2. cwd/marginalia.toml
    3. vault_path/marginalia.toml

    Environment variables MARGINALIA_VAULT, MARGINALIA_API_URL and
    MARGINALIA_API_TOKEN override the file. An explicit vault_path wins
    over both.
    """
    env = os.environ if environ is None else environ
    toml_data: dict[str, Any] = {}

    search_paths = []
    if config_path:
        search_paths.append(config_path)
    search_paths.append(Path.cwd() / CONFIG_NAME)
    if vault_path:
        search_paths.append(vault_path / CONFIG_NAME)

    for path in search_paths:
        if path.exists():
            with open(path, "rb") as f:
                toml_data = tomllib.load(f)
            break

    vault_data = toml_data.get("vault", {})
    if vault_path is not None:
        vault_root = vault_path
    elif env.get("MARGINALIA_VAULT"):
        vault_root = Path(env["MARGINALIA_VAULT"])
    else:
        vault_root = Path(vault_data.get("root", "./vault"))
    vault_config = VaultConfig(
        root=vault_root,
        extra_exclusions=list(vault_data.get("extra_exclusions", [])),
    )

    api_data = toml_data.get("api", {})
    base_url = env.get("MARGINALIA_API_URL") or api_data.get("base_url")
    api_config = ApiConfig(
        base_url=base_url,
        token=env.get("MARGINALIA_API_TOKEN") or api_data.get("token", ""),
        timeout=float(api_data.get("timeout", 10.0)),
        enabled=bool(api_data.get("enabled", base_url is not None)),
    )

    server_data = toml_data.get("server", {})
    server_config = ServerConfig(
        host=server_data.get("host", "127.0.0.1"),
        port=int(server_data.get("port", 8765)),
    )

    bl_data = toml_data.get("backlinks", {})
    backlink_config = BacklinkDefaults(
        exclude_patterns=list(bl_data.get("exclude_patterns", [])),
        min_length=bl_data.get("min_length", 3),
        case_sensitive=bl_data.get("case_sensitive", False),
        whole_words=bl_data.get("whole_words", True),
        batch_size=bl_data.get("batch_size", 50),
    )

    return MarginaliaConfig(
        vault=vault_config,
        api=api_config,
        server=server_config,
        backlinks=backlink_config,
    )
