"""Runtime wiring helper for CLI and API entry points."""

import logging
from dataclasses import dataclass
from pathlib import Path

from .adapters.exclusions import load_exclusions
from .adapters.frontmatter import YamlFrontmatter
from .adapters.fs_storage import FsStorage
from .adapters.markdown_parser import MarkdownParser
from .adapters.rest_store import FallbackNoteStore, RestNoteStore
from .config import MarginaliaConfig, load_config
from .core.ports import NoteStore
from .core.vault import Vault

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    """Container for all wired components."""
    vault: Vault
    store: NoteStore
    config: MarginaliaConfig


def build_runtime(
    vault_path: Path | None = None,
    config_path: Path | None = None,
    api_url: str | None = None,
) -> Runtime:
    """Build and wire all components for a vault."""
    config = load_config(config_path=config_path, vault_path=vault_path)

    if api_url is not None:
        config.api.base_url = api_url
        config.api.enabled = True

    root = config.vault.root
    exclusions = load_exclusions(root, config.vault.extra_exclusions)
    store: NoteStore = FsStorage(root, exclusions)

    if config.api.enabled and config.api.base_url:
        logger.debug("Using note API at %s with file system fallback", config.api.base_url)
        api = RestNoteStore(
            config.api.base_url,
            token=config.api.token,
            timeout=config.api.timeout,
            exclusions=exclusions,
        )
        store = FallbackNoteStore(api, store)

    vault = Vault(store, MarkdownParser(), YamlFrontmatter())
    return Runtime(vault=vault, store=store, config=config)
