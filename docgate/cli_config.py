"""Configuration loading helpers for CLI entrypoints."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

# Configuration directory for global CLI usage
CONFIG_DIR = Path.home() / ".config" / "docgate"
CONFIG_ENV_FILE = CONFIG_DIR / ".env"


def load_config(
    *,
    config_dir: Path,
    config_env_file: Path,
    cwd: Path,
    load_env: Callable[[Path], bool],
    copy_file: Callable[[Path, Path], str],
    example_file: Optional[Path] = None,
) -> None:
    """Load .env configuration with fallback to user config directory.

    Search order:
    1. .env in current working directory
    2. ``config_env_file`` (normally ~/.config/docgate/.env)

    If neither exists and ``example_file`` (by default the .env.example
    shipped next to the package) is present, it is copied to
    ``config_env_file`` as a starting point.
    """
    local_env = cwd / ".env"
    if local_env.is_file():
        load_env(local_env)
        return

    if config_env_file.is_file():
        load_env(config_env_file)
        return

    if example_file is None:
        example_file = Path(__file__).parent.parent / ".env.example"
    if not example_file.is_file():
        return

    try:
        config_dir.mkdir(parents=True, exist_ok=True)
        copy_file(example_file, config_env_file)
    except OSError as exc:
        logging.debug("Could not create %s: %s", config_env_file, exc)
        return

    logging.info(
        "Created config file at %s from .env.example. "
        "Edit it to set EXTERNAL_DOC_HOST_ALLOWLIST / EXTERNAL_DOC_HOST_BLOCKLIST.",
        config_env_file,
    )
    load_env(config_env_file)
