"""Utilities for loading client-wide settings (retry, transport, logging)."""

import json
import os
from pathlib import Path
from typing import Optional, Tuple

from dap_client.config.models import ClientSettings

CLIENT_CONFIG_FILENAME = "dap-client.json"
CLIENT_CONFIG_ENV_VAR = "DAP_CLIENT_CONFIG_PATH"


def resolve_client_config_path(config_dir: Optional[Path] = None) -> Path:
    """
    Resolve the path to the client settings file.

    The environment variable wins; relative values are taken from the current
    directory. Otherwise the file is looked up in config_dir (default: cwd).
    """
    env_value = os.getenv(CLIENT_CONFIG_ENV_VAR)
    if env_value:
        candidate = Path(env_value)
        if not candidate.is_absolute():
            candidate = (Path.cwd() / candidate).resolve()
        return candidate
    base = Path(config_dir) if config_dir is not None else Path.cwd()
    return (base / CLIENT_CONFIG_FILENAME).resolve()


def load_client_settings(config_dir: Optional[Path] = None) -> Tuple[ClientSettings, Path]:
    """
    Load client settings, falling back to defaults when no file exists.

    Returns:
        (settings, resolved_path)

    Raises:
        ValueError: if the JSON is invalid or contains unknown keys.
    """
    path = resolve_client_config_path(config_dir)
    if not path.exists():
        return ClientSettings(), path
    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid client config JSON at {path}: {exc}") from exc
    return ClientSettings.from_dict(data), path
