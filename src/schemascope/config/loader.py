"""TOML configuration loader."""

import os
import tomllib
from pathlib import Path

from pydantic import ValidationError

from schemascope.config.models import AppConfig

DEFAULT_CONFIG_FILE = "schemascope.toml"

# Overrides [layers] dir when set
LAYERS_DIR_ENV = "SCHEMASCOPE_LAYERS_DIR"


def load_config(config_path: Path | str | None = None) -> AppConfig:
    """Load configuration from a TOML file.

    Args:
        config_path: Path to the config file.  When ``None``, reads
            ``schemascope.toml`` from the current working directory if it
            exists and falls back to defaults otherwise.

    Returns:
        AppConfig with layers, database, and logging settings.  The
        ``SCHEMASCOPE_LAYERS_DIR`` environment variable overrides the
        layers directory.

    Raises:
        FileNotFoundError: If an explicit *config_path* doesn't exist.
        ValueError: If the file is not valid TOML or has invalid settings.
    """
    if config_path is None:
        path = Path.cwd() / DEFAULT_CONFIG_FILE
        data = _read_toml(path) if path.exists() else {}
    else:
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        data = _read_toml(path)

    try:
        config = AppConfig.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid config in {path.name}: {e}") from e

    env_layers_dir = os.environ.get(LAYERS_DIR_ENV)
    if env_layers_dir:
        config.layers.dir = env_layers_dir

    return config


def _read_toml(path: Path) -> dict:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid TOML in {path.name}: {e}") from e
