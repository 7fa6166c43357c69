"""
User configuration
"""

import json
import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import List, Optional

from .exceptions import ConfigError
from .modelfile import DEFAULT_MODELFILE_NAME
from .registry import DEFAULT_REGISTRY_URL

logger = logging.getLogger(__name__)

CATALOG_ENV_VAR = "MODEL_OPTIMIZER_CATALOG"


def default_config_path() -> Path:
    return Path.home() / ".model-optimizer" / "config.json"


@dataclass
class Settings:
    """Settings read from ~/.model-optimizer/config.json"""
    catalog_file: Optional[str] = None
    assistant_command: str = "aider"
    assistant_args: List[str] = field(default_factory=list)
    ollama_binary: str = "ollama"
    modelfile_name: str = DEFAULT_MODELFILE_NAME
    registry_url: str = DEFAULT_REGISTRY_URL

    @property
    def catalog_path(self) -> Optional[Path]:
        return Path(self.catalog_file).expanduser() if self.catalog_file else None


def _check_type(name: str, value, expected) -> None:
    if name == "catalog_file" and value is None:
        return
    if name == "assistant_args":
        if not isinstance(value, list) or not all(isinstance(arg, str) for arg in value):
            raise ConfigError(f"{name} must be a list of strings")
        return
    if not isinstance(value, expected):
        raise ConfigError(f"{name} must be a string, got {type(value).__name__}")


def load_settings(config_file: Optional[Path] = None) -> Settings:
    """Load settings from the config file and environment.

    A missing file gives the defaults. The MODEL_OPTIMIZER_CATALOG
    environment variable overrides ``catalog_file``.
    """
    config_file = Path(config_file) if config_file else default_config_path()
    data = {}

    if config_file.exists():
        try:
            with open(config_file, 'r') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in {config_file}: {e}")
        except OSError as e:
            raise ConfigError(f"Cannot read {config_file}: {e}")
        if not isinstance(data, dict):
            raise ConfigError(f"{config_file} must contain a JSON object")
        logger.debug(f"Loaded configuration from {config_file}")

    known = {f.name for f in fields(Settings)}
    values = {}
    for key, value in data.items():
        if key not in known:
            logger.warning(f"Ignoring unknown configuration key: {key}")
            continue
        _check_type(key, value, str)
        values[key] = value

    env_catalog = os.environ.get(CATALOG_ENV_VAR)
    if env_catalog:
        values["catalog_file"] = env_catalog

    return Settings(**values)
