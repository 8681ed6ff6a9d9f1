"""
Service Configuration

Resolves where charts are written and how the service reaches the message
router. Values come from, in order of precedence:

1. Explicit overrides (command-line arguments)
2. Environment variables (a local .env file is loaded with python-dotenv)
3. The [charts] section of ~/.corky/config.toml
4. Built-in defaults
"""

import logging
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from .errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = 'tcp://127.0.0.1:6565'
DEFAULT_IDENTITY = 'charts'
DEFAULT_NOTIFY_TARGET = 'telegram'
DEFAULT_CONFIG_PATH = Path.home() / '.corky' / 'config.toml'


@dataclass(frozen=True)
class TransportConfig:
    """Address and identity the request server connects with."""
    endpoint: str = DEFAULT_ENDPOINT
    identity: str = DEFAULT_IDENTITY


@dataclass(frozen=True)
class ServiceConfig:
    """Everything the service needs at startup."""
    output_dir: Path
    transport: TransportConfig
    notify_endpoint: str = DEFAULT_ENDPOINT
    notify_target: str = DEFAULT_NOTIFY_TARGET
    notify_enabled: bool = True


def load_toml_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load the [charts] section of the TOML config file.

    Args:
        config_path: Path to config.toml (defaults to ~/.corky/config.toml)

    Returns:
        The [charts] table, or an empty dict when the file does not exist
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    if not path.exists():
        logger.debug(f"No config file at {path}")
        return {}

    try:
        with open(path, 'rb') as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in configuration file {path}: {e}")

    charts = data.get('charts')
    if charts is None:
        logger.warning(f"⚠️  [charts] section not found in {path}")
        return {}
    if not isinstance(charts, dict):
        raise ConfigError(f"[charts] in {path} must be a table")

    logger.info(f"✅ Loaded chart configuration from {path}")
    return charts


def load_service_config(output_dir: Optional[str] = None,
                        endpoint: Optional[str] = None,
                        identity: Optional[str] = None,
                        config_path: Optional[str] = None,
                        notify: Optional[bool] = None) -> ServiceConfig:
    """
    Build the service configuration from overrides, environment and TOML file.

    Raises:
        ConfigError: if no output directory is configured anywhere
    """
    load_dotenv()

    config_path = config_path or os.getenv('CHARTS_CONFIG_PATH')
    charts = load_toml_config(Path(config_path) if config_path else None)

    directory = output_dir or os.getenv('CHARTS_OUTPUT_DIR') or charts.get('directory')
    if not directory:
        raise ConfigError(
            "Output directory not configured: set CHARTS_OUTPUT_DIR or "
            "'directory' in the [charts] section of config.toml"
        )

    endpoint = endpoint or os.getenv('CHARTS_ENDPOINT') or charts.get('endpoint') or DEFAULT_ENDPOINT
    identity = identity or os.getenv('CHARTS_IDENTITY') or charts.get('identity') or DEFAULT_IDENTITY
    notify_endpoint = os.getenv('CHARTS_NOTIFY_ENDPOINT') or charts.get('notify_endpoint') or endpoint
    notify_target = os.getenv('CHARTS_NOTIFY_TARGET') or charts.get('notify_target') or DEFAULT_NOTIFY_TARGET

    if notify is None:
        notify = os.getenv('CHARTS_NOTIFY', 'true').lower() == 'true'

    return ServiceConfig(
        output_dir=Path(directory).expanduser(),
        transport=TransportConfig(endpoint=endpoint, identity=identity),
        notify_endpoint=notify_endpoint,
        notify_target=notify_target,
        notify_enabled=notify,
    )
