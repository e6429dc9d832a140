"""Adapter configuration management.

Configuration is loaded from a single YAML file (adapter.yaml):
- Top-level keys override the AdapterConfig defaults
- The `octarine` section is passed verbatim to manifest templates
  (account, domain, control plane, registry credentials, release)

Resolution order for the config file:
1. $OCTARINE_ADAPTER_CONFIG environment variable
2. adapter.yaml in the repository root (dev workspace)
3. /usr/local/etc/octarine-adapter/adapter.yaml (FHS install)

When no file is found the built-in defaults are used.
"""

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_DATAPLANE_NAMESPACE = 'octarine-dataplane'
DEFAULT_EVENT_QUEUE_SIZE = 100
DEFAULT_POLL_INTERVAL = 0.5
DEFAULT_PORT = 10003
DEFAULT_BIND = '0.0.0.0'
DEFAULT_DEMO_MANIFEST = (
    'https://raw.githubusercontent.com/istio/istio/release-1.3/'
    'samples/bookinfo/platform/kube/bookinfo.yaml'
)
CONFIG_ENV_VAR = 'OCTARINE_ADAPTER_CONFIG'
FHS_CONFIG_PATH = Path('/usr/local/etc/octarine-adapter/adapter.yaml')


class ConfigError(Exception):
    """Configuration error."""


def get_base_dir() -> Path:
    """Get the repository root directory."""
    return Path(__file__).parent.parent  # src/ -> repo root


@dataclass
class AdapterConfig:
    """Settings for one adapter process.

    Attributes:
        dataplane_namespace: Namespace used by the install workflow when the
            request does not name one
        event_queue_size: Capacity of the event stream
        poll_interval: Seconds the event consumer waits before re-checking
            its stop signal
        templates_dir: Directory holding Jinja2 manifest templates
        dataplane_manifest: Template name or URL of the dataplane manifest
        support_manifest: Template name or URL of the support objects
        demo_manifest: Template name or URL of the Book Info manifest
        registry_secret: Secret copied into namespaces that run the demo app
        injection_label: Labels that opt a namespace into sidecar injection
        fetch_timeout: Timeout in seconds for remote manifest downloads
        bind: Address the HTTP transport binds to
        port: Port the HTTP transport listens on
        octarine: Free-form settings handed to the templates
    """
    dataplane_namespace: str = DEFAULT_DATAPLANE_NAMESPACE
    event_queue_size: int = DEFAULT_EVENT_QUEUE_SIZE
    poll_interval: float = DEFAULT_POLL_INTERVAL
    templates_dir: Path = field(default_factory=lambda: get_base_dir() / 'templates')
    dataplane_manifest: str = 'octarine_dataplane.yaml'
    support_manifest: str = 'octarine_support.yaml'
    demo_manifest: str = DEFAULT_DEMO_MANIFEST
    registry_secret: str = 'docker-registry-secret'
    injection_label: dict = field(default_factory=lambda: {'octarine-injection': 'enabled'})
    fetch_timeout: int = 30
    bind: str = DEFAULT_BIND
    port: int = DEFAULT_PORT
    octarine: dict = field(default_factory=dict)
    config_file: Optional[Path] = None

    def __post_init__(self):
        if isinstance(self.templates_dir, str):
            self.templates_dir = Path(self.templates_dir)
        if self.event_queue_size < 1:
            raise ConfigError(f"event_queue_size must be positive, got {self.event_queue_size}")
        if self.poll_interval <= 0:
            raise ConfigError(f"poll_interval must be positive, got {self.poll_interval}")

    @classmethod
    def from_dict(cls, data: dict, config_file: Optional[Path] = None) -> 'AdapterConfig':
        """Create AdapterConfig from a parsed YAML mapping.

        Unknown keys are ignored with a warning. A relative templates_dir is
        resolved against the directory of the config file.
        """
        known = {f.name for f in fields(cls)} - {'config_file'}
        values: dict[str, Any] = {}
        for key, value in data.items():
            if key not in known:
                logger.warning(f"Ignoring unknown config key: {key}")
                continue
            values[key] = value

        if 'templates_dir' in values:
            templates_dir = Path(values['templates_dir'])
            if not templates_dir.is_absolute() and config_file is not None:
                templates_dir = config_file.parent / templates_dir
            values['templates_dir'] = templates_dir

        for key in ('injection_label', 'octarine'):
            if key in values and not isinstance(values[key], dict):
                raise ConfigError(f"{key} must be a mapping")

        try:
            return cls(config_file=config_file, **values)
        except TypeError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e


def _parse_yaml(path: Path) -> dict:
    """Parse a YAML file and return contents."""
    try:
        with open(path, encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping")
    return data


def get_config_path() -> Optional[Path]:
    """Discover the adapter config file.

    Returns:
        Path to adapter.yaml, or None when no file exists

    Raises:
        ConfigError: If $OCTARINE_ADAPTER_CONFIG names a missing file
    """
    if env_path := os.environ.get(CONFIG_ENV_VAR):
        path = Path(env_path)
        if path.is_file():
            return path
        raise ConfigError(f"{CONFIG_ENV_VAR}={env_path} does not exist")

    local = get_base_dir() / 'adapter.yaml'
    if local.is_file():
        return local

    if FHS_CONFIG_PATH.is_file():
        return FHS_CONFIG_PATH

    return None


def load_config(path: Optional[Path] = None) -> AdapterConfig:
    """Load adapter configuration from ``path`` or the discovered file."""
    if path is None:
        path = get_config_path()
    if path is None:
        logger.debug("No adapter config found, using defaults")
        return AdapterConfig()

    path = Path(path)
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")
    logger.debug(f"Loading adapter config from {path}")
    return AdapterConfig.from_dict(_parse_yaml(path), config_file=path)
