"""Runtime settings: defaults, YAML file, environment, then command-line overrides."""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional
from dataclasses import dataclass, fields

import yaml
from dotenv import load_dotenv

DEFAULT_CONFIG_PATH = Path.home() / ".kube-sherlock.yaml"

# (yaml section, yaml key) for each settings field
YAML_KEYS = {
    "host": ("server", "host"),
    "port": ("server", "port"),
    "api_key": ("model", "api_key"),
    "base_url": ("model", "base_url"),
    "model": ("model", "name"),
    "request_timeout": ("model", "timeout"),
    "kubeconfig_path": ("kubernetes", "config_path"),
    "kube_context": ("kubernetes", "context"),
}

ENV_KEYS = {
    "host": "SHERLOCK_HOST",
    "port": "SHERLOCK_PORT",
    "api_key": "OPENROUTER_API_KEY",
    "base_url": "OPENROUTER_BASE_URL",
    "model": "MODEL_SLUG",
    "kubeconfig_path": "SHERLOCK_KUBECONFIG",
    "kube_context": "KUBE_CONTEXT",
}


@dataclass
class Settings:
    host: str = "localhost"
    port: int = 8080
    api_key: str = ""
    base_url: str = "https://openrouter.ai/api/v1"
    model: str = "google/gemini-2.0-flash-001"
    request_timeout: Optional[float] = 60.0
    kubeconfig_path: Optional[str] = None
    kube_context: Optional[str] = None
    verbose: bool = False

    def with_overrides(self, **overrides: Any) -> "Settings":
        """Copy with every non-None override applied."""
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        values.update({k: v for k, v in overrides.items() if v is not None})
        return _coerce(Settings(**values))


def _coerce(settings: Settings) -> Settings:
    try:
        settings.port = int(settings.port)
        if settings.request_timeout is not None:
            settings.request_timeout = float(settings.request_timeout)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid setting: {e}") from None
    return settings


def load_yaml_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Read the YAML config file.

    An explicitly named file must exist; the default file is optional.
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    if not path.exists():
        if config_path:
            raise RuntimeError(f"Config file not found: {config_path}")
        return {}

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise RuntimeError(f"Config file {path} must contain a mapping")
    return data


def load_settings(config_path: Optional[str] = None, **overrides: Any) -> Settings:
    """Build settings from defaults, the YAML file, the environment and overrides."""
    load_dotenv()
    data = load_yaml_config(config_path)

    values: Dict[str, Any] = {}
    for name, (section, key) in YAML_KEYS.items():
        section_data = data.get(section) or {}
        if isinstance(section_data, dict) and section_data.get(key) not in (None, ""):
            values[name] = section_data[key]

    for name, env_var in ENV_KEYS.items():
        value = os.getenv(env_var)
        if value:
            values[name] = value

    return Settings().with_overrides(**values).with_overrides(**overrides)


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)
