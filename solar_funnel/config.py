"""Configuration helpers for the solar funnel."""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from .gateway.blob_host import DEFAULT_DOWNLOAD_PREFIX, DEFAULT_UPLOAD_URL, DEFAULT_VIEW_PREFIX
from .gateway.record_store import DEFAULT_ENDPOINT_URL, DEFAULT_TIMEOUT
from .gateway.service import DEFAULT_ATTACHMENT_FIELD, DEFAULT_ERROR_CODES

LOGGER = logging.getLogger(__name__)

CONFIG_ENV_VAR = "SOLAR_FUNNEL_CONFIG"
API_KEY_ENV_VAR = "SOLAR_FUNNEL_API_KEY"
BASE_ID_ENV_VAR = "SOLAR_FUNNEL_BASE_ID"
TABLE_ENV_VAR = "SOLAR_FUNNEL_TABLE"
MAPS_KEY_ENV_VAR = "GOOGLE_MAPS_API_KEY"


class ConfigurationError(RuntimeError):
    """Raised when configuration files are missing or malformed."""


_SUPPORTED_EXTENSIONS = {".json", ".yaml", ".yml"}


def load_configuration(path: str | Path) -> Dict[str, Any]:
    """Load configuration data from a JSON or YAML file."""

    file_path = Path(path)
    if not file_path.exists():
        raise ConfigurationError(f"Configuration file '{file_path}' was not found")

    if file_path.suffix.lower() not in _SUPPORTED_EXTENSIONS:
        raise ConfigurationError(
            f"Unsupported configuration format '{file_path.suffix}'. Supported extensions: {sorted(_SUPPORTED_EXTENSIONS)}"
        )

    text = file_path.read_text(encoding="utf-8")
    try:
        if file_path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (ValueError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Configuration file '{file_path}' could not be parsed: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file '{file_path}' must contain a mapping")
    return data


@dataclass
class RecordStoreSettings:
    api_key: Optional[str] = field(default=None, repr=False)
    base_id: Optional[str] = None
    table_name: str = "Leads"
    endpoint_url: str = DEFAULT_ENDPOINT_URL
    attachment_field: str = DEFAULT_ATTACHMENT_FIELD


@dataclass
class BlobHostSettings:
    upload_url: str = DEFAULT_UPLOAD_URL
    view_prefix: str = DEFAULT_VIEW_PREFIX
    download_prefix: str = DEFAULT_DOWNLOAD_PREFIX


@dataclass
class AddressLookupSettings:
    api_key: Optional[str] = field(default=None, repr=False)
    country: str = "au"
    addresses: List[str] = field(default_factory=list)


@dataclass
class FunnelSettings:
    """Everything needed to wire a funnel session to its collaborators."""

    record_store: RecordStoreSettings = field(default_factory=RecordStoreSettings)
    blob_host: BlobHostSettings = field(default_factory=BlobHostSettings)
    address_lookup: AddressLookupSettings = field(default_factory=AddressLookupSettings)
    error_codes: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_ERROR_CODES))
    disqualify_delay_seconds: float = 0.5
    request_timeout: float = DEFAULT_TIMEOUT

    def require_record_store(self) -> RecordStoreSettings:
        store = self.record_store
        missing = [
            name
            for name, value in (("api_key", store.api_key), ("base_id", store.base_id), ("table_name", store.table_name))
            if not value
        ]
        if missing:
            raise ConfigurationError(
                f"Record store configuration is incomplete (missing: {', '.join(missing)}). "
                f"Set {API_KEY_ENV_VAR} and {BASE_ID_ENV_VAR} or add them to the configuration file."
            )
        return store


def _section(config: Mapping[str, Any], name: str) -> Dict[str, Any]:
    value = config.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"Configuration section '{name}' must be a mapping")
    return value


def settings_from_mapping(config: Mapping[str, Any]) -> FunnelSettings:
    """Build :class:`FunnelSettings` from a parsed configuration file."""

    store = _section(config, "record_store")
    blob = _section(config, "blob_host")
    lookup = _section(config, "address_lookup")
    funnel = _section(config, "funnel")

    settings = FunnelSettings()
    for target, values in (
        (settings.record_store, store),
        (settings.blob_host, blob),
        (settings.address_lookup, lookup),
    ):
        for key, value in values.items():
            if not hasattr(target, key):
                LOGGER.warning("Ignoring unknown configuration key '%s'", key)
                continue
            setattr(target, key, value)

    if "error_codes" in config:
        codes = config.get("error_codes") or {}
        if not isinstance(codes, dict):
            raise ConfigurationError("Configuration section 'error_codes' must be a mapping")
        settings.error_codes = {str(code): str(message) for code, message in codes.items()}

    try:
        if "disqualify_delay_seconds" in funnel:
            settings.disqualify_delay_seconds = float(funnel["disqualify_delay_seconds"])
        if "request_timeout" in funnel:
            settings.request_timeout = float(funnel["request_timeout"])
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid funnel timing value: {exc}") from exc
    return settings


def load_settings(
    path: str | Path | None = None,
    environ: Optional[Mapping[str, str]] = None,
) -> FunnelSettings:
    """Load settings from ``path`` (or ``$SOLAR_FUNNEL_CONFIG``) and overlay secrets from the environment."""

    env = os.environ if environ is None else environ
    config_path = path or env.get(CONFIG_ENV_VAR)
    config: Dict[str, Any] = load_configuration(config_path) if config_path else {}
    settings = settings_from_mapping(config)

    overrides = {
        API_KEY_ENV_VAR: (settings.record_store, "api_key"),
        BASE_ID_ENV_VAR: (settings.record_store, "base_id"),
        TABLE_ENV_VAR: (settings.record_store, "table_name"),
        MAPS_KEY_ENV_VAR: (settings.address_lookup, "api_key"),
    }
    for variable, (target, attribute) in overrides.items():
        value = (env.get(variable) or "").strip()
        if value:
            LOGGER.debug("Using %s from the environment", variable)
            setattr(target, attribute, value)
    return settings
