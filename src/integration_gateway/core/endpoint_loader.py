"""
Integration endpoint file loading.

Reads endpoint definitions from YAML and validates them into EndpointConfig
models. Retry and circuit breaker settings are layered: settings-derived
defaults, then the file's ``defaults`` section, then each endpoint's overrides.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from integration_gateway.core.config import Settings, get_settings
from integration_gateway.core.models import EndpointConfig
from integration_gateway.errors.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def _merge(base: Dict[str, Any], override: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    merged = dict(base)
    merged.update(override or {})
    return merged


def load_endpoint_configs(
    config_path: Union[str, Path],
    settings: Optional[Settings] = None,
) -> List[EndpointConfig]:
    """
    Load endpoint configurations from a YAML file.

    Invalid endpoint entries are logged and skipped so that one bad entry doesn't
    take every integration down with it.

    Args:
        config_path: Path to the YAML endpoint file
        settings: Source of default retry/breaker policy, defaults to app settings

    Returns:
        Validated endpoint configurations, in file order

    Raises:
        ConfigurationError: If the file is not valid YAML or not a mapping
    """
    settings = settings or get_settings()
    config_path = Path(config_path)

    if not config_path.exists():
        logger.warning(f"Endpoint config file not found: {config_path}")
        return []

    logger.info(f"Loading integration endpoints from {config_path}")

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"YAML parsing error in {config_path}: {e}",
            details={"path": str(config_path)}
        ) from e

    if not config_data:
        logger.warning("Empty endpoint configuration file")
        return []
    if not isinstance(config_data, dict):
        raise ConfigurationError(
            f"Endpoint configuration in {config_path} must be a mapping",
            details={"path": str(config_path)}
        )

    defaults = config_data.get('defaults') or {}
    retry_defaults = _merge(settings.default_retry_config().model_dump(), defaults.get('retry'))
    breaker_defaults = _merge(settings.default_circuit_breaker_config().model_dump(), defaults.get('circuit_breaker'))

    endpoints: List[EndpointConfig] = []
    for endpoint_id, entry in (config_data.get('endpoints') or {}).items():
        try:
            entry = dict(entry or {})
            entry.pop('id', None)
            endpoint = EndpointConfig(
                id=str(endpoint_id),
                name=entry.pop('name', endpoint_id),
                service_type=entry.pop('service_type'),
                base_url=entry.pop('base_url'),
                timeout=entry.pop('timeout', settings.DEFAULT_TIMEOUT_SECONDS),
                retry=_merge(retry_defaults, entry.pop('retry', None)),
                circuit_breaker=_merge(breaker_defaults, entry.pop('circuit_breaker', None)),
                **entry
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Failed to load endpoint {endpoint_id}: {e}")
            continue

        endpoints.append(endpoint)
        logger.info(
            f"Loaded endpoint: {endpoint_id}",
            extra={
                "endpoint_id": endpoint_id,
                "service_type": endpoint.service_type.value,
                "max_attempts": endpoint.retry.max_attempts,
                "failure_threshold": endpoint.circuit_breaker.failure_threshold
            }
        )

    logger.info(f"Successfully loaded {len(endpoints)} integration endpoints")
    return endpoints
