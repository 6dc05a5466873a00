import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from analytics.constants import (
    CONFIG,
    ENV_MAX_QUEUE_SIZE,
    ENV_PATH,
    ENV_SECRET,
    ENV_URL,
)
from analytics.errors import ConfigurationError
from .client import ClientConfig
from .ini import read_section
from .log_codes import CLIENT_RESOLVED, CLIENT_SECRET_MISSING

logger = logging.getLogger(__name__)

ANALYTICS_SECTION_NAME = "analytics"

# option name -> (environment variable, config.ini key)
RESOLVABLE_OPTIONS = {
    "secret": (ENV_SECRET, "secret"),
    "url": (ENV_URL, "url"),
    "path": (ENV_PATH, "path"),
    "max_queue_size": (ENV_MAX_QUEUE_SIZE, "max_queue_size"),
}


def _coerce(name: str, raw: Any, source: str) -> Any:
    if name != "max_queue_size" or isinstance(raw, int):
        return raw

    try:
        return int(raw)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(
            f"max_queue_size from {source} must be an integer, got {raw!r}."
        ) from e


def load_client_config(
    config_path: Optional[Path] = None,
    **options: Any,
) -> ClientConfig:
    """
    Resolve the client configuration.

    Resolution order for secret, url, path and max_queue_size (first
    non-None wins):
      1. Keyword arguments
      2. Environment variables (ANALYTICS_SECRET, ANALYTICS_URL, ...)
      3. config.ini [analytics] section
      4. Defaults

    Any other keyword option is passed through to ClientConfig.from_options.

    Raises:
        ConfigurationError: If a resolved value is invalid.
    """
    config_path = config_path or CONFIG
    ini_values = read_section(config_path, ANALYTICS_SECTION_NAME)
    resolved: Dict[str, Any] = {}
    sources: Dict[str, str] = {}

    for name, (env_name, ini_key) in RESOLVABLE_OPTIONS.items():
        candidates = [
            ("arguments", options.pop(name, None)),
            ("environment", os.getenv(env_name) or None),
            ("config", ini_values.get(ini_key)),
        ]
        for source, value in candidates:
            if value is not None:
                resolved[name] = _coerce(name, value, source)
                sources[name] = source
                break

    secret: Optional[str] = resolved.pop("secret", None)
    if secret is None:
        logger.warning(CLIENT_SECRET_MISSING, extra={"config_path": str(config_path)})

    config = ClientConfig.from_options(secret, **resolved, **options)
    logger.info(CLIENT_RESOLVED, extra={"sources": sources})
    return config
