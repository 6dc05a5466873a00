import logging
import os
import ssl
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import certifi

from analytics.constants import CONFIG, ENV_CA_BUNDLE, ENV_TLS_MODE
from analytics.errors import ConfigurationError
from .ini import read_section
from .log_codes import TLS_RESOLVED, TLS_SYSTEM_STORE_RESOLVED

logger = logging.getLogger(__name__)

TLS_SECTION_NAME = "tls"
TLS_MODES = ("default", "system", "bundle")


@dataclass(frozen=True)
class TLSSettings:
    """
    How the collection endpoint's certificate is verified.

    Args:
        mode: 'default' (certifi bundle), 'system' (OS trust store) or
            'bundle' (the file at ``ca_bundle``).
        ca_bundle: CA bundle file, only set in 'bundle' mode.
        source: Where the settings came from: arguments, environment,
            config or default.
    """

    mode: str = "default"
    ca_bundle: Optional[Path] = None
    source: str = "default"

    def create_context(self) -> ssl.SSLContext:
        """
        Raises:
            ConfigurationError: If the CA bundle cannot be loaded.
        """
        if self.mode == "system":
            return _system_context()

        cafile = str(self.ca_bundle) if self.mode == "bundle" else certifi.where()
        try:
            return ssl.create_default_context(cafile=cafile)
        except OSError as e:
            raise ConfigurationError(f"Unable to load CA bundle {cafile}: {e}") from e


def _system_context() -> ssl.SSLContext:
    # truststore is an optional extra
    try:
        import truststore  # type: ignore[import-untyped]
    except ImportError:
        logger.debug(TLS_SYSTEM_STORE_RESOLVED, extra={"method": "ssl"})
        return ssl.create_default_context()

    logger.debug(TLS_SYSTEM_STORE_RESOLVED, extra={"method": "truststore"})
    return truststore.SSLContext(ssl.PROTOCOL_TLS_CLIENT)


def _parse(
    raw_mode: Optional[str], raw_bundle: Optional[str], source: str
) -> Optional[TLSSettings]:
    """
    Validate one source. A bundle given without a mode implies 'bundle';
    a source with neither is skipped.
    """
    if not raw_mode and not raw_bundle:
        return None

    mode = (raw_mode or "bundle").strip().lower()
    if mode not in TLS_MODES:
        raise ConfigurationError(
            f"Invalid TLS mode {raw_mode!r} from {source}. "
            f"Valid options: {', '.join(TLS_MODES)}."
        )

    if mode != "bundle":
        if raw_bundle:
            raise ConfigurationError(
                f"A CA bundle from {source} requires TLS mode 'bundle', not {mode!r}."
            )
        return TLSSettings(mode=mode, source=source)

    if not raw_bundle:
        raise ConfigurationError(f"TLS mode 'bundle' from {source} needs a CA bundle path.")

    path = Path(raw_bundle).expanduser()
    if not path.is_file() or not os.access(path, os.R_OK):
        raise ConfigurationError(f"CA bundle from {source} is not a readable file: {path}")

    return TLSSettings(mode=mode, ca_bundle=path.resolve(), source=source)


def resolve_tls_settings(
    mode: Optional[str] = None,
    ca_bundle: Optional[str] = None,
    config_path: Optional[Path] = None,
) -> TLSSettings:
    """
    Pick the TLS settings for a transport. The first source that sets a mode
    or a bundle wins:
      1. ``tls_mode`` / ``ca_bundle`` transport options
      2. ANALYTICS_TLS_MODE / ANALYTICS_CA_BUNDLE
      3. [tls] section of config.ini
      4. certifi bundle

    Raises:
        ConfigurationError: If the winning source is invalid.
    """
    ini_values = read_section(config_path or CONFIG, TLS_SECTION_NAME)
    sources = (
        ("arguments", mode, ca_bundle),
        ("environment", os.getenv(ENV_TLS_MODE), os.getenv(ENV_CA_BUNDLE)),
        ("config", ini_values.get("mode"), ini_values.get("ca_bundle")),
    )

    settings = TLSSettings()
    for source, raw_mode, raw_bundle in sources:
        parsed = _parse(raw_mode, raw_bundle, source)
        if parsed is not None:
            settings = parsed
            break

    logger.info(
        TLS_RESOLVED,
        extra={"tls_mode": settings.mode, "source": settings.source,
               "ca_bundle": str(settings.ca_bundle) if settings.ca_bundle else None},
    )
    return settings


def create_ssl_context(
    mode: Optional[str] = None,
    ca_bundle: Optional[str] = None,
    config_path: Optional[Path] = None,
) -> ssl.SSLContext:
    """
    Build the verification context passed to httpx.

    Raises:
        ConfigurationError: If the TLS settings are invalid or the bundle
            cannot be loaded.
    """
    return resolve_tls_settings(mode, ca_bundle, config_path).create_context()
