from .client import ClientConfig
from .main import load_client_config
from .tls import TLSSettings, create_ssl_context, resolve_tls_settings

__all__ = [
    "ClientConfig",
    "load_client_config",
    "TLSSettings",
    "create_ssl_context",
    "resolve_tls_settings",
]
