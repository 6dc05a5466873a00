# -*- coding: utf-8 -*-
from pathlib import Path

LIBRARY_NAME = "analytics-python"

DIR_NAME = ".analytics"


def get_user_dir() -> Path:
    """
    Get the user directory for the analytics configuration.

    Returns:
        Path: The user directory path.
    """
    path = Path("~", DIR_NAME).expanduser()
    return path


USER_CONFIG_DIR = get_user_dir()

CONFIG_FILE_NAME = "config.ini"
CONFIG = USER_CONFIG_DIR / CONFIG_FILE_NAME

# Queue
DEFAULT_MAX_QUEUE_SIZE = 10000

# Dispatch
DEFAULT_MAX_BATCH_SIZE = 100
DEFAULT_FLUSH_INTERVAL = 1.0
DEFAULT_SHUTDOWN_TIMEOUT = 5.0
DEFAULT_MAX_RETRIES = 0

# Request
DEFAULT_URL = "api.segment.io"
DEFAULT_PATH = "/v1/import"
DEFAULT_USE_SSL = True
DEFAULT_TIMEOUT = 10.0
DEFAULT_HEADERS = {"Accept": "application/json"}

# Reserved context key injected into every record
CONTEXT_LIBRARY_KEY = "library"

# Environment variables
ENV_SECRET = "ANALYTICS_SECRET"
ENV_URL = "ANALYTICS_URL"
ENV_PATH = "ANALYTICS_PATH"
ENV_MAX_QUEUE_SIZE = "ANALYTICS_MAX_QUEUE_SIZE"
ENV_TLS_MODE = "ANALYTICS_TLS_MODE"
ENV_CA_BUNDLE = "ANALYTICS_CA_BUNDLE"

# Exit codes
EXIT_CODE_OK = 0
EXIT_CODE_DELIVERY_FAILED = 1
EXIT_CODE_INVALID_ARGUMENT = 2
EXIT_CODE_CONFIGURATION_ERROR = 3
