from functools import lru_cache
from importlib.metadata import PackageNotFoundError, version
import logging
import platform
from typing import Any, Dict, Optional

from analytics.constants import LIBRARY_NAME

LOG = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_version() -> Optional[str]:
    """
    Get the version of the analytics package. Looked up once per process.

    Returns:
      Optional[str]: The installed version if found, otherwise None.
    """
    try:
        return version(LIBRARY_NAME)
    except PackageNotFoundError:
        LOG.debug("Unable to get %s version.", LIBRARY_NAME)
        return None


def get_library_context() -> Dict[str, Any]:
    """
    Get the library marker injected into every event context.

    Returns:
      Dict[str, Any]: The library name and version.
    """
    return {"name": LIBRARY_NAME, "version": get_version() or "unknown"}


def get_user_agent() -> str:
    """
    Get the user agent string for HTTP requests.

    Returns:
      str: The user agent string in the format: analytics-python/{version} ({os} {arch}; Python/{python_version})
    """
    library_version = get_version() or "unknown"
    os_name = platform.system()

    machine = platform.machine()
    if machine in ("x86_64", "AMD64"):
        arch = "x86_64"
    elif machine in ("arm64", "aarch64"):
        arch = "arm_64"
    elif machine == "i386":
        arch = "x86"
    else:
        arch = machine or "unknown"

    python_version = platform.python_version()

    return f"{LIBRARY_NAME}/{library_version} ({os_name} {arch}; Python/{python_version})"
