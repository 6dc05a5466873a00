import configparser
from pathlib import Path
from typing import Dict


def read_section(config_path: Path, section: str) -> Dict[str, str]:
    """
    Read one section of the user's config.ini. Missing files, missing
    sections and blank values all read as absent.
    """
    config = configparser.ConfigParser()
    config_files = config.read([config_path])

    if not config_files or not config.has_section(section):
        return {}

    return {
        key: value.strip()
        for key, value in config[section].items()
        if value and value.strip()
    }
