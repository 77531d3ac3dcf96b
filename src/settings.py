"""
Application settings management.
Uses python-dotenv to load environment variables from .env file.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env file from project root
env_path = Path(__file__).parent.parent / '.env'
load_dotenv(dotenv_path=env_path)

# Settings are read once per process
_ENV_CACHE = {}


def get_setting(key: str, default=None):
    """
    Read a setting from the environment (after .env is loaded).

    Example:
        >>> get_setting('RANK_DB_PATH', 'data/rankings.db')
        'data/rankings.db'
    """
    if key not in _ENV_CACHE:
        _ENV_CACHE[key] = os.getenv(key, default)
    return _ENV_CACHE[key]


def get_bool_setting(key: str, default: str = 'False') -> bool:
    """Read a setting as a boolean ('true', '1' and 'yes' are truthy)."""
    return str(get_setting(key, default)).lower() in ('true', '1', 'yes')


# Debug mode (echo SQL statements)
DEBUG = get_bool_setting('DEBUG', 'False')

# Database paths
RANK_DB_PATH = get_setting('RANK_DB_PATH', 'data/rankings.db')
LOGS_DB_PATH = get_setting('LOGS_DB_PATH', 'data/rank_logs.db')

# Operation logging (cache rebuilds, cleanup runs, quick value updates)
RANK_OPERATION_LOGGING = get_bool_setting('RANK_OPERATION_LOGGING', 'True')
