"""Settings resolution for tasked.

## Resolution Order

Database file:

1. Explicit ``--database-file`` option
2. ``TASKED_DATABASE_FILE`` environment variable
3. ``database_file`` in the user config file
4. ``~/.tasked/tasks.db`` (``tasks.db`` in the working directory when no
   home directory can be determined)

Log level and format follow the same order without the explicit option:
``TASKED_LOG_LEVEL`` / ``TASKED_LOG_FORMAT``, then ``log_level`` /
``log_format`` in the config file, then ``WARNING`` / ``console``.

### config.json Structure

```json
{
  "database_file": "~/work/plans.db",
  "log_level": "INFO",
  "log_format": "json"
}
```
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from platformdirs import user_config_dir

# User-level config location
USER_CONFIG_DIR = Path(user_config_dir("tasked"))
USER_CONFIG_FILE = USER_CONFIG_DIR / "config.json"

DATABASE_FILE_ENV = "TASKED_DATABASE_FILE"
LOG_LEVEL_ENV = "TASKED_LOG_LEVEL"
LOG_FORMAT_ENV = "TASKED_LOG_FORMAT"

DEFAULT_DIR_NAME = ".tasked"
DEFAULT_DB_NAME = "tasks.db"


@dataclass
class Settings:
    """Resolved runtime settings."""

    database_file: Path
    log_level: str = "WARNING"
    log_format: str = "console"  # "console" or "json"
    config_path: Optional[Path] = None  # Config file the values came from, if any


def default_database_file() -> Path:
    """Get the default database location (~/.tasked/tasks.db)."""
    try:
        home = Path.home()
    except RuntimeError:
        return Path(DEFAULT_DB_NAME)
    return home / DEFAULT_DIR_NAME / DEFAULT_DB_NAME


def load_user_config(config_path: Optional[Path] = None) -> Optional[dict]:
    """Load the user-level config file.

    Args:
        config_path: Override for the config file location

    Returns:
        Parsed config, or None if the file does not exist
    """
    path = config_path or USER_CONFIG_FILE
    if path.exists():
        with open(path) as f:
            return json.load(f) or {}
    return None


def resolve_settings(
    database_file: Optional[Path] = None,
    config_path: Optional[Path] = None,
) -> Settings:
    """Resolve settings from arguments, environment and the config file.

    Args:
        database_file: Explicit database path (highest priority)
        config_path: Override for the user config file location

    Returns:
        Settings with every field populated
    """
    user_config = load_user_config(config_path) or {}
    source = (config_path or USER_CONFIG_FILE) if user_config else None

    if database_file:
        db_path = Path(database_file)
    elif os.environ.get(DATABASE_FILE_ENV):
        db_path = Path(os.environ[DATABASE_FILE_ENV])
    elif user_config.get("database_file"):
        db_path = Path(user_config["database_file"])
    else:
        db_path = default_database_file()

    log_level = (
        os.environ.get(LOG_LEVEL_ENV)
        or user_config.get("log_level")
        or "WARNING"
    )
    log_format = (
        os.environ.get(LOG_FORMAT_ENV)
        or user_config.get("log_format")
        or "console"
    )

    return Settings(
        database_file=db_path.expanduser(),
        log_level=log_level.upper(),
        log_format=log_format.lower(),
        config_path=source,
    )
