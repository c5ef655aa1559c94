"""Constants used in the project."""

import json
import logging
import os
from enum import Enum
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    SECURITY_ERROR = 3
    STATE_ERROR = 4


class Platform(Enum):
    """Launcher conventions for exposing package binaries.

    Args:
        Enum (string): Target platform for entry-point links.
    """

    POSIX = "posix"
    WINDOWS = "windows"
    AUTO = "auto"

    @classmethod
    def resolve(cls, value: Any) -> "Platform":
        """Return a concrete platform, resolving AUTO from the running host."""
        platform = value if isinstance(value, Platform) else cls(str(value).lower())
        if platform is cls.AUTO:
            return cls.WINDOWS if os.name == "nt" else cls.POSIX
        return platform


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    USER_AGENT = "pearlink/0.1"
    DOWNLOAD_CHUNK_SIZE = 64 * 1024

    # PEAR channel protocol
    PACKAGE_PREFIX = "pear"
    CHANNEL_FILE = "channel.xml"
    MANIFEST_FILE = "packages.json"
    CATEGORIES_PATH = "/rest/c/categories.xml"
    ALL_RELEASES_FILE = "allreleases2.xml"
    DIST_TYPE = "pear"
    DEFAULT_AUTOLOAD = {"classmap": [""]}

    # Installation
    DEFAULT_PACKAGE_TYPE = "library"
    STORE_ROOT = "vendor"
    BIN_ROOT = "vendor/bin"
    INSTALLED_FILE = "installed.json"
    PLATFORM = Platform.AUTO
    DEFAULT_INTERPRETER = "php"
    EXECUTABLE_MODE = 0o755

    CONFIG_ENV = "PEARLINK_CONFIG"
    LOG_LEVEL_ENV = "PEARLINK_LOG_LEVEL"
    DEFAULT_CONFIG_PATHS = [
        "pearlink.yml",
        "pearlink.yaml",
        os.path.join("~", ".config", "pearlink", "pearlink.yml"),
    ]


def _load_yaml_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load the user configuration file.

    Looks at ``path``, then ``$PEARLINK_CONFIG``, then the default locations.
    JSON is accepted when the file name ends in ``.json``.

    Returns:
        dict: Parsed configuration, empty when no file is found.
    """
    candidates = [path] if path else []
    env_path = os.environ.get(Constants.CONFIG_ENV)
    if env_path:
        candidates.append(env_path)
    candidates.extend(Constants.DEFAULT_CONFIG_PATHS)

    for candidate in candidates:
        expanded = os.path.expanduser(candidate)
        if not os.path.isfile(expanded):
            continue
        with open(expanded, "r", encoding="utf-8") as fh:
            if expanded.lower().endswith(".json"):
                data = json.load(fh)
            else:
                import yaml  # pylint: disable=import-outside-toplevel

                data = yaml.safe_load(fh)
        logger.debug("Loaded configuration from %s", expanded)
        return data if isinstance(data, dict) else {}
    return {}
