"""Configuration loader for redirect-auth

Values are looked up in this order:
1. Environment variables
2. .env file (loaded into the environment, never overriding it)
3. Defaults passed by the caller
"""

import logging
import os
from pathlib import Path
from typing import Any, Callable, Optional

from dotenv import load_dotenv

from redirect_auth.errors import ConfigurationError

logger = logging.getLogger(__name__)


def _parse_bool(raw: str) -> bool:
    return raw.strip().lower() in ('true', '1', 'yes')


class ConfigLoader:
    """Reads typed settings and provider credentials from the environment"""

    def __init__(self, env_path: Optional[str] = None):
        """
        Args:
            env_path: Optional path to .env file.
                     Defaults to '.env' in the current directory.
        """
        self.env_path = Path(env_path) if env_path else Path(".env")
        self._load_env_file()

    def _load_env_file(self):
        if not self.env_path.exists():
            logger.debug(f"No .env file at {self.env_path}, reading the process environment only")
            return
        load_dotenv(dotenv_path=self.env_path)
        logger.debug(f"Loaded environment variables from {self.env_path}")

    def _raw(self, env_var: str) -> Optional[str]:
        return os.getenv(env_var)

    def get(self, env_var: str, default: Any) -> Any:
        """Get a value converted to the type of ``default``

        Unparseable numbers fall back to the default with a warning.

        Args:
            env_var: Environment variable name to check
            default: Value used when the variable is unset; its type selects
                the conversion (bool, int, float or str)

        Returns:
            The converted value or the default
        """
        raw = self._raw(env_var)
        if raw is None:
            return default

        parser: Callable[[str], Any]
        if isinstance(default, bool):
            parser = _parse_bool
        elif isinstance(default, int):
            parser = int
        elif isinstance(default, float):
            parser = float
        else:
            return raw

        try:
            return parser(raw)
        except ValueError:
            logger.warning(
                f"Failed to parse {env_var}={raw} as {type(default).__name__}, using default: {default}"
            )
            return default

    def get_required(self, env_var: str) -> str:
        """Get a value that must be present and non-empty

        Raises:
            ConfigurationError: If the value is missing or empty
        """
        value = self._raw(env_var)
        if not value:
            raise ConfigurationError(f"{env_var} needs to be defined")
        return value

    def get_optional(self, env_var: str) -> Optional[str]:
        """Get a value, treating empty values as unset"""
        return self._raw(env_var) or None

    def get_path(self, env_var: str) -> Optional[Path]:
        """Get a file path with ``~`` expanded, or None when unset"""
        value = self.get_optional(env_var)
        return Path(value).expanduser() if value else None

    def is_flag_enabled(self, env_var: str) -> bool:
        """Check a flag; only the value 'true' enables it"""
        value = self._raw(env_var)
        return value is not None and value.strip().lower() == "true"


_config_loader = None

def get_config_loader() -> ConfigLoader:
    """Get or create the global ConfigLoader instance"""
    global _config_loader
    if _config_loader is None:
        _config_loader = ConfigLoader()
    return _config_loader
