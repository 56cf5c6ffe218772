"""Client configuration loaded from the environment or a .env file."""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv
from loguru import logger

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass
class Settings:
    """Connection settings for PoloniexClient."""
    api_key: Optional[str] = None
    api_secret: Optional[str] = None
    timeout: float = 3  # Seconds per attempt
    json_nums: bool = False  # Decode JSON floats as Decimal

    def __post_init__(self):
        """Validate settings."""
        if self.timeout <= 0:
            raise ValueError(f"Timeout must be positive, got {self.timeout}")

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key and self.api_secret)

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "Settings":
        """Build settings from POLONIEX_* variables.

        Args:
            env_file: Optional .env path; real environment variables win

        Returns:
            Settings populated from the environment
        """
        if load_dotenv(dotenv_path=env_file, override=False):
            logger.debug(f"Loaded environment from {env_file or '.env'}")

        timeout = os.getenv("POLONIEX_TIMEOUT")
        json_nums = os.getenv("POLONIEX_JSON_NUMS", "")

        return cls(
            api_key=os.getenv("POLONIEX_API_KEY") or None,
            api_secret=os.getenv("POLONIEX_API_SECRET") or None,
            timeout=float(timeout) if timeout else 3,
            json_nums=json_nums.strip().lower() in _TRUE_VALUES,
        )
