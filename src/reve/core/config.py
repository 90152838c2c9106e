"""
Configuration management for reve.

This module handles the API key, endpoint, retry policy, timeouts, proxies
and debug settings used to build a client.
"""

import os
from dataclasses import dataclass, field, replace
from urllib.parse import urlparse

from dotenv import load_dotenv

from reve.logging_config import get_logger
from reve.utils.exceptions import ConfigurationError

logger = get_logger(__name__)

# Load environment variables from .env file
load_dotenv()

# Default configuration constants
SDK_VERSION = "1.0.0"
DEFAULT_BASE_URL = "https://api.reve.com"
DEFAULT_USER_AGENT = f"reve-python/{SDK_VERSION}"
DEFAULT_TIMEOUT = 120.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_MIN_WAIT = 1.0
DEFAULT_RETRY_MAX_WAIT = 30.0


def _bool_env(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in ("1", "true", "yes")


def _int_env(name: str, default: int) -> int:
    val = os.getenv(name)
    if val is None or val.strip() == "":
        return default
    try:
        return int(val)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {val!r}.") from e


def _float_env(name: str, default: float) -> float:
    val = os.getenv(name)
    if val is None or val.strip() == "":
        return default
    try:
        return float(val)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {val!r}.") from e


@dataclass
class Config:
    """Configuration for a reve client."""

    # API Configuration (api_key excluded from repr to avoid leaking secrets)
    api_key: str = field(default="", repr=False)
    base_url: str = DEFAULT_BASE_URL
    user_agent: str = DEFAULT_USER_AGENT

    # Per-request timeout (seconds)
    timeout: float = DEFAULT_TIMEOUT

    # Retry policy: max_retries=3 means up to 4 attempts in total
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_min_wait: float = DEFAULT_RETRY_MIN_WAIT
    retry_max_wait: float = DEFAULT_RETRY_MAX_WAIT

    # Debug: trace each request/response through the client's log sink
    debug: bool = False

    # Proxies. At most one of http_proxy / socks5_proxy; use_env_proxy honours HTTP(S)_PROXY.
    http_proxy: str = ""
    socks5_proxy: str = ""
    socks5_username: str = ""
    socks5_password: str = field(default="", repr=False)
    use_env_proxy: bool = True

    _validated: bool = field(default=False, repr=False)

    @classmethod
    def from_env(cls) -> "Config":
        """
        Create a Config instance from environment variables.

        Environment variables:
            REVE_API_KEY: API key (required to call the API)
            REVE_BASE_URL: Optional API base URL
            REVE_USER_AGENT: Optional User-Agent header value
            REVE_TIMEOUT: Optional per-request timeout in seconds
            REVE_MAX_RETRIES, REVE_RETRY_MIN_WAIT, REVE_RETRY_MAX_WAIT: Optional retry policy
            REVE_DEBUG: 1/true/yes to trace requests
            REVE_HTTP_PROXY: Optional HTTP(S) proxy URL
            REVE_SOCKS5_PROXY, REVE_SOCKS5_USERNAME, REVE_SOCKS5_PASSWORD: Optional SOCKS5 proxy

        Returns:
            Config instance populated from environment

        Raises:
            ConfigurationError: If a numeric variable cannot be parsed
        """
        return cls(
            api_key=os.getenv("REVE_API_KEY", ""),
            base_url=os.getenv("REVE_BASE_URL") or DEFAULT_BASE_URL,
            user_agent=os.getenv("REVE_USER_AGENT") or DEFAULT_USER_AGENT,
            timeout=_float_env("REVE_TIMEOUT", DEFAULT_TIMEOUT),
            max_retries=_int_env("REVE_MAX_RETRIES", DEFAULT_MAX_RETRIES),
            retry_min_wait=_float_env("REVE_RETRY_MIN_WAIT", DEFAULT_RETRY_MIN_WAIT),
            retry_max_wait=_float_env("REVE_RETRY_MAX_WAIT", DEFAULT_RETRY_MAX_WAIT),
            debug=_bool_env("REVE_DEBUG"),
            http_proxy=os.getenv("REVE_HTTP_PROXY", ""),
            socks5_proxy=os.getenv("REVE_SOCKS5_PROXY", ""),
            socks5_username=os.getenv("REVE_SOCKS5_USERNAME", ""),
            socks5_password=os.getenv("REVE_SOCKS5_PASSWORD", ""),
        )

    def validate(self) -> None:
        """
        Validate the configuration.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        logger.debug("Validating config")

        if not self.api_key:
            raise ConfigurationError(
                "Reve API key is required. "
                "Set REVE_API_KEY environment variable or provide it explicitly."
            )
        parsed = urlparse(self.base_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ConfigurationError(f"base_url must be an http(s) URL, got {self.base_url!r}.")
        if self.timeout <= 0:
            raise ConfigurationError(f"timeout must be positive, got {self.timeout}.")
        if self.max_retries < 0:
            raise ConfigurationError(f"max_retries must not be negative, got {self.max_retries}.")
        if self.retry_min_wait < 0:
            raise ConfigurationError(
                f"retry_min_wait must not be negative, got {self.retry_min_wait}."
            )
        if self.retry_max_wait < self.retry_min_wait:
            raise ConfigurationError(
                f"retry_max_wait ({self.retry_max_wait}) must not be less than "
                f"retry_min_wait ({self.retry_min_wait})."
            )
        if self.http_proxy and self.socks5_proxy:
            raise ConfigurationError("Configure either an HTTP proxy or a SOCKS5 proxy, not both.")

        self._validated = True

    def is_valid(self) -> bool:
        """
        Check if configuration has been validated.

        Returns:
            True if validate() has been called successfully
        """
        return self._validated

    def set_api_key(self, api_key: str) -> None:
        """
        Set the API key.

        Raises:
            ConfigurationError: If API key is empty
        """
        if not api_key:
            raise ConfigurationError("API key cannot be empty")
        self.api_key = api_key
        self._validated = False  # Need to revalidate

    def with_retry(self, max_retries: int, min_wait: float, max_wait: float) -> "Config":
        """Return a copy with a different retry policy."""
        return replace(
            self,
            max_retries=max_retries,
            retry_min_wait=min_wait,
            retry_max_wait=max_wait,
            _validated=False,
        )

    def without_retry(self) -> "Config":
        """Return a copy that performs exactly one attempt per call."""
        return replace(self, max_retries=0, _validated=False)


# Global configuration instance
_global_config: Config | None = None


def get_config() -> Config:
    """
    Get the global configuration instance.

    Returns:
        The global Config instance
    """
    global _global_config
    if _global_config is None:
        _global_config = Config.from_env()
    return _global_config


def set_config(config: Config) -> None:
    """
    Set the global configuration instance.

    Args:
        config: The Config instance to use globally
    """
    global _global_config
    _global_config = config
