"""
HTTP session construction and proxy selection.

Proxies only choose the outbound connection path; the protocol on top is
unchanged. SOCKS5 support comes from the requests[socks] extra (PySocks).
"""

from urllib.parse import quote, urlparse

import requests
from requests.adapters import HTTPAdapter

from reve.core.config import Config
from reve.utils.exceptions import ConfigurationError

POOL_CONNECTIONS = 10
POOL_MAXSIZE = 100


def _new_session() -> requests.Session:
    session = requests.Session()
    adapter = HTTPAdapter(pool_connections=POOL_CONNECTIONS, pool_maxsize=POOL_MAXSIZE)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


def http_proxy_session(proxy_url: str) -> requests.Session:
    """Session that sends all traffic through an HTTP(S) forward proxy."""
    parsed = urlparse(proxy_url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigurationError(f"Invalid HTTP proxy URL: {proxy_url!r}")
    session = _new_session()
    session.trust_env = False
    session.proxies = {"http": proxy_url, "https": proxy_url}
    return session


def socks5_proxy_session(address: str, username: str = "", password: str = "") -> requests.Session:
    """Session that tunnels through a SOCKS5 proxy at host:port.

    DNS is resolved by the proxy (socks5h).
    """
    if not address or "://" in address:
        raise ConfigurationError(f"SOCKS5 proxy address must be host:port, got {address!r}")
    auth = ""
    if username:
        auth = f"{quote(username, safe='')}:{quote(password, safe='')}@"
    proxy_url = f"socks5h://{auth}{address}"
    session = _new_session()
    session.trust_env = False
    session.proxies = {"http": proxy_url, "https": proxy_url}
    return session


def env_proxy_session() -> requests.Session:
    """Session that honours HTTP_PROXY / HTTPS_PROXY / NO_PROXY from the environment."""
    session = _new_session()
    session.trust_env = True
    return session


def direct_session() -> requests.Session:
    """Session that ignores environment proxy settings."""
    session = _new_session()
    session.trust_env = False
    return session


def session_from_config(config: Config) -> requests.Session:
    """Pick the session type for a config's proxy settings."""
    if config.http_proxy and config.socks5_proxy:
        raise ConfigurationError("Configure either an HTTP proxy or a SOCKS5 proxy, not both.")
    if config.http_proxy:
        return http_proxy_session(config.http_proxy)
    if config.socks5_proxy:
        return socks5_proxy_session(
            config.socks5_proxy, config.socks5_username, config.socks5_password
        )
    if config.use_env_proxy:
        return env_proxy_session()
    return direct_session()
