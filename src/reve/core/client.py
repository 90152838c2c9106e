"""
Reve API client.

ReveClient wires a Config, an HTTP session (with proxy settings applied) and
an optional debug log sink into a Transport, and exposes the images service.
"""

from dataclasses import replace

import requests

from reve.core.config import Config, get_config
from reve.core.images import ImagesService
from reve.core.transport import Transport
from reve.logging_config import LogSink, get_logger

logger = get_logger(__name__)


class ReveClient:
    """Entry point for the Reve image API.

    Example:
        client = ReveClient("your-api-key")
        result = client.images.create(CreateParams(prompt="A mountain lake at dawn"))
        result.save_to("lake.png")

    The client holds no per-call state and may be shared across threads.
    """

    def __init__(
        self,
        api_key: str | None = None,
        *,
        config: Config | None = None,
        session: requests.Session | None = None,
        sink: LogSink | None = None,
    ) -> None:
        """
        Args:
            api_key: API key; overrides the one in config
            config: Client configuration; if None, a copy of the shared config from get_config()
            session: Optional pre-built requests.Session (proxy settings in config are then ignored)
            sink: Destination for the debug trace when config.debug is set (default: stderr)

        Raises:
            ConfigurationError: If the resulting configuration is invalid
        """
        cfg = replace(config or get_config())
        if api_key is not None:
            cfg.set_api_key(api_key)
        cfg.validate()
        self._config = cfg
        self._transport = Transport(cfg, session=session, sink=sink)
        self.images = ImagesService(self._transport)
        logger.debug(
            "Client ready base_url=%s max_retries=%d timeout=%s",
            cfg.base_url,
            cfg.max_retries,
            cfg.timeout,
        )

    @property
    def config(self) -> Config:
        """A copy of the client's configuration."""
        return replace(self._config)

    def close(self) -> None:
        """Release pooled HTTP connections."""
        self._transport.close()

    def __enter__(self) -> "ReveClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
