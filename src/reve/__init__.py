"""
reve - Python client for the Reve image generation API

Create, edit and remix images with typed parameters, local validation and a
retrying transport (exponential backoff with jitter on 429/5xx).

Library usage:
- Build a client with ReveClient(api_key) or ReveClient(config=Config(...)).
  Without arguments it uses the shared config (get_config(), read from REVE_* env).
- Pass cancel=CancelToken(timeout=...) to any call to bound or cancel its retries.
- Logging: control verbosity with set_verbosity(0|1|2) or configure_logging(verbose_level, quiet);
  REVE_VERBOSITY env (0/1/2) is read when the CLI runs. Config.debug additionally traces
  every request to the client's LogSink.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("reve")
except PackageNotFoundError:
    # Package is not installed (e.g., running from source in development)
    __version__ = "0.0.0.dev"

from reve.core.client import ReveClient
from reve.core.config import (
    DEFAULT_BASE_URL,
    Config,
    get_config,
    set_config,
)
from reve.core.cost import CostEstimate, estimate_create, estimate_edit, estimate_remix
from reve.core.image import ImageData, RawResult, Result
from reve.core.images import (
    BatchResult,
    ImagesService,
    error_count,
    errors,
    success_count,
    successful,
)
from reve.core.params import CreateParams, EditParams, RemixParams
from reve.core.transport import CancelToken
from reve.core.types import (
    AspectRatio,
    ModelVersion,
    OutputFormat,
    Postprocess,
    ProcessType,
    detect_format,
    ref,
    remove_background,
    upscale,
)
from reve.logging_config import (
    ConsoleSink,
    LoggingSink,
    LogSink,
    configure_logging,
    set_verbosity,
)
from reve.utils.exceptions import (
    APIError,
    CancellationError,
    ConfigurationError,
    DeadlineExceededError,
    ErrorCode,
    ImageProcessingError,
    NetworkError,
    RequestError,
    RequestTimeoutError,
    ReveError,
    ValidationError,
)

__all__ = [
    "APIError",
    "AspectRatio",
    "BatchResult",
    "CancelToken",
    "CancellationError",
    "Config",
    "ConfigurationError",
    "ConsoleSink",
    "CostEstimate",
    "CreateParams",
    "DEFAULT_BASE_URL",
    "DeadlineExceededError",
    "EditParams",
    "ErrorCode",
    "ImageData",
    "ImageProcessingError",
    "ImagesService",
    "LogSink",
    "LoggingSink",
    "ModelVersion",
    "NetworkError",
    "OutputFormat",
    "Postprocess",
    "ProcessType",
    "RawResult",
    "RemixParams",
    "RequestError",
    "RequestTimeoutError",
    "Result",
    "ReveClient",
    "ReveError",
    "ValidationError",
    "configure_logging",
    "detect_format",
    "error_count",
    "errors",
    "estimate_create",
    "estimate_edit",
    "estimate_remix",
    "get_config",
    "ref",
    "remove_background",
    "set_config",
    "set_verbosity",
    "success_count",
    "successful",
    "upscale",
]
