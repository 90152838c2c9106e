"""
Shared enums and small value types for the Reve API.

- AspectRatio: output aspect ratios
- ModelVersion: model versions (latest, fast, pinned)
- OutputFormat: response formats for raw calls
- Postprocess: upscale / background removal operations
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from reve.utils.exceptions import ValidationError


class AspectRatio(str, Enum):
    """Supported image aspect ratios."""

    RATIO_16_9 = "16:9"
    RATIO_9_16 = "9:16"
    RATIO_3_2 = "3:2"
    RATIO_2_3 = "2:3"
    RATIO_4_3 = "4:3"
    RATIO_3_4 = "3:4"
    RATIO_1_1 = "1:1"
    AUTO = "auto"

    def __str__(self) -> str:
        return self.value

    def dimensions(self) -> tuple[int, int]:
        """Width:height units for the ratio; (0, 0) for auto."""
        if self is AspectRatio.AUTO:
            return (0, 0)
        w, h = self.value.split(":")
        return (int(w), int(h))


class ModelVersion(str, Enum):
    """Model versions accepted by the API."""

    LATEST = "latest"
    LATEST_FAST = "latest-fast"
    CREATE_20250915 = "reve-create@20250915"
    EDIT_20250915 = "reve-edit@20250915"
    EDIT_FAST_20251030 = "reve-edit-fast@20251030"
    REMIX_20250915 = "reve-remix@20250915"
    REMIX_FAST_20251030 = "reve-remix-fast@20251030"

    def __str__(self) -> str:
        return self.value

    @property
    def is_fast(self) -> bool:
        return self in _FAST_VERSIONS


_FAST_VERSIONS = frozenset(
    {
        ModelVersion.LATEST_FAST,
        ModelVersion.EDIT_FAST_20251030,
        ModelVersion.REMIX_FAST_20251030,
    }
)


def is_fast_version(version: str) -> bool:
    """True for fast model variants; accepts enum members or plain strings."""
    try:
        return ModelVersion(version).is_fast
    except ValueError:
        return False


class OutputFormat(str, Enum):
    """Response formats. JSON returns base64; the image types return raw bytes."""

    JSON = "application/json"
    PNG = "image/png"
    JPEG = "image/jpeg"
    WEBP = "image/webp"

    def __str__(self) -> str:
        return self.value

    @property
    def content_type(self) -> str:
        return self.value

    @property
    def extension(self) -> str:
        return _EXTENSIONS.get(self, ".png")


_EXTENSIONS = {
    OutputFormat.PNG: ".png",
    OutputFormat.JPEG: ".jpeg",
    OutputFormat.WEBP: ".webp",
}

_SUFFIX_FORMATS = {
    ".png": OutputFormat.PNG,
    ".jpg": OutputFormat.JPEG,
    ".jpeg": OutputFormat.JPEG,
    ".webp": OutputFormat.WEBP,
}


def detect_format(path: str | Path) -> OutputFormat:
    """Output format from a file extension; unknown extensions map to PNG."""
    return _SUFFIX_FORMATS.get(Path(path).suffix.lower(), OutputFormat.PNG)


class ProcessType(str, Enum):
    """Postprocessing operations."""

    UPSCALE = "upscale"
    REMOVE_BACKGROUND = "remove_background"

    def __str__(self) -> str:
        return self.value


UPSCALE_FACTORS = (2, 3, 4)


@dataclass(frozen=True)
class Postprocess:
    """A postprocessing step applied to the generated image."""

    process: ProcessType
    upscale_factor: int = 0

    def validate(self) -> None:
        """
        Raises:
            ValidationError: If an upscale factor is not 2, 3 or 4
        """
        if self.process == ProcessType.UPSCALE and self.upscale_factor not in UPSCALE_FACTORS:
            raise ValidationError("upscale factor must be 2, 3, or 4", field="upscale_factor")

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"process": self.process.value}
        if self.upscale_factor:
            payload["upscale_factor"] = self.upscale_factor
        return payload


def upscale(factor: int) -> Postprocess:
    """Upscale the output by 2, 3 or 4."""
    return Postprocess(ProcessType.UPSCALE, factor)


def remove_background() -> Postprocess:
    """Remove the output's background."""
    return Postprocess(ProcessType.REMOVE_BACKGROUND)


def ref(index: int) -> str:
    """Reference tag for remix prompts, e.g. ref(0) -> '<img>0</img>'."""
    return f"<img>{index}</img>"
