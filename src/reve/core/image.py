"""
Image input and result types.

ImageData wraps reference images sent to edit/remix. Result and RawResult are
what the images service returns for JSON and raw calls; both can be saved to
disk or opened as a PIL image.
"""

import base64
import binascii
import io
from dataclasses import dataclass
from pathlib import Path

from PIL import Image

from reve.logging_config import get_logger
from reve.utils.exceptions import ImageProcessingError

logger = get_logger(__name__)


def _decode_base64(encoded: str) -> bytes:
    """Decode standard base64, accepting a data URL prefix."""
    if encoded.startswith("data:") and "," in encoded:
        encoded = encoded.split(",", 1)[1]
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageProcessingError(f"Invalid base64 image data: {e}") from e


def _write_bytes(path: str | Path, data: bytes) -> None:
    target = Path(path)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
    except OSError as e:
        raise ImageProcessingError(f"Failed to save image: {e}", image_path=str(target)) from e
    logger.debug("Saved %d bytes to %s", len(data), target)


def _open_pil(data: bytes) -> Image.Image:
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
        return image
    except Exception as e:
        raise ImageProcessingError(f"Failed to decode image: {e}") from e


class ImageData:
    """An image held as raw bytes or base64 text; converts lazily between them."""

    def __init__(self, data: bytes = b"", encoded: str = "") -> None:
        self._data = data
        self._base64 = encoded

    @classmethod
    def from_bytes(cls, data: bytes) -> "ImageData":
        return cls(data=data)

    @classmethod
    def from_base64(cls, encoded: str) -> "ImageData":
        return cls(encoded=encoded)

    @classmethod
    def from_file(cls, path: str | Path) -> "ImageData":
        """
        Load an image file.

        Raises:
            ImageProcessingError: If the file cannot be read
        """
        try:
            return cls(data=Path(path).read_bytes())
        except OSError as e:
            raise ImageProcessingError(f"Failed to read image: {e}", image_path=str(path)) from e

    def to_bytes(self) -> bytes:
        """
        Raw image bytes.

        Raises:
            ImageProcessingError: If the image is empty or the base64 is invalid
        """
        if self._data:
            return self._data
        if self._base64:
            return _decode_base64(self._base64)
        raise ImageProcessingError("image is empty")

    def to_base64(self) -> str:
        if self._base64:
            return self._base64
        return base64.b64encode(self._data).decode("ascii")

    def save_to(self, path: str | Path) -> None:
        _write_bytes(path, self.to_bytes())

    @property
    def size(self) -> int:
        """Size in bytes (estimated from the base64 length when not decoded)."""
        if self._data:
            return len(self._data)
        return len(self._base64) * 3 // 4


@dataclass
class Result:
    """JSON-mode generation result. The image is base64 encoded."""

    image: str = ""
    version: str = ""
    content_violation: bool = False
    request_id: str = ""
    credits_used: int = 0
    credits_remaining: int = 0

    @classmethod
    def from_payload(cls, payload: dict) -> "Result":
        return cls(
            image=str(payload.get("image") or ""),
            version=str(payload.get("version") or ""),
            content_violation=bool(payload.get("content_violation", False)),
            request_id=str(payload.get("request_id") or ""),
            credits_used=int(payload.get("credits_used") or 0),
            credits_remaining=int(payload.get("credits_remaining") or 0),
        )

    def to_bytes(self) -> bytes:
        return _decode_base64(self.image)

    def save_to(self, path: str | Path) -> None:
        _write_bytes(path, self.to_bytes())

    def to_pil(self) -> Image.Image:
        return _open_pil(self.to_bytes())


@dataclass
class RawResult:
    """Raw-mode generation result: image bytes plus header metadata."""

    data: bytes
    content_type: str = ""
    version: str = ""
    content_violation: bool = False
    request_id: str = ""
    credits_used: int = 0
    credits_remaining: int = 0

    @property
    def size(self) -> int:
        return len(self.data)

    def save_to(self, path: str | Path) -> None:
        _write_bytes(path, self.data)

    def to_pil(self) -> Image.Image:
        return _open_pil(self.data)
