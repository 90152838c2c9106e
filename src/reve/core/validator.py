"""
Request validation for reve.

Pre-flight checks run by the params classes before a request is built. The
transport assumes requests are valid and does not check again.
"""

from collections.abc import Sequence

from reve.core.types import UPSCALE_FACTORS, AspectRatio
from reve.utils.exceptions import ValidationError

MAX_PROMPT_LENGTH = 2560
MAX_REFERENCE_IMAGES = 6
MIN_SCALING = 1.0
MAX_SCALING = 15.0

_ASPECT_RATIOS = frozenset(r.value for r in AspectRatio)


def validate_prompt(prompt: str) -> None:
    """
    Validate a generation prompt.

    Raises:
        ValidationError: If prompt is empty or longer than MAX_PROMPT_LENGTH
    """
    if not prompt:
        raise ValidationError("prompt cannot be empty", field="prompt")
    if len(prompt) > MAX_PROMPT_LENGTH:
        raise ValidationError(f"prompt exceeds {MAX_PROMPT_LENGTH} characters", field="prompt")


def validate_instruction(instruction: str) -> None:
    """
    Validate an edit instruction.

    Raises:
        ValidationError: If instruction is empty or longer than MAX_PROMPT_LENGTH
    """
    if not instruction:
        raise ValidationError("edit instruction cannot be empty", field="edit_instruction")
    if len(instruction) > MAX_PROMPT_LENGTH:
        raise ValidationError(
            f"prompt exceeds {MAX_PROMPT_LENGTH} characters", field="edit_instruction"
        )


def validate_reference_image(image: str) -> None:
    if not image:
        raise ValidationError("reference image cannot be empty", field="reference_image")


def validate_reference_images(images: Sequence[str]) -> None:
    """
    Validate the reference images for a remix.

    Raises:
        ValidationError: If there are none or more than MAX_REFERENCE_IMAGES
    """
    if len(images) == 0:
        raise ValidationError("at least one reference image required", field="reference_images")
    if len(images) > MAX_REFERENCE_IMAGES:
        raise ValidationError(
            f"maximum {MAX_REFERENCE_IMAGES} reference images allowed", field="reference_images"
        )


def validate_aspect_ratio(ratio: str) -> None:
    """Empty means 'let the API decide' and is accepted."""
    if not ratio:
        return
    if str(ratio) not in _ASPECT_RATIOS:
        raise ValidationError(f"invalid aspect ratio: {ratio!r}", field="aspect_ratio")


def validate_upscale_factor(factor: int) -> None:
    if factor not in UPSCALE_FACTORS:
        raise ValidationError("upscale factor must be 2, 3, or 4", field="upscale_factor")


def validate_scaling(scaling: float) -> None:
    """Zero means unset and is accepted; otherwise must lie in [1, 15]."""
    if scaling == 0:
        return
    if scaling < MIN_SCALING or scaling > MAX_SCALING:
        raise ValidationError(
            f"test time scaling must be {MIN_SCALING:g}-{MAX_SCALING:g}",
            field="test_time_scaling",
        )
