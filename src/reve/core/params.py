"""
Request parameters for create, edit and remix.

Each params class validates itself and renders the JSON payload the API
expects. Optional fields left at their zero value are omitted from the payload.
"""

from dataclasses import dataclass, field
from typing import Any

from reve.core import validator
from reve.core.image import ImageData
from reve.core.types import AspectRatio, ModelVersion, Postprocess

ImageInput = str | ImageData


def _image_b64(image: ImageInput) -> str:
    return image.to_base64() if isinstance(image, ImageData) else image


def _validate_common(
    aspect_ratio: AspectRatio | str,
    test_time_scaling: float,
    postprocessing: list[Postprocess],
) -> None:
    validator.validate_aspect_ratio(aspect_ratio)
    validator.validate_scaling(test_time_scaling)
    for step in postprocessing:
        step.validate()


def _common_payload(
    payload: dict[str, Any],
    aspect_ratio: AspectRatio | str,
    version: ModelVersion | str,
    test_time_scaling: float,
    postprocessing: list[Postprocess],
) -> dict[str, Any]:
    if aspect_ratio:
        payload["aspect_ratio"] = str(aspect_ratio)
    if version:
        payload["version"] = str(version)
    if test_time_scaling:
        payload["test_time_scaling"] = test_time_scaling
    if postprocessing:
        payload["postprocessing"] = [step.to_payload() for step in postprocessing]
    return payload


@dataclass
class CreateParams:
    """Parameters for generating an image from a text prompt."""

    prompt: str = ""
    aspect_ratio: AspectRatio | str = ""
    version: ModelVersion | str = ""
    test_time_scaling: float = 0
    postprocessing: list[Postprocess] = field(default_factory=list)

    def validate(self) -> None:
        validator.validate_prompt(self.prompt)
        _validate_common(self.aspect_ratio, self.test_time_scaling, self.postprocessing)

    def to_payload(self) -> dict[str, Any]:
        return _common_payload(
            {"prompt": self.prompt},
            self.aspect_ratio,
            self.version,
            self.test_time_scaling,
            self.postprocessing,
        )


@dataclass
class EditParams:
    """Parameters for editing a reference image with a natural-language instruction."""

    edit_instruction: str = ""
    reference_image: ImageInput = ""
    aspect_ratio: AspectRatio | str = ""
    version: ModelVersion | str = ""
    test_time_scaling: float = 0
    postprocessing: list[Postprocess] = field(default_factory=list)

    def validate(self) -> None:
        validator.validate_instruction(self.edit_instruction)
        validator.validate_reference_image(_image_b64(self.reference_image))
        _validate_common(self.aspect_ratio, self.test_time_scaling, self.postprocessing)

    def to_payload(self) -> dict[str, Any]:
        return _common_payload(
            {
                "edit_instruction": self.edit_instruction,
                "reference_image": _image_b64(self.reference_image),
            },
            self.aspect_ratio,
            self.version,
            self.test_time_scaling,
            self.postprocessing,
        )


@dataclass
class RemixParams:
    """Parameters for combining reference images under a prompt.

    Refer to images in the prompt with reve.ref(index).
    """

    prompt: str = ""
    reference_images: list[ImageInput] = field(default_factory=list)
    aspect_ratio: AspectRatio | str = ""
    version: ModelVersion | str = ""
    test_time_scaling: float = 0
    postprocessing: list[Postprocess] = field(default_factory=list)

    def validate(self) -> None:
        validator.validate_prompt(self.prompt)
        validator.validate_reference_images([_image_b64(i) for i in self.reference_images])
        _validate_common(self.aspect_ratio, self.test_time_scaling, self.postprocessing)

    def to_payload(self) -> dict[str, Any]:
        return _common_payload(
            {
                "prompt": self.prompt,
                "reference_images": [_image_b64(i) for i in self.reference_images],
            },
            self.aspect_ratio,
            self.version,
            self.test_time_scaling,
            self.postprocessing,
        )
