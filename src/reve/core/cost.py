"""
Credit cost estimation.

Estimates are computed locally from the published per-operation prices; the
authoritative figure is the credits_used value returned with each result.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from reve.core.types import Postprocess, ProcessType

CREATE_CREDITS = 18
EDIT_CREDITS = 30
EDIT_FAST_CREDITS = 5
REMIX_CREDITS = 30
REMIX_FAST_CREDITS = 5

POSTPROCESS_CREDITS = {
    ProcessType.UPSCALE: 10,
    ProcessType.REMOVE_BACKGROUND: 5,
}


@dataclass(frozen=True)
class CostEstimate:
    """Estimated credits for one call."""

    base_credits: int
    scaled_credits: int
    postprocess_credits: int
    total_credits: int


def _estimate(
    base: int, scaling: float, postprocessing: Sequence[Postprocess] | None
) -> CostEstimate:
    # Unset scaling (0) bills like 1.
    factor = scaling if scaling and scaling > 1 else 1
    scaled = int(round(base * factor))
    extra = sum(POSTPROCESS_CREDITS.get(step.process, 0) for step in postprocessing or ())
    return CostEstimate(
        base_credits=base,
        scaled_credits=scaled,
        postprocess_credits=extra,
        total_credits=scaled + extra,
    )


def estimate_create(
    scaling: float = 1, postprocessing: Sequence[Postprocess] | None = None
) -> CostEstimate:
    return _estimate(CREATE_CREDITS, scaling, postprocessing)


def estimate_edit(
    fast: bool = False, scaling: float = 1, postprocessing: Sequence[Postprocess] | None = None
) -> CostEstimate:
    return _estimate(EDIT_FAST_CREDITS if fast else EDIT_CREDITS, scaling, postprocessing)


def estimate_remix(
    fast: bool = False, scaling: float = 1, postprocessing: Sequence[Postprocess] | None = None
) -> CostEstimate:
    return _estimate(REMIX_FAST_CREDITS if fast else REMIX_CREDITS, scaling, postprocessing)
