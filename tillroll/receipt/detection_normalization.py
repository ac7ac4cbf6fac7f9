"""Token normalization pipeline for recognizer output.

This stage sits between raw recognizer payloads and parsing. It brings
every token onto the single coordinate convention the parser relies on:
origin at the top-left corner, y growing downward, values in [0, 1].
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from typing import Literal

from tillroll.domain.receipt import BoundingBox, Token

Origin = Literal["top-left", "bottom-left"]


@dataclass(frozen=True)
class TokenNormalizationContext:
    """Execution context shared by token normalization operations."""

    origin: Origin = "top-left"
    image_width: int | None = None
    image_height: int | None = None


TokenNormalizationOp = Callable[[list[Token], TokenNormalizationContext], list[Token]]


def flip_bottom_left_origin(tokens: list[Token], context: TokenNormalizationContext) -> list[Token]:
    """Convert boxes measured from the bottom-left corner (e.g. Apple Vision) to top-left."""
    if context.origin != "bottom-left":
        return tokens
    flipped: list[Token] = []
    for token in tokens:
        box = token.bounding_box
        flipped.append(replace(token, bounding_box=replace(box, y=1.0 - box.y - box.height)))
    return flipped


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def clamp_to_unit(tokens: list[Token], context: TokenNormalizationContext) -> list[Token]:
    """Clamp boxes into the unit square; recognizers overshoot the edges slightly."""
    clamped: list[Token] = []
    for token in tokens:
        box = token.bounding_box
        x, y = _clamp(box.x), _clamp(box.y)
        clamped.append(
            replace(
                token,
                bounding_box=BoundingBox(
                    x=x,
                    y=y,
                    width=_clamp(box.x + box.width) - x,
                    height=_clamp(box.y + box.height) - y,
                ),
                confidence=_clamp(token.confidence),
            )
        )
    return clamped


DEFAULT_OPERATIONS: tuple[TokenNormalizationOp, ...] = (flip_bottom_left_origin, clamp_to_unit)


def normalize_tokens(
    tokens: Sequence[Token],
    *,
    origin: Origin = "top-left",
    image_width: int | None = None,
    image_height: int | None = None,
    operations: Sequence[TokenNormalizationOp] | None = None,
) -> list[Token]:
    """Run token normalization operations in sequence.

    When `operations` is omitted the default pipeline (origin flip, then
    clamping) runs. Pass an empty sequence for a passthrough.
    """
    context = TokenNormalizationContext(origin=origin, image_width=image_width, image_height=image_height)
    normalized = list(tokens)
    for operation in DEFAULT_OPERATIONS if operations is None else operations:
        normalized = operation(normalized, context)
    return normalized
