# Path: shelfscan/core/preprocessing/attention.py
# Purpose: Define the attention modes that decide which region of a frame gets embedded.
# Layer: core/preprocessing.
# Details: A tagged variant of frozen dataclasses; the processor dispatches on the concrete type.

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple, Union


class Saliency(str, Enum):
    """Saliency detector flavours."""

    ATTENTION = "attention"
    OBJECTNESS = "objectness"


@dataclass(frozen=True)
class NoAttention:
    """Pass the image through unchanged."""


@dataclass(frozen=True)
class SaliencyAttention:
    """Crop to the most confident salient region."""

    kind: Saliency = Saliency.ATTENTION


@dataclass(frozen=True)
class FaceAttention:
    """Crop to every detected face."""


@dataclass(frozen=True)
class ZoomAttention:
    """Produce one centered crop per zoom factor."""

    factors: Tuple[float, ...] = (1.0, 2.0)


Attention = Union[NoAttention, SaliencyAttention, FaceAttention, ZoomAttention]

NO_ATTENTION = NoAttention()
FACES = FaceAttention()
