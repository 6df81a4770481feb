# Path: shelfscan/core/preprocessing/geometry.py
# Purpose: Pure crop and letterbox geometry used before embedding extraction.
# Layer: core/preprocessing.
# Details: Boxes are (left, top, right, bottom) in pixels with a top-left origin.

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from PIL import Image

Box = Tuple[float, float, float, float]
Size = Tuple[int, int]


@dataclass(frozen=True)
class NormalizedRect:
    """Rectangle in the unit square with a bottom-left origin, as reported by detectors."""

    x: float
    y: float
    width: float
    height: float

    def to_pixels(self, size: Size) -> Box:
        """Convert to a pixel box with a top-left origin."""

        image_width, image_height = size
        left = self.x * image_width
        top = (1.0 - self.y - self.height) * image_height
        return (left, top, left + self.width * image_width, top + self.height * image_height)

    @classmethod
    def from_pixels(cls, left: float, top: float, width: float, height: float, size: Size) -> "NormalizedRect":
        """Build a normalized rect from a top-left pixel rectangle."""

        image_width, image_height = size
        return cls(
            x=left / image_width,
            y=1.0 - (top + height) / image_height,
            width=width / image_width,
            height=height / image_height,
        )


def outset(box: Box, margin: float) -> Box:
    """Grow a box by ``margin`` pixels on every side."""

    left, top, right, bottom = box
    return (left - margin, top - margin, right + margin, bottom + margin)


def center_square(size: Size) -> Box:
    """Centered square of side min(width, height)."""

    width, height = size
    side = min(width, height)
    left = (width - side) / 2
    top = (height - side) / 2
    return (left, top, left + side, top + side)


def zoom_rect(size: Size, factor: float) -> Box:
    """Centered crop removing (1 - 1/factor) / 2 of each dimension from every side.

    Factors of 1 or less leave the full frame.
    """

    width, height = size
    if factor <= 1:
        return (0.0, 0.0, float(width), float(height))
    dx = width * (1 - 1 / factor) / 2
    dy = height * (1 - 1 / factor) / 2
    return (dx, dy, width - dx, height - dy)


def fit_rect(source: Size, target: Size) -> Box:
    """Where a source of the given size lands when letterboxed into target (never upscaled)."""

    source_width, source_height = source
    target_width, target_height = target
    scale = min(target_width / source_width, target_height / source_height, 1.0)
    scaled_width = min(target_width, max(1, int(round(source_width * scale))))
    scaled_height = min(target_height, max(1, int(round(source_height * scale))))
    left = (target_width - scaled_width) // 2
    top = (target_height - scaled_height) // 2
    return (left, top, left + scaled_width, top + scaled_height)


def crop(image: Image.Image, box: Box) -> Image.Image:
    """Crop to the part of ``box`` that lies inside the image.

    Returns a copy of the whole image when the intersection is empty.
    """

    width, height = image.size
    left, top, right, bottom = box
    crop_left = int(round(left))
    crop_top = int(round(top))
    crop_right = crop_left + int(round(right - left))
    crop_bottom = crop_top + int(round(bottom - top))

    crop_left, crop_top = max(0, crop_left), max(0, crop_top)
    crop_right, crop_bottom = min(width, crop_right), min(height, crop_bottom)
    if crop_right <= crop_left or crop_bottom <= crop_top:
        return image.copy()
    return image.crop((crop_left, crop_top, crop_right, crop_bottom))


def fit(image: Image.Image, target_size: Size) -> Image.Image:
    """Letterbox ``image`` onto a transparent canvas of exactly ``target_size``."""

    left, top, right, bottom = fit_rect(image.size, target_size)
    scaled_size = (int(right - left), int(bottom - top))
    source = image.convert("RGBA")
    if scaled_size != source.size:
        source = source.resize(scaled_size, Image.Resampling.LANCZOS)

    canvas = Image.new("RGBA", target_size, (0, 0, 0, 0))
    canvas.paste(source, (int(left), int(top)), source)
    return canvas
