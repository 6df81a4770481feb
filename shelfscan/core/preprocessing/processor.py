# Path: shelfscan/core/preprocessing/processor.py
# Purpose: Crop frames to their region of interest and letterbox them for embedding extraction.
# Layer: core/preprocessing.
# Details: Dispatches on the attention mode; every produced image is fitted to a fixed canvas.

from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional, Sequence

from PIL import Image

from .attention import (
    NO_ATTENTION,
    Attention,
    FaceAttention,
    NoAttention,
    Saliency,
    SaliencyAttention,
    ZoomAttention,
)
from .detectors import (
    ContourObjectness,
    FaceDetector,
    HaarFaceDetector,
    SaliencyDetector,
    SpectralResidualSaliency,
)
from .geometry import Size, center_square, crop, fit, outset, zoom_rect

logger = logging.getLogger(__name__)

DEFAULT_TARGET_SIZE: Size = (100, 100)
DEFAULT_SALIENT_MARGIN = 16


class ImageProcessor:
    """Turn one camera frame into the normalized images the embedder consumes."""

    def __init__(
        self,
        saliency_detectors: Optional[Mapping[Saliency, SaliencyDetector]] = None,
        face_detector: Optional[FaceDetector] = None,
        target_size: Size = DEFAULT_TARGET_SIZE,
        margin: int = DEFAULT_SALIENT_MARGIN,
    ) -> None:
        self.saliency_detectors: Dict[Saliency, SaliencyDetector] = dict(
            saliency_detectors
            or {Saliency.ATTENTION: SpectralResidualSaliency(), Saliency.OBJECTNESS: ContourObjectness()}
        )
        self.face_detector: FaceDetector = face_detector or HaarFaceDetector()
        self.target_size = target_size
        self.margin = margin

    def process(
        self, image: Image.Image, attention: Attention = NO_ATTENTION, target_size: Optional[Size] = None
    ) -> List[Image.Image]:
        """Return the letterboxed crops selected by ``attention``."""

        if isinstance(attention, NoAttention):
            crops = [image]
        elif isinstance(attention, SaliencyAttention):
            crops = [self.crop_to_salient_region(image, attention.kind)]
        elif isinstance(attention, FaceAttention):
            crops = self.crop_to_faces(image)
        elif isinstance(attention, ZoomAttention):
            crops = self.zoom(image, attention.factors)
        else:
            raise TypeError(f"Unsupported attention mode: {attention!r}")

        target = target_size or self.target_size
        return [fit(cropped, target) for cropped in crops]

    def crop_to_salient_region(self, image: Image.Image, kind: Saliency) -> Image.Image:
        """Crop to the most confident salient region, or to the center square when none is found."""

        regions = []
        detector = self.saliency_detectors.get(kind)
        if detector is not None:
            try:
                regions = detector.detect(image)
            except Exception as exc:  # noqa: BLE001 - detector failure falls back to the center crop
                logger.warning(f"Saliency detection ({kind.value}) failed: {exc}")

        if not regions:
            return crop(image, center_square(image.size))

        best = max(regions, key=lambda region: region.confidence)
        box = outset(best.bounding_box.to_pixels(image.size), self.margin)
        return crop(image, box)

    def crop_to_faces(self, image: Image.Image) -> List[Image.Image]:
        """Crop to every detected face; a failing detector passes the frame through."""

        try:
            faces = self.face_detector.detect(image)
        except Exception as exc:  # noqa: BLE001 - keep the frame usable when detection breaks
            logger.warning(f"Face detection failed: {exc}")
            return [image]
        return [crop(image, face.to_pixels(image.size)) for face in faces]

    @staticmethod
    def zoom(image: Image.Image, factors: Sequence[float]) -> List[Image.Image]:
        """One centered crop per factor; factors <= 1 keep the full frame."""

        return [crop(image, zoom_rect(image.size, factor)) for factor in factors]
