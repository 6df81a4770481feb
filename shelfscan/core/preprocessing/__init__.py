# Path: shelfscan/core/preprocessing/__init__.py
# Purpose: Package initializer for image preprocessing.
# Layer: core/preprocessing.
# Details: Exposes attention modes, detectors, geometry helpers, and the ImageProcessor.

from .attention import (
    FACES,
    NO_ATTENTION,
    Attention,
    FaceAttention,
    NoAttention,
    Saliency,
    SaliencyAttention,
    ZoomAttention,
)
from .detectors import ContourObjectness, HaarFaceDetector, SalientRegion, SpectralResidualSaliency
from .geometry import NormalizedRect, center_square, crop, fit, fit_rect, zoom_rect
from .processor import ImageProcessor

__all__ = [
    "FACES",
    "NO_ATTENTION",
    "Attention",
    "ContourObjectness",
    "FaceAttention",
    "HaarFaceDetector",
    "ImageProcessor",
    "NoAttention",
    "NormalizedRect",
    "Saliency",
    "SaliencyAttention",
    "SalientRegion",
    "SpectralResidualSaliency",
    "ZoomAttention",
    "center_square",
    "crop",
    "fit",
    "fit_rect",
    "zoom_rect",
]
