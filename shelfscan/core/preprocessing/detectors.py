# Path: shelfscan/core/preprocessing/detectors.py
# Purpose: Provide saliency and face detectors that locate the subject of a frame.
# Layer: core/preprocessing.
# Details: OpenCV-based defaults behind small protocols so tests and other backends can substitute them.

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import List, Optional, Protocol

import cv2
import numpy as np
from PIL import Image

from .geometry import NormalizedRect

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SalientRegion:
    """A candidate subject region with the detector's confidence."""

    bounding_box: NormalizedRect
    confidence: float


class SaliencyDetector(Protocol):
    """Locate salient regions; results are ordered by descending confidence."""

    def detect(self, image: Image.Image) -> List[SalientRegion]:
        ...


class FaceDetector(Protocol):
    """Locate faces in an image."""

    def detect(self, image: Image.Image) -> List[NormalizedRect]:
        ...


def _gray(image: Image.Image) -> np.ndarray:
    return np.asarray(image.convert("L"), dtype=np.uint8)


def _regions_from_mask(mask: np.ndarray, weights: np.ndarray, min_area: int = 4) -> List[SalientRegion]:
    """Turn a binary mask into regions scored by the mean weight inside each bounding box."""

    height, width = mask.shape[:2]
    contours, _ = cv2.findContours(mask, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)
    regions: List[SalientRegion] = []
    for contour in contours:
        x, y, w, h = cv2.boundingRect(contour)
        if w * h < min_area:
            continue
        confidence = float(weights[y:y + h, x:x + w].mean())
        box = NormalizedRect.from_pixels(x, y, w, h, (width, height))
        regions.append(SalientRegion(bounding_box=box, confidence=confidence))
    regions.sort(key=lambda region: region.confidence, reverse=True)
    return regions


class SpectralResidualSaliency:
    """Attention-based saliency using the spectral residual of the log amplitude spectrum.

    The frame is analysed at a small working resolution; pixels whose saliency
    exceeds ``threshold_factor`` times the mean form the candidate regions.
    """

    def __init__(self, working_size: int = 64, threshold_factor: float = 3.0) -> None:
        self.working_size = working_size
        self.threshold_factor = threshold_factor

    def detect(self, image: Image.Image) -> List[SalientRegion]:
        size = self.working_size
        gray = cv2.resize(_gray(image), (size, size), interpolation=cv2.INTER_AREA).astype(np.float32)

        spectrum = np.fft.fft2(gray)
        log_amplitude = np.log(np.abs(spectrum) + 1e-8).astype(np.float32)
        phase = np.angle(spectrum)
        residual = log_amplitude - cv2.blur(log_amplitude, (3, 3))
        saliency = (np.abs(np.fft.ifft2(np.exp(residual + 1j * phase))) ** 2).astype(np.float32)
        saliency = cv2.GaussianBlur(saliency, (9, 9), 2.5)

        peak = float(saliency.max())
        if not np.isfinite(peak) or peak <= 0:
            return []
        saliency /= peak

        mask = (saliency > self.threshold_factor * float(saliency.mean())).astype(np.uint8) * 255
        return _regions_from_mask(mask, saliency)


class ContourObjectness:
    """Objectness saliency: the foreground blobs separated from the background by Otsu thresholding."""

    def detect(self, image: Image.Image) -> List[SalientRegion]:
        gray = _gray(image)
        blurred = cv2.GaussianBlur(gray, (5, 5), 0)
        _, binary = cv2.threshold(blurred, 0, 255, cv2.THRESH_BINARY_INV + cv2.THRESH_OTSU)

        # Invert if background dominates
        if np.mean(binary) > 127:
            binary = cv2.bitwise_not(binary)

        weights = (binary > 0).astype(np.float32)
        return _regions_from_mask(binary, weights)


class HaarFaceDetector:
    """Frontal face detection with the Haar cascade bundled with OpenCV.

    One classifier is shared by the search and indexing threads, so loading and
    detection are serialized.
    """

    def __init__(self, cascade_path: Optional[str] = None, min_size: int = 24) -> None:
        self.cascade_path = cascade_path or cv2.data.haarcascades + "haarcascade_frontalface_default.xml"
        self.min_size = min_size
        self._cascade: Optional[cv2.CascadeClassifier] = None
        self._lock = threading.Lock()

    def _classifier(self) -> cv2.CascadeClassifier:
        # Caller holds self._lock
        if self._cascade is None:
            cascade = cv2.CascadeClassifier(self.cascade_path)
            if cascade.empty():
                raise RuntimeError(f"Could not load face cascade from {self.cascade_path}")
            self._cascade = cascade
        return self._cascade

    def detect(self, image: Image.Image) -> List[NormalizedRect]:
        gray = cv2.equalizeHist(_gray(image))
        with self._lock:
            faces = self._classifier().detectMultiScale(
                gray, scaleFactor=1.1, minNeighbors=5, minSize=(self.min_size, self.min_size)
            )
        logger.debug(f"Detected {len(faces)} faces")
        return [NormalizedRect.from_pixels(x, y, w, h, image.size) for (x, y, w, h) in faces]
