"""Tests for cropping, attention modes, and letterboxing."""

import threading
import time

import numpy as np
import pytest
from PIL import Image

from shelfscan.core.preprocessing import (
    FACES,
    NO_ATTENTION,
    ContourObjectness,
    HaarFaceDetector,
    ImageProcessor,
    NormalizedRect,
    Saliency,
    SaliencyAttention,
    SalientRegion,
    ZoomAttention,
    fit,
    fit_rect,
    zoom_rect,
)
from shelfscan.core.preprocessing import detectors

from conftest import StaticFaceDetector, StaticSaliency


def _processor(regions=None, error=None, faces=None, face_error=None):
    saliency = StaticSaliency(regions=regions, error=error)
    return ImageProcessor(
        saliency_detectors={Saliency.ATTENTION: saliency, Saliency.OBJECTNESS: saliency},
        face_detector=StaticFaceDetector(faces=faces, error=face_error),
    )


class TestFit:
    """Tests for letterboxing into the fixed canvas."""

    @pytest.mark.parametrize("size", [(300, 120), (40, 90), (1, 1), (100, 100)])
    def test_output_is_exactly_target(self, size):
        fitted = fit(Image.new("RGB", size, (10, 20, 30)), (100, 100))
        assert fitted.size == (100, 100)
        assert fitted.mode == "RGBA"

    def test_small_images_are_not_upscaled(self):
        assert fit_rect((50, 20), (100, 100)) == (25, 40, 75, 60)

    def test_large_images_scale_uniformly(self):
        assert fit_rect((400, 200), (100, 100)) == (0, 25, 100, 75)

    def test_padding_is_transparent(self):
        fitted = fit(Image.new("RGB", (400, 200), (255, 0, 0)), (100, 100))
        assert fitted.getpixel((50, 10))[3] == 0
        red, green, blue, alpha = fitted.getpixel((50, 50))
        assert alpha == 255
        assert red > 250 and green < 5 and blue < 5


class TestNormalizedRect:
    def test_bottom_left_origin_is_flipped(self):
        rect = NormalizedRect(x=0.25, y=0.5, width=0.5, height=0.25)
        assert rect.to_pixels((200, 100)) == pytest.approx((50, 25, 150, 50))

    def test_from_pixels_inverts_to_pixels(self):
        rect = NormalizedRect.from_pixels(20, 10, 40, 30, (200, 100))
        assert rect.to_pixels((200, 100)) == pytest.approx((20, 10, 60, 40))


class TestSaliencyCrop:
    """Tests for the salient-object attention mode."""

    def test_no_region_falls_back_to_center_square(self):
        cropped = _processor().crop_to_salient_region(Image.new("RGB", (200, 100)), Saliency.ATTENTION)
        assert cropped.size == (100, 100)

    def test_detector_failure_falls_back_to_center_square(self):
        processor = _processor(error=RuntimeError("no model"))
        cropped = processor.crop_to_salient_region(Image.new("RGB", (90, 300)), Saliency.OBJECTNESS)
        assert cropped.size == (90, 90)

    def test_single_pixel_image_is_still_valid(self):
        image = Image.new("RGB", (1, 1), (5, 5, 5))
        processor = _processor()
        assert processor.crop_to_salient_region(image, Saliency.ATTENTION).size == (1, 1)
        processed = processor.process(image, SaliencyAttention())
        assert [item.size for item in processed] == [(100, 100)]

    def test_most_confident_region_is_outset(self):
        regions = [
            SalientRegion(bounding_box=NormalizedRect(0.0, 0.0, 0.1, 0.1), confidence=0.2),
            SalientRegion(bounding_box=NormalizedRect(0.25, 0.25, 0.5, 0.5), confidence=0.9),
        ]
        cropped = _processor(regions=regions).crop_to_salient_region(Image.new("RGB", (200, 200)), Saliency.ATTENTION)
        assert cropped.size == (132, 132)

    def test_outset_is_clamped_to_the_image(self):
        regions = [SalientRegion(bounding_box=NormalizedRect(0.0, 0.0, 0.25, 0.25), confidence=1.0)]
        cropped = _processor(regions=regions).crop_to_salient_region(Image.new("RGB", (200, 200)), Saliency.ATTENTION)
        assert cropped.size == (66, 66)


class TestZoom:
    """Tests for multi-scale center crops."""

    @pytest.mark.parametrize("f1,f2", [(1.5, 2.0), (2.0, 3.0), (1.1, 4.0)])
    def test_tighter_zoom_is_strictly_contained(self, f1, f2):
        outer = zoom_rect((200, 100), f1)
        inner = zoom_rect((200, 100), f2)
        assert inner[0] > outer[0] and inner[1] > outer[1]
        assert inner[2] < outer[2] and inner[3] < outer[3]

    @pytest.mark.parametrize("factor", [1.0, 0.5])
    def test_factor_at_most_one_keeps_full_frame(self, factor):
        assert zoom_rect((200, 100), factor) == (0.0, 0.0, 200.0, 100.0)

    def test_one_output_per_factor(self):
        crops = ImageProcessor.zoom(Image.new("RGB", (200, 100)), (1.0, 2.0))
        assert [item.size for item in crops] == [(200, 100), (100, 50)]

    def test_process_fits_every_zoom_level(self):
        processed = _processor().process(Image.new("RGB", (200, 100)), ZoomAttention(factors=(1.0, 2.0, 4.0)))
        assert [item.size for item in processed] == [(100, 100)] * 3


class TestFaces:
    """Tests for the face attention mode."""

    def test_detector_failure_passes_frame_through(self):
        image = Image.new("RGB", (80, 80))
        result = _processor(face_error=RuntimeError("boom")).crop_to_faces(image)
        assert len(result) == 1 and result[0] is image

    def test_no_faces_yields_nothing(self):
        assert _processor(faces=[]).process(Image.new("RGB", (80, 80)), FACES) == []

    def test_one_crop_per_face(self):
        faces = [NormalizedRect(0.0, 0.5, 0.5, 0.5), NormalizedRect(0.5, 0.0, 0.5, 0.5)]
        crops = _processor(faces=faces).crop_to_faces(Image.new("RGB", (100, 100)))
        assert [item.size for item in crops] == [(50, 50), (50, 50)]

    def test_no_attention_passes_single_image(self):
        processed = _processor().process(Image.new("RGB", (30, 30)), NO_ATTENTION)
        assert len(processed) == 1


class TestContourObjectness:
    def test_finds_dark_square_on_white(self):
        pixels = np.full((200, 200, 3), 255, dtype=np.uint8)
        pixels[60:140, 60:140] = 0
        regions = ContourObjectness().detect(Image.fromarray(pixels))
        assert regions
        left, top, right, bottom = regions[0].bounding_box.to_pixels((200, 200))
        assert left == pytest.approx(60, abs=3)
        assert top == pytest.approx(60, abs=3)
        assert right == pytest.approx(140, abs=3)
        assert bottom == pytest.approx(140, abs=3)


class CountingCascade:
    """Stands in for cv2.CascadeClassifier and records how it is used across threads."""

    created = 0
    active = 0
    peak = 0
    guard = threading.Lock()

    def __init__(self, path):
        type(self).created += 1
        time.sleep(0.01)

    def empty(self):
        return False

    def detectMultiScale(self, gray, **kwargs):
        cls = type(self)
        with cls.guard:
            cls.active += 1
            cls.peak = max(cls.peak, cls.active)
        time.sleep(0.01)
        with cls.guard:
            cls.active -= 1
        return [(10, 10, 20, 20)]


class TestHaarFaceDetector:
    def test_shared_classifier_is_loaded_once_and_used_serially(self, monkeypatch):
        monkeypatch.setattr(detectors.cv2, "CascadeClassifier", CountingCascade)
        monkeypatch.setattr(CountingCascade, "created", 0)
        monkeypatch.setattr(CountingCascade, "peak", 0)
        detector = HaarFaceDetector(cascade_path="unused.xml")
        image = Image.new("RGB", (100, 100), (128, 128, 128))

        results = []
        threads = [threading.Thread(target=lambda: results.append(detector.detect(image))) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert CountingCascade.created == 1
        assert CountingCascade.peak == 1
        assert len(results) == 8
        assert all(len(faces) == 1 for faces in results)
