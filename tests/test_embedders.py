"""Tests for the embedding extractor and the reference feature-print embedder."""

import numpy as np
import pytest
from PIL import Image

from shelfscan.core.embedders import Embedder, EmbeddingExtractor, FeaturePrintEmbedder
from shelfscan.core.errors import EmbeddingUnavailable
from shelfscan.core.preprocessing import FACES, NO_ATTENTION, ZoomAttention

from conftest import DIM, GREEN, RED, solid_image


class RawEmbedder(Embedder):
    """Returns whatever it was configured with."""

    name = "raw"
    dim = DIM

    def __init__(self, value=None, error=None):
        self.value = value
        self.error = error

    def embed_image(self, image):
        if self.error is not None:
            raise self.error
        return self.value


class TestFeaturePrintEmbedder:
    def test_unit_length_and_dimension(self):
        vector = FeaturePrintEmbedder().embed_image(solid_image(RED, (100, 100)))
        assert vector.shape == (768,)
        assert vector.dtype == np.float32
        assert np.linalg.norm(vector) == pytest.approx(1.0, abs=1e-5)

    def test_deterministic(self):
        embedder = FeaturePrintEmbedder()
        image = solid_image(GREEN, (100, 100))
        assert np.array_equal(embedder.embed_image(image), embedder.embed_image(image))

    def test_featureless_image_is_unavailable(self):
        with pytest.raises(EmbeddingUnavailable):
            FeaturePrintEmbedder().embed_image(Image.new("RGB", (100, 100), (128, 128, 128)))


class TestEmbeddingExtractor:
    """Tests for element type and length validation."""

    def _extractor(self, processor, **kwargs):
        return EmbeddingExtractor(embedder=RawEmbedder(**kwargs), processor=processor, dim=DIM)

    def test_float64_is_accepted_as_float32(self, processor):
        extractor = self._extractor(processor, value=np.ones(DIM, dtype=np.float64))
        vector = extractor.extract(solid_image(RED))
        assert vector.dtype == np.float32

    @pytest.mark.parametrize("value", [np.ones(DIM, dtype=np.int32), np.ones(DIM, dtype=np.float16)])
    def test_unsupported_element_types_are_rejected(self, processor, value):
        with pytest.raises(EmbeddingUnavailable):
            self._extractor(processor, value=value).extract(solid_image(RED))

    def test_wrong_length_is_rejected(self, processor):
        with pytest.raises(EmbeddingUnavailable):
            self._extractor(processor, value=np.ones(DIM - 1, dtype=np.float32)).extract(solid_image(RED))

    def test_non_finite_is_rejected(self, processor):
        value = np.ones(DIM, dtype=np.float32)
        value[3] = np.nan
        with pytest.raises(EmbeddingUnavailable):
            self._extractor(processor, value=value).extract(solid_image(RED))

    def test_backend_errors_become_unavailable(self, processor):
        with pytest.raises(EmbeddingUnavailable):
            self._extractor(processor, error=RuntimeError("model crashed")).extract(solid_image(RED))

    def test_embedding_is_none_without_signal(self, processor):
        extractor = self._extractor(processor, error=RuntimeError("model crashed"))
        assert extractor.embedding(solid_image(RED), NO_ATTENTION) is None

    def test_embeddings_follow_attention(self, extractor):
        vectors = extractor.embeddings(solid_image(RED, (200, 100)), ZoomAttention(factors=(1.0, 2.0)))
        assert len(vectors) == 2
        assert all(vector.shape == (DIM,) for vector in vectors)

    def test_no_face_means_no_embedding(self, extractor, face_detector):
        face_detector.faces = []
        assert extractor.embedding(solid_image(RED), FACES) is None
