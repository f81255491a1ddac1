"""
Unit tests for the recognition pool and the multi-pass recognizer.

Backends are fakes from conftest; no Tesseract binary is needed.
"""

import threading

import pytest
from PIL import Image

from field_extraction.ocr_engine import MultiPassRecognizer, RecognitionPool, quality_score
from field_extraction.utils.exceptions import OCRProcessingError, RecognitionPoolTimeoutError

VARIANTS = ["single_block", "sparse_text", "automatic"]


@pytest.fixture
def image():
    return Image.new("RGB", (50, 20), "white")


class TestQualityScore:
    """Alphanumeric ratio."""

    def test_examples(self):
        assert quality_score("Total 12") == 0.875
        assert quality_score("") == 0.0
        assert quality_score("@@##") == 0.0
        assert quality_score("ABC123") == 1.0


class TestRecognitionPool:
    """Bounded checkout and guaranteed release."""

    def test_backends_created_lazily_and_reused(self, backend_factory):
        factory = backend_factory({})
        pool = RecognitionPool(size=2, factory=factory, timeout=1.0)
        assert pool.created == 0

        with pool.acquire("single_block") as backend:
            assert backend.variant == "single_block"
        with pool.acquire("sparse_text") as backend:
            assert backend.variant == "sparse_text"

        assert pool.created == 1
        assert len(factory.created) == 1
        assert pool.available == 2

    def test_released_when_the_block_raises(self, backend_factory):
        pool = RecognitionPool(size=1, factory=backend_factory({}), timeout=0.1)
        with pytest.raises(RuntimeError):
            with pool.acquire("single_block"):
                raise RuntimeError("engine crashed")

        assert pool.available == 1
        with pool.acquire("automatic") as backend:
            assert backend.variant == "automatic"

    def test_timeout_when_exhausted(self, backend_factory):
        pool = RecognitionPool(size=1, factory=backend_factory({}), timeout=0.05)
        with pool.acquire("single_block"):
            assert pool.available == 0
            with pytest.raises(RecognitionPoolTimeoutError):
                with pool.acquire("sparse_text"):
                    pass
        assert pool.available == 1

    def test_never_exceeds_size(self, backend_factory):
        factory = backend_factory({})
        pool = RecognitionPool(size=2, factory=factory, timeout=5.0)
        barrier = threading.Barrier(4)
        errors = []

        def worker():
            try:
                barrier.wait()
                for _ in range(5):
                    with pool.acquire("single_block"):
                        pass
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert len(factory.created) <= 2
        assert pool.available == 2

    def test_factory_failure_frees_the_slot(self):
        def broken():
            raise OSError("no engine")

        pool = RecognitionPool(size=1, factory=broken, timeout=0.05)
        with pytest.raises(OSError):
            with pool.acquire("single_block"):
                pass
        assert pool.created == 0


class TestMultiPassRecognizer:
    """Variant search."""

    def test_early_exit_on_good_quality(self, make_recognizer, image):
        recognizer = make_recognizer(
            {"single_block": "Total TTC 1200", "sparse_text": "never read"},
            variants=VARIANTS, quality_threshold=0.7
        )
        result = recognizer.recognize(image)
        assert result.text == "Total TTC 1200"
        assert result.variant == "single_block"
        assert [p.variant for p in result.passes] == ["single_block"]

    def test_best_pass_kept_when_none_is_good(self, make_recognizer, image):
        recognizer = make_recognizer(
            {"single_block": "@@ ## a1", "sparse_text": "ab !!", "automatic": "?!"},
            variants=VARIANTS, quality_threshold=0.7, blurry_threshold=0.35
        )
        result = recognizer.recognize(image)
        assert len(result.passes) == 3
        assert result.variant == "sparse_text"
        assert result.quality == pytest.approx(0.4)
        assert result.too_blurry is False

    def test_failed_pass_is_excluded(self, make_recognizer, image):
        recognizer = make_recognizer(
            {"single_block": OCRProcessingError("single_block", "crash"), "sparse_text": "Facture 123"},
            variants=VARIANTS, quality_threshold=0.7
        )
        result = recognizer.recognize(image)
        assert result.text == "Facture 123"
        assert result.passes[0].succeeded is False
        assert len(result.failed_passes) == 1
        assert result.all_failed is False

    def test_unexpected_backend_error_is_contained(self, make_recognizer, image):
        recognizer = make_recognizer(
            {"single_block": RuntimeError("segfault"), "sparse_text": "Total 12"},
            variants=VARIANTS, quality_threshold=0.7
        )
        result = recognizer.recognize(image)
        assert result.text == "Total 12"
        assert "RuntimeError" in result.passes[0].error

    def test_all_passes_failed(self, make_recognizer, image):
        error = OCRProcessingError("any", "crash")
        recognizer = make_recognizer(
            {variant: error for variant in VARIANTS}, variants=VARIANTS
        )
        result = recognizer.recognize(image)
        assert result.text == ""
        assert result.all_failed is True
        assert result.too_blurry is True
        assert result.variant is None

    def test_blurry_flag(self, make_recognizer, image):
        recognizer = make_recognizer(
            {variant: "~~ ~~ a" for variant in VARIANTS},
            variants=VARIANTS, quality_threshold=0.7, blurry_threshold=0.35
        )
        result = recognizer.recognize(image)
        assert result.text == "~~ ~~ a"
        assert result.too_blurry is True

    def test_pool_released_after_every_pass(self, backend_factory, image):
        pool = RecognitionPool(size=1, factory=backend_factory(
            {"single_block": RuntimeError("crash")}
        ), timeout=0.1)
        recognizer = MultiPassRecognizer(pool, variants=VARIANTS, quality_threshold=0.7)
        recognizer.recognize(image)
        assert pool.available == 1

    def test_to_dict(self, make_recognizer, image):
        recognizer = make_recognizer({"single_block": "Total 12"}, variants=VARIANTS)
        data = recognizer.recognize(image).to_dict()
        assert data['variant'] == "single_block"
        assert data['passes'][0]['status'] == "success"
