"""Integration tests for the end-to-end pipeline."""

import logging
from unittest.mock import patch

import numpy as np
import pytest

from qrggif.animation.types import RawAnimation
from qrggif.cache.result_cache import ResultCache
from qrggif.common.config_loader import Config
from qrggif.common.errors import (
    DecodeError,
    EngineUnavailable,
    InsufficientSymbols,
    InvalidFrameCount,
    ValidationFailure,
)
from qrggif.ocr import engine_tesseract
from qrggif.ocr.engine_tesseract import release_shared_engine
from qrggif.pipeline.full_pipeline import QRGGIFPipeline, content_digest, frame_cache_key

POP_RING = ["ℍ", "ℎ", "∑", "⑂", "⑃"]
POP_RING_FINGERPRINT = "1dd1ecc02ffb16e10c5853a70acbade7f323da6840a7ced3b1cd40d6c4236c72"


@pytest.fixture
def make_pipeline(fake_engine_factory, clock):
    """Provide a factory for pipelines over scripted readings."""

    def _make(readings, config=None):
        engine = fake_engine_factory(readings)
        cache = ResultCache(clock=clock)
        return QRGGIFPipeline(config or Config(), engine=engine, cache=cache), engine

    return _make


class TestEndToEnd:
    """Test the full path from GIF bytes to fingerprint."""

    def test_pop_ring_animation(self, make_pipeline, five_frame_gif):
        """Test a 5-frame ring animation yields the ring and its fingerprint."""
        pipeline, engine = make_pipeline([(s, 95.0) for s in POP_RING])

        result = pipeline.process(five_frame_gif, correlation_id="req-1")

        assert result.symbols == POP_RING
        assert result.fingerprint == POP_RING_FINGERPRINT
        assert result.correlation_id == "req-1"
        assert result.frame_count == 5
        assert [r.source_frame_ordinal for r in result.recognitions] == [0, 1, 2, 3, 4]
        assert result.processing_time_ms >= 0
        assert engine.calls == 5

    def test_accepts_raw_animation(self, make_pipeline, five_frame_gif):
        """Test RawAnimation input."""
        pipeline, _ = make_pipeline([(s, 95.0) for s in POP_RING])

        result = pipeline.process(RawAnimation(data=five_frame_gif), "req-2")

        assert result.symbols == POP_RING

    def test_generated_correlation_id(self, make_pipeline, five_frame_gif):
        """Test a correlation id is generated when none is given."""
        pipeline, _ = make_pipeline([(s, 95.0) for s in POP_RING])

        result = pipeline.process(five_frame_gif)

        assert len(result.correlation_id) == 32

    def test_to_dict(self, make_pipeline, five_frame_gif):
        """Test the plain-dict form."""
        pipeline, _ = make_pipeline([(s, 95.0) for s in POP_RING])

        output = pipeline.process(five_frame_gif, "req-3").to_dict()

        assert output["symbols"] == POP_RING
        assert output["recognitions"][0]["symbol"] == "ℍ"


class TestCaching:
    """Test per-frame cache use."""

    def test_injected_cache_is_used(self, fake_engine_factory, clock):
        """Test an empty caller cache is kept rather than replaced."""
        cache = ResultCache(clock=clock)

        pipeline = QRGGIFPipeline(Config(), engine=fake_engine_factory([("ℍ", 95.0)]), cache=cache)

        assert pipeline.cache is cache

    def test_results_cached_under_content_key(self, make_pipeline, five_frame_gif):
        """Test frames are cached under correlation and content scoped keys."""
        pipeline, _ = make_pipeline([(s, 95.0) for s in POP_RING])
        digest = content_digest(five_frame_gif)

        pipeline.process(five_frame_gif, "req-1")

        assert pipeline.cache.get(frame_cache_key("req-1", digest, 0)).symbol == "ℍ"
        assert pipeline.cache.get(frame_cache_key("req-1", digest, 4)).symbol == "⑃"
        assert pipeline.cache.artifact_stages(frame_cache_key("req-1", digest, 0)) == []

    def test_artifacts_stored_when_enabled(self, make_pipeline, five_frame_gif):
        """Test intermediate rasters are kept when enabled."""
        config = Config(cache={"store_artifacts": True})
        pipeline, _ = make_pipeline([(s, 95.0) for s in POP_RING], config)
        key = frame_cache_key("req-1", content_digest(five_frame_gif), 0)

        pipeline.process(five_frame_gif, "req-1")

        assert pipeline.cache.get_artifact(key, "threshold").shape == (16, 16)
        assert pipeline.cache.get_artifact(key, "scale").shape == (32, 32)

    def test_same_correlation_id_hits_cache(self, make_pipeline, five_frame_gif):
        """Test a repeated run reuses cached recognitions."""
        pipeline, engine = make_pipeline([(s, 95.0) for s in POP_RING])

        first = pipeline.process(five_frame_gif, "req-1")
        second = pipeline.process(five_frame_gif, "req-1")

        assert engine.calls == 5
        assert second.fingerprint == first.fingerprint

    def test_expired_entries_recomputed(self, make_pipeline, five_frame_gif, clock):
        """Test a repeated run after the TTL recognizes every frame again."""
        pipeline, engine = make_pipeline([(s, 95.0) for s in POP_RING])

        pipeline.process(five_frame_gif, "req-1")
        clock.advance(3_600_000)
        pipeline.process(five_frame_gif, "req-1")

        assert engine.calls == 10

    def test_new_correlation_id_recomputes(self, make_pipeline, five_frame_gif):
        """Test a different correlation id does not reuse cached frames."""
        pipeline, engine = make_pipeline([(s, 95.0) for s in POP_RING])

        pipeline.process(five_frame_gif, "req-1")
        pipeline.process(five_frame_gif, "req-2")

        assert engine.calls == 10

    def test_reused_correlation_id_other_animation(self, make_pipeline, five_frame_gif, gif_builder):
        """Test a reused correlation id does not serve another animation's frames."""
        readings = [(s, 95.0) for s in POP_RING] + [(s, 95.0) for s in ["←", "↑", "→"]]
        pipeline, engine = make_pipeline(readings)
        frames = []
        for i in range(3):
            indices = np.ones((8, 8), dtype=np.uint8)
            indices[2:6, i : i + 3] = 0
            frames.append({"indices": indices})

        pipeline.process(five_frame_gif, "req-1")
        result = pipeline.process(gif_builder(8, 8, frames), "req-1")

        assert engine.calls == 8
        assert result.symbols == ["←", "↑", "→"]


class TestFailures:
    """Test error propagation."""

    def test_rejected_frame_is_dropped(self, make_pipeline, five_frame_gif, caplog):
        """Test a failed frame is logged and skipped."""
        readings = [("ℍ", 95.0), ("ℎ", 95.0), ("A", 99.0), ("∑", 95.0), ("⑂", 95.0)]
        pipeline, _ = make_pipeline(readings)

        with caplog.at_level(logging.WARNING):
            result = pipeline.process(five_frame_gif, "req-1")

        assert result.symbols == ["ℍ", "ℎ", "∑", "⑂"]
        assert result.recognitions[2].symbol is None
        assert "QRG-E003" in caplog.text

    def test_insufficient_symbols(self, make_pipeline, five_frame_gif):
        """Test fewer than three surviving symbols escalates."""
        readings = [("ℍ", 95.0), ("", 0.0), ("ℎ", 70.0), ("", 0.0), ("ℎ", 95.0)]
        pipeline, _ = make_pipeline(readings)

        with pytest.raises(InsufficientSymbols) as exc_info:
            pipeline.process(five_frame_gif, "req-1")

        assert exc_info.value.recognized == 2
        assert exc_info.value.required == 3

    def test_invalid_sequence(self, make_pipeline, five_frame_gif):
        """Test a broken transition raises ValidationFailure without a fingerprint."""
        readings = [("ℍ", 95.0), ("←", 95.0), ("↑", 95.0), ("→", 95.0), ("↓", 95.0)]
        pipeline, _ = make_pipeline(readings)

        with pytest.raises(ValidationFailure, match="'ℍ' -> '←'"):
            pipeline.process(five_frame_gif, "req-1")

    def test_frame_count_checked_before_ocr(self, make_pipeline, gif_builder):
        """Test a 2-frame animation is rejected without engine calls."""
        frame = {"indices": np.ones((4, 4), dtype=np.uint8)}
        pipeline, engine = make_pipeline([("ℍ", 95.0)])

        with pytest.raises(InvalidFrameCount):
            pipeline.process(gif_builder(4, 4, [frame, frame]), "req-1")

        assert engine.calls == 0

    def test_nine_frames_rejected(self, make_pipeline, gif_builder):
        """Test more than eight frames is rejected."""
        frame = {"indices": np.ones((4, 4), dtype=np.uint8)}
        pipeline, _ = make_pipeline([("ℍ", 95.0)])

        with pytest.raises(InvalidFrameCount):
            pipeline.process(gif_builder(4, 4, [frame] * 9), "req-1")

    def test_decode_error(self, make_pipeline):
        """Test malformed bytes raise DecodeError."""
        pipeline, _ = make_pipeline([("ℍ", 95.0)])

        with pytest.raises(DecodeError):
            pipeline.process(b"definitely not a gif", "req-1")

    def test_engine_unavailable_propagates(self, make_pipeline, five_frame_gif):
        """Test engine initialization failure is surfaced immediately."""
        pipeline, engine = make_pipeline([("ℍ", 95.0)])

        with patch.object(engine, "extract_symbol", side_effect=EngineUnavailable("missing")):
            with pytest.raises(EngineUnavailable):
                pipeline.process(five_frame_gif, "req-1")


class TestCaptures:
    """Test burst camera capture acquisition."""

    @pytest.fixture
    def captures(self):
        """Provide three slots with three gray samples each."""
        rng = np.random.default_rng(5)
        return [
            [rng.integers(0, 256, size=(8, 8), dtype=np.uint8) for _ in range(3)]
            for _ in range(3)
        ]

    def test_most_frequent_per_slot(self, make_pipeline, captures):
        """Test each slot resolves to its most frequent accepted reading."""
        readings = [
            ("←", 90.0), ("←", 92.0), ("↑", 90.0),
            ("↑", 90.0), ("↑", 91.0), ("A", 99.0),
            ("→", 90.0), ("↔", 90.0), ("→", 90.0),
        ]
        pipeline, _ = make_pipeline(readings)

        result = pipeline.process_captures(captures, "cam-1")

        assert result.symbols == ["←", "↑", "→"]
        assert result.fingerprint == pipeline.process_captures(captures, "cam-2").fingerprint
        assert result.recognitions[0].confidence == 92.0
        assert pipeline.cache.get("cam-1:slot_2").symbol == "→"

    def test_unresolved_slot_dropped(self, make_pipeline, captures):
        """Test a slot without accepted readings is dropped."""
        readings = [
            ("←", 90.0), ("←", 90.0), ("←", 90.0),
            ("", 0.0), ("", 0.0), ("", 0.0),
            ("→", 90.0), ("→", 90.0), ("→", 90.0),
        ]
        pipeline, _ = make_pipeline(readings)

        with pytest.raises(InsufficientSymbols):
            pipeline.process_captures(captures, "cam-1")

    def test_slot_count_checked(self, make_pipeline, captures):
        """Test too few slots is rejected."""
        pipeline, _ = make_pipeline([("←", 90.0)])

        with pytest.raises(InvalidFrameCount):
            pipeline.process_captures(captures[:2], "cam-1")


class TestLifecycle:
    """Test engine ownership."""

    def test_injected_engine_not_terminated(self, make_pipeline):
        """Test close leaves an injected engine alone."""
        pipeline, engine = make_pipeline([("ℍ", 95.0)])

        with pipeline:
            pass

        assert engine.terminated == 0

    def test_shared_engine_released_once(self, fake_engine_factory):
        """Test a pipeline without an engine uses and releases the shared one."""
        shared = fake_engine_factory([("ℍ", 95.0)])
        with patch(
            "qrggif.pipeline.full_pipeline.get_shared_engine", return_value=shared
        ) as get_shared, patch(
            "qrggif.pipeline.full_pipeline.release_shared_engine"
        ) as release:
            pipeline = QRGGIFPipeline(Config())
            pipeline.close()
            pipeline.close()

        assert pipeline.engine is shared
        get_shared.assert_called_once()
        release.assert_called_once()

    def test_closing_one_pipeline_keeps_shared_engine(self):
        """Test the shared engine outlives any one of its pipelines."""
        with patch.object(engine_tesseract, "pytesseract") as mock_tesseract:
            mock_tesseract.get_tesseract_version.return_value = "5.3.0"
            mock_tesseract.get_languages.return_value = ["eng"]
            try:
                first = QRGGIFPipeline(Config())
                second = QRGGIFPipeline(Config())
                first.engine.initialize()

                first.close()
                third = QRGGIFPipeline(Config())

                assert second.engine.is_initialized
                assert third.engine is second.engine
                mock_tesseract.get_tesseract_version.assert_called_once()

                second.close()
                third.close()
                assert not third.engine.is_initialized
            finally:
                release_shared_engine(force=True)
