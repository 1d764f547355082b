"""Full end-to-end QRGGIF pipeline.

Orchestrates all stages for one animation:
    1. COMPOSE: decode the GIF and composite full-canvas frames
    2. FRAME COUNT: reject animations outside the accepted range before OCR
    3. RECOGNIZE: preprocess and recognize each frame (failures drop the frame)
    4. VALIDATE: check the surviving sequence against the ring table
    5. FINGERPRINT: SHA-256 of the pipe-joined symbols

Frames are processed strictly in order on the calling thread; the
compositor's accumulation buffer carries state from frame to frame. Frame
results are cached under the correlation id plus a digest of the animation
bytes, so a reused id never serves another animation's recognitions.

Example:
    >>> from qrggif.pipeline import QRGGIFPipeline
    >>> with QRGGIFPipeline() as pipeline:
    ...     result = pipeline.process(Path("qrggif-1.gif").read_bytes(), "req-42")
    ...     print(result.symbols, result.fingerprint)
"""

import argparse
import hashlib
import json
import logging
import sys
import time
import uuid
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

import numpy as np

from qrggif.animation.compositor import FrameCompositor
from qrggif.animation.types import RawAnimation
from qrggif.cache.result_cache import ResultCache
from qrggif.common.config_loader import Config, get_default_config, load_config
from qrggif.common.errors import (
    InsufficientSymbols,
    QRGGIFError,
    RecognitionFailure,
    ValidationFailure,
)
from qrggif.ocr.engine_tesseract import get_shared_engine, release_shared_engine
from qrggif.ocr.recognizer import SymbolRecognizer
from qrggif.ocr.types import NO_TEXT, RecognitionResult
from qrggif.preprocessing.processor import FramePreprocessor
from qrggif.preprocessing.types import PreprocessedImage
from qrggif.sequence.fingerprint import fingerprint
from qrggif.sequence.validator import (
    SequenceValidator,
    check_frame_count,
    find_invalid_transition,
)

from .types import PipelineResult
from .verification import VerificationClient

logger = logging.getLogger(__name__)

# Hex digits of the content digest kept in frame cache keys
CONTENT_DIGEST_LENGTH = 16


def content_digest(data: bytes) -> str:
    """Short SHA-256 digest identifying an animation's bytes."""
    return hashlib.sha256(data).hexdigest()[:CONTENT_DIGEST_LENGTH]


def frame_cache_key(correlation_id: str, digest: str, frame_index: int) -> str:
    """Cache key for one frame of one animation within a run."""
    return f"{correlation_id}:{digest}:frame_{frame_index}"


class QRGGIFPipeline:
    """End-to-end pipeline from animation bytes to fingerprint.

    Args:
        config: Full configuration (bundled defaults if None)
        engine: OCR engine handle; if None the process-wide shared engine is
            used and released by ``close()``
        cache: Result cache to share across runs (a new one if None)

    Attributes:
        compositor: GIF compositor
        preprocessor: Frame preprocessor
        recognizer: Symbol recognizer over the engine
        validator: Sequence validator
        cache: Per-frame recognition cache keyed by correlation id
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        engine=None,
        cache: Optional[ResultCache] = None,
    ):
        self.config: Config = config or get_default_config()

        self._owns_engine = engine is None
        self.engine = engine if engine is not None else get_shared_engine(self.config.engine)

        self.compositor = FrameCompositor()
        self.preprocessor = FramePreprocessor(self.config.preprocessing)
        self.recognizer = SymbolRecognizer(self.engine, self.config.recognition)
        self.validator = SequenceValidator(
            self.config.animation.min_frames, self.config.animation.max_frames
        )
        self.cache = cache if cache is not None else ResultCache(
            capacity=self.config.cache.capacity, ttl_ms=self.config.cache.ttl_ms
        )
        self._closed = False

    def process(
        self,
        raw: Union[bytes, RawAnimation],
        correlation_id: Optional[str] = None,
    ) -> PipelineResult:
        """Decode, recognize, validate and fingerprint one animation.

        Args:
            raw: GIF bytes or a RawAnimation
            correlation_id: Caller-supplied run identifier used for cache keys
                (a random one if None)

        Returns:
            PipelineResult with the symbol sequence and fingerprint

        Raises:
            DecodeError: If the container cannot be parsed
            InvalidFrameCount: If the frame count is out of range
            InsufficientSymbols: If too few frames yield a symbol
            ValidationFailure: If the sequence breaks the transition table
            EngineUnavailable: If the OCR engine cannot be initialized
        """
        start_time = time.perf_counter()
        correlation_id = correlation_id or uuid.uuid4().hex
        if isinstance(raw, (bytes, bytearray)):
            raw = RawAnimation(data=bytes(raw))

        logger.info(f"[{correlation_id}] Processing animation ({len(raw.data)} bytes)")

        # ═══════════════════════════════════════════════════════════════
        # STAGE 1: COMPOSE
        # ═══════════════════════════════════════════════════════════════
        frames = self.compositor.compose(raw)

        # ═══════════════════════════════════════════════════════════════
        # STAGE 2: FRAME COUNT (before any OCR cost)
        # ═══════════════════════════════════════════════════════════════
        check_frame_count(
            len(frames), self.config.animation.min_frames, self.config.animation.max_frames
        )

        # ═══════════════════════════════════════════════════════════════
        # STAGE 3: RECOGNIZE
        # ═══════════════════════════════════════════════════════════════
        animation_digest = content_digest(raw.data)
        recognitions: List[RecognitionResult] = []
        for frame in frames:
            key = frame_cache_key(correlation_id, animation_digest, frame.index)
            result = self.cache.get(key)
            if result is None:
                image = self.preprocessor.preprocess(
                    frame, keep_stages=self.config.cache.store_artifacts
                )
                result = self.recognizer.recognize(image)
                self.cache.set(key, result)
                self._store_artifacts(key, image)
            else:
                logger.debug(f"[{correlation_id}] Cache hit for frame {frame.index}")
            recognitions.append(result)
            self._log_rejection(correlation_id, result)

        symbols = [r.symbol for r in recognitions if r.symbol is not None]

        # ═══════════════════════════════════════════════════════════════
        # STAGES 4-5: VALIDATE + FINGERPRINT
        # ═══════════════════════════════════════════════════════════════
        digest = self._validate_and_fingerprint(correlation_id, symbols)

        processing_time_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            f"[{correlation_id}] Sequence {'|'.join(symbols)} -> {digest[:12]}... "
            f"({len(symbols)}/{len(frames)} frames, {processing_time_ms:.1f} ms)"
        )
        return PipelineResult(
            correlation_id=correlation_id,
            symbols=symbols,
            fingerprint=digest,
            recognitions=recognitions,
            frame_count=len(frames),
            processing_time_ms=processing_time_ms,
        )

    def process_captures(
        self,
        samples_per_slot: Sequence[Sequence[np.ndarray]],
        correlation_id: Optional[str] = None,
    ) -> PipelineResult:
        """Recognize a sequence from burst camera captures.

        Each slot is one symbol position; every sample captured for it is
        recognized and the slot resolves to its most frequent recent symbol.

        Args:
            samples_per_slot: Captured rasters (RGBA/RGB/gray), grouped by slot
            correlation_id: Caller-supplied run identifier

        Returns:
            PipelineResult; ``recognitions`` holds one result per slot

        Raises:
            InvalidFrameCount: If the slot count is out of range
            InsufficientSymbols: If too few slots resolve to a symbol
            ValidationFailure: If the sequence breaks the transition table
        """
        start_time = time.perf_counter()
        correlation_id = correlation_id or uuid.uuid4().hex
        check_frame_count(
            len(samples_per_slot),
            self.config.animation.min_frames,
            self.config.animation.max_frames,
        )
        logger.info(f"[{correlation_id}] Processing {len(samples_per_slot)} capture slots")

        recognitions: List[RecognitionResult] = []
        for ordinal, samples in enumerate(samples_per_slot):
            slot = f"{correlation_id}:slot_{ordinal}"
            self.recognizer.history.clear(slot)
            confidences: Dict[str, float] = {}
            for sample in samples:
                image = self.preprocessor.preprocess_array(sample, source_index=ordinal)
                reading = self.recognizer.recognize(image, slot=slot)
                if reading.is_accepted:
                    confidences[reading.symbol] = max(
                        confidences.get(reading.symbol, 0.0), reading.confidence
                    )

            symbol = self.recognizer.most_frequent(slot)
            result = RecognitionResult(
                symbol=symbol,
                confidence=confidences.get(symbol, 0.0),
                source_frame_ordinal=ordinal,
                raw_text=symbol or "",
                rejection=None if symbol is not None else NO_TEXT,
            )
            self.cache.set(slot, result)
            recognitions.append(result)
            self._log_rejection(correlation_id, result)

        symbols = [r.symbol for r in recognitions if r.symbol is not None]
        digest = self._validate_and_fingerprint(correlation_id, symbols)

        return PipelineResult(
            correlation_id=correlation_id,
            symbols=symbols,
            fingerprint=digest,
            recognitions=recognitions,
            frame_count=len(samples_per_slot),
            processing_time_ms=(time.perf_counter() - start_time) * 1000,
        )

    def _store_artifacts(self, key: str, image: PreprocessedImage) -> None:
        if not self.config.cache.store_artifacts:
            return
        for stage, raster in image.stages.items():
            self.cache.set_artifact(key, stage, raster)

    def _log_rejection(self, correlation_id: str, result: RecognitionResult) -> None:
        if result.is_accepted:
            return
        failure = RecognitionFailure(result.source_frame_ordinal, result.rejection or NO_TEXT)
        logger.warning(f"[{correlation_id}] {failure} (frame dropped)")

    def _validate_and_fingerprint(self, correlation_id: str, symbols: List[str]) -> str:
        logger.debug(f"[{correlation_id}] Validating sequence {'|'.join(symbols)}")
        required = self.config.animation.min_frames
        if len(symbols) < required:
            raise InsufficientSymbols(len(symbols), required)

        if not self.validator.validate(symbols):
            invalid = find_invalid_transition(symbols)
            detail = (
                f"'{invalid.current}' -> '{invalid.next}' at position {invalid.position}"
                if invalid is not None
                else f"length {len(symbols)}"
            )
            raise ValidationFailure(f"Sequence invalid: {'|'.join(symbols)} ({detail})")

        return fingerprint(symbols)

    def close(self) -> None:
        """Release the shared engine if this pipeline acquired it. Idempotent."""
        if self._closed:
            return
        self._closed = True
        if self._owns_engine:
            release_shared_engine()
        logger.debug("Pipeline closed")

    def __enter__(self) -> "QRGGIFPipeline":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Decode a QRGGIF animation to its fingerprint")
    parser.add_argument("gif", type=str, help="Path to the animated GIF")
    parser.add_argument("--config", type=str, default=None, help="Configuration YAML file")
    parser.add_argument("--correlation-id", type=str, default=None, help="Run identifier")
    parser.add_argument("--verify", action="store_true", help="Check the fingerprint with the verification service")
    parser.add_argument("--export-cache", type=str, default=None, help="Write the result cache to this file")
    parser.add_argument("--format", choices=["csv", "json"], default="json", help="Cache export format")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    config = load_config(Path(args.config)) if args.config else get_default_config()

    with QRGGIFPipeline(config) as pipeline:
        try:
            result = pipeline.process(RawAnimation.from_path(Path(args.gif)), args.correlation_id)
        except QRGGIFError as e:
            logger.error(f"Pipeline failed at {e.stage}: {e}")
            return 1

        output = result.to_dict()
        if args.verify:
            try:
                verification = VerificationClient(config.verification).verify(result.fingerprint)
            except QRGGIFError as e:
                logger.error(f"Verification failed: {e}")
                return 1
            output["verification"] = {
                "valid": verification.valid,
                "message": verification.message,
                "entry": verification.entry,
            }

        if args.export_cache:
            Path(args.export_cache).write_text(
                pipeline.cache.export(args.format), encoding="utf-8"
            )
            logger.info(f"Exported cache to {args.export_cache}")

    print(json.dumps(output, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
