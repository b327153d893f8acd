"""
License plate identification for captured frames.

The console treats identification as an opaque call that always answers:
any failure inside the identifier degrades to the UNKNOWN plate so the
operator can key the plate in by hand.
"""

from abc import ABC, abstractmethod

import cv2
import numpy as np
from fastapi.concurrency import run_in_threadpool

from weighstation.core.logging import get_logger
from weighstation.domain.models import RecognitionResult
from weighstation.domain.services import PlateTextNormalizer, PlateValidator
from weighstation.infrastructure.ml.ocr import OCREngine, OCRResult

logger = get_logger(__name__)


class RecognitionFailure(Exception):
    """Raised inside an identifier when no usable plate was read."""

    pass


class PlateIdentifier(ABC):
    """
    Identifier contract used by the transaction controller.

    identify() must never raise; it resolves to RecognitionResult.unknown()
    on any internal failure.
    """

    @abstractmethod
    async def identify(self, image: bytes) -> RecognitionResult:
        """
        Identify the license plate in an encoded camera frame.

        Args:
            image: JPEG-encoded frame.

        Returns:
            RecognitionResult: Normalized plate and confidence.
        """
        pass


class OCRPlateIdentifier(PlateIdentifier):
    """
    Identifier that reads the plate with an OCR engine.

    Every text region of the frame is a candidate, plus all regions joined
    (plates are often read as two regions, e.g. "ABC" and "123"). The
    most confident candidate that looks like a plate wins.

    Example:
        identifier = OCRPlateIdentifier(get_ocr_engine())
        result = await identifier.identify(jpeg_bytes)
    """

    def __init__(
        self,
        ocr_engine: OCREngine,
        confidence_threshold: float = 0.40,
        normalizer: PlateTextNormalizer | None = None,
        validator: PlateValidator | None = None,
    ):
        """
        Initialize OCR identifier.

        Args:
            ocr_engine: Engine that reads text regions from a frame.
            confidence_threshold: Minimum confidence to accept a candidate.
            normalizer: Plate normalizer.
            validator: Plate plausibility check.
        """
        self._ocr_engine = ocr_engine
        self._confidence_threshold = confidence_threshold
        self._normalizer = normalizer or PlateTextNormalizer()
        self._validator = validator or PlateValidator()

    async def identify(self, image: bytes) -> RecognitionResult:
        try:
            frame = await run_in_threadpool(self._decode_image, image)
            regions = await run_in_threadpool(self._ocr_engine.read_text, frame)
            result = self._select_plate(regions)
        except Exception as e:
            logger.warning("plate_recognition_failed", error=str(e), error_type=type(e).__name__)
            return RecognitionResult.unknown()

        logger.info(
            "plate_recognized",
            plate=result.license_plate,
            confidence=round(result.confidence, 3),
        )
        return result

    def _decode_image(self, image: bytes) -> np.ndarray:
        """Decode JPEG bytes to a BGR array."""
        if not image:
            raise RecognitionFailure("Empty frame")

        frame = cv2.imdecode(np.frombuffer(image, np.uint8), cv2.IMREAD_COLOR)
        if frame is None:
            raise RecognitionFailure("Frame could not be decoded")
        return frame

    def _select_plate(self, regions: list[OCRResult]) -> RecognitionResult:
        """
        Pick the best plate candidate.

        Plates are often read as several regions ("ABC", "1234"), so the
        joined text competes with the single regions; longer plausible
        plates win, then higher confidence.

        Raises:
            RecognitionFailure: If no candidate is confident and plausible.
        """
        candidates = list(regions)
        if len(regions) > 1:
            candidates.append(
                OCRResult(
                    raw_text="".join(r.raw_text for r in regions),
                    confidence=min(r.confidence for r in regions),
                )
            )

        best: RecognitionResult | None = None
        for candidate in candidates:
            plate = self._normalizer.normalize(candidate.raw_text)
            if candidate.confidence < self._confidence_threshold:
                continue
            if not self._validator.is_valid(plate):
                continue
            if best is None or (len(plate), candidate.confidence) > (
                len(best.license_plate),
                best.confidence,
            ):
                best = RecognitionResult(
                    license_plate=plate,
                    confidence=min(max(candidate.confidence, 0.0), 1.0),
                )

        if best is None:
            raise RecognitionFailure(f"No plate among {len(regions)} text regions")
        return best


class StaticPlateIdentifier(PlateIdentifier):
    """
    Identifier returning a fixed answer.

    Used by tests and by demo setups without a camera.
    """

    def __init__(self, plate: str = "UNKNOWN", confidence: float = 0.0):
        self.result = RecognitionResult(
            license_plate=PlateTextNormalizer().to_plate(plate),
            confidence=confidence,
        )
        self.calls = 0

    async def identify(self, image: bytes) -> RecognitionResult:
        self.calls += 1
        return self.result
