"""
OCR engine implementations using strategy pattern.

Provides pluggable OCR engines with image preprocessing for reading
license plates off full camera frames of trucks on the scale.
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass

import cv2
import numpy as np

from weighstation.core.logging import get_logger

logger = get_logger(__name__)


class OCRError(Exception):
    """Raised when OCR extraction fails."""

    pass


@dataclass(frozen=True)
class OCRResult:
    """
    One text region found by the OCR engine.

    Attributes:
        raw_text: Text as read, before plate normalization.
        confidence: OCR confidence score (0.0 to 1.0).
    """

    raw_text: str
    confidence: float


class OCREngine(ABC):
    """
    Abstract base class for OCR engines.

    Implementations return every text region in the frame; picking the
    plate among them is left to the identifier.
    """

    @abstractmethod
    def read_text(self, image: np.ndarray) -> list[OCRResult]:
        """
        Read all text regions of a frame.

        Args:
            image: Camera frame (BGR format).

        Returns:
            list: Text regions with confidences, possibly empty.

        Raises:
            OCRError: If extraction fails.
        """
        pass


class ImagePreprocessor:
    """
    Prepares full camera frames for a second OCR pass.

    Platform cameras look at the cab from a fixed mount outdoors, so the
    usual problems are glare and low light rather than small text: the
    frame is capped in width, converted to grayscale, contrast-equalized
    locally (CLAHE) and lightly denoised.
    """

    def __init__(
        self,
        max_width: int = 1280,
        clip_limit: float = 2.0,
        denoise_strength: int = 7,
    ):
        """
        Initialize preprocessor.

        Args:
            max_width: Frames wider than this are scaled down.
            clip_limit: CLAHE contrast limit.
            denoise_strength: Strength of denoising filter.
        """
        self.max_width = max_width
        self.clip_limit = clip_limit
        self.denoise_strength = denoise_strength

    def preprocess(self, image: np.ndarray) -> np.ndarray:
        """
        Args:
            image: Input frame (BGR or grayscale).

        Returns:
            np.ndarray: Equalized grayscale frame.
        """
        processed = self._shrink(image)

        if processed.ndim == 3:
            processed = cv2.cvtColor(processed, cv2.COLOR_BGR2GRAY)

        clahe = cv2.createCLAHE(clipLimit=self.clip_limit, tileGridSize=(8, 8))
        processed = clahe.apply(processed)

        return cv2.fastNlMeansDenoising(processed, h=self.denoise_strength)

    def _shrink(self, image: np.ndarray) -> np.ndarray:
        height, width = image.shape[:2]
        if width <= self.max_width:
            return image

        scale = self.max_width / width
        return cv2.resize(
            image,
            (self.max_width, max(1, int(height * scale))),
            interpolation=cv2.INTER_AREA,
        )


class EasyOCREngine(OCREngine):
    """
    OCR engine using EasyOCR.

    The reader is shared by all instances and created lazily on first use,
    because loading the recognition model takes several seconds.

    Example:
        engine = EasyOCREngine()
        regions = engine.read_text(frame)
    """

    _reader = None
    _lock = threading.Lock()

    def __init__(
        self,
        languages: list[str] | None = None,
        gpu: bool = False,
    ):
        """
        Initialize EasyOCR engine.

        Args:
            languages: Languages to recognize (default: English).
            gpu: Whether to use GPU acceleration.
        """
        self.languages = languages or ["en"]
        self.gpu = gpu
        self.preprocessor = ImagePreprocessor()

    def _get_reader(self):
        """Lazy-load the EasyOCR reader."""
        if EasyOCREngine._reader is None:
            with EasyOCREngine._lock:
                if EasyOCREngine._reader is None:
                    import easyocr

                    EasyOCREngine._reader = easyocr.Reader(
                        self.languages,
                        gpu=self.gpu,
                    )
                    logger.info("easyocr_initialized", gpu=self.gpu)
        return EasyOCREngine._reader

    def read_text(self, image: np.ndarray) -> list[OCRResult]:
        try:
            reader = self._get_reader()

            results = reader.readtext(image)

            # Fall back to the preprocessed frame when the raw one reads poorly
            if not results or max(r[2] for r in results) < 0.5:
                processed_results = reader.readtext(self.preprocessor.preprocess(image))
                raw_max_conf = max((r[2] for r in results), default=0)
                processed_max_conf = max((r[2] for r in processed_results), default=0)
                if processed_max_conf > raw_max_conf:
                    results = processed_results

            regions = [
                OCRResult(raw_text=text, confidence=float(conf))
                for _, text, conf in results
            ]

            logger.debug(
                "ocr_complete",
                num_regions=len(regions),
                regions=[(r.raw_text, round(r.confidence, 3)) for r in regions],
            )

            return regions

        except Exception as e:
            logger.error("ocr_failed", error=str(e))
            raise OCRError(f"OCR extraction failed: {e}") from e


class MockOCREngine(OCREngine):
    """
    Mock OCR engine for testing and demos without the OCR model.

    Returns configurable text for every frame.
    """

    def __init__(
        self,
        mock_text: str = "ABC123",
        mock_confidence: float = 0.95,
    ):
        """
        Initialize mock OCR.

        Args:
            mock_text: Text to return from extraction.
            mock_confidence: Confidence to return.
        """
        self.mock_text = mock_text
        self.mock_confidence = mock_confidence

    def read_text(self, image: np.ndarray) -> list[OCRResult]:
        """Return mock OCR result."""
        return [OCRResult(raw_text=self.mock_text, confidence=self.mock_confidence)]


def get_ocr_engine(use_mock: bool = False, gpu: bool = False) -> OCREngine:
    """
    Factory function to get appropriate OCR engine.

    Args:
        use_mock: Whether to use mock engine for testing.
        gpu: Run EasyOCR on GPU.

    Returns:
        OCREngine: Configured OCR engine instance.
    """
    if use_mock:
        return MockOCREngine()

    return EasyOCREngine(gpu=gpu)
