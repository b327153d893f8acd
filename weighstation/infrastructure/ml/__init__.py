"""ML infrastructure package."""

from weighstation.infrastructure.ml.identifier import (
    OCRPlateIdentifier,
    PlateIdentifier,
    RecognitionFailure,
    StaticPlateIdentifier,
)
from weighstation.infrastructure.ml.ocr import (
    EasyOCREngine,
    MockOCREngine,
    OCREngine,
    OCRError,
    OCRResult,
    get_ocr_engine,
)

__all__ = [
    # Identifier
    "PlateIdentifier",
    "OCRPlateIdentifier",
    "StaticPlateIdentifier",
    "RecognitionFailure",
    # OCR
    "OCREngine",
    "OCRResult",
    "EasyOCREngine",
    "MockOCREngine",
    "OCRError",
    "get_ocr_engine",
]
