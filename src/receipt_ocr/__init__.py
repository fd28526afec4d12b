"""Receipt OCR - pre-fill expense records from Korean receipt images."""

__version__ = "1.0.0"

from .parse import ReceiptParser, ExtractionResult, extract
from .ocr import VisionOCRProcessor, OCRError, ImageValidationError, extract_receipt
from .review import ReviewQueue, ReviewItem
from .config import load_config

__all__ = [
    'ReceiptParser',
    'ExtractionResult',
    'extract',
    'VisionOCRProcessor',
    'OCRError',
    'ImageValidationError',
    'extract_receipt',
    'ReviewQueue',
    'ReviewItem',
    'load_config',
]
