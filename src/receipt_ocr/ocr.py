"""Google Cloud Vision OCR wrapper for receipt images."""

import base64
import hashlib
import json
import logging
from pathlib import Path
from typing import Dict, Any, Iterable, Optional

import requests

from .config import load_config
from .parse import ExtractionResult, ReceiptParser

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "https://vision.googleapis.com/v1/images:annotate"
ALLOWED_EXTENSIONS = ('.jpg', '.jpeg', '.png', '.gif', '.webp')
MAX_FILE_SIZE = 10 * 1024 * 1024


class OCRError(Exception):
    """OCR provider call failed (missing key, network error or API error)."""


class ImageValidationError(ValueError):
    """Receipt image was rejected before OCR."""


def validate_receipt_image(image_path: Path,
                           allowed_extensions: Iterable[str] = ALLOWED_EXTENSIONS,
                           max_file_size: int = MAX_FILE_SIZE):
    """
    Check that a receipt image can be sent to OCR.

    Raises:
        ImageValidationError: file missing, wrong type or too large
    """
    image_path = Path(image_path)
    if not image_path.is_file():
        raise ImageValidationError(f"Image file not found: {image_path}")

    allowed = {ext.lower() for ext in allowed_extensions}
    if image_path.suffix.lower() not in allowed:
        raise ImageValidationError(
            f"Invalid file type {image_path.suffix or '(none)'}. "
            f"Allowed: {', '.join(sorted(allowed))}"
        )

    size = image_path.stat().st_size
    if size > max_file_size:
        raise ImageValidationError(
            f"{image_path.name} is {size} bytes, limit is {max_file_size} bytes"
        )


class VisionOCRProcessor:
    """Text detection through the Google Vision REST API."""

    def __init__(self,
                 api_key: Optional[str] = None,
                 endpoint: str = DEFAULT_ENDPOINT,
                 timeout: float = 30,
                 allowed_extensions: Iterable[str] = ALLOWED_EXTENSIONS,
                 max_file_size: int = MAX_FILE_SIZE):
        """
        Initialize OCR processor.

        Args:
            api_key: Google Vision API key
            endpoint: images:annotate endpoint URL
            timeout: Request timeout in seconds
            allowed_extensions: Image types accepted for upload
            max_file_size: Upload size limit in bytes
        """
        self.api_key = api_key
        self.endpoint = endpoint
        self.timeout = timeout
        self.allowed_extensions = tuple(allowed_extensions)
        self.max_file_size = max_file_size

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'VisionOCRProcessor':
        ocr = config.get('ocr', {})
        upload = config.get('upload', {})
        return cls(
            api_key=ocr.get('api_key'),
            endpoint=ocr.get('endpoint', DEFAULT_ENDPOINT),
            timeout=ocr.get('timeout', 30),
            allowed_extensions=upload.get('allowed_extensions', ALLOWED_EXTENSIONS),
            max_file_size=upload.get('max_file_size', MAX_FILE_SIZE),
        )

    def get_file_hash(self, file_path: Path) -> str:
        """Generate hash for file to detect duplicates."""
        with open(file_path, 'rb') as f:
            return hashlib.md5(f.read()).hexdigest()

    def recognize_text(self, image_bytes: bytes) -> str:
        """
        Run TEXT_DETECTION on an image.

        Args:
            image_bytes: Raw image file content

        Returns:
            Full detected text, or an empty string when nothing was detected

        Raises:
            OCRError: API key missing, request failed or API returned an error
        """
        if not self.api_key:
            raise OCRError("Google Vision API key not configured")

        payload = {
            'requests': [
                {
                    'image': {'content': base64.b64encode(image_bytes).decode('ascii')},
                    'features': [{'type': 'TEXT_DETECTION', 'maxResults': 1}],
                }
            ]
        }

        try:
            response = requests.post(
                self.endpoint,
                params={'key': self.api_key},
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Vision API request failed: {e}")
            raise OCRError(f"Vision API request failed: {e}") from e

        if not response.ok:
            logger.error(f"Vision API returned {response.status_code}: {response.reason}")
            raise OCRError(f"Vision API error: {response.reason}")

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"Vision API returned invalid JSON: {e}")
            raise OCRError("Vision API error: invalid response body") from e

        responses = data.get('responses') or [{}]
        first = responses[0]

        if first.get('error'):
            message = first['error'].get('message', 'unknown error')
            logger.error(f"Vision API error: {message}")
            raise OCRError(f"Vision API error: {message}")

        annotations = first.get('textAnnotations') or []
        text = annotations[0].get('description', '') if annotations else ''
        logger.debug(f"Vision API returned {len(text)} characters")
        return text

    def extract_text_from_image(self, image_path: Path,
                                output_dir: Optional[Path] = None) -> Dict[str, Any]:
        """
        Validate an image and extract its text.

        Args:
            image_path: Path to receipt image
            output_dir: Directory to cache OCR JSON results (optional)

        Returns:
            Dictionary with file_path, file_hash and full_text
        """
        image_path = Path(image_path)
        validate_receipt_image(image_path, self.allowed_extensions, self.max_file_size)

        file_hash = self.get_file_hash(image_path)

        json_path = None
        if output_dir is not None:
            json_path = Path(output_dir) / f"{image_path.stem}_{file_hash}.json"
            if json_path.exists():
                logger.info(f"Loading cached OCR result for {image_path.name}")
                try:
                    with open(json_path, 'r', encoding='utf-8') as f:
                        cached = json.load(f)
                    if isinstance(cached, dict) and isinstance(cached.get('full_text'), str):
                        return cached
                    logger.warning(f"Cached OCR result {json_path.name} is incomplete, re-running OCR")
                except (ValueError, OSError) as e:
                    logger.warning(f"Cached OCR result {json_path.name} is unreadable ({e}), re-running OCR")

        logger.info(f"Processing {image_path.name} with Google Vision...")
        full_text = self.recognize_text(image_path.read_bytes())

        ocr_result = {
            'file_path': str(image_path),
            'file_hash': file_hash,
            'full_text': full_text,
        }

        if json_path is not None:
            json_path.parent.mkdir(parents=True, exist_ok=True)
            with open(json_path, 'w', encoding='utf-8') as f:
                json.dump(ocr_result, f, ensure_ascii=False, indent=2)

        logger.info(f"OCR completed for {image_path.name}: {len(full_text)} characters")
        return ocr_result


def extract_receipt(image_path: Path,
                    ocr: Optional[VisionOCRProcessor] = None,
                    parser: Optional[ReceiptParser] = None,
                    output_dir: Optional[Path] = None) -> ExtractionResult:
    """
    OCR a receipt image and extract its fields.

    Raises:
        ImageValidationError: image rejected before OCR
        OCRError: OCR provider failure
    """
    ocr = ocr or VisionOCRProcessor.from_config(load_config())
    parser = parser or ReceiptParser()
    ocr_result = ocr.extract_text_from_image(image_path, output_dir)
    return parser.extract(ocr_result['full_text'])
