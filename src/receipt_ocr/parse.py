"""Receipt text extraction built from the field parsers."""

import logging
from dataclasses import dataclass, asdict
from typing import Optional, Dict, Any
from .parsers import DateParser, AmountParser, VendorParser
from .parsers.base import ReceiptContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExtractionResult:
    """Best-effort guess of the receipt fields, to be reviewed by a human before saving."""
    date: Optional[str]
    description: Optional[str]
    amount: Optional[int]
    raw_text: str

    @property
    def is_complete(self) -> bool:
        return self.date is not None and self.description is not None and self.amount is not None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_prefill(self) -> Dict[str, Any]:
        """Form pre-fill values; missing fields become empty strings or zero."""
        return {
            'date': self.date or '',
            'description': self.description or '',
            'amount': self.amount or 0,
            'raw_text': self.raw_text,
        }


class ReceiptParser:
    """
    Receipt parser combining the date, amount and vendor components.

    Each field is extracted independently with a first-match-wins cascade.
    The parser holds no per-receipt state, so one instance can be shared
    between threads.
    """

    def __init__(self):
        """Initialize with specialized parser components."""
        self.date_parser = DateParser()
        self.amount_parser = AmountParser()
        self.vendor_parser = VendorParser()

    def extract(self, text: Optional[str]) -> ExtractionResult:
        """
        Extract date, description and amount from raw OCR text.

        Args:
            text: Raw OCR text from receipt (may be empty)

        Returns:
            ExtractionResult; fields that could not be found are None
        """
        raw_text = text or ''
        context = ReceiptContext(full_text=raw_text)

        date_result = self.date_parser.parse(context)
        amount_result = self.amount_parser.parse(context)
        vendor_result = self.vendor_parser.parse(context)

        result = ExtractionResult(
            date=date_result.value if date_result else None,
            description=vendor_result.value if vendor_result else None,
            amount=amount_result.value if amount_result else None,
            raw_text=raw_text,
        )

        logger.info(f"Extracted receipt: date={result.date}, amount=₩{result.amount}, "
                    f"description={result.description}")
        return result

    def parse_date(self, text: str) -> Optional[str]:
        context = ReceiptContext(full_text=text)
        result = self.date_parser.parse(context)
        return result.value if result else None

    def parse_amount(self, text: str) -> Optional[int]:
        context = ReceiptContext(full_text=text)
        result = self.amount_parser.parse(context)
        return result.value if result else None

    def parse_vendor(self, text: str) -> Optional[str]:
        context = ReceiptContext(full_text=text)
        result = self.vendor_parser.parse(context)
        return result.value if result else None


_default_parser = ReceiptParser()


def extract(text: Optional[str]) -> ExtractionResult:
    """Extract receipt fields with a shared parser instance."""
    return _default_parser.extract(text)
