"""Date parsing for Korean and western receipt date formats."""

import re
import logging
from typing import Optional
from .base import BaseParser, ParseResult, ReceiptContext

logger = logging.getLogger(__name__)


# Year/month/day markers of the Korean long form (2024년 1월 15일)
_KOREAN_MARKERS = [
    (re.compile(r'년\s*'), '-'),
    (re.compile(r'월\s*'), '-'),
    (re.compile(r'일'), ''),
]


def normalize_date(date_str: str) -> str:
    """
    Convert a matched date string to YYYY-MM-DD.

    Day-first dates (DD-MM-YYYY) are reordered. Month and day ranges are not
    validated, and strings that fit neither layout are returned unchanged
    apart from separator normalization.

    Args:
        date_str: Raw date text as captured from the receipt

    Returns:
        Normalized date string
    """
    normalized = date_str
    for pattern, replacement in _KOREAN_MARKERS:
        normalized = pattern.sub(replacement, normalized)
    normalized = normalized.replace('/', '-').replace('.', '-').strip()

    parts = normalized.split('-')
    if len(parts) == 3:
        first, middle, last = parts
        if len(first) == 2 and len(last) == 4:
            normalized = f"{last}-{middle.zfill(2)}-{first.zfill(2)}"
        elif len(first) == 4:
            normalized = f"{first}-{middle.zfill(2)}-{last.zfill(2)}"

    return normalized


class DateParser(BaseParser):
    """Specialized parser for extracting dates from receipts."""

    def __init__(self):
        super().__init__()

        # Date patterns in priority order; the first pattern found anywhere wins
        self.date_patterns = [
            (re.compile(r'(\d{4}[-./]\d{1,2}[-./]\d{1,2})', re.ASCII), 'iso', 0.9),            # 2024-01-15
            (re.compile(r'(\d{1,2}[-./]\d{1,2}[-./]\d{4})', re.ASCII), 'day_first', 0.7),      # 15/01/2024
            (re.compile(r'(\d{4}년\s*\d{1,2}월\s*\d{1,2}일)', re.ASCII), 'korean_long', 0.9),  # 2024년 1월 15일
        ]

    def parse(self, context: ReceiptContext) -> Optional[ParseResult]:
        """
        Extract and normalize the receipt date.

        Args:
            context: Receipt context with full text and lines

        Returns:
            ParseResult with a YYYY-MM-DD string, or None if no pattern matched
        """
        for pattern, pattern_type, confidence in self.date_patterns:
            match = pattern.search(context.full_text)
            if not match:
                continue

            raw_date = match.group(1)
            result = ParseResult(
                value=normalize_date(raw_date),
                confidence=confidence,
                source_text=raw_date,
                metadata={'pattern_type': pattern_type, 'original_match': raw_date}
            )
            self._log_result(result, context)
            return result

        self._log_result(None, context)
        return None
