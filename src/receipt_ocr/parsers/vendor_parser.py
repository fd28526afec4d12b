"""Vendor/description extraction from the receipt header."""

import re
import logging
from typing import Optional
from .base import BaseParser, ParseResult, ReceiptContext

logger = logging.getLogger(__name__)


class VendorParser(BaseParser):
    """Pick the store name line from the top of a receipt."""

    # Vendor name is expected in the first few lines
    max_header_lines = 3
    max_length = 50

    def __init__(self):
        super().__init__()

        # Patterns for lines that are not business names
        self.exclude_patterns = [
            re.compile(r'\d{4}[-./]\d', re.ASCII),                   # Dates
            re.compile(r'합계|총액|결제|TOTAL', re.IGNORECASE),      # Total labels
            re.compile(r'^\d+$', re.ASCII),                          # Bare numbers
        ]

    def parse(self, context: ReceiptContext) -> Optional[ParseResult]:
        """
        Extract vendor/store name from receipt text.

        Args:
            context: Receipt context with full text and lines

        Returns:
            ParseResult with the vendor line, or None if no header line qualifies
        """
        for line_idx, line in enumerate(context.lines[:self.max_header_lines]):
            if any(pattern.search(line) for pattern in self.exclude_patterns):
                continue

            if not (1 < len(line) < self.max_length):
                continue

            result = ParseResult(
                value=line,
                confidence=max(0.3, 0.7 - (line_idx * 0.2)),  # Decrease with position
                source_text=line,
                metadata={'type': 'header_line', 'line_idx': line_idx}
            )
            self._log_result(result, context)
            return result

        self._log_result(None, context)
        return None
