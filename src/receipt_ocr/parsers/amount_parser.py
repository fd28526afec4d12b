"""Amount parsing for Korean won receipts."""

import re
import logging
from typing import Optional
from .base import BaseParser, ParseResult, ReceiptContext

logger = logging.getLogger(__name__)


class AmountParser(BaseParser):
    """Specialized parser for extracting the total amount from receipts."""

    def __init__(self):
        super().__init__()

        # Amount patterns in priority order (pattern, keyword, confidence)
        self.amount_patterns = [
            (re.compile(r'합\s*계[:\s]*([0-9][0-9,]*)\s*원?', re.IGNORECASE), '합계', 0.9),   # Total
            (re.compile(r'총\s*액[:\s]*([0-9][0-9,]*)\s*원?', re.IGNORECASE), '총액', 0.9),   # Total amount
            (re.compile(r'결\s*제[:\s]*([0-9][0-9,]*)\s*원?', re.IGNORECASE), '결제', 0.85),  # Payment
            (re.compile(r'TOTAL[:\s]*([0-9][0-9,]*)', re.IGNORECASE), 'total', 0.85),
            (re.compile(r'([0-9][0-9,]*)\s*원'), None, 0.5),                                   # Any won amount
        ]

    def parse(self, context: ReceiptContext) -> Optional[ParseResult]:
        """
        Extract the total amount in KRW.

        Args:
            context: Receipt context with full text and lines

        Returns:
            ParseResult with an integer amount, or None if nothing matched
        """
        for pattern, keyword, confidence in self.amount_patterns:
            match = pattern.search(context.full_text)
            if not match:
                continue

            try:
                amount = int(match.group(1).replace(',', ''))
            except ValueError:
                # Digit runs beyond the int conversion limit are OCR noise
                self.logger.debug(f"Skipping oversized amount: {len(match.group(1))} chars")
                continue

            result = ParseResult(
                value=amount,
                confidence=confidence,
                source_text=match.group(),
                metadata={
                    'type': 'keyword' if keyword else 'currency',
                    'keyword': keyword,
                }
            )
            self._log_result(result, context)
            return result

        self._log_result(None, context)
        return None
