"""Review queue for incomplete extractions that need a human to fill in fields."""

import logging
from typing import Dict, List, Optional, Any
from dataclasses import dataclass, asdict
from pathlib import Path

from .parse import ExtractionResult

logger = logging.getLogger(__name__)


@dataclass
class ReviewItem:
    """Represents an item that needs manual review."""
    file_path: str
    reason: str
    suggested_date: Optional[str] = None
    suggested_amount: Optional[int] = None
    suggested_description: Optional[str] = None
    raw_snippet: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ReviewQueue:
    """
    Manages receipts whose extracted fields must be completed by hand.

    Review is advisory: flagged receipts are still returned to the caller and
    can be saved once a person has filled in the missing values.
    """

    def __init__(self, snippet_length: int = 200):
        self.items: List[ReviewItem] = []
        self.snippet_length = snippet_length

    def should_review(self, result: ExtractionResult) -> List[str]:
        """
        Determine why a receipt should be sent to review.

        Args:
            result: Extraction result for one receipt

        Returns:
            List of reasons; empty when all fields were found
        """
        reasons = []
        if result.date is None:
            reasons.append("missing date")
        if result.amount is None:
            reasons.append("missing amount")
        if result.description is None:
            reasons.append("missing description")
        if not result.raw_text.strip():
            reasons.append("no text recognized")
        return reasons

    def add_item(self,
                 file_path: str,
                 reason: str,
                 suggested_date: Optional[str] = None,
                 suggested_amount: Optional[int] = None,
                 suggested_description: Optional[str] = None,
                 raw_snippet: str = ""):
        """Add an item to the review queue."""
        item = ReviewItem(
            file_path=file_path,
            reason=reason,
            suggested_date=suggested_date,
            suggested_amount=suggested_amount,
            suggested_description=suggested_description,
            raw_snippet=raw_snippet,
        )
        self.items.append(item)
        logger.debug(f"Added to review queue: {Path(file_path).name} - {reason}")

    def add_from_extraction(self, file_path: str, result: ExtractionResult) -> bool:
        """
        Add a receipt to review if any field is missing.

        Returns:
            True if the receipt was queued
        """
        reasons = self.should_review(result)
        if not reasons:
            return False

        reason = "; ".join(reasons)
        logger.info(f"Sending {Path(file_path).name} to review: {reason}")

        # Single-line snippet of the raw text
        snippet = ' '.join(result.raw_text.split())
        if len(snippet) > self.snippet_length:
            snippet = snippet[:self.snippet_length] + "..."

        self.add_item(
            file_path=file_path,
            reason=reason,
            suggested_date=result.date,
            suggested_amount=result.amount,
            suggested_description=result.description,
            raw_snippet=snippet,
        )
        return True

    def get_summary(self) -> Dict[str, Any]:
        """Get summary statistics for the review queue."""
        if not self.items:
            return {"total": 0}

        reason_counts = {}
        for item in self.items:
            for reason in item.reason.split(';'):
                reason = reason.strip()
                reason_counts[reason] = reason_counts.get(reason, 0) + 1

        return {
            "total": len(self.items),
            "reason_breakdown": reason_counts,
        }

    def clear(self):
        """Clear all items from the review queue."""
        self.items.clear()
        logger.info("Review queue cleared")
