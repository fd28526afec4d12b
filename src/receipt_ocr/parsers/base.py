"""Base classes for receipt parsers."""

from abc import ABC, abstractmethod
from typing import Optional, Any, Dict, List
from dataclasses import dataclass
import logging

logger = logging.getLogger(__name__)


@dataclass
class ParseResult:
    """Result of a parsing operation with confidence and metadata."""
    value: Any
    confidence: float
    source_text: str = ""
    metadata: Dict[str, Any] = None

    def __post_init__(self):
        if self.metadata is None:
            self.metadata = {}


@dataclass
class ReceiptContext:
    """Context information about a receipt for parsing."""
    full_text: str
    lines: List[str] = None

    def __post_init__(self):
        if self.full_text is None:
            self.full_text = ""
        if self.lines is None:
            # Trimmed, non-empty lines in reading order
            self.lines = [line.strip() for line in self.full_text.split('\n') if line.strip()]


class BaseParser(ABC):
    """Base class for all receipt parsers."""

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def parse(self, context: ReceiptContext) -> Optional[ParseResult]:
        """
        Parse the specific field from receipt context.

        Args:
            context: Receipt context with text and lines

        Returns:
            ParseResult with value and confidence, or None if nothing matched
        """
        pass

    def _log_result(self, result: Optional[ParseResult], context: ReceiptContext):
        """Log parsing result for debugging."""
        if result:
            self.logger.debug(f"Parsed: {result.value} (confidence: {result.confidence:.2f})")
        else:
            self.logger.info("Parsing found no match")
