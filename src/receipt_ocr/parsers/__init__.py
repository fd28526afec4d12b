"""Receipt parsing components - one parser per extracted field."""

from .date_parser import DateParser, normalize_date
from .amount_parser import AmountParser
from .vendor_parser import VendorParser

__all__ = ['DateParser', 'AmountParser', 'VendorParser', 'normalize_date']
