"""Layout-based field extraction for Chinese VAT e-invoice PDFs."""

__version__ = "0.1.0"

from .models import Invoice, InvoiceItem, InvoiceParty, ProcessingStats, TextToken
from .invoice_parser import InvoiceParser
from .batch import InvoiceBatch, CancellationToken

__all__ = [
    "__version__",
    "Invoice",
    "InvoiceItem",
    "InvoiceParty",
    "ProcessingStats",
    "TextToken",
    "InvoiceParser",
    "InvoiceBatch",
    "CancellationToken",
]
