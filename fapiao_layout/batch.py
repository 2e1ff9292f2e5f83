"""
Batch aggregation: numbering, duplicate detection, running totals and
progress over a sequence of PDF files.
"""

import logging
import math
import os
import re
from dataclasses import replace
from typing import Callable, List, Optional

from .invoice_parser import InvoiceParser
from .models import (
    Invoice, ProcessingStats, TextToken,
    STATUS_NORMAL, STATUS_DUPLICATE, STATUS_FAILED,
    UNPARSED_CODE, FILE_NUMBER_PREFIX,
    failed_invoice,
)
from .pdf_reader import tokenize_pdf, ProgressCallback

logger = logging.getLogger(__name__)

IDLE = "idle"
RUNNING = "running"
STOPPED = "stopped"
COMPLETED = "completed"

Loader = Callable[[str, Optional[ProgressCallback]], List[List[TextToken]]]

_LEADING_FLOAT_RE = re.compile(r"^\s*([-+]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?)")


def parse_amount(value) -> float:
    """Read the leading number of an amount string; anything else counts as 0."""
    if value is None:
        return 0.0
    m = _LEADING_FLOAT_RE.match(str(value))
    if not m:
        return 0.0
    result = float(m.group(1))
    return result if math.isfinite(result) else 0.0


class CancellationToken:
    """Polled before each file and before each page."""

    def __init__(self):
        self._cancelled = False

    def cancel(self):
        self._cancelled = True

    def reset(self):
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class InvoiceBatch:
    """
    One processing run over a set of PDF files.

    Invoices are numbered 1..n across the whole batch in file order, then page
    order. An invoice whose (code, number) matches an earlier accepted one is
    marked as a duplicate of it; failed records never take part in the check.
    """

    def __init__(self, parser: Optional[InvoiceParser] = None,
                 loader: Optional[Loader] = None,
                 on_progress: Optional[Callable[[ProcessingStats], None]] = None,
                 token: Optional[CancellationToken] = None):
        self.parser = parser or InvoiceParser()
        self.loader = loader or (lambda path, progress: tokenize_pdf(path, progress, self.parser.config))
        self.on_progress = on_progress
        self.token = token or CancellationToken()
        self.state = IDLE
        self.invoices: List[Invoice] = []
        self.stats = ProcessingStats()
        self._total_files = 0
        self._current_file = 0

    # ============================================
    # PUBLIC METHODS
    # ============================================

    def run(self, file_paths: List[str]) -> ProcessingStats:
        if self.state == RUNNING:
            raise RuntimeError("已经有一个解析进程在运行")

        self.state = RUNNING
        self.token.reset()
        self.invoices = []
        self.stats = ProcessingStats(current_progress=1)
        self._total_files = len(file_paths)
        self._current_file = 0
        self._notify()

        try:
            for path in file_paths:
                if self.token.cancelled:
                    logger.info("Batch stopped before %s", path)
                    break
                self._current_file += 1
                self._process_file(path)

            if self.token.cancelled:
                self.state = STOPPED
            else:
                self.state = COMPLETED
                self.stats.current_progress = 100
                self._notify()
            return self.get_stats()

        except Exception:
            self.state = STOPPED
            raise

    def stop(self):
        self.token.cancel()

    def clear(self):
        self.stop()
        self.invoices = []
        self.stats = ProcessingStats()
        self._total_files = 0
        self._current_file = 0
        if self.state != RUNNING:
            self.state = IDLE

    def get_invoices(self) -> List[Invoice]:
        return list(self.invoices)

    def get_stats(self) -> ProcessingStats:
        return replace(self.stats)

    def get_invoice_detail(self, filename: str) -> Optional[Invoice]:
        return next((inv for inv in self.invoices if inv.filename == filename), None)

    # ============================================
    # FILE / PAGE PROCESSING
    # ============================================

    def _process_file(self, path: str):
        filename = os.path.basename(path)
        try:
            pages = self.loader(path, self._file_progress)
            self._file_progress(80, 100)
            invoices = self.parser.parse_pages(pages, filename)
            self._file_progress(100, 100)
        except Exception as e:
            logger.error("Failed to parse %s: %s", filename, e, exc_info=True)
            self._accept(failed_invoice(filename))
            return

        for invoice in invoices:
            if self.token.cancelled:
                logger.info("Batch stopped inside %s", filename)
                break
            self._accept(invoice)

    def _accept(self, invoice: Invoice):
        invoice.index = len(self.invoices) + 1

        if invoice.status == STATUS_FAILED:
            self.stats.fail_count += 1
        else:
            original = self._find_duplicate(invoice)
            if original is not None:
                invoice.status = STATUS_DUPLICATE
                invoice.duplicate_info = f"与第{original.index}个发票重复"
                self.stats.duplicate_count += 1
            else:
                invoice.status = STATUS_NORMAL
                self.stats.success_count += 1
                self.stats.total_amount += parse_amount(invoice.total_amount)
                self.stats.total_amount_tax += parse_amount(invoice.total_amount_tax)

        self.invoices.append(invoice)
        self.stats.invoice_count = len(self.invoices)
        self._notify()

    def _find_duplicate(self, invoice: Invoice) -> Optional[Invoice]:
        if not invoice.code or invoice.code == UNPARSED_CODE:
            return None
        if not invoice.number or invoice.number.startswith(FILE_NUMBER_PREFIX):
            return None
        for existing in self.invoices:
            if existing.number == invoice.number and existing.code == invoice.code:
                return existing
        return None

    def _file_progress(self, current: int, total: int):
        if current == 0 or total <= 0 or self._total_files == 0:
            return

        share = 100 / self._total_files
        completed = (self._current_file - 1) * share
        progress = math.floor(max(self.stats.current_progress,
                                  min(99, completed + current / total * share)))
        if progress > self.stats.current_progress:
            self.stats.current_progress = progress
            self._notify()

    def _notify(self):
        if self.on_progress is not None:
            self.on_progress(self.get_stats())
