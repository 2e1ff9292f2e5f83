import logging
import math
import re
from typing import List, Optional, Tuple, Sequence

from .config import LayoutConfig, FieldRule, FIELD_RULES, RIGHT
from .layout import group_rows, find_anchor, find_nearby_text
from .models import (
    Invoice, InvoiceItem, InvoiceParty, TextToken,
    STATUS_PENDING, UNRECOGNIZED_ITEM, UNRECOGNIZED_GOODS,
    empty_invoice, failed_invoice,
)

logger = logging.getLogger(__name__)

PLAIN_INVOICE = "普通发票"
VAT_E_INVOICE = "增值税电子普通发票"

TITLE_RE = re.compile(r"电[⼦子]\S*")
QUANTITY_RE = re.compile(r"^\d+$")
CURRENCY_RE = re.compile(r"^[¥￥]?-?[\d.]+$")
TOTAL_VALUE_RE = re.compile(r"^[¥￥]?\d+(\.\d+)?$")
BARE_NUMBER_RE = re.compile(r"^\d+(\.\d+)?$")
CURRENCY_SIGNS = ("¥", "￥")
AMOUNT_IN_FIGURES_RE = re.compile(r"[（(]?小写[)）]?")

PARTY_LABELS = (
    ("name", re.compile(r"称[:：]$")),
    ("tax_code", re.compile(r"识别号[:：]$")),
    ("address_phone", re.compile(r"电话[:：]$")),
    ("bank_account", re.compile(r"开户行及账号[:：]$")),
)
PARTY_FOOTER_CHARS = ("方", "⽅")  # second one is the CJK radical form some fonts emit


class InvoiceParser:
    """
    Rebuilds a Chinese VAT e-invoice from one page of positioned text tokens.

    PDFs carry no semantic tags, so every field is found spatially: a label
    token is located first and the value is read from the region around it.
    Layout as seen by the tokenizer (y grows downward):

        电子普通发票                    发票代码: 044001800211
                                        发票号码: 12345678
        购 名称: ...                    开票日期: 2023年01月01日
        买 纳税人识别号: ...
        方 地址、电话: ...
        信 开户行及账号: ...
        息
        货物或应税劳务名称  规格型号  单位  数量  单价  金额  税率  税额
        *类别*商品          ...                   100.00 13%  13.00
        合 计                                     ¥100.00     ¥13.00
        价税合计(大写) 壹佰壹拾叁元整   (小写) ¥113.00
        销 名称: ...                    备
        ...                             注
        收款人: ...   复核: ...   开票人: ...

    Heuristic misses never raise: a field that cannot be located keeps its
    default.
    """

    def __init__(self, config: Optional[LayoutConfig] = None,
                 field_rules: Sequence[FieldRule] = FIELD_RULES):
        self.config = config or LayoutConfig()
        self.field_rules = tuple(field_rules)

    # ============================================
    # PAGE ASSEMBLY
    # ============================================

    def parse_pages(self, pages: List[List[TextToken]], filename: str) -> List[Invoice]:
        """Parse every page of one file into one invoice per page."""
        if not pages:
            raise ValueError(f"No text received for {filename}")

        invoices = []
        for page_index, tokens in enumerate(pages):
            if not tokens:
                logger.info("%s page %d has no text tokens, skipping", filename, page_index + 1)
                invoices.append(failed_invoice(filename, "该页没有可识别的文本", page_index=page_index))
                continue

            ok, invoice, err = self.parse_page(tokens, page_index, filename)
            if not ok:
                logger.warning("%s page %d failed: %s", filename, page_index + 1, err)
            invoices.append(invoice)
        return invoices

    def parse_page(self, tokens: List[TextToken], page_index: int,
                   filename: str) -> Tuple[bool, Invoice, Optional[str]]:
        try:
            invoice = empty_invoice(filename, STATUS_PENDING, page_index)
            invoice.index = page_index + 1

            self._extract_title(tokens, invoice, page_index)
            self._extract_fields(tokens, invoice)
            self._extract_party(tokens, invoice, "购", invoice.buyer)
            self._extract_party(tokens, invoice, "销", invoice.seller)
            self._extract_remark(tokens, invoice)
            self._extract_items(tokens, invoice)
            self._extract_totals(tokens, invoice)
            return True, invoice, None

        except Exception as e:
            logger.warning("Error while parsing %s page %d", filename, page_index + 1, exc_info=True)
            return False, failed_invoice(filename, "发票解析过程中出现错误",
                                         page_index=page_index), str(e)

    # ============================================
    # HEADER FIELDS
    # ============================================

    def _extract_title(self, tokens: List[TextToken], invoice: Invoice, page_index: int):
        page_suffix = f" (第{page_index + 1}页)" if page_index > 0 else ""
        title_token = find_anchor(tokens, TITLE_RE)
        if title_token is None:
            invoice.title = f"发票{page_suffix}"
            return

        invoice.title = f"{title_token.text}{page_suffix}"
        invoice.invoice_type = VAT_E_INVOICE if "增值" in title_token.text else PLAIN_INVOICE

    def _extract_fields(self, tokens: List[TextToken], invoice: Invoice):
        for rule in self.field_rules:
            value = find_nearby_text(tokens, rule.pattern, rule.direction,
                                     rule.max_distance, self.config.anchor_line_band)
            setattr(invoice, rule.field, value)

    # ============================================
    # BUYER / SELLER BLOCKS
    # ============================================

    def _find_party_footer(self, tokens: List[TextToken], header: TextToken) -> Optional[TextToken]:
        """
        The party label is typeset vertically, e.g. 购/买/方/信/息. The block ends
        at "息"; older layouts stop at "方".
        """
        column = sorted(
            (t for t in tokens
             if abs(header.x - t.x) <= self.config.party_column_tolerance and t.y > header.y),
            key=lambda t: t.y,
        )
        footer = None
        for token in column:
            if token.text == "息":
                return token
            if token.text in PARTY_FOOTER_CHARS and footer is None:
                footer = token
        return footer

    def _extract_party(self, tokens: List[TextToken], invoice: Invoice,
                       header_char: str, party: InvoiceParty):
        header = next((t for t in tokens if t.text == header_char), None)
        if header is None:
            logger.debug("No '%s' party header on %s", header_char, invoice.filename)
            return

        footer = self._find_party_footer(tokens, header)
        if footer is None:
            logger.debug("No footer for '%s' party block on %s", header_char, invoice.filename)
            return

        if invoice.invoice_type == PLAIN_INVOICE:
            left, right, pad_y = self.config.plain_party_offsets
        else:
            left, right, pad_y = self.config.vat_party_offsets

        x_min = math.floor(header.x) + left
        x_max = math.floor(header.x) + right
        y_min = math.floor(header.y) - pad_y
        y_max = math.floor(footer.y) + pad_y

        area = [
            t for t in tokens
            if x_min <= t.x <= x_max and y_min <= t.y <= y_max
            and t.page_index == footer.page_index
        ]
        logger.debug("'%s' party region x=[%s, %s] y=[%s, %s]: %d tokens",
                     header_char, x_min, x_max, y_min, y_max, len(area))

        for attr, label_re in PARTY_LABELS:
            setattr(party, attr, self._read_labelled_line(area, label_re))

    def _read_labelled_line(self, area: List[TextToken], label_re) -> str:
        """Concatenate everything right of the label on the label's own line."""
        label = find_anchor(area, label_re)
        if label is None:
            return ""

        label_right = label.x + label.width
        return "".join(
            t.text for t in area
            if t.x + t.width > label_right
            and abs(t.y - label.y) <= self.config.party_line_tolerance
        )

    # ============================================
    # REMARK
    # ============================================

    def _extract_remark(self, tokens: List[TextToken], invoice: Invoice):
        header = next((t for t in tokens if t.text == "备"), None)
        if header is None:
            return

        left = header.x + header.width
        top = header.y - self.config.remark_top_offset
        bottom = header.y + self.config.remark_bottom_offset
        area = [t for t in tokens if t.x >= left and top <= t.y <= bottom]

        parts = []
        for i, token in enumerate(area):
            if i > 0 and area[i - 1].y != token.y:
                parts.append("\n")
            parts.append(token.text)
        invoice.remark = "".join(parts)

    # ============================================
    # LINE ITEMS
    # ============================================

    def _extract_items(self, tokens: List[TextToken], invoice: Invoice):
        header = next((t for t in tokens if "货物" in t.text or "项目" in t.text), None)
        if header is None:
            invoice.items.append(InvoiceItem.placeholder(UNRECOGNIZED_ITEM))
            return

        footer = next((t for t in tokens if t.text in ("合", "合计")), None)
        if footer is not None:
            bottom_y = footer.y
        else:
            logger.debug("No 合计 row on %s, using fallback table bottom", invoice.filename)
            bottom_y = self.config.table_bottom_fallback_y

        top_y = header.y - self.config.table_header_margin
        title_y = header.y + self.config.table_title_band
        body = [
            t for t in tokens
            if top_y <= t.y < bottom_y
            and abs(bottom_y - t.y) >= self.config.table_footer_gap
            and t.y >= title_y
        ]

        for i, row in enumerate(group_rows(body, self.config.row_tolerance)):
            # Long names wrap onto a short row that does not start a new "*类别*"
            if len(row) <= 3 and not row[0].text.startswith("*") and i > 0 and invoice.items:
                invoice.items[-1].name += row[0].text
                continue
            invoice.items.append(self._classify_row(row))

        if not invoice.items:
            invoice.items.append(InvoiceItem.placeholder(UNRECOGNIZED_GOODS))

    def _classify_row(self, row: List[TextToken]) -> InvoiceItem:
        """Assign cells by their position counted from the row's end."""
        item = InvoiceItem()
        n = len(row)
        for index, token in enumerate(row):
            value = token.text
            if index == 0:
                item.name = value

            if n > 5 and index in (n - 5, n - 4):
                if QUANTITY_RE.match(value):
                    item.quantity = value
                elif CURRENCY_RE.match(value):
                    item.price = value

            if n > 3 and index == n - 3 and CURRENCY_RE.match(value):
                item.amount = value

            if n > 2 and index == n - 2 and "%" in value:
                item.tax_rate = value

            if n > 1 and index == n - 1 and CURRENCY_RE.match(value):
                item.tax = value
        return item

    # ============================================
    # TOTALS
    # ============================================

    def _extract_totals(self, tokens: List[TextToken], invoice: Invoice):
        anchor = next((t for t in tokens if t.text in ("计", "合计")), None)
        if anchor is not None:
            values = self._read_total_values(tokens, anchor)
            if values:
                invoice.total_amount = values[0]
            if len(values) > 1:
                invoice.total_tax = values[1]

        in_figures = find_nearby_text(tokens, AMOUNT_IN_FIGURES_RE, RIGHT,
                                      self.config.totals_max_distance,
                                      self.config.anchor_line_band)
        in_figures = in_figures.replace("¥", "").replace("￥", "")
        if in_figures:
            invoice.total_amount_tax = in_figures

    def _read_total_values(self, tokens: List[TextToken], anchor: TextToken) -> List[str]:
        same_line = sorted(
            (t for t in tokens
             if abs(t.y - anchor.y) < self.config.totals_line_tolerance and t.x > anchor.x),
            key=lambda t: t.x,
        )

        values = []
        i = 0
        while i < len(same_line):
            text = same_line[i].text
            if TOTAL_VALUE_RE.match(text):
                values.append(text.lstrip("".join(CURRENCY_SIGNS)))
            elif text in CURRENCY_SIGNS and i + 1 < len(same_line) \
                    and BARE_NUMBER_RE.match(same_line[i + 1].text):
                # "¥" rendered as its own run ahead of the figure
                values.append(same_line[i + 1].text)
                i += 1
            i += 1
        return values
