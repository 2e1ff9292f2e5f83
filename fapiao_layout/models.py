from dataclasses import dataclass, field, asdict
from typing import Optional, List, Dict, Any

STATUS_PENDING = "待统计"
STATUS_NORMAL = "正常"
STATUS_DUPLICATE = "重复"
STATUS_FAILED = "解析失败"

# Sentinels written into failed records; duplicate detection skips them.
UNPARSED_CODE = "未能解析"
FILE_NUMBER_PREFIX = "文件："

UNRECOGNIZED_ITEM = "未能识别"
UNRECOGNIZED_GOODS = "未能识别的商品"
UNREADABLE_GOODS = "无法识别的商品"


@dataclass(frozen=True)
class TextToken:
    """One positioned text run. ``y`` grows downward (top-down page space)."""
    text: str
    x: float
    y: float
    width: float = 0.0
    height: float = 0.0
    page_index: int = 0
    font_name: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TextToken":
        return cls(
            text=str(data.get("text", "")),
            x=float(data.get("x", 0)),
            y=float(data.get("y", 0)),
            width=float(data.get("width", 0) or 0),
            height=float(data.get("height", 0) or 0),
            page_index=int(data.get("page_index", data.get("pageIndex", 0))),
            font_name=data.get("font_name", data.get("fontName", "")) or "",
        )


@dataclass
class InvoiceParty:
    name: str = ""
    tax_code: str = ""
    address_phone: str = ""
    bank_account: str = ""

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "InvoiceParty":
        data = data or {}
        return cls(
            name=data.get("name") or "",
            tax_code=data.get("tax_code") or data.get("taxCode") or "",
            address_phone=data.get("address_phone") or data.get("addressPhone") or "",
            bank_account=data.get("bank_account") or data.get("bankAccount") or "",
        )


@dataclass
class InvoiceItem:
    name: str = ""
    quantity: str = ""
    price: str = ""
    amount: str = ""
    tax_rate: str = ""
    tax: str = ""

    @classmethod
    def placeholder(cls, name: str) -> "InvoiceItem":
        return cls(name=name, quantity="0", price="0", amount="0", tax_rate="0", tax="0")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InvoiceItem":
        return cls(
            name=data.get("name") or "",
            quantity=data.get("quantity") or "0",
            price=data.get("price") or "0",
            amount=data.get("amount") or "0",
            tax_rate=data.get("tax_rate") or data.get("taxRate") or "0",
            tax=data.get("tax") or "0",
        )


@dataclass
class Invoice:
    filename: str
    index: int = 0
    title: str = ""
    invoice_type: str = ""
    code: str = ""
    number: str = ""
    date: str = ""
    checksum: str = ""
    machine_number: str = ""
    password: str = ""
    remark: str = ""
    buyer: InvoiceParty = field(default_factory=InvoiceParty)
    seller: InvoiceParty = field(default_factory=InvoiceParty)
    items: List[InvoiceItem] = field(default_factory=list)
    total_amount: str = "0.00"
    total_tax: str = "0.00"
    total_amount_tax: str = "0.00"
    payee: str = ""
    reviewer: str = ""
    drawer: str = ""
    status: str = STATUS_PENDING
    duplicate_info: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Invoice":
        """Rebuild an invoice from its JSON shape, accepting the camelCase
        aliases a front-end may send back before export."""
        items = data.get("items") or data.get("details") or []
        return cls(
            filename=data.get("filename") or "",
            index=int(data.get("index") or 0),
            title=data.get("title") or "",
            invoice_type=data.get("invoice_type") or data.get("type") or "",
            code=data.get("code") or "",
            number=data.get("number") or "",
            date=data.get("date") or "",
            checksum=data.get("checksum") or "",
            machine_number=data.get("machine_number") or data.get("machineNumber") or "",
            password=data.get("password") or "",
            remark=data.get("remark") or "",
            buyer=InvoiceParty.from_dict(data.get("buyer")),
            seller=InvoiceParty.from_dict(data.get("seller")),
            items=[InvoiceItem.from_dict(item) for item in items],
            total_amount=data.get("total_amount") or data.get("totalAmount") or "0.00",
            total_tax=data.get("total_tax") or data.get("totalTax") or "0.00",
            total_amount_tax=data.get("total_amount_tax") or data.get("totalAmountTax") or "0.00",
            payee=data.get("payee") or "",
            reviewer=data.get("reviewer") or "",
            drawer=data.get("drawer") or "",
            status=data.get("status") or STATUS_PENDING,
            duplicate_info=data.get("duplicate_info") or data.get("duplicateInfo") or "",
        )


@dataclass
class ProcessingStats:
    total_amount: float = 0.0
    total_amount_tax: float = 0.0
    invoice_count: int = 0
    duplicate_count: int = 0
    success_count: int = 0
    fail_count: int = 0
    current_progress: int = 0


def empty_invoice(filename: str, status: str = STATUS_PENDING, page_index: int = 0) -> Invoice:
    # Later pages of a multi-page file are told apart by a page suffix
    if page_index > 0:
        filename = f"{filename}#第{page_index + 1}页"
    return Invoice(filename=filename, status=status)


def failed_invoice(filename: str, remark: str = "该发票无法自动解析", index: int = 0,
                   page_index: int = 0) -> Invoice:
    page = empty_invoice(filename, STATUS_FAILED, page_index)
    return Invoice(
        filename=f"{page.filename}#解析失败",
        index=index,
        title="解析失败的发票",
        invoice_type="未知",
        code=UNPARSED_CODE,
        number=f"{FILE_NUMBER_PREFIX}{filename}",
        date="未知",
        remark=remark,
        buyer=InvoiceParty(name="未知"),
        seller=InvoiceParty(name="未知"),
        items=[InvoiceItem.placeholder(UNREADABLE_GOODS)],
        status=STATUS_FAILED,
    )
