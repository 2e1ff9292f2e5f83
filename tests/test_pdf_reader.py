import pytest

from fapiao_layout import pdf_reader
from fapiao_layout.invoice_parser import InvoiceParser
from fapiao_layout.models import TextToken

PAGE_HEIGHT = 400


def write_pdf(path, runs, font_size=10):
    """
    Write a one-page PDF drawing each (x, baseline, text) run with the
    standard STSong-Light CID font, unembedded, every glyph 1 em wide.
    """
    content = []
    for x, baseline, text in runs:
        content.append(f"BT /F1 {font_size} Tf 1 0 0 1 {x} {baseline} Tm "
                       f"<{text.encode('utf-16-be').hex()}> Tj ET")
    stream = "\n".join(content).encode("ascii")

    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        f"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 400 {PAGE_HEIGHT}] "
        f"/Resources << /Font << /F1 5 0 R >> >> /Contents 4 0 R >>".encode("ascii"),
        b"<< /Length " + str(len(stream)).encode("ascii") + b" >>\nstream\n" + stream + b"\nendstream",
        b"<< /Type /Font /Subtype /Type0 /BaseFont /STSong-Light /Encoding /UniGB-UCS2-H "
        b"/DescendantFonts [6 0 R] >>",
        b"<< /Type /Font /Subtype /CIDFontType0 /BaseFont /STSong-Light "
        b"/CIDSystemInfo << /Registry (Adobe) /Ordering (GB1) /Supplement 2 >> "
        b"/FontDescriptor 7 0 R /DW 1000 >>",
        b"<< /Type /FontDescriptor /FontName /STSong-Light /Flags 6 /FontBBox [0 0 1000 1000] "
        b"/ItalicAngle 0 /Ascent 1000 /Descent 0 /CapHeight 1000 /StemV 80 >>",
    ]

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += f"{number} 0 obj\n".encode("ascii") + body + b"\nendobj\n"
    xref = len(out)
    out += f"xref\n0 {len(objects) + 1}\n0000000000 65535 f \n".encode("ascii")
    for offset in offsets:
        out += f"{offset:010d} 00000 n \n".encode("ascii")
    out += (f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\n"
            f"startxref\n{xref}\n%%EOF\n").encode("ascii")

    path.write_bytes(bytes(out))
    return str(path)


# Buyer block as drawn on a VAT e-invoice: labels carry spaces inside the run
BUYER_BLOCK = [
    (20, 350, "购"),
    (40, 350, "名 称:"),
    (140, 350, "某某科技有限公司"),
    (40, 335, "地 址、电 话:"),
    (140, 335, "深圳市南山区"),
    (20, 320, "息"),
]


class FakePage:
    def __init__(self, words):
        self.words = words
        self.calls = []

    def extract_words(self, **kwargs):
        self.calls.append(kwargs)
        return self.words


class FakePdf:
    def __init__(self, pages):
        self.pages = pages

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


def word(text, x0, top, x1, bottom, font="SimSun"):
    return {"text": text, "x0": x0, "top": top, "x1": x1, "bottom": bottom, "fontname": font}


@pytest.fixture
def pdf_file(tmp_path):
    path = tmp_path / "a.pdf"
    path.write_bytes(b"%PDF-1.4 stub")
    return str(path)


def test_page_tokens_geometry_and_whitespace():
    page = FakePage([word("发票 代码:", 10, 20, 60, 32), word("  ", 70, 20, 80, 32)])

    tokens = pdf_reader.page_tokens(page, 2)

    assert tokens == [TextToken(text="发票代码:", x=10.0, y=32.0, width=50.0, height=12.0,
                                page_index=2, font_name="SimSun")]
    assert page.calls[0]["extra_attrs"] == ["fontname"]
    assert page.calls[0]["keep_blank_chars"] is True


def test_tokenize_reports_checkpoints(monkeypatch, pdf_file):
    pages = [FakePage([word("购", 20, 90, 30, 100)]), FakePage([]), FakePage([word("销", 20, 250, 30, 260)])]
    monkeypatch.setattr(pdf_reader.pdfplumber, "open", lambda stream: FakePdf(pages))
    seen = []

    result = pdf_reader.tokenize_pdf(pdf_file, lambda current, total: seen.append(current))

    assert [[t.text for t in page] for page in result] == [["购"], [], ["销"]]
    assert [t.page_index for t in result[2]] == [2]
    assert seen == [0, 10, 20, 40, 60, 80]


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        pdf_reader.tokenize_pdf(str(tmp_path / "absent.pdf"))


def test_spaced_labels_become_one_token(tmp_path):
    path = write_pdf(tmp_path / "buyer.pdf", BUYER_BLOCK)

    [tokens] = pdf_reader.tokenize_pdf(path)

    assert [t.text for t in tokens] == ["购", "名称:", "某某科技有限公司", "地址、电话:", "深圳市南山区", "息"]
    label = tokens[3]
    assert label.x == pytest.approx(40)
    assert label.y == pytest.approx(PAGE_HEIGHT - 335)
    assert label.width == pytest.approx(80)
    assert label.height == pytest.approx(10)


def test_spaced_labels_reach_party_block(tmp_path):
    path = write_pdf(tmp_path / "buyer.pdf", BUYER_BLOCK)

    [invoice] = InvoiceParser().parse_pages(pdf_reader.tokenize_pdf(path), "buyer.pdf")

    assert invoice.buyer.name == "某某科技有限公司"
    assert invoice.buyer.address_phone == "深圳市南山区"
