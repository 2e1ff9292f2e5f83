import pytest

from fapiao_layout.models import TextToken


def tok(text, x, y, width=None, page=0, height=10.0):
    """Token whose width defaults to 10 units per character."""
    if width is None:
        width = 10.0 * len(text)
    return TextToken(text=text, x=float(x), y=float(y), width=float(width),
                     height=height, page_index=page)


def vat_invoice_page(code="044001800211", number="12345678", page=0):
    """A complete VAT e-invoice page laid out the way the tokenizer sees it."""
    return [
        tok("广东增值税电子普通发票", 200, 40, page=page),
        tok("发票代码:", 450, 50, 45, page=page), tok(code, 500, 50, 70, page=page),
        tok("发票号码:", 450, 62, 45, page=page), tok(number, 500, 62, 50, page=page),
        tok("开票日期:", 450, 74, 45, page=page), tok("2023年01月05日", 500, 74, 70, page=page),
        tok("机器编号:", 30, 86, 45, page=page), tok("499099660821", 80, 86, 70, page=page),
        tok("校验码:", 450, 86, 35, page=page), tok("12345678901234567890", 490, 86, 100, page=page),

        # buyer block, label typeset vertically
        tok("购", 20, 100, page=page), tok("买", 20, 112, page=page), tok("方", 20, 124, page=page),
        tok("信", 20, 136, page=page), tok("息", 20, 148, page=page),
        tok("名称:", 40, 100, 30, page=page), tok("某某科技有限公司", 75, 100, 100, page=page),
        tok("纳税人识别号:", 40, 112, 60, page=page), tok("91440300MA5XXXXXX1", 105, 112, 100, page=page),
        tok("地址、电话:", 40, 124, 50, page=page), tok("深圳市南山区", 95, 124, 60, page=page),
        tok("0755-12345678", 160, 124, 70, page=page),
        tok("开户行及账号:", 40, 136, 60, page=page), tok("招商银行", 105, 136, 40, page=page),
        tok("755912345610001", 150, 136, 80, page=page),

        # line-item table
        tok("货物或应税劳务、服务名称", 40, 170, 110, page=page), tok("规格型号", 160, 170, page=page),
        tok("单位", 220, 170, page=page), tok("数量", 260, 170, page=page), tok("单价", 300, 170, page=page),
        tok("金额", 360, 170, page=page), tok("税率", 420, 170, page=page), tok("税额", 470, 170, page=page),
        tok("*信息技术服务*软件开发", 40, 185, 110, page=page), tok("V1.0", 160, 185, page=page),
        tok("项", 220, 185, page=page), tok("2", 260, 185, page=page), tok("500.00", 300, 185, page=page),
        tok("1000.00", 360, 185, page=page), tok("6%", 420, 185, page=page), tok("60.00", 470, 185, page=page),
        tok("费", 40, 197, page=page),
        tok("*信息技术服务*维护", 40, 209, 90, page=page), tok("1", 260, 209, page=page),
        tok("200.00", 300, 209, page=page), tok("200.00", 360, 209, page=page),
        tok("6%", 420, 209, page=page), tok("12.00", 470, 209, page=page),
        tok("合", 40, 230, page=page), tok("计", 70, 230, page=page),
        tok("¥1200.00", 360, 230, page=page), tok("¥72.00", 470, 230, page=page),
        tok("价税合计(大写)", 40, 245, page=page), tok("壹仟贰佰柒拾贰圆整", 150, 245, page=page),
        tok("(小写)", 380, 245, 30, page=page), tok("¥1272.00", 420, 245, page=page),

        # seller block
        tok("销", 20, 260, page=page), tok("售", 20, 272, page=page), tok("方", 20, 284, page=page),
        tok("信", 20, 296, page=page), tok("息", 20, 308, page=page),
        tok("名称:", 40, 260, 30, page=page), tok("某某软件有限公司", 75, 260, 100, page=page),
        tok("纳税人识别号:", 40, 272, 60, page=page), tok("91440300MA5YYYYYY2", 105, 272, 100, page=page),

        # remark box
        tok("备", 350, 260, 10, page=page), tok("注", 350, 296, 10, page=page),
        tok("合同号:HT-2023-01", 370, 265, 90, page=page), tok("第一期", 370, 277, page=page),

        # signatories
        tok("收款人:", 40, 330, 35, page=page), tok("张三", 80, 330, page=page),
        tok("复核:", 180, 330, 25, page=page), tok("李四", 210, 330, page=page),
        tok("开票人:", 300, 330, 35, page=page), tok("王五", 340, 330, page=page),
    ]


@pytest.fixture
def invoice_page():
    return vat_invoice_page()
