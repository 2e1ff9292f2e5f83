import logging
import os
from typing import List, Optional, Callable, Dict

import pandas as pd

from .models import Invoice

logger = logging.getLogger(__name__)

SUMMARY_SHEET = "发票汇总"
DETAIL_SHEET = "商品明细"

COLUMNS: Dict[str, Callable[[Invoice], object]] = {
    "序号": lambda inv: inv.index,
    "文件名": lambda inv: inv.filename,
    "状态": lambda inv: inv.status,
    "发票代码": lambda inv: inv.code,
    "发票号码": lambda inv: inv.number,
    "开票日期": lambda inv: inv.date,
    "购买方名称": lambda inv: inv.buyer.name,
    "购买方税号": lambda inv: inv.buyer.tax_code,
    "购买方地址电话": lambda inv: inv.buyer.address_phone,
    "购买方开户行账号": lambda inv: inv.buyer.bank_account,
    "销售方名称": lambda inv: inv.seller.name,
    "销售方税号": lambda inv: inv.seller.tax_code,
    "销售方地址电话": lambda inv: inv.seller.address_phone,
    "销售方开户行账号": lambda inv: inv.seller.bank_account,
    "收款人": lambda inv: inv.payee,
    "复核人": lambda inv: inv.reviewer,
    "开票人": lambda inv: inv.drawer,
    "金额": lambda inv: inv.total_amount,
    "税额": lambda inv: inv.total_tax,
    "价税合计": lambda inv: inv.total_amount_tax,
    "备注": lambda inv: inv.remark,
    "重复信息": lambda inv: inv.duplicate_info,
}

DETAIL_COLUMNS = ["序号", "发票号码", "商品名称", "数量", "单价", "金额", "税率", "税额"]


def summary_frame(invoices: List[Invoice], fields: Optional[List[str]] = None) -> pd.DataFrame:
    fields = fields or list(COLUMNS)
    unknown = [f for f in fields if f not in COLUMNS]
    if unknown:
        raise ValueError(f"Unknown export fields: {', '.join(unknown)}")

    data = [{name: COLUMNS[name](inv) for name in fields} for inv in invoices]
    return pd.DataFrame(data, columns=fields)


def detail_frame(invoices: List[Invoice]) -> pd.DataFrame:
    data = []
    for inv in invoices:
        for item in inv.items:
            data.append({
                "序号": inv.index,
                "发票号码": inv.number,
                "商品名称": item.name,
                "数量": item.quantity,
                "单价": item.price,
                "金额": item.amount,
                "税率": item.tax_rate,
                "税额": item.tax,
            })
    return pd.DataFrame(data, columns=DETAIL_COLUMNS)


def export_excel(invoices: List[Invoice], output_path: str, with_details: bool = False,
                 fields: Optional[List[str]] = None) -> None:
    if not invoices:
        raise ValueError("没有可导出的发票数据")

    df = summary_frame(invoices, fields)
    os.makedirs(os.path.dirname(output_path) or '.', exist_ok=True)

    with pd.ExcelWriter(output_path, engine='openpyxl') as writer:
        df.to_excel(writer, index=False, sheet_name=SUMMARY_SHEET)
        if with_details:
            detail_frame(invoices).to_excel(writer, index=False, sheet_name=DETAIL_SHEET)

    logger.info("Exported %d invoice(s) to %s", len(invoices), output_path)
