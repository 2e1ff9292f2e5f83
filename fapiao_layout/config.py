"""
Layout thresholds and the anchor-field table.

All distances are absolute units in top-down PDF page space, tuned on Chinese
VAT e-invoices rendered at scale 1.0. They are configuration, not protocol:
other layouts or render scales may need different values.
"""

import json
import logging
import os
from dataclasses import dataclass, fields
from typing import Tuple, NamedTuple

logger = logging.getLogger(__name__)

RIGHT = "right"
LEFT = "left"
UP = "up"
DOWN = "down"
SAME_LINE = "same-line"

DIRECTIONS = (RIGHT, LEFT, UP, DOWN, SAME_LINE)


class FieldRule(NamedTuple):
    field: str
    pattern: str
    direction: str
    max_distance: float


# Invoice attribute -> label anchor and where its value sits
FIELD_RULES: Tuple[FieldRule, ...] = (
    FieldRule("code", r"发票代码[:：]?", RIGHT, 100),
    FieldRule("number", r"发票号码[:：]?", RIGHT, 100),
    FieldRule("date", r"开票日期[:：]?", RIGHT, 150),
    FieldRule("checksum", r"^校验码[:：]|^码[:：]", RIGHT, 250),
    FieldRule("machine_number", r"^机器编号[:：]?", RIGHT, 150),
    FieldRule("drawer", r"^开票.?[:：]$", RIGHT, 100),
    FieldRule("payee", r"^收款.?[:：]$", RIGHT, 100),
    FieldRule("reviewer", r"^复核.?[:：]$", RIGHT, 100),
)


@dataclass
class LayoutConfig:
    row_tolerance: float = 2.0
    anchor_line_band: float = 10.0

    # Party block
    party_column_tolerance: float = 1.0
    party_line_tolerance: float = 2.0
    # (left padding, right extent, vertical padding)
    plain_party_offsets: Tuple[float, float, float] = (8.0, 250.0, 0.0)
    vat_party_offsets: Tuple[float, float, float] = (15.0, 300.0, 8.0)

    # Line-item table
    table_header_margin: float = 2.0
    table_title_band: float = 5.0
    table_footer_gap: float = 5.0
    table_bottom_fallback_y: float = 260.0

    # Totals
    totals_line_tolerance: float = 5.0
    totals_max_distance: float = 100.0

    # Remark box relative to the "备" anchor
    remark_top_offset: float = 14.0
    remark_bottom_offset: float = 33.0

    # pdfplumber word grouping
    word_x_tolerance: float = 1.5
    word_y_tolerance: float = 2.0


def load_config(config_path: str) -> LayoutConfig:
    """
    Build a LayoutConfig from a JSON object of overrides.

    Unknown keys are logged and ignored; list values for the party offsets are
    converted to tuples.

    Raises:
        FileNotFoundError: the file does not exist
        ValueError: the file is not a JSON object
    """
    if not os.path.exists(config_path):
        logger.error("Layout config file not found: %s", config_path)
        raise FileNotFoundError(config_path)

    with open(config_path, "r", encoding="utf-8") as f:
        overrides = json.load(f)

    if not isinstance(overrides, dict):
        raise ValueError(f"Layout config must be a JSON object: {config_path}")

    known = {f.name: f for f in fields(LayoutConfig)}
    values = {}
    for key, value in overrides.items():
        if key not in known:
            logger.warning("Ignoring unknown layout config key '%s'", key)
            continue
        if key.endswith("_offsets"):
            value = tuple(float(v) for v in value)
            if len(value) != 3:
                raise ValueError(f"'{key}' needs three numbers, got {len(value)}")
        else:
            value = float(value)
        values[key] = value

    config = LayoutConfig(**values)
    logger.info("Loaded layout config from %s: %s", config_path, sorted(values))
    return config
