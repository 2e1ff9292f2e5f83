"""
Spatial primitives over positioned text tokens: row grouping and
label-anchored lookups.
"""

import math
import re
from typing import List, Iterable, Optional, Union

from .config import RIGHT, LEFT, UP, DOWN, SAME_LINE
from .models import TextToken


def group_rows(tokens: Iterable[TextToken], y_tolerance: float = 2.0) -> List[List[TextToken]]:
    """
    Cluster tokens into visual rows.

    A token joins the first row whose first member lies within ``y_tolerance``
    of it, otherwise it starts a new row. Rows are ordered left to right and
    stacked top to bottom by their first member.
    """
    rows: List[List[TextToken]] = []

    for token in tokens:
        for row in rows:
            if abs(row[0].y - token.y) <= y_tolerance:
                row.append(token)
                break
        else:
            rows.append([token])

    for row in rows:
        row.sort(key=lambda t: t.x)
    rows.sort(key=lambda r: r[0].y)
    return rows


def find_anchor(tokens: Iterable[TextToken], pattern: Union[str, re.Pattern]) -> Optional[TextToken]:
    regex = re.compile(pattern) if isinstance(pattern, str) else pattern
    for token in tokens:
        if regex.search(token.text):
            return token
    return None


def _in_direction(token: TextToken, anchor: TextToken, direction: str,
                  max_distance: float, line_band: float) -> bool:
    dx = token.x - anchor.x
    dy = token.y - anchor.y
    if direction == RIGHT:
        return abs(dy) < line_band and 0 < dx < max_distance
    if direction == LEFT:
        return abs(dy) < line_band and 0 < -dx < max_distance
    if direction == UP:
        return abs(dx) < max_distance / 2 and 0 < dy < max_distance
    if direction == DOWN:
        return abs(dx) < max_distance / 2 and 0 < -dy < max_distance
    if direction == SAME_LINE:
        return abs(dy) < line_band and abs(dx) < max_distance
    return False


_READING_ORDER = {
    RIGHT: (lambda t: t.x, False),
    SAME_LINE: (lambda t: t.x, False),
    LEFT: (lambda t: t.x, True),
    UP: (lambda t: t.y, True),
    DOWN: (lambda t: t.y, False),
}


def find_nearby_text(
    tokens: List[TextToken],
    pattern: Union[str, re.Pattern],
    direction: str = RIGHT,
    max_distance: float = 100,
    line_band: float = 10,
) -> str:
    """
    Read the text next to a label.

    The first token matching ``pattern`` is the anchor. Every other token lying
    in ``direction`` from it within ``max_distance`` is a candidate; candidates
    are joined with single spaces in reading order for that direction.

    Returns "" when no anchor is found.
    """
    anchor = find_anchor(tokens, pattern)
    if anchor is None or direction not in _READING_ORDER:
        return ""

    candidates = [
        t for t in tokens
        if t is not anchor and _in_direction(t, anchor, direction, max_distance, line_band)
    ]
    candidates.sort(key=lambda t: math.hypot(t.x - anchor.x, t.y - anchor.y))
    key, reverse = _READING_ORDER[direction]
    candidates.sort(key=key, reverse=reverse)

    return " ".join(t.text for t in candidates).strip()
