# survey_insight/data/text.py
from __future__ import annotations

import math
import re
from typing import Any, Optional


# Only standard HTML element names are stripped; survey labels such as
# "<GK 빠른 반응>" also use angle brackets and must survive.
_HTML_TAGS = (
    "a|abbr|address|area|article|aside|audio|b|base|bdi|bdo|big|blockquote|br|button|"
    "canvas|caption|circle|cite|clipPath|code|col|colgroup|data|datalist|dd|defs|del|"
    "details|dfn|dialog|div|dl|dt|ellipse|em|embed|fe[a-zA-Z0-9]*|fieldset|figcaption|"
    "figure|filter|font|footer|foreignObject|form|g|h[1-6]|header|hr|i|iframe|img|input|"
    "ins|kbd|label|legend|li|line|linearGradient|link|main|map|mark|mask|menu|meta|meter|"
    "nav|noscript|object|ol|optgroup|option|output|p|param|path|pattern|picture|polygon|"
    "polyline|pre|progress|q|radialGradient|rect|rp|rt|ruby|s|samp|script|section|select|"
    "slot|small|source|span|stop|strong|style|sub|summary|sup|svg|symbol|table|tbody|td|"
    "template|text|textarea|textPath|tfoot|th|thead|time|title|tr|track|tspan|u|ul|use|"
    "var|video|wbr"
)
_HTML_TAG_RE = re.compile(rf"</?(?:{_HTML_TAGS})\b[^>]*>", re.IGNORECASE)
_WS_RE = re.compile(r"\s+", re.UNICODE)


def strip_markup(text: Any) -> Any:
    """Remove HTML element tags from a cell; non-string values pass through untouched."""
    if not isinstance(text, str):
        return text
    return _HTML_TAG_RE.sub("", text)


def to_cell(value: Any) -> Optional[str]:
    """
    Normalize a decoded spreadsheet cell into Text | Empty.

    Returns None for missing, NaN and blank cells; otherwise a trimmed string
    with markup removed. Integral floats ("3.0" from Excel) become "3".
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value):
            return None
        if value.is_integer():
            return str(int(value))
        return str(value)
    if isinstance(value, int):
        return str(value)

    s = strip_markup(str(value)).strip()
    return s if s else None


def normalize_label(text: Any) -> str:
    # Score-map key form.
    return str(text).strip().casefold()


def collapse_whitespace(text: str) -> str:
    return _WS_RE.sub(" ", text).strip()
