# app/services/explain_formatter.py
from __future__ import annotations

from typing import Any, Mapping

from app.schemas import RuleCheck

FINAL_LABEL = "Final Determination"

_FINAL_TEXT = {
    "Approved": "All {count} eligibility conditions satisfied; application approved.",
    "Denied": "Application rejected: the {key_factor} requirement is not met.",
    "Review": "Application referred for manual audit: {key_factor} is subject to discretionary review.",
}
_FINAL_STATUS = {"Approved": "pass", "Denied": "fail", "Review": "neutral"}


# -------- numbers --------

def _fixed(value: Any, against: Any, decimals: int) -> str:
    """
    Fixed-point text for `value`. When `against` is given and the value differs
    from it, more decimals are added until the text no longer reads as `against`.
    """
    v = float(value)
    if against is None or v == float(against):
        return f"{v:.{decimals}f}"
    limit = float(against)
    for d in range(decimals, 10):
        text = f"{v:.{d}f}"
        if float(text) != limit:
            return text
    return repr(v)


def format_inr(value: Any, against: Any = None) -> str:
    """Indian digit grouping: 10000000 -> '1,00,00,000'; at most two decimals
    unless more are needed to tell the value apart from `against`."""
    text = _fixed(value, against, 2)
    sign = "-" if float(text) < 0 else ""
    whole, _, frac = text.lstrip("-").partition(".")
    frac = frac.rstrip("0")
    head, tail = whole[:-3], whole[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    out = ",".join(groups + [tail])
    return f"{sign}{out}.{frac}" if frac else f"{sign}{out}"


def format_number(value: Any, against: Any = None) -> str:
    """3.0 -> '3', 2.5 -> '2.5', 79.999 against 80 -> '79.999'."""
    text = _fixed(value, against, 2)
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return "0" if text == "-0" else text


def format_percent(value: Any, against: Any = None) -> str:
    return _fixed(value, against, 1)


# -------- texts --------

def render(template: str, values: Mapping[str, str]) -> str:
    # a missing placeholder is a defect of the rule table: KeyError propagates
    return template.format_map(values)


def trace_entry(label: str, detail: str, status: str) -> RuleCheck:
    return RuleCheck(label=label, detail=detail, status=status)


def final_determination(outcome: str, key_factor: str, count: int) -> RuleCheck:
    detail = _FINAL_TEXT[outcome].format(count=count, key_factor=key_factor)
    return trace_entry(FINAL_LABEL, detail, _FINAL_STATUS[outcome])
