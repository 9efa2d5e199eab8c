"""
Normalization of raw model output into a validated invoice record.

The hosted model is prompted to answer with a bare JSON object, but in
practice the answer may be wrapped in Markdown fences, surrounded by prose,
or cut off by the output token limit. This module turns that text into an
``InvoiceRecord`` or a typed rejection, in one pure pipeline:

    clean -> locate -> balance-check -> parse -> field-validate

Every outcome is returned as data; nothing here raises for expected input.
"""

import json
import math
import re
from typing import Any, Sequence, Union

from .invoice_types import (
    Accepted,
    InvoiceRecord,
    LineItem,
    Rejected,
    RejectionCode,
    ValidationOutcome,
)

RawModelOutput = Union[str, Sequence[str], None]

_FENCE_RE = re.compile(r"```[A-Za-z0-9_+-]*[ \t]*")

NOT_AVAILABLE = "N/A"
MIN_PASSING_CHECKS = 2


def assemble_text(raw: RawModelOutput) -> str:
    """Join chunked output in order (no separator) and trim it."""
    if raw is None:
        return ""
    if isinstance(raw, str):
        return raw.strip()
    return "".join(str(chunk) for chunk in raw).strip()


def strip_fences(text: str) -> str:
    """Remove every fenced code block marker, tagged or bare."""
    return _FENCE_RE.sub("", text)


def locate_json_span(text: str) -> str | None:
    """Slice from the first '{' to the last '}' inclusive, or None."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end < start:
        return None
    return text[start:end + 1]


def _as_text(value: Any) -> str | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, (int, float)):
        value = str(value)
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def _as_number(value: Any) -> float:
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return 0.0
    if not isinstance(value, (int, float)):
        return 0.0
    try:
        number = float(value)
    except OverflowError:
        return 0.0
    return number if math.isfinite(number) else 0.0


def _as_items(value: Any) -> list[LineItem]:
    if not isinstance(value, list):
        return []
    items = []
    for entry in value:
        if not isinstance(entry, dict):
            continue
        items.append(LineItem(
            description=_as_text(entry.get("description")) or "",
            quantity=_as_number(entry.get("quantity")),
            unit_price=_as_number(entry.get("unit_price")),
            amount=_as_number(entry.get("amount")),
        ))
    return items


def coerce_record(data: dict) -> InvoiceRecord:
    """Map a parsed JSON object onto InvoiceRecord with per-field defaults."""
    return InvoiceRecord(
        invoice_number=_as_text(data.get("invoice_number")),
        invoice_date=_as_text(data.get("invoice_date")),
        vendor_name=_as_text(data.get("vendor_name")),
        total_amount=max(_as_number(data.get("total_amount")), 0.0),
        currency=_as_text(data.get("currency")),
        items=_as_items(data.get("items")),
    )


def _is_meaningful(value: str | None) -> bool:
    return bool(value and value.strip() and value.strip() != NOT_AVAILABLE)


def failed_checks(record: InvoiceRecord) -> list[str]:
    """Return the minimum-content checks the record fails, in fixed order."""
    failures = []
    if not _is_meaningful(record.invoice_number):
        failures.append("missing invoice number")
    if not _is_meaningful(record.vendor_name):
        failures.append("missing vendor name")
    if not record.total_amount > 0:
        failures.append("missing or invalid total amount")
    return failures


def normalize_model_output(raw: RawModelOutput) -> ValidationOutcome:
    """
    Turn raw model output into an Accepted record or a Rejected outcome.

    A record is accepted when at least two of three checks pass: a real
    invoice number, a real vendor name, and a positive total amount. Line
    items never count towards acceptance.

    Args:
        raw: Model output as a string or a sequence of chunks

    Returns:
        Accepted(record) or Rejected(code, detail, partial_record)
    """
    text = strip_fences(assemble_text(raw))

    span = locate_json_span(text)
    if span is None:
        return Rejected(
            code=RejectionCode.NO_JSON_FOUND,
            detail="No valid JSON object found in response",
        )

    open_braces, close_braces = span.count("{"), span.count("}")
    open_brackets, close_brackets = span.count("["), span.count("]")
    if open_braces != close_braces or open_brackets != close_brackets:
        return Rejected(
            code=RejectionCode.TRUNCATED_RESPONSE,
            detail=(
                f"Incomplete JSON response: {open_braces} '{{' vs {close_braces} '}}', "
                f"{open_brackets} '[' vs {close_brackets} ']'"
            ),
        )

    try:
        data = json.loads(span)
    except (ValueError, RecursionError) as e:
        # ValueError also covers integer literals past the digit limit
        return Rejected(code=RejectionCode.PARSE_ERROR, detail=str(e) or type(e).__name__)

    record = coerce_record(data)

    failures = failed_checks(record)
    if 3 - len(failures) >= MIN_PASSING_CHECKS:
        return Accepted(record=record)

    return Rejected(
        code=RejectionCode.INSUFFICIENT_DATA,
        detail=", ".join(failures),
        partial_record=record,
    )
