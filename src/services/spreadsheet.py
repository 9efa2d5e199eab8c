"""
Excel export of stored invoices.

Workbooks are built in memory with pandas (openpyxl engine) and returned as
bytes, ready to be sent as a chat document or an HTTP download.
"""

import io
from datetime import date

import pandas as pd
from openpyxl.utils import get_column_letter

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

INVOICE_COLUMNS = [
    ("ID", 5),
    ("Invoice Number", 20),
    ("Date", 12),
    ("Vendor", 25),
    ("Total Amount", 15),
    ("Currency", 8),
    ("Items Count", 12),
    ("Created At", 20),
]
SUMMARY_COLUMNS = [("Field", 20), ("Value", 30)]
ITEM_COLUMNS = [("No", 5), ("Description", 30), ("Quantity", 10), ("Unit Price", 15), ("Amount", 15)]

MONTH_NAMES = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def _write_sheet(writer: pd.ExcelWriter, rows: list[dict], columns: list[tuple[str, int]], sheet_name: str) -> None:
    df = pd.DataFrame(rows, columns=[name for name, _ in columns])
    df.to_excel(writer, sheet_name=sheet_name, index=False)

    worksheet = writer.sheets[sheet_name]
    for idx, (_, width) in enumerate(columns, start=1):
        worksheet.column_dimensions[get_column_letter(idx)].width = width


def invoice_row(invoice: dict) -> dict:
    """Flatten a stored invoice into one spreadsheet row"""
    return {
        "ID": invoice["id"],
        "Invoice Number": invoice.get("invoice_number") or "N/A",
        "Date": invoice.get("invoice_date") or "N/A",
        "Vendor": invoice.get("vendor_name") or "N/A",
        "Total Amount": invoice.get("total_amount") or 0,
        "Currency": invoice.get("currency") or "",
        "Items Count": len(invoice.get("items") or []),
        "Created At": invoice.get("created_at") or "",
    }


def export_invoices(invoices: list[dict]) -> bytes:
    """
    One-sheet workbook listing invoices, one row per invoice.

    Args:
        invoices: Stored invoice dictionaries

    Returns:
        .xlsx file contents
    """
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        _write_sheet(writer, [invoice_row(inv) for inv in invoices], INVOICE_COLUMNS, "Invoices")
    return buffer.getvalue()


def export_invoice_detail(invoice: dict) -> bytes:
    """
    Workbook for a single invoice: a Summary sheet plus an Items sheet when
    the invoice has line items.

    Args:
        invoice: Stored invoice dictionary

    Returns:
        .xlsx file contents
    """
    summary = [
        {"Field": "ID", "Value": invoice["id"]},
        {"Field": "Invoice Number", "Value": invoice.get("invoice_number") or "N/A"},
        {"Field": "Date", "Value": invoice.get("invoice_date") or "N/A"},
        {"Field": "Vendor", "Value": invoice.get("vendor_name") or "N/A"},
        {"Field": "Total Amount", "Value": invoice.get("total_amount") or 0},
        {"Field": "Currency", "Value": invoice.get("currency") or ""},
    ]

    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        _write_sheet(writer, summary, SUMMARY_COLUMNS, "Summary")

        items = invoice.get("items") or []
        if items:
            rows = [
                {
                    "No": i,
                    "Description": item.get("description") or "",
                    "Quantity": item.get("quantity") or 0,
                    "Unit Price": item.get("unit_price") or 0,
                    "Amount": item.get("amount") or 0,
                }
                for i, item in enumerate(items, start=1)
            ]
            _write_sheet(writer, rows, ITEM_COLUMNS, "Items")
    return buffer.getvalue()


def all_export_filename(today: date | None = None) -> str:
    today = today or date.today()
    return f"Invoice_Export_{today.isoformat()}.xlsx"


def invoice_export_filename(invoice: dict, today: date | None = None) -> str:
    today = today or date.today()
    label = invoice.get("invoice_number") or invoice["id"]
    # Invoice numbers such as "INV/2024/001" must not become path separators
    label = str(label).replace("/", "-").replace("\\", "-")
    return f"Invoice_{label}_{today.isoformat()}.xlsx"


def month_export_filename(year: int, month: int) -> str:
    return f"Invoice_{MONTH_NAMES[month - 1]}_{year}.xlsx"
