"""Tests for Excel export"""

import io
from datetime import date

import pandas as pd

from src.services.spreadsheet import (
    all_export_filename,
    export_invoice_detail,
    export_invoices,
    invoice_export_filename,
    month_export_filename,
)

INVOICE = {
    "id": 7,
    "invoice_number": "INV/2025/001",
    "invoice_date": "2025-09-30",
    "vendor_name": "Toko Sumber Rejeki",
    "total_amount": 73000.0,
    "currency": "IDR",
    "items": [
        {"description": "Kopi Susu", "quantity": 2.0, "unit_price": 25000.0, "amount": 50000.0},
        {"description": "Roti Bakar", "quantity": 1.0, "unit_price": 23000.0, "amount": 23000.0},
    ],
    "created_at": "2025-10-01T08:00:00+00:00",
}

UNDATED = {
    "id": 8,
    "invoice_number": None,
    "invoice_date": None,
    "vendor_name": "Acme",
    "total_amount": 0.0,
    "currency": None,
    "items": [],
    "created_at": "2025-10-02T08:00:00+00:00",
}


def test_export_invoices_one_row_per_invoice():
    content = export_invoices([INVOICE, UNDATED])

    df = pd.read_excel(io.BytesIO(content), sheet_name="Invoices", keep_default_na=False)

    assert list(df.columns) == [
        "ID", "Invoice Number", "Date", "Vendor", "Total Amount", "Currency", "Items Count", "Created At",
    ]
    assert len(df) == 2
    assert df.loc[0, "Vendor"] == "Toko Sumber Rejeki"
    assert df.loc[0, "Items Count"] == 2
    assert df.loc[1, "Invoice Number"] == "N/A"
    assert df.loc[1, "Date"] == "N/A"


def test_export_invoice_detail_has_summary_and_items():
    sheets = pd.read_excel(io.BytesIO(export_invoice_detail(INVOICE)), sheet_name=None, keep_default_na=False)

    assert list(sheets) == ["Summary", "Items"]
    summary = dict(zip(sheets["Summary"]["Field"], sheets["Summary"]["Value"]))
    assert summary["Vendor"] == "Toko Sumber Rejeki"
    assert list(sheets["Items"]["Description"]) == ["Kopi Susu", "Roti Bakar"]
    assert list(sheets["Items"]["No"]) == [1, 2]


def test_export_invoice_detail_without_items():
    sheets = pd.read_excel(io.BytesIO(export_invoice_detail(UNDATED)), sheet_name=None, keep_default_na=False)
    assert list(sheets) == ["Summary"]


def test_export_filenames():
    today = date(2025, 10, 17)

    assert all_export_filename(today) == "Invoice_Export_2025-10-17.xlsx"
    assert invoice_export_filename(INVOICE, today) == "Invoice_INV-2025-001_2025-10-17.xlsx"
    assert invoice_export_filename(UNDATED, today) == "Invoice_8_2025-10-17.xlsx"
    assert month_export_filename(2025, 9) == "Invoice_Sep_2025.xlsx"
