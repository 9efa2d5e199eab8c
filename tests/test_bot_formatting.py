from src.bot.formatting import (
    WELCOME_MESSAGE,
    format_amount,
    format_detail,
    format_export_caption,
    format_history,
    format_insufficient,
    format_saved_invoice,
    format_stats,
)
from src.services.invoice_types import InvoiceRecord, LineItem


def test_format_amount_uses_dot_grouping():
    assert format_amount(73000) == "73.000"
    assert format_amount(1234567.0) == "1.234.567"
    assert format_amount(1500.5) == "1.500,5"
    assert format_amount(0) == "0"
    assert format_amount(None) == "0"


def test_welcome_mentions_history_limit():
    assert "Last 10 invoices" in WELCOME_MESSAGE.format(history_limit=10)


def test_saved_invoice_lists_fields_and_items():
    record = InvoiceRecord(
        invoice_number="INV-10023",
        invoice_date="2025-09-30",
        vendor_name="Toko Sumber Rejeki",
        total_amount=73000,
        currency="IDR",
        items=[LineItem(description="Kopi Susu", quantity=2, unit_price=25000, amount=50000)],
    )

    text = format_saved_invoice(record, 12)

    assert "INV-10023" in text
    assert "IDR 73.000" in text
    assert "1. Kopi Susu" in text
    assert "2x @ 25.000 = 50.000" in text
    assert "/detail_12" in text


def test_missing_fields_show_na_and_values_are_escaped():
    record = InvoiceRecord(vendor_name="A & B <Shop>", total_amount=10)

    text = format_saved_invoice(record, 1)

    assert "A &amp; B &lt;Shop&gt;" in text
    assert "<b>Invoice No:</b> N/A" in text
    assert "<b>Date:</b> N/A" in text
    assert "<b>Total:</b> 10" in text
    assert "Items" not in text


def test_insufficient_shows_problems_and_partial_data():
    record = InvoiceRecord(vendor_name="Acme")

    text = format_insufficient(record, "missing invoice number, missing or invalid total amount")

    assert "missing invoice number" in text
    assert "Acme" in text
    assert "not saved" in text


def test_history_and_detail():
    invoices = [
        {"id": 2, "invoice_number": "B", "invoice_date": None, "vendor_name": "Globex",
         "total_amount": 50.0, "currency": None, "items": []},
        {"id": 1, "invoice_number": "A", "invoice_date": "2025-01-01", "vendor_name": "Acme",
         "total_amount": 1500.0, "currency": "USD",
         "items": [{"description": "Bolt", "quantity": 3.0, "unit_price": 500.0, "amount": 1500.0}]},
    ]

    history = format_history(invoices)
    assert "Last 2 invoices" in history
    assert history.index("Globex") < history.index("Acme")
    assert "/detail_1" in history

    detail = format_detail(invoices[1])
    assert "USD 1.500" in detail
    assert "1. Bolt" in detail


def test_stats_and_export_caption():
    overview = {"total_invoices": 3, "total_amount": 450.0, "average_amount": 150.0, "unique_vendors": 2}
    by_vendor = [{"vendor_name": "Acme", "count": 2, "total_amount": 400.0}]

    text = format_stats(overview, by_vendor)
    assert "Total invoices: <b>3</b>" in text
    assert "Acme: 2 invoice(s), 400" in text

    caption = format_export_caption([{"total_amount": 100.0}, {"total_amount": None}], "successful!")
    assert "Total: 2 invoices" in caption
    assert "Total amount: 100" in caption
