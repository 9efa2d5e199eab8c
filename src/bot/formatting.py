"""
Chat message formatting for the Telegram bot.

Messages are sent with HTML parse mode, so every value taken from an
invoice is escaped before it is interpolated.
"""

from html import escape

from ..services.invoice_types import InvoiceRecord

WELCOME_MESSAGE = """👋 <b>Welcome to Invoice OCR Bot!</b>

📸 <b>How to use:</b>
Send a photo of your invoice or receipt and I will extract its data automatically.
🎙 You can also send a voice note describing the invoice.

✨ <b>Extracted fields:</b>
• Invoice number
• Date
• Vendor name
• Total amount
• Line items

📋 <b>Commands:</b>
/start - Show this message
/history - Last {history_limit} invoices
/stats - Invoice statistics
/export_all - Export all invoices to Excel
/export_month - Export this month's invoices
/export_&lt;id&gt; - Export one invoice
/detail_&lt;id&gt; - Show one invoice

🎯 <b>Supported formats:</b> JPG, PNG, WebP photos and voice notes"""

PROCESSING_MESSAGE = "⏳ Processing invoice..."
TRANSCRIBING_MESSAGE = "🎙 Transcribing voice note..."
EXTRACTION_FAILED_MESSAGE = "❌ Failed to process the invoice. Please try again with a clearer photo."
VOICE_FAILED_MESSAGE = "❌ Failed to understand the voice note. Please try again and speak clearly."
SEND_AS_PHOTO_MESSAGE = (
    "📎 Please send the invoice as a <b>photo</b>, not as a file/document.\n\n"
    "Tap the 📷 icon to send a photo."
)
NOT_FOUND_MESSAGE = "❌ Invoice not found."
NO_INVOICES_MESSAGE = "📭 No invoices have been processed yet."


def format_amount(value) -> str:
    """Format a number with Indonesian grouping: 73000 -> 73.000, 1500.5 -> 1.500,5"""
    if value is None:
        return "0"
    value = float(value)
    if value.is_integer():
        return f"{int(value):,}".replace(",", ".")
    text = f"{value:,.3f}".rstrip("0").rstrip(".")
    return text.replace(",", "_").replace(".", ",").replace("_", ".")


def _text(value) -> str:
    return escape(str(value)) if value else "N/A"


def _items_block(items) -> str:
    lines = ["<b>📦 Items:</b>"]
    for i, item in enumerate(items, start=1):
        lines.append(f"{i}. {escape(item.get('description') or '')}")
        lines.append(
            f"   {format_amount(item.get('quantity'))}x @ {format_amount(item.get('unit_price'))}"
            f" = {format_amount(item.get('amount'))}"
        )
    return "\n".join(lines)


def _total(invoice: dict) -> str:
    currency = escape(invoice.get("currency") or "")
    amount = format_amount(invoice.get("total_amount"))
    return f"{currency} {amount}" if currency else amount


def _invoice_fields(invoice: dict) -> str:
    return (
        f"📄 <b>Invoice No:</b> {_text(invoice.get('invoice_number'))}\n"
        f"📅 <b>Date:</b> {_text(invoice.get('invoice_date'))}\n"
        f"🏪 <b>Vendor:</b> {_text(invoice.get('vendor_name'))}\n"
        f"💰 <b>Total:</b> {_total(invoice)}"
    )


def format_saved_invoice(record: InvoiceRecord, invoice_id: int) -> str:
    data = record.model_dump()
    parts = [
        "✅ <b>Invoice processed successfully!</b>",
        f"🆔 <b>ID:</b> {invoice_id}\n{_invoice_fields(data)}",
    ]
    if data["items"]:
        parts.append(_items_block(data["items"]))
    parts.append(
        f"💾 Saved with ID <code>{invoice_id}</code>\n"
        f"Use /detail_{invoice_id} to see the full details."
    )
    return "\n\n".join(parts)


def format_insufficient(record: InvoiceRecord | None, detail: str) -> str:
    parts = [
        "⚠️ <b>Not enough invoice data could be read.</b>",
        f"Problems: {escape(detail)}",
    ]
    if record is not None:
        parts.append(_invoice_fields(record.model_dump()))
    parts.append("The invoice was <b>not saved</b>. Please send a clearer photo.")
    return "\n\n".join(parts)


def format_history(invoices: list[dict]) -> str:
    lines = [f"📋 <b>Last {len(invoices)} invoices:</b>", ""]
    for i, inv in enumerate(invoices, start=1):
        lines.append(f"{i}. <b>{_text(inv.get('vendor_name'))}</b>")
        lines.append(f"   No: {_text(inv.get('invoice_number'))}")
        lines.append(f"   Date: {_text(inv.get('invoice_date'))}")
        lines.append(f"   Total: {_total(inv)}")
        lines.append(f"   ID: <code>{inv['id']}</code> (use /detail_{inv['id']})")
        lines.append("")
    return "\n".join(lines).rstrip()


def format_detail(invoice: dict) -> str:
    parts = [
        "📄 <b>Invoice Detail</b>",
        f"🆔 <b>ID:</b> {invoice['id']}\n{_invoice_fields(invoice)}",
    ]
    if invoice.get("items"):
        parts.append(_items_block(invoice["items"]))
    return "\n\n".join(parts)


def format_stats(overview: dict, by_vendor: list[dict]) -> str:
    lines = [
        "📊 <b>Invoice Statistics</b>",
        "",
        f"📝 Total invoices: <b>{overview.get('total_invoices') or 0}</b>",
        f"💰 Total amount: <b>{format_amount(overview.get('total_amount'))}</b>",
        f"📈 Average amount: <b>{format_amount(round(overview.get('average_amount') or 0, 2))}</b>",
        f"🏪 Vendors: <b>{overview.get('unique_vendors') or 0}</b>",
    ]
    if by_vendor:
        lines.append("")
        lines.append("<b>Top vendors:</b>")
        for row in by_vendor[:5]:
            lines.append(
                f"• {escape(row['vendor_name'])}: {row['count']} invoice(s), "
                f"{format_amount(row['total_amount'])}"
            )
    return "\n".join(lines)


def format_export_caption(invoices: list[dict], label: str) -> str:
    total = sum(inv.get("total_amount") or 0 for inv in invoices)
    return f"✅ Export {label}\n📝 Total: {len(invoices)} invoices\n💰 Total amount: {format_amount(total)}"
