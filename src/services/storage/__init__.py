from .invoice_store_base import InvoiceStoreBase
from .invoices_sqlite import SQLiteInvoiceStore
from ...core.config import settings

_invoice_store: InvoiceStoreBase | None = None


def get_invoice_store() -> InvoiceStoreBase:
    """Process-wide SQLite store at DB_PATH (created on first use)"""
    global _invoice_store
    if _invoice_store is None:
        _invoice_store = SQLiteInvoiceStore(settings.db_path)
    return _invoice_store


__all__ = ["InvoiceStoreBase", "SQLiteInvoiceStore", "get_invoice_store"]
