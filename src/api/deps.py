
from ..services.extraction import InvoiceExtractionService
from ..services.storage import InvoiceStoreBase, get_invoice_store


def get_store() -> InvoiceStoreBase:
    return get_invoice_store()


def get_extraction_service() -> InvoiceExtractionService:
    # Built per request so settings changes (e.g. a new token) take effect
    return InvoiceExtractionService()
