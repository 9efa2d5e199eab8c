"""
Abstract base class for invoice storage implementations.

Defines the interface the API and the bot depend on, so the SQLite store can
be swapped for another backend (or a temporary database in tests).
"""

from abc import ABC, abstractmethod
from typing import Optional

from ..invoice_types import InvoiceRecord


class InvoiceStoreBase(ABC):
    """
    Abstract base class for storing accepted invoice records.

    Stored invoices are returned as dictionaries with keys:
        - id: Integer identifier
        - filename: Source file name
        - invoice_number, invoice_date, vendor_name, currency: str or None
        - total_amount: float
        - items: List of line item dictionaries
        - raw_response: Raw model output the record was parsed from
        - created_at: ISO timestamp
    """

    @abstractmethod
    def save_invoice(self, record: InvoiceRecord, filename: str, raw_response: str | None = None) -> int:
        """
        Persist an accepted invoice record.

        Args:
            record: Validated invoice record
            filename: Name of the uploaded file the record came from
            raw_response: Raw model output, kept for auditing

        Returns:
            Generated invoice ID
        """
        pass

    @abstractmethod
    def get_invoice(self, invoice_id: int) -> Optional[dict]:
        """Get a stored invoice by ID, or None if not found"""
        pass

    @abstractmethod
    def list_all(self, limit: int | None = None) -> list:
        """List stored invoices, newest first"""
        pass

    @abstractmethod
    def list_for_month(self, year: int, month: int) -> list:
        """List invoices whose invoice date falls in the given month"""
        pass

    @abstractmethod
    def get_statistics(self) -> dict:
        """
        Aggregate statistics over all invoices.

        Returns:
            Dictionary with total_invoices, total_amount, average_amount,
            min_amount, max_amount and unique_vendors
        """
        pass

    @abstractmethod
    def get_by_vendor(self) -> list:
        """Invoice count and total amount per vendor, highest total first"""
        pass

    @abstractmethod
    def get_by_month(self) -> list:
        """Invoice count and total amount per month of processing"""
        pass

    @abstractmethod
    def get_by_amount_range(self) -> list:
        """Invoice count per total amount bucket"""
        pass
