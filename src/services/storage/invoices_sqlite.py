"""
SQLite-based invoice storage.

Provides persistent storage of accepted invoice records with the aggregate
queries behind the statistics views.
"""

import sqlite3
import json
from datetime import datetime, UTC
from typing import Optional
from loguru import logger
from .invoice_store_base import InvoiceStoreBase
from ..invoice_types import InvoiceRecord

AMOUNT_RANGES = ["0-100", "100-500", "500-1000", "1000-5000", "5000+"]


class SQLiteInvoiceStore(InvoiceStoreBase):
    """
    SQLite-backed invoice store.

    Features:
    - Persistent storage across application restarts
    - Line items kept as a JSON column
    - Aggregates for overview, vendor, month and amount range statistics
    """

    def __init__(self, db_path: str = "invoices.db"):
        """
        Initialize store with database path.

        Args:
            db_path: Path to SQLite database file (default: invoices.db)
        """
        self.db_path = db_path
        self._init_database()

    def _init_database(self):
        """Create invoices table if it doesn't exist"""
        conn = sqlite3.connect(self.db_path)
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS invoices (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                filename TEXT,
                invoice_number TEXT,
                invoice_date TEXT,
                vendor_name TEXT,
                total_amount REAL,
                currency TEXT,
                items TEXT,
                raw_response TEXT,
                created_at TEXT NOT NULL
            )
        """)

        conn.commit()
        conn.close()
        logger.debug("Invoice table ready", db_path=self.db_path)

    def _get_connection(self) -> sqlite3.Connection:
        """Get database connection with row factory"""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    @staticmethod
    def _row_to_invoice(row: sqlite3.Row) -> dict:
        invoice = dict(row)
        invoice["items"] = json.loads(row["items"] or "[]")
        return invoice

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
        created_at = datetime.now(UTC).isoformat()

        conn = self._get_connection()
        cursor = conn.cursor()

        cursor.execute("""
            INSERT INTO invoices (
                filename, invoice_number, invoice_date, vendor_name,
                total_amount, currency, items, raw_response, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            filename,
            record.invoice_number,
            record.invoice_date,
            record.vendor_name,
            record.total_amount,
            record.currency,
            json.dumps([item.model_dump() for item in record.items]),
            raw_response,
            created_at,
        ))

        invoice_id = cursor.lastrowid
        conn.commit()
        conn.close()

        logger.info("Invoice saved", invoice_id=invoice_id, filename=filename)
        return invoice_id

    def get_invoice(self, invoice_id: int) -> Optional[dict]:
        """
        Get invoice details by ID.

        Args:
            invoice_id: Invoice identifier

        Returns:
            Invoice dictionary or None if not found
        """
        conn = self._get_connection()
        cursor = conn.cursor()

        cursor.execute("SELECT * FROM invoices WHERE id = ?", (invoice_id,))

        row = cursor.fetchone()
        conn.close()

        if row is None:
            return None

        return self._row_to_invoice(row)

    def list_all(self, limit: int | None = None) -> list:
        """
        List invoices (ordered by creation time, newest first).

        Args:
            limit: Maximum number of invoices to return (default: all)

        Returns:
            List of invoice dictionaries
        """
        conn = self._get_connection()
        cursor = conn.cursor()

        sql = "SELECT * FROM invoices ORDER BY created_at DESC, id DESC"
        if limit is not None:
            cursor.execute(sql + " LIMIT ?", (limit,))
        else:
            cursor.execute(sql)

        rows = cursor.fetchall()
        conn.close()

        return [self._row_to_invoice(row) for row in rows]

    def list_for_month(self, year: int, month: int) -> list:
        """
        List invoices dated in a given month.

        Filters on the extracted invoice date (YYYY-MM-DD prefix), not on
        the processing time; undated invoices are never included.

        Args:
            year: Four digit year
            month: Month number (1-12)

        Returns:
            List of invoice dictionaries, newest first
        """
        conn = self._get_connection()
        cursor = conn.cursor()

        cursor.execute("""
            SELECT * FROM invoices
            WHERE substr(invoice_date, 1, 7) = ?
            ORDER BY created_at DESC, id DESC
        """, (f"{year:04d}-{month:02d}",))

        rows = cursor.fetchall()
        conn.close()

        return [self._row_to_invoice(row) for row in rows]

    def get_statistics(self) -> dict:
        """
        Overview statistics across all invoices.

        Returns:
            Dictionary of counts and amount aggregates (amounts are None
            when there are no invoices)
        """
        conn = self._get_connection()
        cursor = conn.cursor()

        cursor.execute("""
            SELECT
                COUNT(*) AS total_invoices,
                SUM(total_amount) AS total_amount,
                AVG(total_amount) AS average_amount,
                MIN(total_amount) AS min_amount,
                MAX(total_amount) AS max_amount,
                COUNT(DISTINCT vendor_name) AS unique_vendors
            FROM invoices
            WHERE total_amount IS NOT NULL
        """)

        row = cursor.fetchone()
        conn.close()

        return dict(row)

    def get_by_vendor(self) -> list:
        """
        Invoice totals grouped by vendor.

        Returns:
            List of {vendor_name, count, total_amount}, highest total first
        """
        conn = self._get_connection()
        cursor = conn.cursor()

        cursor.execute("""
            SELECT
                vendor_name,
                COUNT(*) AS count,
                SUM(total_amount) AS total_amount
            FROM invoices
            WHERE vendor_name IS NOT NULL AND total_amount IS NOT NULL
            GROUP BY vendor_name
            ORDER BY total_amount DESC
        """)

        rows = cursor.fetchall()
        conn.close()

        return [dict(row) for row in rows]

    def get_by_month(self) -> list:
        """
        Invoice totals grouped by the month they were processed.

        Returns:
            List of {month, count, total_amount}, oldest month first
        """
        conn = self._get_connection()
        cursor = conn.cursor()

        cursor.execute("""
            SELECT
                substr(created_at, 1, 7) AS month,
                COUNT(*) AS count,
                SUM(total_amount) AS total_amount
            FROM invoices
            WHERE total_amount IS NOT NULL
            GROUP BY month
            ORDER BY month ASC
        """)

        rows = cursor.fetchall()
        conn.close()

        return [dict(row) for row in rows]

    def get_by_amount_range(self) -> list:
        """
        Invoice counts per amount bucket.

        Returns:
            List of {amount_range, count} in bucket order; empty buckets
            are omitted
        """
        conn = self._get_connection()
        cursor = conn.cursor()

        cursor.execute("""
            SELECT
                CASE
                    WHEN total_amount < 100 THEN '0-100'
                    WHEN total_amount < 500 THEN '100-500'
                    WHEN total_amount < 1000 THEN '500-1000'
                    WHEN total_amount < 5000 THEN '1000-5000'
                    ELSE '5000+'
                END AS amount_range,
                COUNT(*) AS count
            FROM invoices
            WHERE total_amount IS NOT NULL
            GROUP BY amount_range
        """)

        rows = cursor.fetchall()
        conn.close()

        results = [dict(row) for row in rows]
        results.sort(key=lambda r: AMOUNT_RANGES.index(r["amount_range"]))
        return results
