from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field


class LineItem(BaseModel):
    description: str = ""
    quantity: float = 0.0
    unit_price: float = 0.0
    amount: float = 0.0


class InvoiceRecord(BaseModel):
    invoice_number: str | None = None
    invoice_date: str | None = None  # Expected YYYY-MM-DD, kept as extracted
    vendor_name: str | None = None
    total_amount: float = 0.0
    currency: str | None = None
    items: list[LineItem] = Field(default_factory=list)


class RejectionCode(str, Enum):
    NO_JSON_FOUND = "NO_JSON_FOUND"
    TRUNCATED_RESPONSE = "TRUNCATED_RESPONSE"
    PARSE_ERROR = "PARSE_ERROR"
    INSUFFICIENT_DATA = "INSUFFICIENT_DATA"


class Accepted(BaseModel):
    status: Literal["accepted"] = "accepted"
    record: InvoiceRecord


class Rejected(BaseModel):
    status: Literal["rejected"] = "rejected"
    code: RejectionCode
    detail: str
    partial_record: InvoiceRecord | None = None  # Only set for INSUFFICIENT_DATA


ValidationOutcome = Annotated[Union[Accepted, Rejected], Field(discriminator="status")]
