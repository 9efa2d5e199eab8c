
from pydantic import BaseModel, Field
from ..services.invoice_types import InvoiceRecord

class ProcessResponse(BaseModel):
    success: bool = True
    message: str
    id: int
    data: InvoiceRecord

class InvoiceListResponse(BaseModel):
    success: bool = True
    count: int
    data: list[dict] = Field(default_factory=list)

class StatisticsResponse(BaseModel):
    success: bool = True
    data: dict
