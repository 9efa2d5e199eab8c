
from fastapi import APIRouter, Depends, UploadFile, File, HTTPException, Path
from fastapi.responses import Response
from loguru import logger
from ..deps import get_store, get_extraction_service
from ...core.config import settings
from ...models.invoice import ProcessResponse, InvoiceListResponse, StatisticsResponse
from ...services.extraction import InvoiceExtractionService
from ...services.invoice_types import Rejected, RejectionCode
from ...services.model_gateway import ModelGatewayError, to_data_uri
from ...services.spreadsheet import (
    XLSX_MEDIA_TYPE,
    all_export_filename,
    export_invoice_detail,
    export_invoices,
    invoice_export_filename,
)
from ...services.storage import InvoiceStoreBase

router = APIRouter(prefix="/api/invoice", tags=["invoices"])

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/webp"}
MAX_INVOICE_ID = 2**63 - 1  # SQLite INTEGER range


def _xlsx_response(content: bytes, filename: str) -> Response:
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/process", response_model=ProcessResponse)
async def process_invoice(
    invoice: UploadFile = File(...),
    store: InvoiceStoreBase = Depends(get_store),
    extraction: InvoiceExtractionService = Depends(get_extraction_service),
):
    """
    Upload an invoice image, extract its fields and store the result.

    Accepts multipart/form-data with the image in the ``invoice`` field
    (JPEG, PNG or WebP).

    Responses:
    - 200: record accepted and saved, returns its ID and data
    - 422: too little data could be read (nothing saved); the partial
      record is returned so the user can see what was found
    - 502: the model answer could not be used or the model call failed
    """
    content_type = (invoice.content_type or "").lower()
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(
            status_code=415,
            detail="Invalid file type. Only JPEG, PNG, and WebP are allowed.",
        )

    content = await invoice.read()
    if not content:
        raise HTTPException(status_code=422, detail="No file uploaded")
    if len(content) > settings.max_upload_mb * 1024 * 1024:
        raise HTTPException(status_code=413, detail=f"File exceeds {settings.max_upload_mb}MB limit")

    logger.info("Invoice uploaded", filename=invoice.filename, size_bytes=len(content))

    mime_type = "image/jpeg" if content_type == "image/jpg" else content_type
    try:
        result = await extraction.extract_image(to_data_uri(content, mime_type))
    except ModelGatewayError as e:
        logger.error(f"Model call failed: {str(e)}")
        raise HTTPException(status_code=502, detail=f"Failed to extract invoice data: {str(e)}")

    outcome = result.outcome
    if isinstance(outcome, Rejected):
        if outcome.code == RejectionCode.INSUFFICIENT_DATA:
            raise HTTPException(status_code=422, detail={
                "code": outcome.code.value,
                "message": f"Not enough invoice data found: {outcome.detail}",
                "partial_data": outcome.partial_record.model_dump() if outcome.partial_record else None,
            })
        raise HTTPException(status_code=502, detail={
            "code": outcome.code.value,
            "message": f"Failed to extract invoice data: {outcome.detail}",
        })

    try:
        invoice_id = store.save_invoice(outcome.record, invoice.filename or "upload", result.raw_response)
    except Exception as e:
        logger.error(f"Saving invoice failed: {str(e)}")
        raise HTTPException(status_code=500, detail="Server error saving invoice")

    return ProcessResponse(
        message="Invoice processed successfully",
        id=invoice_id,
        data=outcome.record,
    )


@router.get("/statistics", response_model=StatisticsResponse)
async def get_statistics(store: InvoiceStoreBase = Depends(get_store)):
    """Overview, per-vendor, per-month and per-amount-range statistics"""
    return StatisticsResponse(data={
        "overview": store.get_statistics(),
        "by_vendor": store.get_by_vendor(),
        "by_month": store.get_by_month(),
        "by_amount_range": store.get_by_amount_range(),
    })


@router.get("/list", response_model=InvoiceListResponse)
async def list_invoices(store: InvoiceStoreBase = Depends(get_store)):
    """List all stored invoices, newest first"""
    invoices = store.list_all()
    return InvoiceListResponse(count=len(invoices), data=invoices)


@router.get("/export")
async def export_all_invoices(store: InvoiceStoreBase = Depends(get_store)):
    """Download all stored invoices as an Excel workbook"""
    invoices = store.list_all()
    if not invoices:
        raise HTTPException(status_code=404, detail="No invoices to export")
    return _xlsx_response(export_invoices(invoices), all_export_filename())


@router.get("/{invoice_id}")
async def get_invoice(
    invoice_id: int = Path(..., ge=1, le=MAX_INVOICE_ID),
    store: InvoiceStoreBase = Depends(get_store),
):
    """Get a stored invoice by ID"""
    invoice = store.get_invoice(invoice_id)
    if not invoice:
        raise HTTPException(status_code=404, detail="Invoice not found")
    return {"success": True, "data": invoice}


@router.get("/{invoice_id}/export")
async def export_invoice(
    invoice_id: int = Path(..., ge=1, le=MAX_INVOICE_ID),
    store: InvoiceStoreBase = Depends(get_store),
):
    """Download one invoice (summary and line items) as an Excel workbook"""
    invoice = store.get_invoice(invoice_id)
    if not invoice:
        raise HTTPException(status_code=404, detail="Invoice not found")
    return _xlsx_response(export_invoice_detail(invoice), invoice_export_filename(invoice))
