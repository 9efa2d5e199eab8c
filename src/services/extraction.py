"""
Invoice extraction: model gateway call, normalization and retry policy.

The normalizer never retries; a truncated answer is retried here with a
larger output budget, since that is the one rejection a second call can fix.
"""

from typing import Any, Awaitable, Callable

from loguru import logger
from pydantic import BaseModel

from ..core.config import settings
from .invoice_types import Accepted, RejectionCode, ValidationOutcome
from .model_gateway import ReplicateGateway
from .normalizer import assemble_text, normalize_model_output


class ExtractionResult(BaseModel):
    outcome: ValidationOutcome
    raw_response: str
    attempts: int = 1

    @property
    def accepted(self) -> bool:
        return isinstance(self.outcome, Accepted)


class InvoiceExtractionService:
    def __init__(
        self,
        gateway: ReplicateGateway | None = None,
        truncation_retries: int | None = None,
        retry_max_output_tokens: int | None = None,
    ):
        self.gateway = gateway or ReplicateGateway()
        self.truncation_retries = (
            truncation_retries if truncation_retries is not None else settings.extraction_truncation_retries
        )
        self.retry_max_output_tokens = retry_max_output_tokens or settings.extraction_retry_max_output_tokens

    async def extract_image(self, image_url: str) -> ExtractionResult:
        """Extract and validate invoice fields from an image URL or data URI."""
        return await self._run(
            lambda budget: self.gateway.extract_from_image(image_url, max_output_tokens=budget),
            source="image",
        )

    async def extract_text(self, transcription: str) -> ExtractionResult:
        """Extract and validate invoice fields from transcribed speech."""
        return await self._run(
            lambda budget: self.gateway.extract_from_text(transcription, max_output_tokens=budget),
            source="text",
        )

    async def _run(self, call: Callable[[int | None], Awaitable[Any]], source: str) -> ExtractionResult:
        budget = None
        attempts = 0
        while True:
            attempts += 1
            raw = await call(budget)
            outcome = normalize_model_output(raw)

            truncated = (
                not isinstance(outcome, Accepted)
                and outcome.code == RejectionCode.TRUNCATED_RESPONSE
            )
            if truncated and attempts <= self.truncation_retries:
                budget = self.retry_max_output_tokens
                logger.warning(
                    "Model response truncated, retrying with larger output budget",
                    source=source,
                    attempt=attempts,
                    max_output_tokens=budget,
                )
                continue
            break

        if isinstance(outcome, Accepted):
            logger.info(
                "Invoice extraction accepted",
                source=source,
                attempts=attempts,
                vendor=outcome.record.vendor_name,
                invoice_number=outcome.record.invoice_number,
                total=outcome.record.total_amount,
            )
        else:
            logger.warning(
                "Invoice extraction rejected",
                source=source,
                attempts=attempts,
                code=outcome.code.value,
                detail=outcome.detail,
            )

        return ExtractionResult(outcome=outcome, raw_response=assemble_text(raw), attempts=attempts)
