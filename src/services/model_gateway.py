"""
Replicate-hosted Gemini gateway for invoice field extraction.

Sends a prompt plus an optional image reference to the predictions API and
returns the raw model output untouched. Text models on Replicate stream
their answer, so the output is usually a list of text chunks; turning it
into a record is the normalizer's job.
"""

import asyncio
import base64
import time
from typing import Any

import httpx
from loguru import logger

from ..core.config import settings

TERMINAL_STATUSES = {"succeeded", "failed", "canceled"}

INVOICE_JSON_SHAPE = """{
  "invoice_number": "string or null if not found",
  "invoice_date": "YYYY-MM-DD format or null if not found",
  "vendor_name": "string or null if not found",
  "total_amount": number or 0 if not found,
  "currency": "string (e.g., USD, IDR, EUR) or null if not found",
  "items": [
    {
      "description": "string",
      "quantity": number,
      "unit_price": number,
      "amount": number
    }
  ]
}"""

IMAGE_PROMPT = f"""Extract invoice data from this image and return ONLY a valid JSON object with these exact fields:

{INVOICE_JSON_SHAPE}

IMPORTANT:
- Return ONLY the JSON object, no markdown formatting, no explanations
- If a field cannot be extracted, use null or 0 for numbers
- Parse all monetary values as numbers without currency symbols
- Ensure the response is valid JSON"""

TEXT_PROMPT_TEMPLATE = """Parse invoice information from this voice transcription and return ONLY a valid JSON object.

Transcription:
"{transcription}"

Extract these fields and return JSON with these exact fields:
{shape}

IMPORTANT PARSING RULES:
- Convert Indonesian number words to digits: "tujuh puluh tiga ribu" -> 73000, "lima ratus" -> 500
- Convert English number words: "fifty thousand" -> 50000
- Parse dates: "dua puluh empat mei dua ribu dua puluh tiga" -> "2023-05-24"
- Parse dates: "december 20th 2024" -> "2024-12-20"
- If a field is not mentioned, use null or 0 for numbers
- Return ONLY the JSON object, no markdown formatting, no explanations
- Ensure the response is valid JSON"""

# Canned answer used when REPLICATE_API_TOKEN is not set. Deliberately chunked,
# fenced and wrapped in prose, the way the real model sometimes answers.
MOCK_EXTRACTION_OUTPUT = [
    "Here is the extracted invoice data:\n```json\n{\"invoice_number\": \"INV-10023\", ",
    "\"invoice_date\": \"2025-09-30\", \"vendor_name\": \"Toko Sumber Rejeki\", ",
    "\"total_amount\": 73000, \"currency\": \"IDR\", \"items\": [",
    "{\"description\": \"Kopi Susu\", \"quantity\": 2, \"unit_price\": 25000, \"amount\": 50000}, ",
    "{\"description\": \"Roti Bakar\", \"quantity\": 1, \"unit_price\": 23000, \"amount\": 23000}]}\n```",
]


class ModelGatewayError(Exception):
    """Raised when a prediction cannot be created or does not succeed"""


def to_data_uri(data: bytes, mime_type: str) -> str:
    """Encode file bytes as a data URI accepted by Replicate file inputs"""
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


class ReplicateGateway:
    """
    Thin async client for the Replicate predictions API.

    Predictions are created with ``Prefer: wait`` so short runs finish in a
    single request; anything still running afterwards is polled until it
    reaches a terminal status or the timeout elapses.
    """

    def __init__(
        self,
        api_token: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        poll_interval: float | None = None,
        timeout: float | None = None,
    ):
        self.api_token = api_token if api_token is not None else settings.replicate_api_token
        self.base_url = (base_url or settings.replicate_base_url).rstrip("/")
        self.model = model or settings.replicate_model
        self.poll_interval = poll_interval if poll_interval is not None else settings.replicate_poll_interval
        self.timeout = timeout if timeout is not None else settings.replicate_timeout

    @property
    def configured(self) -> bool:
        return bool(self.api_token)

    async def extract_from_image(self, image_url: str, max_output_tokens: int | None = None) -> Any:
        """
        Ask the model to read an invoice image.

        Args:
            image_url: Public https URL or data URI of the image
            max_output_tokens: Output budget (default: EXTRACTION_MAX_OUTPUT_TOKENS)

        Returns:
            Raw prediction output (list of text chunks or a string)
        """
        max_output_tokens = max_output_tokens or settings.extraction_max_output_tokens
        if not self.configured:
            logger.warning(
                "Replicate not configured - using MOCK extraction. "
                "Set REPLICATE_API_TOKEN to use real extraction."
            )
            return list(MOCK_EXTRACTION_OUTPUT)

        logger.info(
            "Sending invoice image to Replicate",
            model=self.model,
            image=image_url[:60],
            max_output_tokens=max_output_tokens,
        )
        return await self.run_model(self.model, {
            "prompt": IMAGE_PROMPT,
            "images": [image_url],
            "videos": [],
            "temperature": 0.1,
            "top_p": 0.95,
            "max_output_tokens": max_output_tokens,
            "dynamic_thinking": False,
        })

    async def extract_from_text(self, transcription: str, max_output_tokens: int | None = None) -> Any:
        """Ask the model to parse invoice fields out of a voice transcription."""
        max_output_tokens = max_output_tokens or settings.text_extraction_max_output_tokens
        if not self.configured:
            logger.warning(
                "Replicate not configured - using MOCK extraction. "
                "Set REPLICATE_API_TOKEN to use real extraction."
            )
            return list(MOCK_EXTRACTION_OUTPUT)

        logger.info(
            "Sending transcription to Replicate",
            model=self.model,
            transcription_length=len(transcription),
            max_output_tokens=max_output_tokens,
        )
        prompt = TEXT_PROMPT_TEMPLATE.format(transcription=transcription, shape=INVOICE_JSON_SHAPE)
        return await self.run_model(self.model, {
            "prompt": prompt,
            "images": [],
            "videos": [],
            "temperature": 0.1,
            "top_p": 0.95,
            "max_output_tokens": max_output_tokens,
            "dynamic_thinking": False,
        })

    async def run_model(self, model: str, model_input: dict) -> Any:
        """Run an official model (``owner/name``) and return its output"""
        return await self._create_and_wait(
            f"{self.base_url}/models/{model}/predictions",
            {"input": model_input},
        )

    async def run_version(self, version: str, model_input: dict) -> Any:
        """Run a version-pinned model and return its output"""
        return await self._create_and_wait(
            f"{self.base_url}/predictions",
            {"version": version, "input": model_input},
        )

    async def _create_and_wait(self, url: str, payload: dict) -> Any:
        if not self.configured:
            raise ModelGatewayError("REPLICATE_API_TOKEN is not configured")

        auth = {"Authorization": f"Bearer {self.api_token}"}
        deadline = time.monotonic() + self.timeout

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                r = await client.post(url, json=payload, headers={**auth, "Prefer": "wait"})
                r.raise_for_status()
                prediction = r.json()

                while prediction.get("status") not in TERMINAL_STATUSES:
                    poll_url = (prediction.get("urls") or {}).get("get")
                    if not poll_url:
                        raise ModelGatewayError(
                            f"Prediction {prediction.get('id')} is {prediction.get('status')} with no poll URL"
                        )
                    if time.monotonic() >= deadline:
                        raise ModelGatewayError(
                            f"Prediction {prediction.get('id')} did not finish within {self.timeout:.0f}s"
                        )
                    await asyncio.sleep(self.poll_interval)
                    r = await client.get(poll_url, headers=auth)
                    r.raise_for_status()
                    prediction = r.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Replicate returned HTTP {e.response.status_code}")
            raise ModelGatewayError(
                f"Replicate returned HTTP {e.response.status_code}: {e.response.text[:200]}"
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Replicate request failed: {str(e)}")
            raise ModelGatewayError(f"Replicate request failed: {str(e)}") from e

        if prediction["status"] != "succeeded":
            raise ModelGatewayError(
                f"Prediction {prediction.get('id')} {prediction['status']}: {prediction.get('error')}"
            )

        logger.debug("Prediction finished", prediction_id=prediction.get("id"))
        return prediction.get("output")
