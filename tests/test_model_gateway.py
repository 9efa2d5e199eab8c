"""
Tests for the Replicate gateway, Whisper transcriber and extraction retry policy.

HTTP calls are mocked with respx; coroutines are driven with asyncio.run.
"""

import asyncio
import json

import httpx
import pytest
import respx

from src.services.extraction import InvoiceExtractionService
from src.services.invoice_types import Accepted, Rejected, RejectionCode
from src.services.model_gateway import (
    MOCK_EXTRACTION_OUTPUT,
    ModelGatewayError,
    ReplicateGateway,
    to_data_uri,
)
from src.services.transcription import TranscriptionError, WhisperTranscriber

GEMINI_URL = "https://api.replicate.com/v1/models/google/gemini-2.5-flash/predictions"
PREDICTIONS_URL = "https://api.replicate.com/v1/predictions"
POLL_URL = "https://api.replicate.com/v1/predictions/abc123"

GOOD_CHUNKS = ["```json\n{\"invoice_number\": \"INV-7\", ", "\"vendor_name\": \"Acme\", \"total_amount\": 120}\n```"]
TRUNCATED_CHUNKS = ["{\"invoice_number\": \"INV-7\", \"vendor_name\": \"Acme\", \"items\": [{\"description\": \"A\"}"]


def _prediction(status="succeeded", output=None, error=None):
    return {
        "id": "abc123",
        "status": status,
        "output": output,
        "error": error,
        "urls": {"get": POLL_URL},
    }


def test_to_data_uri():
    assert to_data_uri(b"abc", "image/png") == "data:image/png;base64,YWJj"


def test_mock_output_when_token_missing(offline):
    gateway = ReplicateGateway()

    output = asyncio.run(gateway.extract_from_image("https://example.com/invoice.jpg"))

    assert gateway.configured is False
    assert output == MOCK_EXTRACTION_OUTPUT


@respx.mock
def test_extract_from_image_sends_prompt_and_image(replicate_token):
    route = respx.post(GEMINI_URL).mock(
        return_value=httpx.Response(201, json=_prediction(output=GOOD_CHUNKS))
    )

    output = asyncio.run(ReplicateGateway().extract_from_image("data:image/jpeg;base64,AAAA"))

    assert output == GOOD_CHUNKS
    request = route.calls.last.request
    assert request.headers["Authorization"] == "Bearer r8_test_token"
    assert request.headers["Prefer"] == "wait"
    body = json.loads(request.content)
    assert body["input"]["images"] == ["data:image/jpeg;base64,AAAA"]
    assert body["input"]["max_output_tokens"] == 4096
    assert "invoice_number" in body["input"]["prompt"]


@respx.mock
def test_extract_from_text_embeds_transcription(replicate_token):
    route = respx.post(GEMINI_URL).mock(
        return_value=httpx.Response(201, json=_prediction(output=GOOD_CHUNKS))
    )

    asyncio.run(ReplicateGateway().extract_from_text("tujuh puluh tiga ribu"))

    body = json.loads(route.calls.last.request.content)
    assert "tujuh puluh tiga ribu" in body["input"]["prompt"]
    assert body["input"]["images"] == []
    assert body["input"]["max_output_tokens"] == 2048


@respx.mock
def test_polls_until_prediction_finishes(replicate_token):
    respx.post(GEMINI_URL).mock(return_value=httpx.Response(201, json=_prediction(status="starting")))
    poll = respx.get(POLL_URL).mock(side_effect=[
        httpx.Response(200, json=_prediction(status="processing")),
        httpx.Response(200, json=_prediction(output=GOOD_CHUNKS)),
    ])

    output = asyncio.run(ReplicateGateway().extract_from_image("https://example.com/a.jpg"))

    assert output == GOOD_CHUNKS
    assert poll.call_count == 2


@respx.mock
def test_failed_prediction_raises(replicate_token):
    respx.post(GEMINI_URL).mock(
        return_value=httpx.Response(201, json=_prediction(status="failed", error="model crashed"))
    )

    with pytest.raises(ModelGatewayError, match="model crashed"):
        asyncio.run(ReplicateGateway().extract_from_image("https://example.com/a.jpg"))


@respx.mock
def test_http_error_raises(replicate_token):
    respx.post(GEMINI_URL).mock(return_value=httpx.Response(401, json={"detail": "Unauthenticated"}))

    with pytest.raises(ModelGatewayError, match="401"):
        asyncio.run(ReplicateGateway().extract_from_image("https://example.com/a.jpg"))


@respx.mock
def test_timeout_while_polling_raises(replicate_token):
    respx.post(GEMINI_URL).mock(return_value=httpx.Response(201, json=_prediction(status="starting")))
    respx.get(POLL_URL).mock(return_value=httpx.Response(200, json=_prediction(status="processing")))

    gateway = ReplicateGateway(timeout=0.05, poll_interval=0.01)

    with pytest.raises(ModelGatewayError, match="did not finish"):
        asyncio.run(gateway.extract_from_image("https://example.com/a.jpg"))


class TestWhisperTranscriber:
    """Tests for voice transcription"""

    @respx.mock
    def test_transcribe_runs_pinned_version(self, replicate_token):
        route = respx.post(PREDICTIONS_URL).mock(return_value=httpx.Response(201, json=_prediction(
            output={"transcription": " invoice dari Toko Maju ", "detected_language": "indonesian"}
        )))

        result = asyncio.run(WhisperTranscriber().transcribe("data:audio/ogg;base64,AAAA"))

        assert result.text == "invoice dari Toko Maju"
        assert result.detected_language == "indonesian"
        body = json.loads(route.calls.last.request.content)
        assert body["version"].startswith("8099696689")
        assert body["input"]["language"] == "auto"
        assert body["input"]["audio"] == "data:audio/ogg;base64,AAAA"

    @respx.mock
    def test_empty_transcription_raises(self, replicate_token):
        respx.post(PREDICTIONS_URL).mock(
            return_value=httpx.Response(201, json=_prediction(output={"transcription": "  "}))
        )

        with pytest.raises(TranscriptionError):
            asyncio.run(WhisperTranscriber().transcribe("https://example.com/a.ogg"))

    def test_mock_transcription_when_token_missing(self, offline):
        result = asyncio.run(WhisperTranscriber().transcribe("https://example.com/a.ogg"))
        assert result.text


class TestExtractionService:
    """Tests for the truncation retry policy"""

    @respx.mock
    def test_truncated_response_is_retried_with_larger_budget(self, replicate_token):
        route = respx.post(GEMINI_URL).mock(side_effect=[
            httpx.Response(201, json=_prediction(output=TRUNCATED_CHUNKS)),
            httpx.Response(201, json=_prediction(output=GOOD_CHUNKS)),
        ])

        result = asyncio.run(InvoiceExtractionService(truncation_retries=1).extract_image("https://example.com/a.jpg"))

        assert isinstance(result.outcome, Accepted)
        assert result.accepted
        assert result.attempts == 2
        budgets = [json.loads(call.request.content)["input"]["max_output_tokens"] for call in route.calls]
        assert budgets == [4096, 8192]

    @respx.mock
    def test_truncation_retries_are_bounded(self, replicate_token):
        route = respx.post(GEMINI_URL).mock(
            return_value=httpx.Response(201, json=_prediction(output=TRUNCATED_CHUNKS))
        )

        result = asyncio.run(InvoiceExtractionService(truncation_retries=1).extract_image("https://example.com/a.jpg"))

        assert isinstance(result.outcome, Rejected)
        assert result.outcome.code == RejectionCode.TRUNCATED_RESPONSE
        assert route.call_count == 2

    @respx.mock
    def test_other_rejections_are_not_retried(self, replicate_token):
        route = respx.post(GEMINI_URL).mock(
            return_value=httpx.Response(201, json=_prediction(output="Sorry, I cannot read this image."))
        )

        result = asyncio.run(InvoiceExtractionService(truncation_retries=3).extract_image("https://example.com/a.jpg"))

        assert result.outcome.code == RejectionCode.NO_JSON_FOUND
        assert route.call_count == 1
        assert result.raw_response == "Sorry, I cannot read this image."

    def test_mock_flow_is_accepted(self, offline):
        result = asyncio.run(InvoiceExtractionService().extract_text("anything"))

        assert isinstance(result.outcome, Accepted)
        assert result.outcome.record.vendor_name == "Toko Sumber Rejeki"
        assert result.raw_response.startswith("Here is the extracted invoice data")


@pytest.mark.integration
def test_real_replicate_extraction():
    """Run with --run-integration and REPLICATE_API_TOKEN set"""
    from src.core.config import settings

    if not settings.replicate_api_token:
        pytest.skip("REPLICATE_API_TOKEN not set")

    result = asyncio.run(InvoiceExtractionService().extract_text(
        "Invoice INV-2024-001 from Acme Supplies dated December 20th 2024, total fifty thousand rupiah"
    ))
    assert isinstance(result.outcome, Accepted)
