from loguru import logger
from pydantic import BaseModel

from ..core.config import settings
from .model_gateway import ReplicateGateway

MOCK_TRANSCRIPTION = (
    "Invoice nomor INV-10023 dari Toko Sumber Rejeki tanggal tiga puluh september "
    "dua ribu dua puluh lima, total tujuh puluh tiga ribu rupiah"
)


class TranscriptionError(Exception):
    """Raised when Whisper produces no usable text"""


class Transcription(BaseModel):
    text: str
    detected_language: str = "unknown"


class WhisperTranscriber:
    """Speech-to-text for voice notes using Whisper on Replicate."""

    def __init__(self, gateway: ReplicateGateway | None = None, version: str | None = None):
        self.gateway = gateway or ReplicateGateway()
        self.version = version or settings.whisper_version

    async def transcribe(self, audio_url: str) -> Transcription:
        if not self.gateway.configured:
            logger.warning(
                "Replicate not configured - using MOCK transcription. "
                "Set REPLICATE_API_TOKEN to use real transcription."
            )
            return Transcription(text=MOCK_TRANSCRIPTION, detected_language="indonesian")

        logger.info("Transcribing audio", audio=audio_url[:60])
        output = await self.gateway.run_version(self.version, {
            "audio": audio_url,
            "language": "auto",
            "translate": False,
            "temperature": 0,
            "transcription": "plain text",
            "suppress_tokens": "-1",
            "logprob_threshold": -1,
            "no_speech_threshold": 0.6,
            "condition_on_previous_text": True,
            "compression_ratio_threshold": 2.4,
            "temperature_increment_on_fallback": 0.2,
        })

        output = output if isinstance(output, dict) else {}
        text = (output.get("transcription") or output.get("text") or "").strip()
        if not text:
            raise TranscriptionError("No transcription generated from audio")

        language = output.get("detected_language") or "unknown"
        logger.info("Transcription complete", detected_language=language, length=len(text))
        return Transcription(text=text, detected_language=language)
