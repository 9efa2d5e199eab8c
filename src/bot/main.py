"""
Telegram bot entry point.

Usage:
    python -m src.bot.main
"""

import sys

from loguru import logger
from telegram.ext import Application, CommandHandler, MessageHandler, filters

from ..core.config import settings
from ..core.logging import setup_logging
from ..services.extraction import InvoiceExtractionService
from ..services.model_gateway import ReplicateGateway
from ..services.storage import InvoiceStoreBase, get_invoice_store
from ..services.transcription import WhisperTranscriber
from . import handlers


def build_application(
    token: str,
    store: InvoiceStoreBase | None = None,
    extraction: InvoiceExtractionService | None = None,
    transcriber: WhisperTranscriber | None = None,
) -> Application:
    """Create the bot application with all handlers registered"""
    gateway = ReplicateGateway()

    application = Application.builder().token(token).build()
    application.bot_data[handlers.STORE_KEY] = store or get_invoice_store()
    application.bot_data[handlers.EXTRACTION_KEY] = extraction or InvoiceExtractionService(gateway)
    application.bot_data[handlers.TRANSCRIBER_KEY] = transcriber or WhisperTranscriber(gateway)

    application.add_handler(CommandHandler("start", handlers.start))
    application.add_handler(CommandHandler("history", handlers.history))
    application.add_handler(CommandHandler("stats", handlers.stats))
    application.add_handler(CommandHandler("export_all", handlers.export_all))
    application.add_handler(CommandHandler("export_month", handlers.export_month))
    application.add_handler(MessageHandler(filters.Regex(r"^/detail_(\d+)"), handlers.detail))
    application.add_handler(MessageHandler(filters.Regex(r"^/export_(\d+)"), handlers.export_one))
    application.add_handler(MessageHandler(filters.PHOTO, handlers.photo))
    application.add_handler(MessageHandler(filters.VOICE | filters.AUDIO, handlers.voice))
    application.add_handler(MessageHandler(filters.Document.ALL, handlers.document))
    application.add_error_handler(handlers.error_handler)

    return application


def main() -> None:
    setup_logging()

    if not settings.telegram_bot_token:
        logger.error("TELEGRAM_BOT_TOKEN not found in environment or .env")
        sys.exit(1)

    application = build_application(settings.telegram_bot_token)

    logger.info("Invoice OCR Telegram bot started", model=settings.replicate_model)
    application.run_polling()


if __name__ == "__main__":
    main()
