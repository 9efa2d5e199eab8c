"""
Telegram update handlers.

Collaborators (store, extraction service, transcriber) are read from
``context.bot_data`` so the application and the tests can inject their own.
"""

from datetime import date

from loguru import logger
from telegram import Update
from telegram.constants import ParseMode
from telegram.ext import ContextTypes

from ..core.config import settings
from ..services.extraction import ExtractionResult, InvoiceExtractionService
from ..services.invoice_types import Rejected, RejectionCode
from ..services.model_gateway import ModelGatewayError, to_data_uri
from ..services.spreadsheet import (
    MONTH_NAMES,
    all_export_filename,
    export_invoice_detail,
    export_invoices,
    invoice_export_filename,
    month_export_filename,
)
from ..services.storage import InvoiceStoreBase
from ..services.transcription import TranscriptionError, WhisperTranscriber
from . import formatting

STORE_KEY = "store"
EXTRACTION_KEY = "extraction"
TRANSCRIBER_KEY = "transcriber"


def _store(context: ContextTypes.DEFAULT_TYPE) -> InvoiceStoreBase:
    return context.bot_data[STORE_KEY]


def _extraction(context: ContextTypes.DEFAULT_TYPE) -> InvoiceExtractionService:
    return context.bot_data[EXTRACTION_KEY]


def _transcriber(context: ContextTypes.DEFAULT_TYPE) -> WhisperTranscriber:
    return context.bot_data[TRANSCRIBER_KEY]


def _matched_invoice(context: ContextTypes.DEFAULT_TYPE) -> dict | None:
    try:
        return _store(context).get_invoice(int(context.match.group(1)))
    except OverflowError:
        # IDs past the SQLite integer range cannot exist
        return None


async def start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await update.message.reply_text(
        formatting.WELCOME_MESSAGE.format(history_limit=settings.history_limit),
        parse_mode=ParseMode.HTML,
    )


async def history(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    invoices = _store(context).list_all(limit=settings.history_limit)
    if not invoices:
        await update.message.reply_text(formatting.NO_INVOICES_MESSAGE)
        return
    await update.message.reply_text(formatting.format_history(invoices), parse_mode=ParseMode.HTML)


async def detail(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """/detail_<id>"""
    invoice = _matched_invoice(context)
    if not invoice:
        await update.message.reply_text(formatting.NOT_FOUND_MESSAGE)
        return
    await update.message.reply_text(formatting.format_detail(invoice), parse_mode=ParseMode.HTML)


async def stats(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    store = _store(context)
    message = formatting.format_stats(store.get_statistics(), store.get_by_vendor())
    await update.message.reply_text(message, parse_mode=ParseMode.HTML)


async def export_all(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    invoices = _store(context).list_all()
    if not invoices:
        await update.message.reply_text("📭 No invoices to export yet.")
        return
    await update.message.reply_document(
        document=export_invoices(invoices),
        filename=all_export_filename(),
        caption=formatting.format_export_caption(invoices, "successful!"),
    )


async def export_month(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Export invoices dated in the current month"""
    today = date.today()
    invoices = _store(context).list_for_month(today.year, today.month)
    if not invoices:
        await update.message.reply_text("📭 No invoices this month.")
        return
    await update.message.reply_document(
        document=export_invoices(invoices),
        filename=month_export_filename(today.year, today.month),
        caption=formatting.format_export_caption(invoices, f"{MONTH_NAMES[today.month - 1]} {today.year}"),
    )


async def export_one(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """/export_<id>"""
    invoice = _matched_invoice(context)
    if not invoice:
        await update.message.reply_text(formatting.NOT_FOUND_MESSAGE)
        return
    await update.message.reply_document(
        document=export_invoice_detail(invoice),
        filename=invoice_export_filename(invoice),
        caption=formatting.format_export_caption([invoice], f"invoice #{invoice['id']}"),
    )


async def _reply_with_result(status_message, result: ExtractionResult, store: InvoiceStoreBase,
                             filename: str, failure_text: str) -> None:
    outcome = result.outcome
    if isinstance(outcome, Rejected):
        if outcome.code == RejectionCode.INSUFFICIENT_DATA:
            text = formatting.format_insufficient(outcome.partial_record, outcome.detail)
            await status_message.edit_text(text, parse_mode=ParseMode.HTML)
        else:
            await status_message.edit_text(failure_text)
        return

    invoice_id = store.save_invoice(outcome.record, filename, result.raw_response)
    await status_message.edit_text(
        formatting.format_saved_invoice(outcome.record, invoice_id),
        parse_mode=ParseMode.HTML,
    )


async def photo(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Extract an invoice from the highest resolution version of a photo"""
    message = update.message
    status_message = await message.reply_text(formatting.PROCESSING_MESSAGE)

    largest = message.photo[-1]
    tg_file = await context.bot.get_file(largest.file_id)
    image_bytes = bytes(await tg_file.download_as_bytearray())

    logger.info("Photo received", chat_id=message.chat_id, size_bytes=len(image_bytes))

    try:
        result = await _extraction(context).extract_image(to_data_uri(image_bytes, "image/jpeg"))
    except ModelGatewayError as e:
        logger.error(f"Model call failed for photo: {str(e)}")
        await status_message.edit_text(formatting.EXTRACTION_FAILED_MESSAGE)
        return

    await _reply_with_result(
        status_message,
        result,
        _store(context),
        filename=f"telegram_{message.chat_id}_{largest.file_unique_id}.jpg",
        failure_text=formatting.EXTRACTION_FAILED_MESSAGE,
    )


async def voice(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Transcribe a voice note (or audio file) and extract invoice fields from it"""
    message = update.message
    audio = message.voice or message.audio
    status_message = await message.reply_text(formatting.TRANSCRIBING_MESSAGE)

    tg_file = await context.bot.get_file(audio.file_id)
    audio_bytes = bytes(await tg_file.download_as_bytearray())
    mime_type = audio.mime_type or "audio/ogg"

    logger.info("Voice note received", chat_id=message.chat_id, size_bytes=len(audio_bytes))

    try:
        transcription = await _transcriber(context).transcribe(to_data_uri(audio_bytes, mime_type))
        await status_message.edit_text(formatting.PROCESSING_MESSAGE)
        result = await _extraction(context).extract_text(transcription.text)
    except (ModelGatewayError, TranscriptionError) as e:
        logger.error(f"Voice processing failed: {str(e)}")
        await status_message.edit_text(formatting.VOICE_FAILED_MESSAGE)
        return

    await _reply_with_result(
        status_message,
        result,
        _store(context),
        filename=f"telegram_{message.chat_id}_{audio.file_unique_id}.ogg",
        failure_text=formatting.VOICE_FAILED_MESSAGE,
    )


async def document(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await update.message.reply_text(formatting.SEND_AS_PHOTO_MESSAGE, parse_mode=ParseMode.HTML)


async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    logger.opt(exception=context.error).error("Unhandled error while processing update")

    if isinstance(update, Update) and update.effective_message:
        await update.effective_message.reply_text(f"❌ An error occurred: {context.error}")
