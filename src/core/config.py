
from pydantic import Field
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    app_name: str = Field("invoice-ocr-bot", alias="APP_NAME")
    app_env: str = Field("dev", alias="APP_ENV")

    # Logging
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    # Replicate (hosted Gemini + Whisper)
    replicate_api_token: str | None = Field(default=None, alias="REPLICATE_API_TOKEN")
    replicate_base_url: str = Field("https://api.replicate.com/v1", alias="REPLICATE_BASE_URL")
    replicate_model: str = Field("google/gemini-2.5-flash", alias="REPLICATE_MODEL")
    whisper_version: str = Field(
        "8099696689d249cf8b122d833c36ac3f75505c666a395ca40ef26f68e7d3d16e",
        alias="WHISPER_VERSION",
    )
    replicate_poll_interval: float = Field(0.5, alias="REPLICATE_POLL_INTERVAL")
    replicate_timeout: float = Field(120.0, alias="REPLICATE_TIMEOUT")

    # Extraction token budgets and truncation retry policy
    extraction_max_output_tokens: int = Field(4096, alias="EXTRACTION_MAX_OUTPUT_TOKENS")
    text_extraction_max_output_tokens: int = Field(2048, alias="TEXT_EXTRACTION_MAX_OUTPUT_TOKENS")
    extraction_retry_max_output_tokens: int = Field(8192, alias="EXTRACTION_RETRY_MAX_OUTPUT_TOKENS")
    extraction_truncation_retries: int = Field(1, alias="EXTRACTION_TRUNCATION_RETRIES")

    # Storage
    db_path: str = Field("invoices.db", alias="DB_PATH")

    # Telegram
    telegram_bot_token: str | None = Field(default=None, alias="TELEGRAM_BOT_TOKEN")
    history_limit: int = Field(10, alias="HISTORY_LIMIT")

    # Web upload
    max_upload_mb: int = Field(10, alias="MAX_UPLOAD_MB")

    # CORS allowed origins (comma-separated list)
    cors_origins: str = Field("http://localhost:3000,http://127.0.0.1:3000", alias="CORS_ORIGINS")

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

settings = Settings()
