import logging
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import AliasChoices, Field, ValidationError
from pydantic_settings import BaseSettings

from lead_relay.core.errors import ConfigurationError
from lead_relay.core.prompt import SYSTEM_INSTRUCTION

load_dotenv()


class Settings(BaseSettings):

    APP_HOST: str = Field(default="0.0.0.0", description="Listen host")
    PORT: int = Field(default=3001, description="Listen port")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    ALLOWED_ORIGINS: str = Field(
        default="",
        description="Comma-separated list of origins allowed to call the API",
    )

    GOOGLE_API_KEY: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("GOOGLE_API_KEY", "VERTEX_API_KEY"),
        description="API key for the Gemini model service",
    )
    GEMINI_MODEL: str = Field(default="gemini-2.5-flash", description="Chat model name")
    MODEL_TEMPERATURE: float | None = Field(default=None, description="Sampling temperature (model default if unset)")
    SYSTEM_PROMPT_FILE: str | None = Field(
        default=None,
        description="Path to a file overriding the built-in system instruction",
    )

    GOOGLE_SERVICE_ACCOUNT_JSON: str | None = Field(
        default=None,
        description="JSON-encoded Google service account descriptor",
    )
    GOOGLE_SHEETS_SPREADSHEET_ID: str | None = Field(
        default=None,
        description="Spreadsheet ID (from the sheet URL)",
    )
    GOOGLE_WORKSHEET_NAME: str = Field(default="Leads", description="Worksheet receiving leads")
    VALIDATE_SHEET_HEADER: bool = Field(
        default=False,
        description="Check the worksheet header row against the expected columns at startup",
    )

    RATE_LIMIT_MAX_REQUESTS: int = Field(default=100, ge=1, description="Requests allowed per client per window")
    RATE_LIMIT_WINDOW_SECONDS: float = Field(default=15 * 60, gt=0, description="Rate limit window length")
    RATE_LIMIT_TRUST_FORWARDED: bool = Field(
        default=False,
        description="Identify clients by X-Forwarded-For (only behind a trusted proxy)",
    )
    MAX_BODY_BYTES: int = Field(default=10 * 1024, ge=1, description="Maximum accepted request body size")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def log_level_value(self) -> int:
        """Numeric logging level for logging.basicConfig."""
        return getattr(logging, self.LOG_LEVEL.upper(), logging.INFO)

    @property
    def allowed_origins(self) -> list[str]:
        """Parsed origin allow-list; blank entries are dropped."""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]

    def system_instruction(self) -> str:
        """
        System instruction for the chat model.

        Read once from SYSTEM_PROMPT_FILE when configured, otherwise the built-in prompt.

        Raises:
            ConfigurationError: the configured prompt file is missing or empty
        """
        if not self.SYSTEM_PROMPT_FILE:
            return SYSTEM_INSTRUCTION

        path = Path(self.SYSTEM_PROMPT_FILE)
        try:
            text = path.read_text(encoding="utf-8").strip()
        except OSError as e:
            raise ConfigurationError(f"Cannot read SYSTEM_PROMPT_FILE {path}: {e}") from e
        if not text:
            raise ConfigurationError(f"SYSTEM_PROMPT_FILE {path} is empty")
        return text


def load_settings(**overrides: object) -> Settings:
    """
    Build and validate settings from the environment.

    Raises:
        ConfigurationError: a required value is missing or malformed
    """
    try:
        return Settings(**overrides)  # type: ignore[arg-type]
    except ValidationError as e:
        fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err.get("loc")) or "unknown"
        raise ConfigurationError(f"Invalid or missing configuration: {fields}") from e


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
