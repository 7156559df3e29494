import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

try:
    import yaml
except ModuleNotFoundError as exc:  # pragma: no cover - import guard
    raise ModuleNotFoundError(
        "PyYAML is required to load application configuration. Install it via 'pip install pyyaml'."
    ) from exc
from pydantic import AliasChoices, BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[4]
DEFAULT_APP_CONFIG_PATH = "config/app.yaml"

DEFAULT_SHORT_TONES = ("sad", "mad", "fun", "joy", "awe", "dry")

DEFAULT_REFUSAL_PHRASES = (
    "i cannot create a quote",
    "i'm unable to generate",
    "i am unable to generate",
    "i'm sorry, i can't",
    "i am sorry, i cannot",
    "not possible to provide a quote",
    "cannot provide a quote for that",
    "i do not understand the request",
    "could not generate a quote",
    "unable to create a quote",
)


class InputPlausibilitySettings(BaseModel):
    min_length: int = 3
    short_tones: List[str] = Field(default_factory=lambda: list(DEFAULT_SHORT_TONES))
    min_vowel_ratio: float = 0.15
    max_consonant_run: int = 5
    max_char_repeat: int = 5
    pattern_min_length: int = 9

    class Config:
        extra = "ignore"


class OutputPlausibilitySettings(BaseModel):
    refusal_phrases: List[str] = Field(default_factory=lambda: list(DEFAULT_REFUSAL_PHRASES))
    min_words: int = 4
    min_chars: int = 30
    density_min_length: int = 11
    min_alnum_ratio: float = 0.3

    class Config:
        extra = "ignore"


class PlausibilitySettings(BaseModel):
    input: InputPlausibilitySettings = Field(default_factory=InputPlausibilitySettings)
    output: OutputPlausibilitySettings = Field(default_factory=OutputPlausibilitySettings)

    class Config:
        extra = "ignore"


class GenerationSettings(BaseModel):
    temperature: float = 0.9
    max_tokens: int = 256
    timeout_s: float = 30.0

    class Config:
        extra = "ignore"


class EmailSettings(BaseModel):
    one_time_subject: str = "Here is your AI Generated Quote!"
    subscribe_subject: str = "You are subscribed to daily quotes!"
    daily_subject: str = "Your Daily AI Generated Quote!"
    subscription_message: str = (
        "You'll start receiving a new quote every day. Thank you for subscribing!"
    )
    timeout_s: float = 10.0

    class Config:
        extra = "ignore"


class DispatchSettings(BaseModel):
    max_workers: int = 8

    class Config:
        extra = "ignore"


class TelemetrySettings(BaseModel):
    log_level: str = "INFO"
    metrics_enabled: bool = True

    class Config:
        extra = "ignore"


class ServerSettings(BaseModel):
    cors_origins: List[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://127.0.0.1:3000"]
    )

    class Config:
        extra = "ignore"


class AppConfig(BaseModel):
    plausibility: PlausibilitySettings = Field(default_factory=PlausibilitySettings)
    generation: GenerationSettings = Field(default_factory=GenerationSettings)
    email: EmailSettings = Field(default_factory=EmailSettings)
    dispatch: DispatchSettings = Field(default_factory=DispatchSettings)
    telemetry: TelemetrySettings = Field(default_factory=TelemetrySettings)
    server: ServerSettings = Field(default_factory=ServerSettings)

    class Config:
        extra = "ignore"


def _resolve_config_path(path_str: str) -> Path:
    candidate = Path(path_str).expanduser()
    if not candidate.is_absolute():
        candidate = (PROJECT_ROOT / candidate).resolve()
    return candidate


def _load_app_config(path: Path) -> AppConfig:
    if not path.exists():
        logger.warning("App config file %s not found; using defaults", path)
        return AppConfig()
    try:
        with path.open("r", encoding="utf-8") as handle:
            raw: Dict[str, Any] = yaml.safe_load(handle) or {}
    except Exception as exc:  # pragma: no cover - configuration failures are fatal
        logger.error("Failed to load app config from %s: %s", path, exc)
        raise
    return AppConfig(**raw)


@lru_cache(maxsize=4)
def _load_app_config_cached(resolved_path: str) -> AppConfig:
    return _load_app_config(Path(resolved_path))


def get_app_config(path_str: str) -> AppConfig:
    resolved = _resolve_config_path(path_str)
    return _load_app_config_cached(str(resolved))


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # LLM Provider Configuration (OpenAI-compatible; Gemini exposes one)
    llm_base_url: str = Field(
        "https://generativelanguage.googleapis.com/v1beta/openai/",
        description="Base URL for the OpenAI-compatible LLM API",
    )
    llm_api_key: str = Field(
        "",
        description="API key for the LLM API",
        validation_alias=AliasChoices("llm_api_key", "gemini_api_key"),
    )
    llm_model: str = Field("gemini-2.0-flash", description="The model name to use for chat completions")

    # Email delivery (Resend)
    resend_api_key: str = Field("", description="API key for the Resend email API")
    resend_base_url: str = Field("https://api.resend.com", description="Base URL for the Resend API")
    email_from: str = Field(
        "QuoteCraft <onboarding@resend.dev>",
        description="Verified sender address used for every outgoing email",
    )

    # Subscription storage (Supabase PostgREST). Empty URL selects the in-memory store.
    supabase_url: str = Field("", description="Supabase project URL")
    supabase_service_key: str = Field("", description="Supabase service-role key")
    subscriptions_table: str = Field("daily_subscriptions", description="Table holding daily subscriptions")

    # Public URL used to build unsubscribe links
    app_url: str = Field(
        "http://localhost:3000",
        description="Public base URL of the application",
        validation_alias=AliasChoices("app_url", "next_public_app_url"),
    )
    cron_secret: Optional[str] = Field(None, description="Bearer token required by the cron endpoint")

    # App configuration
    app_config_path: str = Field(
        DEFAULT_APP_CONFIG_PATH,
        description="Path to the YAML configuration file controlling plausibility/generation/email behavior.",
        validation_alias=AliasChoices("app_config_path", "quotecraft_app_config_path"),
    )

    def resolved_app_config_path(self) -> Path:
        return _resolve_config_path(self.app_config_path)

    @property
    def app_config(self) -> AppConfig:
        return get_app_config(self.app_config_path)


# Initialize settings
settings = Settings()
