from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import computed_field, field_validator
from functools import lru_cache
from pathlib import Path

# Get the repository root (parent of backend/)
PROJECT_ROOT = Path(__file__).parent.parent.parent

PROVIDERS = ("azure", "google", "deepl")
RENDER_MODES = ("replace", "inline", "tooltip")

DEFAULT_SOURCE_LANG = "auto"
DEFAULT_TARGET_LANG = "ko"
DEFAULT_AZURE_ENDPOINT = "https://api.cognitive.microsofttranslator.com"
DEFAULT_DEEPL_ENDPOINT = "https://api-free.deepl.com"
DEFAULT_RPS = 4
DEFAULT_BATCH_SIZE = 20
DEFAULT_CACHE_LIMIT = 5000

# Floor for the pause between two provider calls, in seconds
MIN_DISPATCH_INTERVAL = 0.25


def normalize_lang(value, default: str) -> str:
    """Strip a language code, falling back to ``default`` when blank."""
    if value is None or not str(value).strip():
        return default
    return str(value).strip()


def coerce_positive_int(value, default: int) -> int:
    """Coerce user input to a positive int, falling back to ``default``.

    Non-numeric, zero and negative inputs are never rejected.
    """
    try:
        number = int(float(value))
    except (TypeError, ValueError):
        return default
    if number < 1:
        return default
    return number


class Settings(BaseSettings):

    # Application
    app_env: str = "development"
    app_debug: bool = False

    # Translation behaviour
    enabled: bool = True
    provider: str = "azure"  # "azure", "google", "deepl"
    source_lang: str = DEFAULT_SOURCE_LANG
    target_lang: str = DEFAULT_TARGET_LANG
    mode: str = "replace"  # "replace", "inline", "tooltip"
    offline_only: bool = False  # Serve cache hits only, never call a provider

    # Azure Translator
    azure_key: str = ""
    azure_region: str = ""
    azure_endpoint: str = DEFAULT_AZURE_ENDPOINT

    # Google Cloud Translation v2
    google_key: str = ""

    # DeepL API
    deepl_key: str = ""
    deepl_endpoint: str = DEFAULT_DEEPL_ENDPOINT

    # Rate limit
    rate_limit_rps: int = DEFAULT_RPS
    rate_limit_batch_size: int = DEFAULT_BATCH_SIZE
    provider_timeout_seconds: float = 30.0

    # Caches
    cache_limit: int = DEFAULT_CACHE_LIMIT  # Max number of entries in the memory LRU
    storage_root: str = str(PROJECT_ROOT / "data" / "autotranslate")
    cache_debounce_seconds: float = 1.0
    cache_flush_interval_seconds: float = 5.0

    @field_validator("source_lang", mode="before")
    @classmethod
    def parse_source_lang(cls, v):
        return normalize_lang(v, DEFAULT_SOURCE_LANG)

    @field_validator("target_lang", mode="before")
    @classmethod
    def parse_target_lang(cls, v):
        return normalize_lang(v, DEFAULT_TARGET_LANG)

    @field_validator("provider", mode="before")
    @classmethod
    def parse_provider(cls, v):
        name = str(v or "").strip().lower()
        if name not in PROVIDERS:
            raise ValueError(f"provider must be one of {', '.join(PROVIDERS)}")
        return name

    @field_validator("mode", mode="before")
    @classmethod
    def parse_mode(cls, v):
        mode = str(v or "").strip().lower()
        if mode not in RENDER_MODES:
            return "replace"
        return mode

    @field_validator("azure_endpoint", mode="before")
    @classmethod
    def parse_azure_endpoint(cls, v):
        return str(v).strip() if v and str(v).strip() else DEFAULT_AZURE_ENDPOINT

    @field_validator("deepl_endpoint", mode="before")
    @classmethod
    def parse_deepl_endpoint(cls, v):
        return str(v).strip() if v and str(v).strip() else DEFAULT_DEEPL_ENDPOINT

    @field_validator("rate_limit_rps", mode="before")
    @classmethod
    def parse_rps(cls, v):
        return coerce_positive_int(v, DEFAULT_RPS)

    @field_validator("rate_limit_batch_size", mode="before")
    @classmethod
    def parse_batch_size(cls, v):
        return coerce_positive_int(v, DEFAULT_BATCH_SIZE)

    @field_validator("cache_limit", mode="before")
    @classmethod
    def parse_cache_limit(cls, v):
        return coerce_positive_int(v, DEFAULT_CACHE_LIMIT)

    @computed_field
    @property
    def min_dispatch_interval(self) -> float:
        """Seconds to wait after every provider call."""
        return max(MIN_DISPATCH_INTERVAL, 1.0 / max(1, self.rate_limit_rps))

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_prefix="AUTOTRANSLATE_",
        case_sensitive=False,
        extra="ignore",
        validate_assignment=True,
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
