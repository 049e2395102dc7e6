# relive_search/core/config.py
import logging
import sys
import json
from typing import Any
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator, SecretStr, ValidationInfo, ValidationError

# --- Default Values ---
POSTGRES_HOST_DEFAULT = "localhost"
POSTGRES_PORT_DEFAULT = 5432
POSTGRES_DB_DEFAULT = "relive"
POSTGRES_USER_DEFAULT = "postgres"

DEFAULT_CONVERSATION_BATCH_LIMIT = 1000
DEFAULT_COMMITMENT_BATCH_LIMIT = 1000
DEFAULT_HISTORY_MAX_ENTRIES = 100
DEFAULT_HISTORY_SETTINGS_KEY = "search_history"
DEFAULT_MAX_RESULTS = 50
DEFAULT_STRUCTURED_MIN_RELEVANCE = 1
DEFAULT_FUZZY_MAX_DISTANCE = 2
DEFAULT_ANALYSIS_CACHE_MAX_ITEMS = 5000
DEFAULT_ANALYSIS_CACHE_TTL_SECONDS = 24 * 3600


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file='.env',
        env_prefix='RELIVE_SEARCH_',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore'
    )

    # --- General ---
    PROJECT_NAME: str = "Relive Hybrid Search"
    LOG_LEVEL: str = Field(default="INFO")
    SERVICE_VERSION: str = "1.0.0"

    # --- Database (PostgreSQL) ---
    POSTGRES_USER: str = Field(default=POSTGRES_USER_DEFAULT)
    POSTGRES_PASSWORD: SecretStr = Field(default=SecretStr("postgres"))
    POSTGRES_SERVER: str = Field(default=POSTGRES_HOST_DEFAULT)
    POSTGRES_PORT: int = Field(default=POSTGRES_PORT_DEFAULT)
    POSTGRES_DB: str = Field(default=POSTGRES_DB_DEFAULT)
    DB_POOL_MIN_SIZE: int = Field(default=1)
    DB_POOL_MAX_SIZE: int = Field(default=5)
    DB_CONNECT_TIMEOUT: int = Field(default=30)
    DB_COMMAND_TIMEOUT: int = Field(default=60)

    # --- Index rebuild batches ---
    CONVERSATION_BATCH_LIMIT: int = Field(
        default=DEFAULT_CONVERSATION_BATCH_LIMIT,
        description="Maximum number of conversations pulled from the store per index rebuild."
    )
    COMMITMENT_BATCH_LIMIT: int = Field(
        default=DEFAULT_COMMITMENT_BATCH_LIMIT,
        description="Maximum number of commitments pulled from the store per index rebuild."
    )

    # --- Query behaviour ---
    DEFAULT_MAX_RESULTS: int = Field(default=DEFAULT_MAX_RESULTS)
    STRUCTURED_MIN_RELEVANCE: float = Field(
        default=DEFAULT_STRUCTURED_MIN_RELEVANCE,
        description="Raw relevance floor applied by the structured store search when the query sets none."
    )
    FUZZY_MAX_DISTANCE: int = Field(
        default=DEFAULT_FUZZY_MAX_DISTANCE,
        description="Maximum Levenshtein distance for a vocabulary token to count as a fuzzy match."
    )
    SNIPPET_LENGTH: int = Field(default=200)

    # --- Search history ---
    HISTORY_MAX_ENTRIES: int = Field(default=DEFAULT_HISTORY_MAX_ENTRIES)
    HISTORY_SETTINGS_KEY: str = Field(default=DEFAULT_HISTORY_SETTINGS_KEY)

    # --- In-memory record caches (analyses, transcripts) ---
    ANALYSIS_CACHE_MAX_ITEMS: int = Field(default=DEFAULT_ANALYSIS_CACHE_MAX_ITEMS)
    ANALYSIS_CACHE_TTL_SECONDS: int = Field(default=DEFAULT_ANALYSIS_CACHE_TTL_SECONDS)

    @field_validator('LOG_LEVEL', mode='before')
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.upper()

    @field_validator('LOG_LEVEL')
    @classmethod
    def check_log_level(cls, v: str) -> str:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v not in valid_levels:
            raise ValueError(f"Invalid LOG_LEVEL '{v}'. Must be one of {valid_levels}")
        return v

    @field_validator(
        'CONVERSATION_BATCH_LIMIT', 'COMMITMENT_BATCH_LIMIT', 'DEFAULT_MAX_RESULTS',
        'HISTORY_MAX_ENTRIES', 'ANALYSIS_CACHE_MAX_ITEMS', 'SNIPPET_LENGTH'
    )
    @classmethod
    def check_positive(cls, v: int, info: ValidationInfo) -> int:
        if v <= 0:
            raise ValueError(f"'{info.field_name}' must be a positive integer, got {v}.")
        return v

    @field_validator('FUZZY_MAX_DISTANCE')
    @classmethod
    def check_fuzzy_distance(cls, v: int) -> int:
        if v < 0:
            raise ValueError("FUZZY_MAX_DISTANCE cannot be negative.")
        return v

    @field_validator('HISTORY_SETTINGS_KEY', mode='before')
    @classmethod
    def check_history_key(cls, v: Any, info: ValidationInfo) -> Any:
        if v is None or v == "":
            raise ValueError(f"Required field '{info.field_name}' cannot be empty.")
        return v


# --- Global Settings Instance ---
temp_log = logging.getLogger("relive_search.config.loader")
if not temp_log.handlers:
    handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter('%(levelname)s: [%(asctime)s] [%(name)s] %(message)s')
    handler.setFormatter(formatter)
    temp_log.addHandler(handler)
    temp_log.setLevel(logging.INFO)

try:
    temp_log.info("Loading Relive Search settings...")
    settings = Settings()
    temp_log.info(f"--- Relive Search Settings Loaded (v{settings.SERVICE_VERSION}) ---")

    excluded_fields = {'POSTGRES_PASSWORD'}
    log_data = settings.model_dump(exclude=excluded_fields)

    for key, value in log_data.items():
        temp_log.info(f"  {key.upper()}: {value}")

    pg_pass_status = '*** SET ***' if settings.POSTGRES_PASSWORD.get_secret_value() else '!!! NOT SET !!!'
    temp_log.info(f"  POSTGRES_PASSWORD: {pg_pass_status}")
    temp_log.info("------------------------------------")

except (ValidationError, ValueError) as e:
    error_details = ""
    if isinstance(e, ValidationError):
        try: error_details = f"\nValidation Errors:\n{json.dumps(e.errors(), indent=2, default=str)}"
        except Exception: error_details = f"\nRaw Errors: {e}"
    else: error_details = f"\nError: {e}"

    temp_log.critical("!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!")
    temp_log.critical(f"! FATAL: Relive Search configuration validation failed!{error_details}")
    temp_log.critical("! Check environment variables (prefixed with RELIVE_SEARCH_) or .env file.")
    temp_log.critical("!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!")
    sys.exit(1)
except Exception as e:
    temp_log.exception(f"FATAL: Unexpected error loading Relive Search settings: {e}")
    sys.exit(1)
