from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Main page fetch
    ANALYZER_FETCH_TIMEOUT: float = 30.0
    ANALYZER_USER_AGENT: str = "SiteAnalyzer/1.0 (+https://github.com/site-analyzer)"
    ANALYZER_VERIFY_SSL: bool = True

    # Broken link sampling
    ANALYZER_LINK_CHECK_TIMEOUT: float = 10.0
    ANALYZER_LINK_SAMPLE_LIMIT: int = 10

    # Scheduler
    ANALYZER_MAX_CONCURRENT_RUNS: int = 5
    ANALYZER_JOB_HISTORY_LIMIT: int = 1000

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    # Verbose tracebacks in logs
    DEBUG: bool = False

    @field_validator("ANALYZER_FETCH_TIMEOUT", "ANALYZER_LINK_CHECK_TIMEOUT")
    def check_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeout must be positive")
        return v

    @field_validator(
        "ANALYZER_LINK_SAMPLE_LIMIT",
        "ANALYZER_MAX_CONCURRENT_RUNS",
        "ANALYZER_JOB_HISTORY_LIMIT",
    )
    def check_limit(cls, v: int) -> int:
        if v < 1:
            raise ValueError("limit must be at least 1")
        return v

    @field_validator("LOG_LEVEL", mode="before")
    def normalize_log_level(cls, v: str) -> str:
        return str(v).upper()

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()
