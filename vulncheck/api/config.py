from typing import Optional

from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./vulncheck.db"

    # GitHub
    GITHUB_TOKEN: str = ""  # Only used by the CLI; API callers send their own
    GITHUB_API_URL: str = "https://api.github.com"
    GITHUB_MAX_RETRIES: int = 3
    GITHUB_TIMEOUT: Optional[float] = None  # None = transport default

    # AI Configuration - Values come from .env file
    AI_PROVIDER: str = "openai"  # openai, claude, http
    AI_MAX_TOKENS: int = 4000

    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-4o"

    ANTHROPIC_API_KEY: str = ""
    ANTHROPIC_MODEL: str = "claude-3-5-sonnet-20241022"

    # Hosted analysis function (AI_PROVIDER=http)
    ANALYSIS_FUNCTION_URL: str = ""
    ANALYSIS_FUNCTION_KEY: str = ""
    ANALYSIS_FUNCTION_TIMEOUT: float = 120.0

    # Scanning
    SCAN_PACING_SECONDS: float = 0.2
    MAX_FILE_SIZE_BYTES: int = 100_000
    SCAN_CREDIT_COST: int = 1
    SIGNUP_CREDITS: int = 0
    MAX_LIVE_SESSIONS: int = 100  # Least recently used sessions are evicted past this

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"

settings = Settings()
