from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="TUBEFETCH_",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    host: str = "0.0.0.0"
    port: int = 7652
    debug: bool = False
    # Comma-separated origins for CORS. Empty = allow "*" with no credentials.
    cors_origins: str = ""

    request_timeout: int = 30
    max_retries: int = 3
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/87.0.4280.101 Safari/537.36"
    )
    lang: str = "en"

    # Metadata endpoint retries (linear back-off, capped)
    pipeline_max_retries: int = 2
    backoff_inc: float = 0.5
    backoff_max: float = 10.0

    # Cache lifetimes in seconds
    player_cache_ttl: float = 20 * 60
    watch_page_cache_ttl: float = 60
    identity_token_cache_ttl: float = 24 * 60 * 60

    dl_chunk_size: int = 10 * 1024 * 1024
    max_reconnects: int = 6


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
