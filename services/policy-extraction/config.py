"""Environment-based configuration for the policy extraction service."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Policy extraction settings, loaded from environment variables."""

    # Server
    PORT: int = 8092

    # Upload limits (10 MB default; permissive deployments raise this to 50 MB)
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024
    MAX_FILES: int = 10

    # Extraction service (empty key = extraction not configured)
    OPENAI_API_KEY: str = ""
    EXTRACTION_BASE_URL: str = "https://api.openai.com/v1"
    EXTRACTION_MODEL: str = "gpt-4o-mini"
    EXTRACTION_MAX_TOKENS: int = 1500

    # Extraction timeouts and retry (1 attempt = no retry)
    EXTRACTION_TIMEOUT_SECONDS: int = 120
    EXTRACTION_CONNECT_TIMEOUT: int = 10
    EXTRACTION_RETRY_ATTEMPTS: int = 1
    EXTRACTION_RETRY_DELAY: float = 2.0
    EXTRACTION_RETRY_BACKOFF: float = 2.0

    # PDF rasterization (empty path = search PATH for pdftoppm)
    PDFTOPPM_PATH: str = ""
    RASTER_LONG_EDGE: int = 2048
    RASTER_TIMEOUT_SECONDS: int = 60

    # Result classification
    COMPLETENESS_THRESHOLD: float = 0.5
    LOW_LIABILITY_THRESHOLD: int = 100_000

    model_config = {"env_prefix": "", "case_sensitive": True}


settings = Settings()
