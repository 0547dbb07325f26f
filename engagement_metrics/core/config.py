# Pydantic settings

from pydantic_settings import BaseSettings, SettingsConfigDict
import os


class Settings(BaseSettings):
    """Application settings"""

    # App
    app_name: str = "Engagement Metrics API"
    debug: bool = False

    # Event source (CSV with occurred_on,account_id,user_id)
    events_csv_path: str | None = None

    # Metrics
    dau_divisor: float = 31.0

    # In-memory DuckDB backend, loaded once at startup
    use_duckdb: bool = False

    model_config = SettingsConfigDict(
        # Use .env.local if it exists (for local dev), otherwise .env
        env_file=".env.local" if os.path.exists(".env.local") else ".env",
        case_sensitive=False
    )


settings = Settings()
