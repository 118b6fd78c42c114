"""Application configuration loaded from environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings. All values can be overridden via environment variables."""

    # Application
    app_name: str = "ssekit"
    debug: bool = False

    # SSE stream defaults
    retry: int = 3000  # milliseconds the client waits before reconnecting
    execution_time: int = 0  # seconds, 0 = unlimited
    poll_interval: float = 1.0  # seconds between producer calls

    model_config = {"env_prefix": "SSE_", "env_file": ".env", "extra": "ignore"}


settings = Settings()
