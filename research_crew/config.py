"""Configuration and environment settings."""
from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    openai_api_key: str = ""
    openai_model: str = "gpt-4o"
    openai_temperature: float = 0.0

    tavily_api_key: str = ""
    search_max_results: int = 1

    # Orchestrator limits
    max_steps: int = 25
    step_timeout_seconds: float | None = None

    chart_output_dir: str = "charts"

    log_level: str = "INFO"
    log_format: str = "console"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    def validate_keys(self) -> list[str]:
        """Return the names of required API keys that are missing."""
        missing = []
        if not self.openai_api_key:
            missing.append("OPENAI_API_KEY")
        if not self.tavily_api_key:
            missing.append("TAVILY_API_KEY")
        return missing


@lru_cache()
def get_settings() -> Settings:
    """Return cached application settings."""
    return Settings()
