"""Configuration management using pydantic-settings."""

from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import AliasChoices, Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Server Configuration
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=3000, description="Server port")
    debug: bool = Field(default=False, description="Debug mode")
    cors_origins: str = Field(
        default="http://localhost:5173,http://127.0.0.1:5173",
        description="Allowed CORS origins (comma separated)"
    )

    # Gemini Configuration
    gemini_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("gemini_api_key", "google_api_key"),
        description="Gemini API key"
    )
    llm_model: str = Field(default="gemini-2.0-flash", description="Gemini model name")
    llm_temperature: float = Field(default=0.7, description="Sampling temperature")
    llm_top_k: int = Field(default=1, description="Top-k sampling")
    llm_top_p: float = Field(default=1.0, description="Top-p sampling")
    llm_max_output_tokens: int = Field(default=2048, description="Maximum output tokens per call")
    llm_enable_search: bool = Field(default=True, description="Ground responses with Google Search")
    llm_timeout: Optional[float] = Field(default=None, description="Per-call timeout in seconds")
    llm_max_retries: int = Field(default=0, ge=0, description="Retries after a failed model call")

    # Session Store Configuration
    session_store_backend: str = Field(default="file", description="Session store backend (file or duckdb)")
    conversations_file: str = Field(default="./data/conversations.json", description="Conversation snapshot file")
    database_path: str = Field(default="./data/roadmapper.db", description="DuckDB database path")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Log level")
    log_file: Optional[str] = Field(default="./logs/app.log", description="Log file path")

    def get_cors_origins(self) -> List[str]:
        """Get list of allowed CORS origins."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    def get_llm_config(self) -> dict:
        """Get generation configuration for the model gateway."""
        config = {
            "model": self.llm_model,
            "temperature": self.llm_temperature,
            "top_k": self.llm_top_k,
            "top_p": self.llm_top_p,
            "max_output_tokens": self.llm_max_output_tokens,
        }
        # Only add api_key if it's not None
        if self.gemini_api_key:
            config["google_api_key"] = self.gemini_api_key
        return config


# Global settings instance
settings = Settings()
