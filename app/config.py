"""
Configuration settings for the NeuroSense report builder.
Loads environment variables and provides application-wide settings.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Gemini Configuration
    GEMINI_API_KEY: str = ""
    GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com"
    GEMINI_MODEL: str = "gemini-2.0-flash"
    GEMINI_TIMEOUT: int = 120  # seconds, covers upload + generate
    GEMINI_TEMPERATURE: float = 0.2

    # Template Configuration
    TEMPLATE_DIR: str = "./templates"
    DEFAULT_REPORT_KIND: str = "cyp_adhd"

    # Upload Configuration
    MAX_UPLOAD_SIZE: int = 25 * 1024 * 1024  # 25 MB

    # Attach the merged record as a URL-encoded response header
    DIAGNOSTIC_HEADER_ENABLED: bool = True

    # Server Configuration
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    ALLOWED_ORIGINS: str = "http://localhost:3000,http://localhost:3001"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    def get_allowed_origins(self) -> List[str]:
        """Parse ALLOWED_ORIGINS string into a list."""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]


# Global settings instance
settings = Settings()
