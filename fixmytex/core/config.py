"""Configuration management for FixMyTex."""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file (only if accessible)
try:
    load_dotenv()
except (PermissionError, OSError):
    # In sandboxed environments, .env might not be accessible
    # Environment variables should be set directly
    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Environment
    FIXMYTEX_ENV: str = Field(default="dev", description="Environment: dev, test, prod")

    # LLM provider selection
    LLM_PROVIDER: str = Field(
        default="anthropic", description="Provider backend: openai, anthropic, aws-bedrock"
    )
    LLM_MODEL: str = Field(
        default="claude-3-7-sonnet-latest", description="Model identifier for the selected backend"
    )
    LLM_TEMPERATURE: float = Field(default=0.1, description="Sampling temperature")
    LLM_MAX_TOKENS: int = Field(default=4000, description="Max output tokens per call")

    # Provider credentials (only the selected backend's are needed)
    OPENAI_API_KEY: str = Field(default="", description="OpenAI API key")
    ANTHROPIC_API_KEY: str = Field(default="", description="Anthropic API key")
    AWS_ACCESS_KEY_ID: str = Field(default="", description="AWS access key for Bedrock")
    AWS_SECRET_ACCESS_KEY: str = Field(default="", description="AWS secret key for Bedrock")
    AWS_SESSION_TOKEN: str = Field(default="", description="Optional AWS session token")
    AWS_REGION: str = Field(default="us-east-1", description="AWS region for Bedrock")
    BEDROCK_INFERENCE_PROFILE: str = Field(
        default="", description="Bedrock inference profile id (overrides LLM_MODEL when set)"
    )

    # Hotkey handling
    HOTKEY: str = Field(default="<ctrl>+g", description="Global hotkey in pynput notation")
    HOTKEY_TRIGGER_TRANSITION: str = Field(
        default="pressed", description="Which key transition counts as a click: pressed or released"
    )
    DOUBLE_PRESS_THRESHOLD_MS: int = Field(
        default=200, description="Max gap between two presses for a double press"
    )
    COPY_SETTLE_DELAY_MS: int = Field(
        default=100, description="Wait after sending copy before reading the clipboard"
    )

    # Rich (HTML) clipboard support
    RICH_CLIPBOARD_ENABLED: bool = Field(default=True, description="Enable HTML clipboard output")
    RICH_CLIPBOARD_APP_PATTERNS: list[str] = Field(
        default_factory=lambda: ["outlook", "teams"],
        description="Case-insensitive app name fragments that accept rich paste",
    )

    # Pyramidal integration thresholds
    SUBJECT_CONFIDENCE_THRESHOLD: float = Field(default=0.7)
    HEADER_CONFIDENCE_THRESHOLD: float = Field(default=0.7)
    STYLE_CONFIDENCE_THRESHOLD: float = Field(default=0.7)
    COMPLETENESS_RISK_THRESHOLD: float = Field(default=0.3)
    COMPLETENESS_PENALTY_THRESHOLD: float = Field(default=0.5)
    IMPROVEMENT_BONUS: float = Field(default=0.05)
    COMPLETENESS_PENALTY: float = Field(default=0.1)

    # Local API bridge for the assistant UI
    API_HOST: str = Field(default="127.0.0.1", description="Bind address for the UI bridge")
    API_PORT: int = Field(default=8765, description="Port for the UI bridge")


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance

    Raises:
        ValidationError: If environment variables have invalid values
    """
    return Settings()
