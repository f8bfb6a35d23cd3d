"""
Configuration management for the Audio Notes service.

This module provides centralized configuration using Pydantic Settings
for environment-based configuration management.
"""

from typing import Annotated, List, Optional

import json
import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


DEFAULT_NOTES_PROMPT = (
    "You are an expert note-taker creating a clear and concise summary. Your task is "
    "to transform the following audio transcription into well-structured, "
    "easy-to-understand notes.\n\n"
    "Focus on the core technical concepts, explanations, and key applications.\n\n"
    "Specifically, ensure the notes:\n"
    "- Directly summarize the main topics and key details.\n"
    "- Provide a clear, step-by-step explanation of any examples given.\n"
    "- Avoid mentioning or referring to the original transcription (e.g., \"The "
    "transcription states...\", \"As mentioned in the audio...\").\n"
    "- **Do NOT** include any sections or points about external resources, calls to "
    "action (like \"check out this video,\" \"subscribe\"), or \"further learning\" "
    "prompts from the original content.\n\n"
    "Format the notes using headings and bullet points for maximum readability.\n\n"
    "---\n"
    "Transcription:\n"
    "{transcript}\n"
    "---\n\n"
    "Structured Notes:"
)


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: str = Field(default="INFO", description="Logging level")
    format: str = Field(default="text", description="Log format (json or text)")

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate logging level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format."""
        if v.lower() not in ["json", "text"]:
            raise ValueError("Log format must be 'json' or 'text'")
        return v.lower()


class CORSSettings(BaseSettings):
    """CORS configuration settings."""

    model_config = SettingsConfigDict(env_prefix="CORS_")

    # NoDecode lets the validator below accept comma-separated values
    allowed_origins: Annotated[List[str], NoDecode] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins",
    )
    allowed_methods: List[str] = Field(
        default=["GET", "POST", "OPTIONS"],
        description="Allowed HTTP methods",
    )
    allowed_headers: List[str] = Field(
        default=["*"], description="Allowed HTTP headers"
    )

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def parse_allowed_origins(cls, v):
        """Parse allowed origins from string or list."""
        if isinstance(v, str):
            # Handle JSON-like string format
            if v.startswith("[") and v.endswith("]"):
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    return [v.strip()]
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v


class AudioSettings(BaseSettings):
    """Uploaded audio configuration settings."""

    model_config = SettingsConfigDict(env_prefix="AUDIO_")

    max_size_mb: int = Field(default=50, description="Maximum audio file size in MB")
    allowed_formats: List[str] = Field(
        default=["webm", "mp3", "wav", "m4a", "ogg", "flac", "mp4", "mpeg"],
        description="Allowed audio formats",
    )

    @field_validator("max_size_mb")
    @classmethod
    def validate_max_size(cls, v: int) -> int:
        """Validate max file size."""
        if v <= 0 or v > 500:
            raise ValueError("Max file size must be between 1 and 500 MB")
        return v


class TranscriptionSettings(BaseSettings):
    """Speech-to-text process configuration settings."""

    model_config = SettingsConfigDict(env_prefix="TRANSCRIPTION_")

    mode: str = Field(
        default="oneshot",
        description="'oneshot' spawns a process per file, 'persistent' keeps one supervised process",
    )
    model: str = Field(default="base", description="Whisper model name")
    language: Optional[str] = Field(default=None, description="Force a language code (autodetect if unset)")
    python_executable: str = Field(
        default=sys.executable, description="Interpreter used to launch the whisper runner"
    )
    timeout_seconds: float = Field(default=1800.0, description="Maximum time for one transcription")
    benign_stderr_patterns: List[str] = Field(
        default=["FP16 is not supported on CPU"],
        description="stderr substrings that are warnings, not failures",
    )
    max_restarts: int = Field(default=3, description="Restarts allowed for the persistent process")
    restart_backoff_seconds: float = Field(default=1.0, description="Initial restart backoff")

    @field_validator("mode")
    @classmethod
    def validate_mode(cls, v: str) -> str:
        """Validate transcription mode."""
        if v.lower() not in ["oneshot", "persistent"]:
            raise ValueError("Transcription mode must be 'oneshot' or 'persistent'")
        return v.lower()

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Validate timeout."""
        if v <= 0:
            raise ValueError("Transcription timeout must be positive")
        return v


class OpenAISettings(BaseSettings):
    """OpenAI API configuration settings."""

    model_config = SettingsConfigDict(env_prefix="OPENAI_")

    api_key: str = Field(default="", description="OpenAI API key")
    base_url: Optional[str] = Field(default=None, description="Override API base URL")


class AzureOpenAISettings(BaseSettings):
    """Azure OpenAI configuration settings (used instead of OpenAI when set)."""

    model_config = SettingsConfigDict(env_prefix="AZURE_OPENAI_")

    endpoint: str = Field(default="", description="Azure OpenAI endpoint URL")
    api_key: str = Field(default="", description="Azure OpenAI API key")
    api_version: str = Field(default="2024-12-01-preview", description="Azure OpenAI API version")
    deployment_name: str = Field(default="gpt-4o-mini", description="Azure OpenAI chat deployment name")

    @field_validator("endpoint")
    @classmethod
    def validate_endpoint(cls, v: str) -> str:
        """Validate Azure OpenAI endpoint format."""
        if v and not v.startswith("https://"):
            raise ValueError("Invalid Azure OpenAI endpoint format. Must start with https://")
        return v

    @property
    def is_configured(self) -> bool:
        return bool(self.endpoint and self.api_key)


class SummarizationSettings(BaseSettings):
    """Note generation configuration settings."""

    model_config = SettingsConfigDict(env_prefix="SUMMARIZATION_")

    enabled: bool = Field(default=True, description="Generate structured notes from transcripts")
    model: str = Field(default="gpt-4o-mini", description="Chat model for note generation")
    temperature: float = Field(default=0.3, description="Temperature for note generation")
    max_tokens: int = Field(default=4000, description="Maximum tokens for generated notes")
    timeout_seconds: float = Field(default=120.0, description="Request timeout")
    prompt: str = Field(default=DEFAULT_NOTES_PROMPT, description="Prompt template with {transcript}")

    @field_validator("temperature")
    @classmethod
    def validate_temperature(cls, v: float) -> float:
        """Validate temperature."""
        if not 0.0 <= v <= 2.0:
            raise ValueError("Temperature must be between 0.0 and 2.0")
        return v

    @field_validator("prompt")
    @classmethod
    def validate_prompt(cls, v: str) -> str:
        """Prompt must leave room for the transcript."""
        if "{transcript}" not in v:
            raise ValueError("Summarization prompt must contain a {transcript} placeholder")
        return v


class EmailSettings(BaseSettings):
    """Outbound email configuration settings."""

    model_config = SettingsConfigDict(env_prefix="EMAIL_")

    user: str = Field(default="", description="SMTP login user")
    password: str = Field(default="", description="SMTP login password")
    sender: str = Field(default="", description="From address (defaults to user)")
    smtp_host: str = Field(default="smtp.gmail.com", description="SMTP server host")
    smtp_port: int = Field(default=587, description="SMTP server port")
    use_tls: bool = Field(default=False, description="Connect with implicit TLS (port 465)")
    start_tls: bool = Field(default=True, description="Upgrade the connection with STARTTLS")
    timeout_seconds: float = Field(default=60.0, description="SMTP operation timeout")
    retry_delay_seconds: float = Field(default=5.0, description="Delay before retrying a failed send")
    max_send_attempts: int = Field(
        default=0, description="Attempts before dead-lettering a message (0 = retry forever)"
    )
    include_error_details: bool = Field(
        default=False, description="Include technical error text in failure emails"
    )

    @field_validator("max_send_attempts")
    @classmethod
    def validate_attempts(cls, v: int) -> int:
        """Validate attempt budget."""
        if v < 0:
            raise ValueError("max_send_attempts must be 0 (unlimited) or positive")
        return v

    @property
    def from_address(self) -> str:
        return self.sender or self.user


class NotionSettings(BaseSettings):
    """Notion integration configuration settings."""

    model_config = SettingsConfigDict(env_prefix="NOTION_")

    client_id: str = Field(default="", description="Notion OAuth client id")
    client_secret: str = Field(default="", description="Notion OAuth client secret")
    redirect_uri: str = Field(
        default="http://localhost:3001/notion-callback", description="OAuth redirect URI"
    )
    api_base_url: str = Field(default="https://api.notion.com/v1", description="Notion API base URL")
    api_version: str = Field(default="2022-06-28", description="Notion-Version header")
    timeout_seconds: float = Field(default=30.0, description="Notion request timeout")


class PdfSettings(BaseSettings):
    """PDF rendering configuration settings."""

    model_config = SettingsConfigDict(env_prefix="PDF_")

    margin_points: float = Field(default=50.0, description="Page margin in points")
    font_size: float = Field(default=12.0, description="Body font size")

    @field_validator("margin_points", "font_size")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("PDF dimensions must be positive")
        return v


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # Application settings
    app_name: str = Field(default="Audio Notes", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    app_env: str = Field(default="development", description="Application environment")
    debug: bool = Field(default=False, description="Debug mode")
    port: int = Field(default=3001, description="Application port")
    host: str = Field(default="0.0.0.0", description="Application host")
    uploads_dir: str = Field(default="./uploads", description="Directory for uploads and generated PDFs")

    # Sub-settings
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cors: CORSSettings = Field(default_factory=CORSSettings)
    audio: AudioSettings = Field(default_factory=AudioSettings)
    transcription: TranscriptionSettings = Field(default_factory=TranscriptionSettings)
    openai: OpenAISettings = Field(default_factory=OpenAISettings)
    azure_openai: AzureOpenAISettings = Field(default_factory=AzureOpenAISettings)
    summarization: SummarizationSettings = Field(default_factory=SummarizationSettings)
    email: EmailSettings = Field(default_factory=EmailSettings)
    notion: NotionSettings = Field(default_factory=NotionSettings)
    pdf: PdfSettings = Field(default_factory=PdfSettings)

    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        """Validate application environment."""
        valid_envs = ["development", "staging", "production", "testing"]
        if v.lower() not in valid_envs:
            raise ValueError(f"App environment must be one of: {valid_envs}")
        return v.lower()

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port number."""
        if not 1 <= v <= 65535:
            raise ValueError("Port must be between 1 and 65535")
        return v

    @property
    def uploads_path(self) -> Path:
        return Path(self.uploads_dir)


# Global settings instance (loaded after attempting to read .env)
_settings: Optional[Settings] = None


def _load_env_file_if_available() -> None:
    """Best-effort load of .env by searching current and parent directories.

    This helps when the working directory isn't the project root and
    pydantic's env_file doesn't get resolved as expected.
    """
    cwd = Path(os.getcwd()).resolve()
    for parent in [cwd, *cwd.parents]:
        candidate = parent / ".env"
        if candidate.exists():
            # Do not override already-set environment variables
            load_dotenv(dotenv_path=str(candidate), override=False)
            break


def get_settings() -> Settings:
    """Get application settings instance (lazy-init with .env discovery)."""
    global _settings
    if _settings is None:
        _load_env_file_if_available()
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
