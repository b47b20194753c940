import os
from functools import lru_cache
from pathlib import Path

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings

DEFAULT_CREDENTIAL_PATH = Path.home() / ".skilllead" / "provider-key.enc"


class Settings(BaseSettings):
    database_url: str = Field("sqlite:///skilllead.db", alias="SKILLLEAD_DATABASE_URL")
    database_echo: bool = Field(False, alias="SKILLLEAD_DATABASE_ECHO")
    provider_url: str = Field(
        "https://api.openai.com/v1/chat/completions",
        alias="SKILLLEAD_PROVIDER_URL",
    )
    provider_model: str = Field("gpt-4-turbo-preview", alias="SKILLLEAD_PROVIDER_MODEL")
    provider_temperature: float = Field(0.7, alias="SKILLLEAD_PROVIDER_TEMPERATURE")
    provider_timeout_seconds: float = Field(60.0, alias="SKILLLEAD_PROVIDER_TIMEOUT")
    stream_max_tokens: int = Field(2000, alias="SKILLLEAD_STREAM_MAX_TOKENS")
    complete_max_tokens: int = Field(4000, alias="SKILLLEAD_COMPLETE_MAX_TOKENS")
    credential_path: Path = Field(DEFAULT_CREDENTIAL_PATH, alias="SKILLLEAD_CREDENTIAL_PATH")
    demo_mode: bool = Field(False, alias="SKILLLEAD_DEMO_MODE")

    class Config:
        env_file = os.getenv("ENV_FILE", ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache
def get_settings() -> Settings:
    try:
        return Settings()  # type: ignore[arg-type]
    except ValidationError as exc:
        raise RuntimeError(f"Invalid SkillLead configuration: {exc}") from exc
