from typing import Annotated, List, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_GATEWAY_URL = "https://ai.gateway.lovable.dev/v1/chat/completions"
DEFAULT_IMAGE_MODEL = "google/gemini-2.5-flash-image-preview"


class Settings(BaseSettings):
    """Relay settings, read from the environment and an optional .env file."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    api_key: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("AI_GATEWAY_API_KEY", "LOVABLE_API_KEY"),
        description="Bearer credential for the AI gateway.",
    )
    gateway_url: str = Field(DEFAULT_GATEWAY_URL, validation_alias="AI_GATEWAY_URL")
    image_model: str = Field(DEFAULT_IMAGE_MODEL, validation_alias="IMAGE_MODEL")
    request_timeout: float = Field(60.0, gt=0, validation_alias="REQUEST_TIMEOUT_SECONDS")
    require_template: bool = Field(False, validation_alias="REQUIRE_TEMPLATE")
    cors_allow_origins: Annotated[List[str], NoDecode] = Field(["*"], validation_alias="CORS_ALLOW_ORIGINS")
    log_level: str = Field("INFO", validation_alias="LOG_LEVEL")

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def _split_origins(cls, value):
        # comma separated in the environment
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value
