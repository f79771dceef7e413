from functools import lru_cache
import json
from typing import Annotated

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

PLACEHOLDER_HF_TOKEN = "YOUR_HUGGING_FACE_TOKEN_HERE"


def _parse_list_value(value) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        raw = value.strip()
        if raw == "":
            return []
        try:
            parsed = json.loads(raw)
            if isinstance(parsed, list):
                return [str(item).strip() for item in parsed if str(item).strip()]
        except ValueError:
            pass
        return [item.strip() for item in raw.split(",") if item.strip()]
    if isinstance(value, list):
        return [str(item).strip() for item in value if str(item).strip()]
    return []


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        extra="ignore",
        validate_by_name=True,
        populate_by_name=True,
    )

    # Inference service
    hf_api_token: str = ""
    hf_model_id: str = "google/vit-base-patch16-224"
    hf_api_url: str = "https://api-inference.huggingface.co/models/"
    inference_max_attempts: int = Field(default=3, ge=1)
    inference_retry_delay_ms: int = Field(default=2000, ge=0)
    inference_timeout_seconds: float = 30.0
    analysis_timeout_seconds: float = 120.0

    # Optional remote persistence
    supabase_url: str = ""
    supabase_key: str = Field(
        default="",
        validation_alias=AliasChoices("SUPABASE_KEY", "SUPABASE_ANON_KEY"),
    )
    supabase_bucket: str = "soil-images"
    supabase_table: str = "analyses"

    # Local history
    history_path: str = "data/soil_history.json"
    history_max_records: int = Field(default=50, ge=1)

    # Upload constraints, enforced before the core runs
    max_image_size: int = 5 * 1024 * 1024
    allowed_image_types: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["image/jpeg", "image/png", "image/jpg"],
    )

    docs_enabled: bool = Field(default=True)
    openapi_enabled: bool = Field(default=True)
    expose_error_details: bool = False

    cors_allow_origins: Annotated[list[str], NoDecode] = Field(default_factory=list)
    cors_allow_methods: Annotated[list[str], NoDecode] = Field(default_factory=lambda: [
        "GET",
        "POST",
        "DELETE",
        "OPTIONS",
    ])

    @field_validator(
        "allowed_image_types",
        "cors_allow_origins",
        "cors_allow_methods",
        mode="before",
    )
    @classmethod
    def _split_csv(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            return _parse_list_value(value)
        return value

    @property
    def is_inference_configured(self) -> bool:
        token = self.hf_api_token.strip()
        return bool(token) and token != PLACEHOLDER_HF_TOKEN

    @property
    def is_supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    @property
    def inference_endpoint(self) -> str:
        return self.hf_api_url + self.hf_model_id


@lru_cache

def get_settings() -> Settings:
    return Settings()
