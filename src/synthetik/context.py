"""Runtime configuration for the sticker generation service."""

import os

from pydantic import BaseModel, Field

from synthetik.error_handling import ConfigurationError
from synthetik.models import ImageProvider


class StickerContext(BaseModel):
    """Runtime configuration and credentials for sticker generation."""

    # API Configuration
    openai_api_key: str | None = Field(default=None, description="OpenAI API key for vision analysis and DALL-E")
    replicate_api_token: str | None = Field(default=None, description="Replicate API token for hosted models")

    # Models
    image_provider: ImageProvider = Field(default=ImageProvider.DALLE, description="Image generation provider")
    vision_model: str = Field(default="gpt-4o", description="Multimodal model used for reference image analysis")
    image_model: str = Field(default="dall-e-3", description="OpenAI image model")
    replicate_model: str = Field(default="google/nano-banana", description="Primary Replicate model")
    replicate_fallback_model: str = Field(default="black-forest-labs/flux-schnell", description="Replicate fallback model")

    # Output settings
    image_size: str = Field(default="1024x1024", description="Requested image size")
    image_quality: str = Field(default="standard", description="standard | hd")
    image_style: str = Field(default="vivid", description="vivid | natural")

    # Limits
    max_variations: int = Field(default=4, description="Hard cap on variations per request")
    image_concurrency: int = Field(default=4, description="Max concurrent generation calls per batch")
    vision_timeout: float = Field(default=45.0, description="Seconds to wait for one vision request")
    structured_max_tokens: int = Field(default=2000, description="Token budget for structured analysis")
    fallback_max_tokens: int = Field(default=1200, description="Token budget for free-text analysis")

    model_config = {"extra": "allow"}

    def require_openai_key(self) -> str:
        """Return the OpenAI key or fail before any network call is attempted."""
        if not self.openai_api_key:
            raise ConfigurationError("OPENAI_API_KEY environment variable is not set")
        return self.openai_api_key


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {value!r}")


def get_default_context() -> StickerContext:
    """Get default context with environment variables."""
    provider = os.getenv("SYNTHETIK_IMAGE_PROVIDER", ImageProvider.DALLE.value).strip().lower()
    try:
        image_provider = ImageProvider(provider)
    except ValueError:
        raise ConfigurationError(f"Unsupported image provider: {provider}")

    return StickerContext(
        openai_api_key=os.getenv("OPENAI_API_KEY"),
        replicate_api_token=os.getenv("REPLICATE_API_TOKEN"),
        image_provider=image_provider,
        vision_model=os.getenv("SYNTHETIK_VISION_MODEL", "gpt-4o"),
        image_model=os.getenv("SYNTHETIK_IMAGE_MODEL", "dall-e-3"),
        image_concurrency=_env_int("SYNTHETIK_IMAGE_CONCURRENCY", 4),
        vision_timeout=_env_float("SYNTHETIK_VISION_TIMEOUT", 45.0),
    )
