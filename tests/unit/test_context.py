"""Unit tests for runtime configuration."""

import pytest

from synthetik.context import StickerContext, get_default_context
from synthetik.error_handling import ConfigurationError
from synthetik.models import ImageProvider


ENV_VARS = (
    "OPENAI_API_KEY",
    "REPLICATE_API_TOKEN",
    "SYNTHETIK_IMAGE_PROVIDER",
    "SYNTHETIK_VISION_MODEL",
    "SYNTHETIK_IMAGE_MODEL",
    "SYNTHETIK_IMAGE_CONCURRENCY",
    "SYNTHETIK_VISION_TIMEOUT",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestStickerContext:
    """Test the StickerContext model."""

    def test_defaults(self):
        context = StickerContext()

        assert context.image_provider == ImageProvider.DALLE
        assert context.vision_model == "gpt-4o"
        assert context.image_model == "dall-e-3"
        assert context.max_variations == 4
        assert context.vision_timeout == 45.0
        assert context.structured_max_tokens == 2000
        assert context.fallback_max_tokens == 1200

    def test_require_openai_key(self):
        assert StickerContext(openai_api_key="sk-test").require_openai_key() == "sk-test"

    def test_require_openai_key_missing(self):
        with pytest.raises(ConfigurationError, match="OPENAI_API_KEY"):
            StickerContext(openai_api_key="").require_openai_key()


class TestGetDefaultContext:
    """Test configuration loaded from the environment."""

    def test_reads_environment(self, clean_env):
        clean_env.setenv("OPENAI_API_KEY", "sk-env")
        clean_env.setenv("REPLICATE_API_TOKEN", "r8-env")
        clean_env.setenv("SYNTHETIK_IMAGE_PROVIDER", " Replicate ")
        clean_env.setenv("SYNTHETIK_VISION_MODEL", "gpt-4o-mini")
        clean_env.setenv("SYNTHETIK_IMAGE_CONCURRENCY", "2")
        clean_env.setenv("SYNTHETIK_VISION_TIMEOUT", "12.5")

        context = get_default_context()

        assert context.openai_api_key == "sk-env"
        assert context.replicate_api_token == "r8-env"
        assert context.image_provider == ImageProvider.REPLICATE
        assert context.vision_model == "gpt-4o-mini"
        assert context.image_concurrency == 2
        assert context.vision_timeout == 12.5

    def test_missing_key_is_not_an_error_until_required(self, clean_env):
        context = get_default_context()

        assert context.openai_api_key is None
        with pytest.raises(ConfigurationError):
            context.require_openai_key()

    def test_unknown_provider(self, clean_env):
        clean_env.setenv("SYNTHETIK_IMAGE_PROVIDER", "midjourney")
        with pytest.raises(ConfigurationError, match="midjourney"):
            get_default_context()

    def test_bad_integer(self, clean_env):
        clean_env.setenv("SYNTHETIK_IMAGE_CONCURRENCY", "many")
        with pytest.raises(ConfigurationError, match="SYNTHETIK_IMAGE_CONCURRENCY"):
            get_default_context()

    def test_bad_timeout(self, clean_env):
        clean_env.setenv("SYNTHETIK_VISION_TIMEOUT", "soon")
        with pytest.raises(ConfigurationError, match="SYNTHETIK_VISION_TIMEOUT"):
            get_default_context()
