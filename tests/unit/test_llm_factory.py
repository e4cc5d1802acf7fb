"""Unit tests for vision model construction."""

from unittest.mock import patch

import pytest

from synthetik.context import StickerContext
from synthetik.error_handling import ConfigurationError
from synthetik.llm_factory import create_vision_model


class TestCreateVisionModel:
    """Test the chat model factory."""

    def test_builds_openai_model(self):
        context = StickerContext(openai_api_key="sk-test", vision_model="openai/gpt-4o", vision_timeout=30.0)

        with patch("synthetik.llm_factory.init_chat_model") as mock_init:
            model = create_vision_model(context)

        assert model is mock_init.return_value
        mock_init.assert_called_once_with(
            model="gpt-4o",
            model_provider="openai",
            api_key="sk-test",
            timeout=30.0,
        )

    def test_missing_key(self):
        with patch("synthetik.llm_factory.init_chat_model") as mock_init:
            with pytest.raises(ConfigurationError):
                create_vision_model(StickerContext())

        mock_init.assert_not_called()
