"""Construction of the multimodal chat model used for reference image analysis."""

from __future__ import annotations

import logging
from typing import Any

from langchain.chat_models import init_chat_model

from synthetik.context import StickerContext

logger = logging.getLogger(__name__)


def create_vision_model(context: StickerContext) -> Any:
    """Instantiate the vision-capable chat model described by ``context``.

    Raises ConfigurationError when the OpenAI key is missing.
    """
    api_key = context.require_openai_key()

    # LangChain expects bare model name without provider prefix
    normalized_model = context.vision_model.split("/", 1)[-1]
    logger.debug("Creating vision model %s", normalized_model)

    return init_chat_model(
        model=normalized_model,
        model_provider="openai",
        api_key=api_key,
        timeout=context.vision_timeout,
    )
