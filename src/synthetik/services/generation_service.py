"""Service layer wiring style resolution, prompting, vision and generation for one request."""

from __future__ import annotations

import logging
from typing import Optional

from ..context import StickerContext, get_default_context
from ..error_handling import InvalidRequestError, NoImagesGeneratedError, error_monitoring_context
from ..llm_factory import create_vision_model
from ..models import ComposedPrompt, GenerationOptions, GenerationRequest, GenerationResponse, StyleKey
from ..orchestrator import GenerationOrchestrator, effective_variation_count
from ..prompt_engineering import DescriptionPromptTransformer, PromptComposer
from ..providers import ImageGenerationProvider, ProviderFactory
from ..styles import get_style, resolve_style
from ..utils import clean_base64_image, truncate_text
from ..vision import VisionAnalyzer

logger = logging.getLogger(__name__)


CUSTOM_STYLE_HINT = "custom artistic"


class StickerGenerationService:
    """Turns one ``GenerationRequest`` into a ``GenerationResponse``.

    Clients are constructed once and injected; pass fakes for ``provider`` or
    ``vision`` to run without network access.
    """

    def __init__(
        self,
        context: StickerContext,
        provider: Optional[ImageGenerationProvider] = None,
        vision: Optional[VisionAnalyzer] = None,
        composer: Optional[PromptComposer] = None,
        transformer: Optional[DescriptionPromptTransformer] = None,
    ):
        context.require_openai_key()
        self.context = context
        self.provider = provider or ProviderFactory.create_provider(context)
        self.vision = vision or VisionAnalyzer(
            create_vision_model(context),
            timeout=context.vision_timeout,
            structured_max_tokens=context.structured_max_tokens,
            fallback_max_tokens=context.fallback_max_tokens,
        )
        self.composer = composer or PromptComposer()
        self.transformer = transformer or DescriptionPromptTransformer()
        self.orchestrator = GenerationOrchestrator(
            self.provider,
            max_variations=context.max_variations,
            concurrency=context.image_concurrency,
        )

    @classmethod
    def from_environment(cls) -> "StickerGenerationService":
        return cls(get_default_context())

    def compose_request(self, request: GenerationRequest) -> ComposedPrompt:
        """Text-only prompt for a request: catalog style, or the custom text alone in custom-only mode."""
        style_key = resolve_style(request.style)
        custom_text = (request.custom_prompt or "").strip() or None
        subject = self.composer.build_subject(request.subject, custom_text, style_key)

        # Custom text already standing in as the subject is not repeated.
        extra_text = None if custom_text == subject else custom_text

        composed_style: StyleKey | None = style_key
        if request.custom_prompt_only and custom_text:
            composed_style = None

        return self.composer.compose(subject, composed_style, extra_text)

    async def generate(self, request: GenerationRequest) -> GenerationResponse:
        """Run the full pipeline.

        Raises:
            InvalidRequestError: the style is blank.
            UpstreamError: every call failed for a quota, policy, rate-limit or auth reason.
            NoImagesGeneratedError: every call failed otherwise.
        """
        if not request.style or not request.style.strip():
            raise InvalidRequestError("Missing required field: style", hint="Please select a style for your sticker")

        count = effective_variation_count(request.number_of_variations, self.context.max_variations)
        style_key = resolve_style(request.style)
        style_name = get_style(style_key).name
        custom_text = (request.custom_prompt or "").strip()
        custom_mode = self.composer.detect_custom_style_mode(custom_text, request.custom_prompt_only)

        composed = self.compose_request(request)
        prompt = composed.prompt

        logger.info(
            "Sticker generation: style=%s count=%d reference_image=%s custom_style=%s",
            style_key.value, count, bool(request.image_base64), custom_mode,
        )
        logger.debug("Prompt: %s", truncate_text(prompt, 500))
        logger.debug("Negative prompt: %s", truncate_text(composed.negative_prompt, 200))

        image_base64 = None
        if request.image_base64:
            image_base64 = clean_base64_image(request.image_base64)
            description = await self.vision.analyze(
                image_base64,
                CUSTOM_STYLE_HINT if custom_mode else style_name,
            )
            prompt = self.transformer.transform(
                description,
                custom_text if custom_mode else style_name,
                use_custom_style=custom_mode,
            )
            logger.debug("Final prompt: %s", truncate_text(prompt, 500))

        options = GenerationOptions(
            size=self.context.image_size,
            quality=self.context.image_quality,
            style=self.context.image_style,
            negative_prompt=composed.negative_prompt,
            image_base64=image_base64,
            style_label=request.style,
        )

        async with error_monitoring_context("sticker_generation"):
            designs = await self.orchestrator.generate(prompt, count, options)

        if not designs:
            raise NoImagesGeneratedError()

        plural = "s" if len(designs) > 1 else ""
        return GenerationResponse(
            success=True,
            images=designs,
            message=f"Successfully generated {len(designs)} sticker design{plural}",
        )
