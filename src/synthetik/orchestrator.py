"""Concurrent generation of a batch of sticker designs."""

import asyncio
import base64
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from synthetik.error_handling import (
    ErrorAnalyzer,
    ErrorCategory,
    UpstreamError,
    describe_failure,
    most_significant_category,
)
from synthetik.models import GeneratedDesign, GenerationOptions
from synthetik.providers import ImageGenerationProvider
from synthetik.utils import truncate_text

logger = logging.getLogger(__name__)


MIN_VARIATIONS = 1
MAX_VARIATIONS = 4


def effective_variation_count(requested: int | None, maximum: int = MAX_VARIATIONS) -> int:
    """Clamp the requested count into [1, maximum]; missing or non-positive means one."""
    if requested is None:
        return MIN_VARIATIONS
    return max(MIN_VARIATIONS, min(int(requested), maximum))


@dataclass
class _CallOutcome:
    index: int
    prompt: str
    url: Optional[str] = None
    base64: str = ""
    error: Optional[str] = None
    category: Optional[ErrorCategory] = None


class GenerationOrchestrator:
    """Runs isolated generation calls concurrently and assembles ordered designs."""

    def __init__(
        self,
        provider: ImageGenerationProvider,
        max_variations: int = MAX_VARIATIONS,
        concurrency: int = 4,
    ):
        self.provider = provider
        self.max_variations = max_variations
        self.concurrency = concurrency

    async def generate(
        self,
        prompt: str,
        count: int,
        options: GenerationOptions | None = None,
    ) -> List[GeneratedDesign]:
        """Generate ``count`` designs (clamped to [1, 4]) from one prompt."""
        count = effective_variation_count(count, self.max_variations)
        return await self.generate_batch([prompt] * count, options)

    async def generate_batch(
        self,
        prompts: Sequence[str],
        options: GenerationOptions | None = None,
    ) -> List[GeneratedDesign]:
        """Generate one design per prompt.

        Failed calls are dropped; survivors keep request order and are numbered
        1..N. When every call fails, a quota, content-policy, rate-limit or
        authentication failure raises ``UpstreamError``; anything else yields
        an empty list.
        """
        options = options or GenerationOptions()
        prompts = list(prompts)[:self.max_variations]
        sem = asyncio.Semaphore(max(1, self.concurrency))

        async def gen_image(index: int, prompt: str) -> _CallOutcome:
            async with sem:
                outcome = _CallOutcome(index=index, prompt=prompt)
                try:
                    result = await self.provider.generate_image(prompt, options)
                except Exception as e:
                    logger.error(f"Generation call {index + 1} raised: {e}")
                    outcome.error = str(e)
                    outcome.category = ErrorAnalyzer.categorize_error(e)
                    return outcome

                if not result.get('success') or not result.get('url'):
                    message = describe_failure(result)
                    logger.error(f"Generation call {index + 1} failed: {message}")
                    outcome.error = message
                    outcome.category = ErrorAnalyzer.categorize_message(message)
                    return outcome

                outcome.url = result['url']
                outcome.base64 = await self._embed(outcome.url)
                return outcome

        outcomes = await asyncio.gather(*(gen_image(i, p) for i, p in enumerate(prompts)))
        outcomes = sorted(outcomes, key=lambda o: o.index)
        successes = [o for o in outcomes if o.url]

        logger.info(f"Generated {len(successes)} of {len(prompts)} requested designs")

        if not successes and prompts:
            category = most_significant_category(o.category for o in outcomes if o.category)
            if category is not None:
                message = next(o.error for o in outcomes if o.category == category)
                raise UpstreamError(message, category=category)
            return []

        created_at = datetime.now(timezone.utc)
        return [
            GeneratedDesign(
                id=number,
                url=outcome.url,
                base64=outcome.base64,
                prompt=outcome.prompt,
                style=options.style_label,
                created_at=created_at,
            )
            for number, outcome in enumerate(successes, start=1)
        ]

    async def _embed(self, url: str) -> str:
        """Fetch and base64-encode an image; an empty string when the fetch fails."""
        try:
            data = await self.provider.fetch_image(url)
        except Exception as e:
            logger.warning(f"Failed to embed image {truncate_text(url, 80)}: {e}")
            return ""
        return base64.b64encode(data).decode("utf-8")
