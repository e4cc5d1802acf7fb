"""Image generation providers for DALL-E and Replicate-hosted models."""

import asyncio
import base64
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Sequence

import aiohttp
import replicate

from synthetik.context import StickerContext
from synthetik.error_handling import ConfigurationError
from synthetik.models import GenerationOptions, ImageProvider
from synthetik.utils import truncate_text


logger = logging.getLogger(__name__)


DEFAULT_REPLICATE_NEGATIVE_PROMPT = (
    "blurry, low quality, distorted, watermark, text, ugly, bad anatomy, "
    "extra limbs, cropped, out of frame"
)

REQUEST_TIMEOUT = aiohttp.ClientTimeout(total=120)


def _credential_error(provider: ImageProvider | str, message: str) -> ConfigurationError:
    """Log and return a ConfigurationError for missing credentials."""
    provider_name = provider.value if isinstance(provider, ImageProvider) else str(provider)
    logger.error("Cannot initialize %s provider: %s", provider_name, message)
    return ConfigurationError(message)


class ImageGenerationProvider(ABC):
    """Abstract base class for image generation providers.

    ``generate_image`` returns a result dict rather than raising for upstream
    rejections: ``{'success': True, 'url': ..., 'revised_prompt': ...}`` or
    ``{'success': False, 'error': ..., 'code': ..., 'status_code': ...}``.
    """

    @abstractmethod
    def get_provider_type(self) -> ImageProvider:
        """Return the provider type."""
        pass

    @abstractmethod
    async def generate_image(self, prompt: str, options: GenerationOptions) -> Dict[str, Any]:
        """Generate a single image for ``prompt``."""
        pass

    async def fetch_image(self, url: str) -> bytes:
        """Download generated image bytes."""
        if url.startswith("data:"):
            return base64.b64decode(url.split(",", 1)[-1])

        async with aiohttp.ClientSession(timeout=REQUEST_TIMEOUT) as session:
            async with session.get(url) as response:
                if response.status != 200:
                    raise ValueError(f"Failed to fetch image: HTTP {response.status}")
                return await response.read()


class DalleProvider(ImageGenerationProvider):
    """OpenAI DALL-E image generation provider."""

    def __init__(self, api_key: str, model: str = "dall-e-3") -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = "https://api.openai.com/v1/images/generations"

    def get_provider_type(self) -> ImageProvider:
        """Return DALL-E provider type."""
        return ImageProvider.DALLE

    async def generate_image(self, prompt: str, options: GenerationOptions) -> Dict[str, Any]:
        """Generate one image through the OpenAI Images API."""
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }

        payload = {
            "model": self.model,
            "prompt": prompt,
            "n": 1,
            "size": options.size,
            "quality": options.quality,
            "style": options.style,
            "response_format": "url",
        }

        async with aiohttp.ClientSession(timeout=REQUEST_TIMEOUT) as session:
            async with session.post(
                self.base_url,
                headers=headers,
                json=payload
            ) as response:
                if response.status == 200:
                    data = await response.json()
                    images = data.get('data') or []
                    if not images or not images[0].get('url'):
                        return {
                            'success': False,
                            'error': 'DALL-E returned no image',
                            'status_code': 502,
                        }

                    revised_prompt = images[0].get('revised_prompt', prompt)
                    logger.debug("DALL-E revised prompt: %s", truncate_text(revised_prompt or "", 200))
                    return {
                        'success': True,
                        'url': images[0]['url'],
                        'revised_prompt': revised_prompt,
                    }

                try:
                    error_data = await response.json()
                except (aiohttp.ContentTypeError, ValueError):
                    error_data = {}

                error = error_data.get('error') or {}
                if response.status == 429:
                    default_message = 'Rate limit exceeded'
                elif response.status in [401, 403]:
                    default_message = 'Authentication error'
                else:
                    default_message = 'Unknown error'

                return {
                    'success': False,
                    'error': error.get('message') or default_message,
                    'code': error.get('code') or error.get('type'),
                    'status_code': response.status,
                }


class ReplicateProvider(ImageGenerationProvider):
    """Replicate-hosted generation: a primary model with a fallback model."""

    def __init__(
        self,
        api_token: str,
        model: str = "google/nano-banana",
        fallback_model: str | None = "black-forest-labs/flux-schnell",
        client: Any = None,
    ) -> None:
        self._replicate_client = client or replicate.Client(api_token=api_token)
        self.model = model
        self.fallback_model = fallback_model

    def get_provider_type(self) -> ImageProvider:
        return ImageProvider.REPLICATE

    def _primary_input(self, prompt: str, options: GenerationOptions) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "prompt": prompt,
            "negative_prompt": options.negative_prompt or DEFAULT_REPLICATE_NEGATIVE_PROMPT,
            "aspect_ratio": "1:1",
            "output_format": "webp",
            "output_quality": 90,
            "number_of_images": 1,
            "safety_tolerance": 2,
        }
        if options.image_base64:
            payload["image"] = options.image_base64
        return payload

    def _fallback_input(self, prompt: str) -> Dict[str, Any]:
        return {
            "prompt": prompt,
            "go_fast": True,
            "num_outputs": 1,
            "aspect_ratio": "1:1",
            "output_format": "webp",
            "output_quality": 90,
        }

    def _extract_image_urls(self, output: Any) -> List[str]:
        """Normalise Replicate outputs into a list of downloadable URLs."""
        urls: List[str] = []

        def _append(candidate: Any) -> None:
            if isinstance(candidate, str) and candidate and candidate not in urls:
                urls.append(candidate)

        if output is None:
            return urls

        if isinstance(output, str):
            if output.startswith(("http://", "https://", "data:")):
                _append(output)
            return urls

        potential_url = getattr(output, "url", None)
        if callable(potential_url):
            potential_url = potential_url()
        _append(potential_url)
        if urls:
            return urls

        if isinstance(output, Mapping):
            _append(output.get("url"))
            return urls

        if isinstance(output, Sequence) and not isinstance(output, (bytes, bytearray)):
            for item in output:
                for candidate in self._extract_image_urls(item):
                    _append(candidate)

        return urls

    async def _run_model(self, model_reference: str, payload: Dict[str, Any]) -> Any:
        loop = asyncio.get_running_loop()

        def _call_model() -> Any:
            return self._replicate_client.run(model_reference, input=payload)

        return await loop.run_in_executor(None, _call_model)

    async def generate_image(self, prompt: str, options: GenerationOptions) -> Dict[str, Any]:
        """Generate an image with the primary model, falling back on failure."""
        try:
            output = await self._run_model(self.model, self._primary_input(prompt, options))
            image_urls = self._extract_image_urls(output)
            if image_urls:
                return {'success': True, 'url': image_urls[0], 'revised_prompt': prompt}
            primary_error = f"{self.model} returned no image URLs"
        except Exception as exc:
            logger.error("Replicate generation with %s failed: %s", self.model, exc)
            primary_error = f"Replicate generation failed: {exc}"

        if not self.fallback_model:
            return {'success': False, 'error': primary_error, 'status_code': 502}

        logger.info("Falling back to %s", self.fallback_model)
        try:
            output = await self._run_model(self.fallback_model, self._fallback_input(prompt))
        except Exception as exc:
            logger.error("Replicate fallback generation with %s failed: %s", self.fallback_model, exc)
            return {
                'success': False,
                'error': f"Replicate generation failed: {exc}",
                'status_code': 502,
            }

        image_urls = self._extract_image_urls(output)
        if not image_urls:
            return {
                'success': False,
                'error': 'Replicate returned no image URLs',
                'status_code': 502,
            }

        return {'success': True, 'url': image_urls[0], 'revised_prompt': prompt}


class ProviderFactory:
    """Factory for creating image generation providers."""

    @staticmethod
    def create_provider(context: StickerContext) -> ImageGenerationProvider:
        """Create the provider selected by ``context``; missing credentials fail fast."""
        provider_type = context.image_provider

        if provider_type == ImageProvider.DALLE:
            if not context.openai_api_key:
                raise _credential_error(provider_type, "OPENAI_API_KEY environment variable is not set")
            return DalleProvider(context.openai_api_key, model=context.image_model)

        elif provider_type == ImageProvider.REPLICATE:
            if not context.replicate_api_token:
                raise _credential_error(provider_type, "REPLICATE_API_TOKEN environment variable is not set")
            return ReplicateProvider(
                context.replicate_api_token,
                model=context.replicate_model,
                fallback_model=context.replicate_fallback_model,
            )

        raise _credential_error(provider_type, f"Unsupported image provider: {provider_type}")
