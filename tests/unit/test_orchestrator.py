"""Unit tests for concurrent batch generation."""

import asyncio
import base64

import pytest

from synthetik.error_handling import ErrorCategory, UpstreamError
from synthetik.models import GenerationOptions, ImageProvider
from synthetik.orchestrator import GenerationOrchestrator, effective_variation_count
from synthetik.providers import ImageGenerationProvider


class FakeProvider(ImageGenerationProvider):
    """Provider double with per-call scripted results."""

    def __init__(self, results=None, delays=None, fetch_failures=()):
        self.results = results or {}
        self.delays = delays or {}
        self.fetch_failures = set(fetch_failures)
        self.prompts = []
        self.in_flight = 0
        self.max_in_flight = 0

    def get_provider_type(self):
        return ImageProvider.DALLE

    async def generate_image(self, prompt, options):
        call = len(self.prompts)
        self.prompts.append(prompt)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(call, 0))
            result = self.results.get(call, {'success': True, 'url': f"https://img.example/{call}.png"})
            if isinstance(result, Exception):
                raise result
            return result
        finally:
            self.in_flight -= 1

    async def fetch_image(self, url):
        if url in self.fetch_failures:
            raise ValueError("Failed to fetch image: HTTP 404")
        return url.encode()


def _b64(text):
    return base64.b64encode(text.encode()).decode()


class TestEffectiveVariationCount:
    """Test clamping of the requested variation count."""

    @pytest.mark.parametrize("requested,expected", [
        (None, 1), (-3, 1), (0, 1), (1, 1), (2, 2), (4, 4), (5, 4), (100, 4),
    ])
    def test_clamps_into_range(self, requested, expected):
        assert effective_variation_count(requested) == expected

    def test_respects_lower_maximum(self):
        assert effective_variation_count(4, maximum=2) == 2


class TestGenerationOrchestrator:
    """Test batch assembly, ordering and failure handling."""

    @pytest.mark.asyncio
    async def test_all_calls_succeed(self):
        provider = FakeProvider()
        orchestrator = GenerationOrchestrator(provider)

        designs = await orchestrator.generate("a cat sticker", 3, GenerationOptions(style_label="ANIME"))

        assert [d.id for d in designs] == [1, 2, 3]
        assert [d.url for d in designs] == [f"https://img.example/{i}.png" for i in range(3)]
        assert all(d.prompt == "a cat sticker" for d in designs)
        assert all(d.style == "ANIME" for d in designs)
        assert designs[0].base64 == _b64("https://img.example/0.png")
        assert designs[0].created_at is not None

    @pytest.mark.asyncio
    async def test_count_is_clamped(self):
        provider = FakeProvider()
        designs = await GenerationOrchestrator(provider).generate("a cat", 9)

        assert len(designs) == 4
        assert len(provider.prompts) == 4

    @pytest.mark.asyncio
    async def test_results_keep_request_order(self):
        """Completion order does not affect design order."""
        provider = FakeProvider(delays={0: 0.05, 1: 0.03, 2: 0.01, 3: 0})
        designs = await GenerationOrchestrator(provider).generate_batch(["p0", "p1", "p2", "p3"])

        assert [d.prompt for d in designs] == ["p0", "p1", "p2", "p3"]
        assert [d.id for d in designs] == [1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_partial_failure_is_dropped_and_renumbered(self):
        """One raising call does not affect its siblings."""
        provider = FakeProvider(results={1: RuntimeError("upstream exploded")})
        designs = await GenerationOrchestrator(provider).generate_batch(["p0", "p1", "p2", "p3"])

        assert [d.id for d in designs] == [1, 2, 3]
        assert [d.prompt for d in designs] == ["p0", "p2", "p3"]

    @pytest.mark.asyncio
    async def test_failed_result_dict_is_dropped(self):
        provider = FakeProvider(results={0: {'success': False, 'error': 'Server error', 'status_code': 500}})
        designs = await GenerationOrchestrator(provider).generate_batch(["p0", "p1"])

        assert [d.prompt for d in designs] == ["p1"]

    @pytest.mark.asyncio
    async def test_embed_failure_keeps_design_without_base64(self):
        provider = FakeProvider(fetch_failures={"https://img.example/0.png"})
        designs = await GenerationOrchestrator(provider).generate("a cat", 2)

        assert len(designs) == 2
        assert designs[0].base64 == ""
        assert designs[0].url == "https://img.example/0.png"
        assert designs[1].base64 == _b64("https://img.example/1.png")

    @pytest.mark.asyncio
    async def test_all_quota_failures_raise(self):
        quota = {'success': False, 'error': 'You exceeded your current quota', 'code': 'insufficient_quota', 'status_code': 429}
        provider = FakeProvider(results={0: quota, 1: quota})

        with pytest.raises(UpstreamError) as exc_info:
            await GenerationOrchestrator(provider).generate("a cat", 2)

        assert exc_info.value.category == ErrorCategory.QUOTA_EXCEEDED
        assert "quota" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_quota_outranks_rate_limit(self):
        provider = FakeProvider(results={
            0: {'success': False, 'error': 'Rate limit exceeded', 'status_code': 429},
            1: {'success': False, 'error': 'Billing hard limit reached', 'code': 'billing_hard_limit_reached'},
        })

        with pytest.raises(UpstreamError) as exc_info:
            await GenerationOrchestrator(provider).generate("a cat", 2)

        assert exc_info.value.category == ErrorCategory.QUOTA_EXCEEDED

    @pytest.mark.asyncio
    async def test_all_content_policy_failures_raise(self):
        blocked = {'success': False, 'error': 'Your request was rejected by our safety system', 'code': 'content_policy_violation', 'status_code': 400}
        provider = FakeProvider(results={0: blocked})

        with pytest.raises(UpstreamError) as exc_info:
            await GenerationOrchestrator(provider).generate("a cat", 1)

        assert exc_info.value.category == ErrorCategory.CONTENT_POLICY

    @pytest.mark.asyncio
    async def test_all_generic_failures_return_empty(self):
        provider = FakeProvider(results={
            0: RuntimeError("boom"),
            1: {'success': False, 'error': 'Server error', 'status_code': 500},
        })

        assert await GenerationOrchestrator(provider).generate("a cat", 2) == []

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self):
        provider = FakeProvider(delays={i: 0.02 for i in range(4)})
        await GenerationOrchestrator(provider, concurrency=2).generate("a cat", 4)

        assert provider.max_in_flight == 2

    @pytest.mark.asyncio
    async def test_calls_run_concurrently(self):
        provider = FakeProvider(delays={i: 0.02 for i in range(4)})
        await GenerationOrchestrator(provider).generate("a cat", 4)

        assert provider.max_in_flight == 4
