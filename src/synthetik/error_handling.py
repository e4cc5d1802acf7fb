"""Error taxonomy and user-facing error mapping for sticker generation."""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Optional


logger = logging.getLogger(__name__)


class ErrorSeverity(str, Enum):
    """Error severity levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """Error category types."""
    CONFIGURATION_ERROR = "configuration_error"
    VALIDATION_ERROR = "validation_error"
    CONTENT_POLICY = "content_policy"
    QUOTA_EXCEEDED = "quota_exceeded"
    RATE_LIMIT = "rate_limit"
    AUTHENTICATION_ERROR = "authentication_error"
    TIMEOUT = "timeout"
    NETWORK_ERROR = "network_error"
    PROCESSING_ERROR = "processing_error"


class StickerError(Exception):
    """Base error carrying a category for the response mapping."""

    category: ErrorCategory = ErrorCategory.PROCESSING_ERROR

    def __init__(self, message: str, category: ErrorCategory | None = None):
        super().__init__(message)
        if category is not None:
            self.category = category


class ConfigurationError(StickerError):
    """Missing or invalid service configuration. Never retried."""

    category = ErrorCategory.CONFIGURATION_ERROR


class InvalidRequestError(StickerError):
    """Request rejected before any external call."""

    category = ErrorCategory.VALIDATION_ERROR

    def __init__(self, message: str, hint: str | None = None):
        super().__init__(message)
        self.hint = hint


class NoImagesGeneratedError(StickerError):
    """Every generation call failed without a more specific upstream cause."""

    def __init__(self, message: str = "Failed to generate any images"):
        super().__init__(message, ErrorCategory.PROCESSING_ERROR)


class UpstreamError(StickerError):
    """Failure reported by the image generation provider."""

    def __init__(self, message: str, category: ErrorCategory | None = None, status_code: int | None = None):
        super().__init__(message, category or ErrorAnalyzer.categorize_message(message))
        self.status_code = status_code


class ErrorAnalyzer:
    """Analyzes errors to determine their category."""

    # Checked in order: quota before rate limit since quota messages
    # frequently mention "limit".
    ERROR_PATTERNS = (
        (ErrorCategory.QUOTA_EXCEEDED, (
            'insufficient_quota', 'billing', 'payment', 'quota', 'credits',
            'insufficient funds',
        )),
        (ErrorCategory.CONTENT_POLICY, (
            'content_policy', 'content policy', 'safety', 'nsfw',
            'inappropriate content',
        )),
        (ErrorCategory.RATE_LIMIT, (
            'rate limit', 'rate_limit', 'too many requests', 'requests per minute',
            'throttled', 'http 429',
        )),
        (ErrorCategory.AUTHENTICATION_ERROR, (
            'authentication', 'unauthorized', 'invalid api key', 'incorrect api key',
            'invalid_api_key', 'forbidden', 'http 401', 'http 403',
        )),
        (ErrorCategory.TIMEOUT, (
            'timeout', 'timed out',
        )),
        (ErrorCategory.NETWORK_ERROR, (
            'connection error', 'network error', 'connection refused',
            'connection reset', 'dns', 'unreachable',
        )),
    )

    @classmethod
    def categorize_message(cls, message: str) -> ErrorCategory:
        """Categorize an error message by pattern."""
        text = (message or "").lower()
        for category, patterns in cls.ERROR_PATTERNS:
            if any(pattern in text for pattern in patterns):
                return category
        return ErrorCategory.PROCESSING_ERROR

    @classmethod
    def categorize_error(cls, error: Exception, error_message: str = None) -> ErrorCategory:
        """Categorize an error based on its type and message."""
        if isinstance(error, StickerError):
            return error.category

        category = cls.categorize_message(error_message or str(error))
        if category != ErrorCategory.PROCESSING_ERROR:
            return category

        if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
            return ErrorCategory.TIMEOUT
        elif isinstance(error, (ConnectionError, OSError)):
            return ErrorCategory.NETWORK_ERROR
        return ErrorCategory.PROCESSING_ERROR

    @classmethod
    def assess_severity(cls, error_category: ErrorCategory) -> ErrorSeverity:
        """Assess the severity of an error."""
        severity_mapping = {
            ErrorCategory.CONFIGURATION_ERROR: ErrorSeverity.CRITICAL,
            ErrorCategory.AUTHENTICATION_ERROR: ErrorSeverity.CRITICAL,
            ErrorCategory.QUOTA_EXCEEDED: ErrorSeverity.HIGH,
            ErrorCategory.CONTENT_POLICY: ErrorSeverity.MEDIUM,
            ErrorCategory.RATE_LIMIT: ErrorSeverity.MEDIUM,
            ErrorCategory.TIMEOUT: ErrorSeverity.MEDIUM,
            ErrorCategory.NETWORK_ERROR: ErrorSeverity.MEDIUM,
            ErrorCategory.PROCESSING_ERROR: ErrorSeverity.LOW,
            ErrorCategory.VALIDATION_ERROR: ErrorSeverity.LOW,
        }
        return severity_mapping.get(error_category, ErrorSeverity.MEDIUM)


# Categories that end a batch with their own message instead of the generic one.
DISTINCT_UPSTREAM_CATEGORIES = (
    ErrorCategory.QUOTA_EXCEEDED,
    ErrorCategory.CONTENT_POLICY,
    ErrorCategory.RATE_LIMIT,
    ErrorCategory.AUTHENTICATION_ERROR,
)


def most_significant_category(categories: Iterable[ErrorCategory]) -> Optional[ErrorCategory]:
    """Pick the category that should describe a fully failed batch."""
    seen = set(categories)
    for category in DISTINCT_UPSTREAM_CATEGORIES:
        if category in seen:
            return category
    return None


@dataclass(frozen=True)
class ErrorResponse:
    """HTTP status and user-facing text for one error category."""
    status_code: int
    error: str
    message: str


ERROR_RESPONSES: Dict[ErrorCategory, ErrorResponse] = {
    ErrorCategory.CONFIGURATION_ERROR: ErrorResponse(
        500,
        "OpenAI API key not configured",
        "Please set the OPENAI_API_KEY environment variable",
    ),
    ErrorCategory.VALIDATION_ERROR: ErrorResponse(
        400,
        "Invalid request",
        "Please check your request and try again.",
    ),
    ErrorCategory.CONTENT_POLICY: ErrorResponse(
        400,
        "Content policy violation",
        "Your prompt was flagged by content policy. Please try a different description.",
    ),
    ErrorCategory.QUOTA_EXCEEDED: ErrorResponse(
        402,
        "API payment required",
        "Please add credits at platform.openai.com/account/billing to generate images.",
    ),
    ErrorCategory.RATE_LIMIT: ErrorResponse(
        429,
        "Rate limit exceeded",
        "Too many requests. Please wait a moment and try again.",
    ),
    ErrorCategory.AUTHENTICATION_ERROR: ErrorResponse(
        500,
        "Image provider rejected the API credentials",
        "The image service is misconfigured. Please contact support.",
    ),
    ErrorCategory.TIMEOUT: ErrorResponse(
        500,
        "Image generation timed out",
        "Generation took too long. Please try again.",
    ),
    ErrorCategory.NETWORK_ERROR: ErrorResponse(
        500,
        "Image provider unreachable",
        "An error occurred during generation. Please try again.",
    ),
    ErrorCategory.PROCESSING_ERROR: ErrorResponse(
        500,
        "Generation failed",
        "An error occurred during generation. Please try again.",
    ),
}

NO_IMAGES_RESPONSE = ErrorResponse(
    500,
    "Failed to generate any images",
    "Please try again or adjust your prompt",
)


def response_for(error: Exception) -> ErrorResponse:
    """Map an exception onto its user-facing response."""
    if isinstance(error, NoImagesGeneratedError):
        return NO_IMAGES_RESPONSE
    if isinstance(error, InvalidRequestError):
        default = ERROR_RESPONSES[ErrorCategory.VALIDATION_ERROR]
        return ErrorResponse(default.status_code, str(error), error.hint or default.message)
    return ERROR_RESPONSES[ErrorAnalyzer.categorize_error(error)]


@asynccontextmanager
async def error_monitoring_context(name: str):
    """Context manager for monitoring errors in a code block."""
    start_time = time.time()
    errors_caught = []

    try:
        logger.info(f"Starting monitored operation: {name}")
        yield errors_caught

    except Exception as e:
        category = ErrorAnalyzer.categorize_error(e)
        errors_caught.append({
            'error': str(e),
            'type': type(e).__name__,
            'category': category,
            'severity': ErrorAnalyzer.assess_severity(category),
            'timestamp': time.time()
        })
        logger.error(f"Error in monitored operation {name}: {str(e)}")
        raise

    finally:
        duration = time.time() - start_time
        logger.info(
            f"Monitored operation {name} completed in {duration:.2f}s "
            f"with {len(errors_caught)} errors"
        )


def describe_failure(result: Dict[str, Any]) -> str:
    """Flatten a failed provider result into a categorizable message."""
    parts = [str(result.get('error') or 'Unknown error')]
    code = result.get('code')
    if code:
        parts.append(str(code))
    status = result.get('status_code')
    if status:
        parts.append(f"HTTP {status}")
    return " | ".join(parts)
