"""Unit tests for error categorization and user-facing error mapping."""

import asyncio

import pytest

from synthetik.error_handling import (
    ConfigurationError,
    ErrorAnalyzer,
    ErrorCategory,
    ErrorSeverity,
    InvalidRequestError,
    NoImagesGeneratedError,
    UpstreamError,
    describe_failure,
    error_monitoring_context,
    most_significant_category,
    response_for,
)


class TestErrorAnalyzer:
    """Test error categorization."""

    @pytest.mark.parametrize("message,expected", [
        ("You exceeded your current quota | insufficient_quota", ErrorCategory.QUOTA_EXCEEDED),
        ("Billing hard limit has been reached", ErrorCategory.QUOTA_EXCEEDED),
        ("Your request was rejected by our safety system", ErrorCategory.CONTENT_POLICY),
        ("content_policy_violation", ErrorCategory.CONTENT_POLICY),
        ("Rate limit exceeded | HTTP 429", ErrorCategory.RATE_LIMIT),
        ("Incorrect API key provided | invalid_api_key | HTTP 401", ErrorCategory.AUTHENTICATION_ERROR),
        ("Request timed out", ErrorCategory.TIMEOUT),
        ("Connection refused by host", ErrorCategory.NETWORK_ERROR),
        ("Server error | HTTP 500", ErrorCategory.PROCESSING_ERROR),
        ("", ErrorCategory.PROCESSING_ERROR),
    ])
    def test_categorize_message(self, message, expected):
        assert ErrorAnalyzer.categorize_message(message) == expected

    @pytest.mark.parametrize("message,expected", [
        ("Server error (request id req_4291403) | HTTP 500", ErrorCategory.PROCESSING_ERROR),
        ("Upload of 401 frames failed", ErrorCategory.PROCESSING_ERROR),
        ("Bad gateway | HTTP 429", ErrorCategory.RATE_LIMIT),
        ("Access denied | HTTP 403", ErrorCategory.AUTHENTICATION_ERROR),
    ])
    def test_status_codes_match_only_as_http_status(self, message, expected):
        assert ErrorAnalyzer.categorize_message(message) == expected

    def test_quota_is_checked_before_rate_limit(self):
        assert ErrorAnalyzer.categorize_message("quota limit reached") == ErrorCategory.QUOTA_EXCEEDED

    def test_sticker_errors_keep_their_category(self):
        assert ErrorAnalyzer.categorize_error(ConfigurationError("missing key")) == ErrorCategory.CONFIGURATION_ERROR
        assert ErrorAnalyzer.categorize_error(InvalidRequestError("bad")) == ErrorCategory.VALIDATION_ERROR
        assert ErrorAnalyzer.categorize_error(NoImagesGeneratedError()) == ErrorCategory.PROCESSING_ERROR

    def test_exception_types(self):
        assert ErrorAnalyzer.categorize_error(asyncio.TimeoutError()) == ErrorCategory.TIMEOUT
        assert ErrorAnalyzer.categorize_error(ConnectionResetError()) == ErrorCategory.NETWORK_ERROR
        assert ErrorAnalyzer.categorize_error(RuntimeError("boom")) == ErrorCategory.PROCESSING_ERROR

    def test_severity(self):
        assert ErrorAnalyzer.assess_severity(ErrorCategory.CONFIGURATION_ERROR) == ErrorSeverity.CRITICAL
        assert ErrorAnalyzer.assess_severity(ErrorCategory.QUOTA_EXCEEDED) == ErrorSeverity.HIGH
        assert ErrorAnalyzer.assess_severity(ErrorCategory.VALIDATION_ERROR) == ErrorSeverity.LOW


class TestUpstreamError:
    """Test provider failure errors."""

    def test_category_from_message(self):
        error = UpstreamError("Rate limit exceeded", status_code=429)
        assert error.category == ErrorCategory.RATE_LIMIT
        assert error.status_code == 429

    def test_explicit_category_wins(self):
        error = UpstreamError("odd wording", category=ErrorCategory.CONTENT_POLICY)
        assert error.category == ErrorCategory.CONTENT_POLICY


class TestMostSignificantCategory:
    """Test the category chosen for a fully failed batch."""

    def test_priority_order(self):
        categories = [ErrorCategory.AUTHENTICATION_ERROR, ErrorCategory.RATE_LIMIT, ErrorCategory.CONTENT_POLICY]
        assert most_significant_category(categories) == ErrorCategory.CONTENT_POLICY

    def test_generic_categories_are_not_distinct(self):
        categories = [ErrorCategory.PROCESSING_ERROR, ErrorCategory.TIMEOUT, ErrorCategory.NETWORK_ERROR]
        assert most_significant_category(categories) is None

    def test_empty(self):
        assert most_significant_category([]) is None


class TestResponseFor:
    """Test the mapping from errors to HTTP responses."""

    def test_configuration_error(self):
        response = response_for(ConfigurationError("OPENAI_API_KEY environment variable is not set"))
        assert response.status_code == 500
        assert response.error == "OpenAI API key not configured"
        assert response.message == "Please set the OPENAI_API_KEY environment variable"

    def test_quota(self):
        response = response_for(UpstreamError("insufficient_quota"))
        assert response.status_code == 402
        assert response.error == "API payment required"
        assert "platform.openai.com/account/billing" in response.message

    def test_content_policy(self):
        response = response_for(UpstreamError("content_policy_violation"))
        assert response.status_code == 400
        assert response.error == "Content policy violation"

    def test_rate_limit(self):
        response = response_for(UpstreamError("Rate limit exceeded"))
        assert response.status_code == 429
        assert response.error == "Rate limit exceeded"

    def test_no_images(self):
        response = response_for(NoImagesGeneratedError())
        assert response.status_code == 500
        assert response.error == "Failed to generate any images"

    def test_invalid_request_uses_its_own_text(self):
        response = response_for(InvalidRequestError("Missing required field: style", hint="Please select a style for your sticker"))
        assert response.status_code == 400
        assert response.error == "Missing required field: style"
        assert response.message == "Please select a style for your sticker"

    def test_unexpected_exception(self):
        response = response_for(RuntimeError("boom"))
        assert response.status_code == 500
        assert response.error == "Generation failed"
        assert response.message == "An error occurred during generation. Please try again."


class TestDescribeFailure:
    """Test flattening of failed provider results."""

    def test_all_fields(self):
        result = {'success': False, 'error': 'Quota exceeded', 'code': 'insufficient_quota', 'status_code': 429}
        assert describe_failure(result) == "Quota exceeded | insufficient_quota | HTTP 429"

    def test_missing_fields(self):
        assert describe_failure({'success': False}) == "Unknown error"


class TestErrorMonitoringContext:
    """Test the monitoring context manager."""

    @pytest.mark.asyncio
    async def test_records_and_reraises(self):
        with pytest.raises(UpstreamError):
            async with error_monitoring_context("batch") as errors:
                raise UpstreamError("Rate limit exceeded")

        assert len(errors) == 1
        assert errors[0]['category'] == ErrorCategory.RATE_LIMIT
        assert errors[0]['severity'] == ErrorSeverity.MEDIUM
        assert errors[0]['type'] == "UpstreamError"

    @pytest.mark.asyncio
    async def test_clean_block(self):
        async with error_monitoring_context("batch") as errors:
            pass
        assert errors == []
