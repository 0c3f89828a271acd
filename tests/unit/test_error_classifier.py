"""Unit tests for error classification."""

import json

import httpx
import pytest

from resilient_chat.reliability import (
    ErrorCategory,
    ErrorClassifier,
    ModelNotFoundError,
    RetryableQuotaError,
    TerminalQuotaError,
    ValidationRequiredError,
    classify_error,
    is_network_error,
    is_retryable_error,
)
from resilient_chat.reliability.errors import ApiError
from tests.helpers.mock_exceptions import (
    MockResponseDataError,
    MockNetworkError,
    api_error,
    daily_quota_error,
    error_info,
    error_payload,
    help_links,
    not_found_error,
    per_minute_quota_error,
    quota_failure,
    retry_info,
    retryable_quota_error,
    server_error,
    validation_required_error,
)


class TestQuotaClassification:
    """429 handling: terminal vs retryable and the delay that comes with it."""

    def test_daily_quota_is_terminal(self):
        result = ErrorClassifier.classify(daily_quota_error())

        assert result.category == ErrorCategory.TERMINAL_QUOTA
        assert isinstance(result.error, TerminalQuotaError)
        assert str(result.error) == "You have exhausted your daily quota on this model."
        assert not result.is_retryable

    def test_daily_quota_wins_over_retry_info(self):
        error = api_error(429, "quota", [retry_info("5s"), quota_failure("RequestsPerDay")])

        assert ErrorClassifier.classify(error).category == ErrorCategory.TERMINAL_QUOTA

    def test_retry_info_delay_is_used(self):
        result = ErrorClassifier.classify(retryable_quota_error("0.05s"))

        assert result.category == ErrorCategory.RETRYABLE_QUOTA
        assert isinstance(result.error, RetryableQuotaError)
        assert result.retry_delay_ms == pytest.approx(50)
        assert result.error.retry_delay_ms == pytest.approx(50)
        assert "Suggested retry after 0.05s." in str(result.error)

    def test_per_minute_quota_waits_a_minute(self):
        result = ErrorClassifier.classify(per_minute_quota_error())

        assert result.category == ErrorCategory.RETRYABLE_QUOTA
        assert result.retry_delay_ms == 60000

    def test_per_minute_quota_limit_in_error_info_metadata(self):
        error = api_error(
            429,
            "quota",
            [error_info("RATE_LIMITED", domain="generativelanguage.googleapis.com",
                        metadata={"quota_limit": "GenerateRequestsPerMinute"})],
        )

        result = ErrorClassifier.classify(error)

        assert result.category == ErrorCategory.RETRYABLE_QUOTA
        assert result.retry_delay_ms == 60000

    def test_cloudcode_rate_limit_defaults_to_ten_seconds(self):
        error = api_error(429, "slow down", [error_info("RATE_LIMIT_EXCEEDED")])

        result = ErrorClassifier.classify(error)

        assert result.category == ErrorCategory.RETRYABLE_QUOTA
        assert result.retry_delay_ms == 10000

    def test_cloudcode_rate_limit_prefers_retry_info(self):
        error = api_error(429, "slow down", [error_info("RATE_LIMIT_EXCEEDED"), retry_info("2s")])

        assert ErrorClassifier.classify(error).retry_delay_ms == 2000

    def test_cloudcode_quota_exhausted_is_terminal_with_reset_delay(self):
        error = api_error(429, "out of quota", [error_info("QUOTA_EXHAUSTED"), retry_info("3600s")])

        result = ErrorClassifier.classify(error)

        assert result.category == ErrorCategory.TERMINAL_QUOTA
        assert result.error.retry_delay_ms == 3600000

    def test_non_cloudcode_quota_exhausted_is_not_terminal(self):
        error = api_error(429, "out of quota", [error_info("QUOTA_EXHAUSTED", domain="example.com")])

        assert ErrorClassifier.classify(error).category == ErrorCategory.RETRYABLE_QUOTA

    def test_retry_hint_in_message(self):
        error = api_error(429, "Resource exhausted. Please retry in 12.5s")

        result = ErrorClassifier.classify(error)

        assert result.category == ErrorCategory.RETRYABLE_QUOTA
        assert result.retry_delay_ms == pytest.approx(12500)

    def test_plain_429_is_retryable_without_delay(self):
        result = ErrorClassifier.classify(api_error(429, "Too many requests"))

        assert result.category == ErrorCategory.RETRYABLE_QUOTA
        assert result.retry_delay_ms is None

    def test_retry_hint_without_status(self):
        result = ErrorClassifier.classify(Exception("Please retry in 900ms"))

        assert result.category == ErrorCategory.RETRYABLE_QUOTA
        assert result.retry_delay_ms == pytest.approx(900)


class TestOtherCategories:

    def test_validation_required_uses_help_links(self):
        result = ErrorClassifier.classify(validation_required_error())

        assert result.category == ErrorCategory.VALIDATION_REQUIRED
        error = result.error
        assert isinstance(error, ValidationRequiredError)
        assert error.validation_link == "https://accounts.google.com/verify"
        assert error.validation_description == "Verify your account"
        assert error.learn_more_url == "https://support.google.com/verify"
        assert error.user_handled is False

    def test_validation_link_from_metadata(self):
        error = api_error(
            403,
            "verify",
            [error_info("VALIDATION_REQUIRED", metadata={"validation_link": "https://verify.example"})],
        )

        result = ErrorClassifier.classify(error)

        assert result.error.validation_link == "https://verify.example"
        assert result.error.learn_more_url is None

    def test_plain_403_is_not_retryable(self):
        result = ErrorClassifier.classify(api_error(403, "Permission denied"))

        assert result.category == ErrorCategory.NON_RETRYABLE

    def test_404_is_model_not_found(self):
        result = ErrorClassifier.classify(not_found_error())

        assert result.category == ErrorCategory.MODEL_NOT_FOUND
        assert isinstance(result.error, ModelNotFoundError)
        assert result.error.status == 404

    @pytest.mark.parametrize("status", [500, 502, 503, 504, 599])
    def test_5xx_keeps_original_error(self, status):
        error = server_error(status)

        result = ErrorClassifier.classify(error)

        assert result.category == ErrorCategory.GENERIC_5XX
        assert result.error is error
        assert result.is_retryable

    def test_400_is_non_retryable(self):
        result = ErrorClassifier.classify(api_error(400, "Request contains an invalid argument."))

        assert result.category == ErrorCategory.NON_RETRYABLE

    def test_classified_errors_pass_through(self):
        error = TerminalQuotaError("limit", retry_delay_ms=1000)

        result = ErrorClassifier.classify(error)

        assert result.category == ErrorCategory.TERMINAL_QUOTA
        assert result.error is error
        assert result.retry_delay_ms == 1000


class TestNetworkErrors:

    @pytest.mark.parametrize("error", [
        httpx.ConnectError("connection refused"),
        httpx.ReadTimeout("timed out"),
        httpx.RemoteProtocolError("peer closed connection"),
        ConnectionResetError(),
        TimeoutError(),
        MockNetworkError("ECONNRESET"),
        MockNetworkError("ENOTFOUND"),
        MockNetworkError("ERR_SSL_SSLV3_ALERT_BAD_RECORD_MAC"),
    ])
    def test_network_failures(self, error):
        assert is_network_error(error)
        assert ErrorClassifier.classify(error).category == ErrorCategory.GENERIC_NETWORK

    def test_network_error_in_cause_chain(self):
        outer = RuntimeError("request failed")
        outer.__cause__ = ConnectionResetError("reset by peer")

        assert ErrorClassifier.classify(outer).category == ErrorCategory.GENERIC_NETWORK

    def test_cause_chain_is_bounded(self):
        root = ConnectionResetError()
        current = root
        for index in range(6):
            wrapper = RuntimeError(f"layer {index}")
            wrapper.__cause__ = current
            current = wrapper

        assert not is_network_error(current)

    def test_unrelated_string_code_is_not_network(self):
        assert not is_network_error(MockNetworkError("EACCES"))


class TestPayloadShapes:

    def test_nested_json_message_is_unwrapped(self):
        inner = error_payload(429, "inner", [retry_info("1s")])
        outer = ApiError(500, json.dumps(error_payload(500, json.dumps(inner))))

        result = ErrorClassifier.classify(outer)

        assert result.category == ErrorCategory.RETRYABLE_QUOTA
        assert result.retry_delay_ms == 1000

    def test_excessive_nesting_is_treated_as_network(self):
        payload = error_payload(429, "bottom")
        for _ in range(12):
            payload = error_payload(500, json.dumps(payload))

        result = ErrorClassifier.classify(ApiError(500, json.dumps(payload)))

        assert result.category == ErrorCategory.GENERIC_NETWORK

    def test_httpx_status_error(self):
        request = httpx.Request("POST", "https://example.test/v1beta/models/x:streamGenerateContent")
        response = httpx.Response(
            429, json=error_payload(429, "quota", [quota_failure("RequestsPerDay")]), request=request
        )
        error = httpx.HTTPStatusError("Too Many Requests", request=request, response=response)

        assert ErrorClassifier.classify(error).category == ErrorCategory.TERMINAL_QUOTA

    def test_response_data_payload(self):
        error = MockResponseDataError("Request failed", 404, data=error_payload(404, "not found"))

        assert ErrorClassifier.classify(error).category == ErrorCategory.MODEL_NOT_FOUND

    def test_dict_payload(self):
        payload = error_payload(503, "unavailable")

        assert ErrorClassifier.classify(payload).category == ErrorCategory.GENERIC_5XX

    def test_list_wrapped_payload(self):
        error = ApiError(429, json.dumps([error_payload(429, "quota", [quota_failure("PerDay")])]))

        assert ErrorClassifier.classify(error).category == ErrorCategory.TERMINAL_QUOTA


class TestTotality:

    @pytest.mark.parametrize("error", [
        None,
        "",
        "something odd",
        42,
        [],
        {},
        {"weird": object()},
        object(),
        ValueError(),
        ApiError(418, "not json at all"),
        ApiError(500, "{broken json"),
    ])
    def test_every_input_gets_one_category(self, error):
        first = classify_error(error)
        second = classify_error(error)

        assert isinstance(first.category, ErrorCategory)
        assert first.category == second.category


class TestIsRetryableError:

    @pytest.mark.parametrize("error,expected", [
        (api_error(429, "quota"), True),
        (server_error(500), True),
        (server_error(503), True),
        (api_error(400, "bad"), False),
        (api_error(401, "unauthenticated"), False),
        (httpx.ConnectError("down"), True),
        (ValueError("nope"), False),
    ])
    def test_status_and_network(self, error, expected):
        assert is_retryable_error(error) is expected

    def test_fetch_failed_needs_opt_in(self):
        error = Exception("TypeError: fetch failed")

        assert not is_retryable_error(error)
        assert is_retryable_error(error, retry_fetch_errors=True)

    def test_help_detail_is_ignored_for_retryability(self):
        error = api_error(400, "bad", [help_links({"description": "docs", "url": "https://x"})])

        assert not is_retryable_error(error)
