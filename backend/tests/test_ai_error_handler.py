import asyncio

import httpx
import pytest

from inflio.errors import AIError
from inflio.services.ai_error_handler import (
    FALLBACK_DEFAULT,
    FALLBACK_SILENT,
    FALLBACK_THROW,
    AIErrorOptions,
    backoff_delay,
    get_ai_fallback,
    handle_ai_error,
    is_retryable_error,
    validate_ai_response,
    with_ai_error_handling,
)


class StatusError(Exception):
    def __init__(self, message, status):
        super().__init__(message)
        self.status = status


class FlakyOperation:
    """Fails ``failures`` times with ``error`` and then returns ``result``."""

    def __init__(self, failures, error, result="ok"):
        self.failures = failures
        self.error = error
        self.result = result
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return self.result


@pytest.mark.unit
def test_rate_limit_and_server_errors_are_retryable():
    assert is_retryable_error(StatusError("slow down", 429))
    assert is_retryable_error(StatusError("bad gateway", 502))
    assert not is_retryable_error(StatusError("bad request", 400))
    assert is_retryable_error(Exception("Rate limit exceeded"))
    assert is_retryable_error(httpx.ConnectError("refused"))
    assert not is_retryable_error(Exception("invalid prompt"))
    assert not is_retryable_error(None)


@pytest.mark.unit
def test_ai_error_retryable_flag_wins():
    assert not is_retryable_error(AIError("timeout", retryable=False))
    assert is_retryable_error(AIError("boom"))


@pytest.mark.unit
def test_retries_then_succeeds_with_exponential_delays(fake_sleep):
    op = FlakyOperation(2, Exception("network hiccup"), result={"title": "x"})

    result = asyncio.run(
        with_ai_error_handling(op, AIErrorOptions(max_retries=3, retry_delay=1.0), sleep=fake_sleep)
    )

    assert result == {"title": "x"}
    assert op.calls == 3
    assert fake_sleep.delays == [1.0, 2.0]


@pytest.mark.unit
def test_gives_up_after_max_retries_plus_one_attempts(fake_sleep):
    op = FlakyOperation(10, Exception("service unavailable"))

    result = asyncio.run(
        with_ai_error_handling(
            op,
            AIErrorOptions(max_retries=3, retry_delay=0.5, fallback_behavior=FALLBACK_DEFAULT),
            sleep=fake_sleep,
        )
    )

    assert result is None
    assert op.calls == 4
    assert fake_sleep.delays == [0.5, 1.0, 2.0]


@pytest.mark.unit
def test_linear_backoff_when_exponential_disabled(fake_sleep):
    op = FlakyOperation(2, Exception("timeout"))

    asyncio.run(
        with_ai_error_handling(
            op,
            AIErrorOptions(max_retries=2, retry_delay=1.5, exponential_backoff=False),
            sleep=fake_sleep,
        )
    )

    assert fake_sleep.delays == [1.5, 1.5]


@pytest.mark.unit
def test_permanent_error_is_not_retried(fake_sleep):
    op = FlakyOperation(5, StatusError("unauthorized", 401))

    result = asyncio.run(
        with_ai_error_handling(op, AIErrorOptions(max_retries=3), sleep=fake_sleep)
    )

    assert result is None
    assert op.calls == 1
    assert fake_sleep.delays == []


@pytest.mark.unit
def test_throw_fallback_raises_ai_error(fake_sleep):
    op = FlakyOperation(5, Exception("rate limit"))

    with pytest.raises(AIError) as exc_info:
        asyncio.run(
            with_ai_error_handling(
                op,
                AIErrorOptions(max_retries=1, retry_delay=0.1, fallback_behavior=FALLBACK_THROW),
                sleep=fake_sleep,
            )
        )

    assert "after 2 attempts" in exc_info.value.message
    assert exc_info.value.retryable is False
    assert op.calls == 2


@pytest.mark.unit
def test_silent_fallback_returns_none(fake_sleep):
    op = FlakyOperation(1, ValueError("bad output"))

    result = asyncio.run(
        with_ai_error_handling(
            op, AIErrorOptions(fallback_behavior=FALLBACK_SILENT), sleep=fake_sleep
        )
    )

    assert result is None


@pytest.mark.unit
def test_backoff_delay():
    assert backoff_delay(0, 1.0) == 1.0
    assert backoff_delay(3, 1.0) == 8.0
    assert backoff_delay(3, 1.0, exponential=False) == 1.0


@pytest.mark.unit
def test_user_message_reflects_error_kind():
    assert handle_ai_error(Exception("rate limit hit")).startswith("Too many requests")
    assert handle_ai_error(Exception("timeout")).startswith("Request timed out")
    assert "after 3 attempts" in handle_ai_error(Exception("boom"), attempt=3, max_attempts=3)
    assert handle_ai_error(Exception("boom")) == "AI service temporarily unavailable"


@pytest.mark.unit
def test_validate_ai_response():
    assert validate_ai_response({"title": "t", "hook": "h"}, ["title", "hook"])
    assert not validate_ai_response({"title": "t"}, ["title", "hook"])
    assert not validate_ai_response(["not", "a", "dict"], [])
    assert not validate_ai_response({"hashtags": "tag"}, properties={"hashtags": "array"})
    assert validate_ai_response({"score": 3}, properties={"score": "number", "extra": "string"})


@pytest.mark.unit
def test_fallback_content():
    captions = get_ai_fallback("caption", {"title": "Launch day"})
    assert captions["instagram"].startswith("✨ Launch day ✨")
    assert len(get_ai_fallback("schedule")) == 3
    assert get_ai_fallback("unknown") is None
