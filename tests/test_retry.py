import pytest

from manifest_mcp import retry
from manifest_mcp.errors import ErrorCode, ManifestMCPError
from manifest_mcp.retry import (
    RetryPolicy,
    calculate_backoff,
    is_retryable_error,
    is_transient_error_message,
    with_retry,
)


@pytest.fixture
def sleeps(monkeypatch):
    recorded = []

    async def fake_sleep(delay_ms):
        recorded.append(delay_ms)

    monkeypatch.setattr(retry, "_sleep", fake_sleep)
    return recorded


def test_transient_signatures_are_case_insensitive():
    assert is_transient_error_message("ECONNREFUSED 127.0.0.1")
    assert is_transient_error_message("HTTP 503 Service Unavailable")
    assert is_transient_error_message("Request Timed Out")
    assert not is_transient_error_message("account not found")


def test_permanent_codes_never_retry():
    err = ManifestMCPError(ErrorCode.INVALID_ADDRESS, "connection reset")
    assert not is_retryable_error(err)
    pinned = ManifestMCPError(ErrorCode.QUERY_FAILED, "timeout", retryable=False)
    assert not is_retryable_error(pinned)
    assert is_retryable_error(ManifestMCPError(ErrorCode.QUERY_FAILED, "socket hang up"))
    assert not is_retryable_error(ManifestMCPError(ErrorCode.QUERY_FAILED, "proposal not found"))


def test_plain_exceptions_classified_by_message():
    assert is_retryable_error(ConnectionError("connection refused"))
    assert not is_retryable_error(ValueError("bad"))


def test_backoff_is_capped_and_jittered(monkeypatch):
    monkeypatch.setattr(retry.random, "random", lambda: 0.5)
    assert calculate_backoff(0, 1000, 10000) == 1000
    assert calculate_backoff(2, 1000, 10000) == 4000
    assert calculate_backoff(10, 1000, 10000) == 10000
    monkeypatch.setattr(retry.random, "random", lambda: 1.0)
    assert calculate_backoff(10, 1000, 10000) == 12500
    monkeypatch.setattr(retry.random, "random", lambda: 0.0)
    assert calculate_backoff(0, 1000, 10000) == 750


def test_backoff_stays_within_jitter_band():
    for attempt in range(6):
        capped = min(100 * 2**attempt, 1000)
        delay = calculate_backoff(attempt, 100, 1000)
        assert capped * 0.75 <= delay <= capped * 1.25


def test_policy_validation():
    with pytest.raises(ManifestMCPError) as exc:
        RetryPolicy(max_retries=-1, base_delay_ms=10, max_delay_ms=5)
    assert exc.value.code == ErrorCode.INVALID_CONFIG
    assert len(exc.value.details["errors"]) == 2


@pytest.mark.asyncio
async def test_with_retry_retries_transient_then_succeeds(sleeps):
    calls = []
    observed = []

    async def operation():
        calls.append(1)
        if len(calls) < 3:
            raise ManifestMCPError(ErrorCode.RPC_CONNECTION_FAILED, "ECONNRESET")
        return "ok"

    result = await with_retry(
        operation,
        RetryPolicy(max_retries=3, base_delay_ms=10, max_delay_ms=100),
        on_retry=lambda err, attempt, delay: observed.append(attempt),
    )
    assert result == "ok"
    assert len(calls) == 3
    assert observed == [1, 2]
    assert len(sleeps) == 2


@pytest.mark.asyncio
async def test_with_retry_stops_after_max_retries(sleeps):
    calls = []

    async def operation():
        calls.append(1)
        raise ManifestMCPError(ErrorCode.QUERY_FAILED, "HTTP 502 Bad Gateway")

    with pytest.raises(ManifestMCPError) as exc:
        await with_retry(operation, RetryPolicy(max_retries=2, base_delay_ms=1, max_delay_ms=1))
    assert "502" in exc.value.message
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_with_retry_does_not_retry_permanent_errors(sleeps):
    calls = []

    async def operation():
        calls.append(1)
        raise ManifestMCPError(ErrorCode.INSUFFICIENT_FUNDS, "insufficient funds: network")

    with pytest.raises(ManifestMCPError):
        await with_retry(operation)
    assert len(calls) == 1
    assert sleeps == []


@pytest.mark.asyncio
async def test_zero_retries_runs_once(sleeps):
    calls = []

    async def operation():
        calls.append(1)
        raise ConnectionError("connection refused")

    with pytest.raises(ConnectionError):
        await with_retry(operation, RetryPolicy(max_retries=0))
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_failing_observer_does_not_abort_retry(sleeps):
    calls = []

    async def operation():
        calls.append(1)
        if len(calls) == 1:
            raise ConnectionError("socket closed")
        return 42

    def observer(*_args):
        raise RuntimeError("observer broke")

    assert await with_retry(operation, RetryPolicy(max_retries=1, base_delay_ms=1, max_delay_ms=1), on_retry=observer) == 42
