"""
Unit tests for retry policy and transient error classification
"""

import asyncio

import httpx
import pytest

from core.exceptions import (
    AuthenticationError,
    NetworkError,
    ParseError,
    RateLimitError,
    ResourceNotFoundError,
    SessionLostError,
    ValidationError,
)
from ingestion.retry import RetryManager, RetryPolicy, is_transient


class TestRetryPolicy:
    
    def test_exponential_delays(self):
        policy = RetryPolicy(base_delay=1.0, multiplier=2.0, max_delay=60.0)
        assert [policy.delay_for(n) for n in (1, 2, 3, 4)] == [1.0, 2.0, 4.0, 8.0]
    
    def test_delay_capped(self):
        policy = RetryPolicy(base_delay=10.0, multiplier=10.0, max_delay=30.0)
        assert policy.delay_for(3) == 30.0


class TestIsTransient:
    """Which failures are worth retrying"""
    
    @pytest.mark.parametrize("error", [
        NetworkError("Server error 503"),
        RateLimitError("Too many requests", retry_after=5),
        httpx.ConnectTimeout("timed out"),
        httpx.ConnectError("connection refused"),
        asyncio.TimeoutError(),
        RuntimeError("ECONNRESET while reading"),
    ])
    def test_transient(self, error):
        assert is_transient(error) is True
    
    @pytest.mark.parametrize("error", [
        AuthenticationError("Forbidden"),
        ResourceNotFoundError("Not found"),
        SessionLostError("Browser closed"),
        ValidationError("name: must not be empty"),
        ParseError("Unexpected page structure", context={"url": "https://gomafia.pro/tournament/1504"}),
        KeyError("name"),
    ])
    def test_not_transient(self, error):
        assert is_transient(error) is False


class TestRetryManager:
    
    @pytest.mark.asyncio
    async def test_succeeds_after_transient_failures(self, retry_manager, sleeps):
        """Two network errors then success: delays 1s and 2s"""
        calls = {"n": 0}
        
        async def operation():
            calls["n"] += 1
            if calls["n"] < 3:
                raise NetworkError("Server error 502")
            return "ok"
        
        result = await retry_manager.execute(operation)
        
        assert result == "ok"
        assert sleeps == [1.0, 2.0]
        metrics = retry_manager.get_metrics()
        assert metrics["total_attempts"] == 3
        assert metrics["successful_retries"] == 1
        assert metrics["failed_operations"] == 0
    
    @pytest.mark.asyncio
    async def test_raises_last_error_when_exhausted(self, retry_manager, sleeps):
        async def operation():
            raise NetworkError("Request timeout")
        
        with pytest.raises(NetworkError):
            await retry_manager.execute(operation)
        
        assert len(sleeps) == 2
        assert retry_manager.get_metrics()["failed_operations"] == 1
    
    @pytest.mark.asyncio
    async def test_non_transient_not_retried(self, retry_manager, sleeps):
        calls = {"n": 0}
        
        async def operation():
            calls["n"] += 1
            raise ResourceNotFoundError("Not found")
        
        with pytest.raises(ResourceNotFoundError):
            await retry_manager.execute(operation)
        
        assert calls["n"] == 1
        assert sleeps == []
    
    @pytest.mark.asyncio
    async def test_rate_limit_retry_after_honoured(self, retry_manager, sleeps):
        calls = {"n": 0}
        
        async def operation():
            calls["n"] += 1
            if calls["n"] == 1:
                raise RateLimitError("Too many requests", retry_after=30)
            return 1
        
        await retry_manager.execute(operation)
        
        assert sleeps == [30.0]
    
    @pytest.mark.asyncio
    async def test_policy_override(self, retry_manager, sleeps):
        async def operation():
            raise NetworkError("network down")
        
        with pytest.raises(NetworkError):
            await retry_manager.execute(operation, policy=RetryPolicy(max_attempts=1))
        
        assert sleeps == []
    
    @pytest.mark.asyncio
    async def test_wait_for_recovery(self, retry_manager, sleeps):
        await retry_manager.wait_for_recovery()
        assert sleeps == [300.0]
