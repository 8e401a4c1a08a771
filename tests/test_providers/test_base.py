"""Tests for TokenProvider caching, single-flight fetches and invalidation."""

from __future__ import annotations

import asyncio
import threading
import time
from typing import Optional

import pytest

from tokenauth.exceptions import TokenRequestError
from tokenauth.models import TokenResult
from tokenauth.providers.base import TokenProvider, coerce_token


class CountingProvider(TokenProvider):
    """Returns ``token-1``, ``token-2``, ... and counts fetches."""

    def __init__(
        self,
        expires_in: Optional[float] = None,
        refresh_margin: float = 0.0,
        delay: float = 0.0,
    ) -> None:
        super().__init__(refresh_margin=refresh_margin)
        self.calls = 0
        self._expires_in = expires_in
        self._delay = delay

    @property
    def provider_type(self) -> str:
        return "counting"

    def request_token(self) -> TokenResult:
        self.calls += 1
        if self._delay:
            time.sleep(self._delay)
        return TokenResult(token=f"token-{self.calls}", expires_in=self._expires_in)


class AsyncCountingProvider(CountingProvider):
    async def arequest_token(self) -> TokenResult:
        self.calls += 1
        await asyncio.sleep(0.01)
        return TokenResult(token=f"token-{self.calls}", expires_in=self._expires_in)


# ---------------------------------------------------------------------------
# coerce_token
# ---------------------------------------------------------------------------


class TestCoerceToken:
    def test_string_is_stripped(self) -> None:
        result = coerce_token("  abc\n")
        assert result.token == "abc"
        assert result.token_type is None

    def test_token_result_passes_through(self) -> None:
        token = TokenResult(token="abc", token_type="MAC")
        assert coerce_token(token, token_type="Bearer") is token

    def test_mapping_uses_oauth2_keys(self) -> None:
        result = coerce_token({"access_token": "abc", "token_type": "bearer", "expires_in": 60})
        assert result.token == "abc"
        assert result.token_type == "bearer"
        assert result.expires_in == 60

    def test_defaults_fill_missing_fields(self) -> None:
        result = coerce_token({"access_token": "abc"}, token_type="MAC", expires_in=300)
        assert result.token_type == "MAC"
        assert result.expires_in == 300

    def test_value_fields_beat_defaults(self) -> None:
        result = coerce_token(
            {"access_token": "abc", "token_type": "DPoP", "expires_in": 5},
            token_type="MAC",
            expires_in=300,
        )
        assert result.token_type == "DPoP"
        assert result.expires_in == 5

    @pytest.mark.parametrize("value", ["", "   ", {"access_token": ""}, {"token_type": "Bearer"}])
    def test_empty_or_missing_token_rejected(self, value: object) -> None:
        with pytest.raises(TokenRequestError, match="Invalid token response"):
            coerce_token(value)

    def test_unsupported_type_rejected(self) -> None:
        with pytest.raises(TokenRequestError, match="int"):
            coerce_token(42)


# ---------------------------------------------------------------------------
# Caching
# ---------------------------------------------------------------------------


class TestCaching:
    def test_token_is_cached(self) -> None:
        provider = CountingProvider()
        assert provider.get_token().token == "token-1"
        assert provider.get_token().token == "token-1"
        assert provider.calls == 1
        assert provider.cached_token is not None

    def test_clear_forces_refetch(self) -> None:
        provider = CountingProvider()
        provider.get_token()
        provider.clear_token()
        assert provider.cached_token is None
        assert provider.get_token().token == "token-2"

    def test_clear_with_stale_token_keeps_newer_cache(self) -> None:
        provider = CountingProvider()
        stale = provider.get_token()
        provider.clear_token(stale)
        fresh = provider.get_token()

        provider.clear_token(stale)

        assert provider.cached_token == fresh
        assert provider.calls == 2

    def test_clear_with_current_token_drops_cache(self) -> None:
        provider = CountingProvider()
        current = provider.get_token()
        provider.clear_token(current)
        assert provider.cached_token is None

    def test_clear_on_empty_cache_is_noop(self) -> None:
        provider = CountingProvider()
        provider.clear_token(TokenResult(token="never-issued"))
        assert provider.cached_token is None
        assert provider.calls == 0

    def test_expired_token_is_refetched(self) -> None:
        provider = CountingProvider(expires_in=0.0)
        provider.get_token()
        assert provider.get_token().token == "token-2"

    def test_refresh_margin_refetches_early(self) -> None:
        provider = CountingProvider(expires_in=10.0, refresh_margin=30.0)
        provider.get_token()
        provider.get_token()
        assert provider.calls == 2

    def test_token_within_lifetime_is_reused(self) -> None:
        provider = CountingProvider(expires_in=3600.0, refresh_margin=30.0)
        provider.get_token()
        provider.get_token()
        assert provider.calls == 1

    def test_failed_fetch_leaves_cache_empty(self) -> None:
        class Flaky(CountingProvider):
            def request_token(self) -> TokenResult:
                self.calls += 1
                if self.calls == 1:
                    raise TokenRequestError("temporarily unavailable")
                return TokenResult(token="recovered")

        provider = Flaky()
        with pytest.raises(TokenRequestError):
            provider.get_token()
        assert provider.cached_token is None
        assert provider.get_token().token == "recovered"

    def test_fetch_is_logged_in_verbose_mode(
        self, verbose_output, capsys: pytest.CaptureFixture[str]
    ) -> None:
        CountingProvider().get_token()
        assert "Requesting token from counting provider" in capsys.readouterr().err


# ---------------------------------------------------------------------------
# Single flight
# ---------------------------------------------------------------------------


class TestSingleFlight:
    def test_threads_share_one_fetch(self) -> None:
        provider = CountingProvider(delay=0.05)
        results: list[str] = []
        lock = threading.Lock()

        def worker() -> None:
            token = provider.get_token().token
            with lock:
                results.append(token)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert provider.calls == 1
        assert results == ["token-1"] * 8

    @pytest.mark.asyncio
    async def test_tasks_share_one_fetch(self) -> None:
        provider = AsyncCountingProvider()

        tokens = await asyncio.gather(*(provider.aget_token() for _ in range(10)))

        assert provider.calls == 1
        assert {t.token for t in tokens} == {"token-1"}

    @pytest.mark.asyncio
    async def test_default_async_fetch_runs_sync_source(self) -> None:
        provider = CountingProvider(delay=0.01)

        tokens = await asyncio.gather(*(provider.aget_token() for _ in range(4)))

        assert provider.calls == 1
        assert {t.token for t in tokens} == {"token-1"}

    @pytest.mark.asyncio
    async def test_cancelled_fetch_leaves_cache_empty(self) -> None:
        started = asyncio.Event()

        class Slow(AsyncCountingProvider):
            async def arequest_token(self) -> TokenResult:
                started.set()
                await asyncio.sleep(30)
                return TokenResult(token="late")

        provider = Slow()
        task = asyncio.create_task(provider.aget_token())
        await started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert provider.cached_token is None

    @pytest.mark.asyncio
    async def test_async_clear_is_compare_and_clear(self) -> None:
        provider = AsyncCountingProvider()
        stale = await provider.aget_token()
        await provider.aclear_token(stale)
        fresh = await provider.aget_token()

        await provider.aclear_token(stale)

        assert provider.cached_token == fresh

    def test_async_lock_survives_separate_event_loops(self) -> None:
        provider = AsyncCountingProvider()

        first = asyncio.run(provider.aget_token())
        provider.clear_token()
        second = asyncio.run(provider.aget_token())

        assert first.token == "token-1"
        assert second.token == "token-2"
