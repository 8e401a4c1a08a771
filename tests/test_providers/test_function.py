"""Tests for FunctionTokenProvider."""

from __future__ import annotations

import functools

import pytest

from tokenauth.exceptions import InvalidUsageError, TokenRequestError
from tokenauth.models import TokenResult
from tokenauth.providers.function import FunctionTokenProvider


def test_string_result() -> None:
    provider = FunctionTokenProvider(lambda: "abc")
    assert provider.get_token().authorization == "Bearer abc"
    assert provider.provider_type == "function"


def test_token_result_passthrough() -> None:
    issued = TokenResult(token="abc", token_type="MAC")
    assert FunctionTokenProvider(lambda: issued).get_token() is issued


def test_mapping_result_with_defaults() -> None:
    provider = FunctionTokenProvider(lambda: {"access_token": "abc"}, token_type="DPoP")
    assert provider.get_token().authorization == "DPoP abc"


def test_function_called_once_until_cleared() -> None:
    calls: list[int] = []

    def issue() -> str:
        calls.append(1)
        return f"token-{len(calls)}"

    provider = FunctionTokenProvider(issue)
    first = provider.get_token()
    provider.get_token()
    provider.clear_token(first)

    assert provider.get_token().token == "token-2"
    assert len(calls) == 2


def test_unusable_result() -> None:
    with pytest.raises(TokenRequestError):
        FunctionTokenProvider(lambda: None).get_token()


def test_function_errors_propagate() -> None:
    def broken() -> str:
        raise RuntimeError("vault sealed")

    with pytest.raises(RuntimeError, match="vault sealed"):
        FunctionTokenProvider(broken).get_token()


def test_coroutine_function_needs_async_path() -> None:
    async def issue() -> str:
        return "abc"

    with pytest.raises(InvalidUsageError, match="AsyncClient"):
        FunctionTokenProvider(issue).get_token()


@pytest.mark.asyncio
async def test_coroutine_function_is_awaited() -> None:
    async def issue() -> dict:
        return {"access_token": "abc", "expires_in": 60}

    token = await FunctionTokenProvider(issue).aget_token()
    assert token.token == "abc"
    assert token.expires_in == 60


@pytest.mark.asyncio
async def test_plain_function_on_async_path() -> None:
    token = await FunctionTokenProvider(lambda: "abc").aget_token()
    assert token.token == "abc"


class _AsyncIssuer:
    async def __call__(self) -> str:
        return "from-call"


async def _issue_for(audience: str) -> str:
    return f"token-{audience}"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("func", "expected"),
    [
        (functools.partial(_issue_for, "billing"), "token-billing"),
        (_AsyncIssuer(), "from-call"),
    ],
)
async def test_wrapped_async_callables_are_awaited(func, expected: str) -> None:
    token = await FunctionTokenProvider(func).aget_token()
    assert token.token == expected


@pytest.mark.filterwarnings("error::RuntimeWarning")
@pytest.mark.parametrize(
    "func",
    [functools.partial(_issue_for, "billing"), _AsyncIssuer(), lambda: _issue_for("users")],
)
def test_wrapped_async_callables_rejected_on_sync_path(func) -> None:
    with pytest.raises(InvalidUsageError, match="AsyncClient"):
        FunctionTokenProvider(func).get_token()
