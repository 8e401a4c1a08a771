"""Response helpers for the CLI -- rendering and status-to-exception mapping.

:func:`format_api_response` routes a response body through
:meth:`~tokenauth.output.OutputManager.format_response` while emitting the
status line to stderr.  :func:`raise_for_status` maps an error status to
the matching :class:`~tokenauth.exceptions.TokenAuthError` subclass so the
CLI exits with a meaningful code.

These helpers are only used on the final response, after
:class:`~tokenauth.handler.TokenAuth` has already had its one retry.
"""

from __future__ import annotations

from typing import Any

import httpx

from tokenauth.exceptions import AuthError, NotFoundError, ServerError, TokenAuthError
from tokenauth.output import get_output


def format_api_response(response: httpx.Response) -> None:
    """Print the status line to stderr and the body to stdout."""
    output = get_output()
    output.info(f"HTTP {response.status_code} {response.reason_phrase or ''}".rstrip())

    content_type = response.headers.get("content-type", "application/json")
    data = extract_response_data(response)
    if data is not None:
        output.format_response(data, content_type)


def extract_response_data(response: httpx.Response) -> Any:
    """Decoded JSON body, else the text body, else ``None`` when empty."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


_STATUS_ERRORS: dict[int, type[TokenAuthError]] = {
    401: AuthError,
    403: AuthError,
    404: NotFoundError,
}


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        for key in ("message", "error", "detail"):
            if body.get(key):
                return str(body[key])
        return ""
    return str(body)


def raise_for_status(response: httpx.Response) -> None:
    """Raise the :class:`~tokenauth.exceptions.TokenAuthError` matching an error status.

    401 and 403 become :class:`AuthError`, 404 :class:`NotFoundError`, and
    any other status of 400 or above :class:`ServerError`.  The message
    carries the server's ``message``/``error``/``detail`` field when present.
    """
    if response.status_code < 400:
        return
    detail = _error_detail(response)
    message = f"HTTP {response.status_code}" + (f": {detail}" if detail else "")
    raise _STATUS_ERRORS.get(response.status_code, ServerError)(message)
