"""Token provider that runs an external command.

Many platforms ship a CLI that prints a short-lived access token, e.g.
``gcloud auth print-access-token`` or ``az account get-access-token``.
:class:`CommandTokenProvider` runs such a command whenever the cached token
is missing, expired, or has been rejected by the server.

The command's stdout is interpreted as either:

* a raw token string (surrounding whitespace stripped), or
* a JSON object shaped like an OAuth2 token response, with at least
  ``access_token`` and optionally ``token_type`` and ``expires_in``.

The command is executed directly (no shell).  On the async path it is
spawned with :func:`asyncio.create_subprocess_exec` and killed if the
awaiting task is cancelled.
"""

from __future__ import annotations

import asyncio
import json
import subprocess
from typing import Any, Optional

from tokenauth.exceptions import ConfigError, TokenRequestError
from tokenauth.models import TokenResult
from tokenauth.providers.base import TokenProvider, coerce_token


class CommandTokenProvider(TokenProvider):
    """Obtain tokens by running a command.

    Args:
        command: The argv to execute, e.g. ``["gcloud", "auth", "print-access-token"]``.
        token_type: Authorization scheme used when the output does not name one.
        expires_in: Cache lifetime used when the output does not carry one.
        timeout: Seconds to wait for the command before giving up.
        refresh_margin: See :class:`~tokenauth.providers.base.TokenProvider`.

    Raises:
        ConfigError: If *command* is empty.
    """

    def __init__(
        self,
        command: list[str],
        token_type: Optional[str] = None,
        expires_in: Optional[float] = None,
        timeout: float = 30.0,
        refresh_margin: float = 30.0,
    ) -> None:
        if not command:
            raise ConfigError("Command token provider requires a non-empty 'command'")
        super().__init__(refresh_margin=refresh_margin)
        self._command = list(command)
        self._token_type = token_type
        self._expires_in = expires_in
        self._timeout = timeout

    @property
    def provider_type(self) -> str:
        return "command"

    @property
    def command(self) -> list[str]:
        return list(self._command)

    def request_token(self) -> TokenResult:
        """Run the command synchronously and parse its output.

        Raises:
            TokenRequestError: If the command is missing, times out, exits
                non-zero, or prints nothing usable.
        """
        try:
            completed = subprocess.run(
                self._command,
                capture_output=True,
                text=True,
                timeout=self._timeout,
                check=False,
            )
        except FileNotFoundError as exc:
            raise TokenRequestError(f"Token command not found: {self._command[0]}") from exc
        except subprocess.TimeoutExpired as exc:
            raise TokenRequestError(
                f"Token command timed out after {self._timeout}s: {self._display()}"
            ) from exc
        return self._parse(completed.returncode, completed.stdout, completed.stderr)

    async def arequest_token(self) -> TokenResult:
        """Run the command as an asyncio subprocess and parse its output."""
        try:
            proc = await asyncio.create_subprocess_exec(
                *self._command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise TokenRequestError(f"Token command not found: {self._command[0]}") from exc

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            proc.kill()
            await proc.wait()
            raise TokenRequestError(
                f"Token command timed out after {self._timeout}s: {self._display()}"
            ) from exc
        except BaseException:
            if proc.returncode is None:
                proc.kill()
            raise

        return self._parse(
            proc.returncode if proc.returncode is not None else -1,
            stdout.decode("utf-8", errors="replace"),
            stderr.decode("utf-8", errors="replace"),
        )

    def _parse(self, returncode: int, stdout: str, stderr: str) -> TokenResult:
        if returncode != 0:
            detail = stderr.strip()[:200]
            message = f"Token command exited with status {returncode}: {self._display()}"
            raise TokenRequestError(f"{message}: {detail}" if detail else message)

        text = stdout.strip()
        if not text:
            raise TokenRequestError(f"Token command printed no token: {self._display()}")

        value: Any = text
        if text.startswith("{"):
            try:
                value = json.loads(text)
            except json.JSONDecodeError as exc:
                raise TokenRequestError(
                    f"Token command printed invalid JSON: {exc.msg}"
                ) from exc
        return coerce_token(value, self._token_type, self._expires_in)

    def _display(self) -> str:
        return " ".join(self._command)
