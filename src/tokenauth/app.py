"""Typer application and CLI entry point for tokenauth.

The CLI is a thin composition root around the library: it loads the config
file, builds a :class:`~tokenauth.registry.ProviderRegistry`, and sends
requests through an :mod:`httpx` client carrying a
:class:`~tokenauth.handler.TokenAuth`.  It is handy for checking that a
target's credential source works and that the server accepts its tokens::

    tokenauth targets
    tokenauth token billing
    tokenauth -t billing request GET /invoices

:func:`main` is the console-script entry point.  Unhandled
:class:`~tokenauth.exceptions.TokenAuthError` instances cause a clean exit
with the error's ``exit_code``; any other exception writes a crash log under
the data directory.
"""

from __future__ import annotations

import json
import signal
import sys
import traceback
from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional

import httpx
import typer

from tokenauth import __version__
from tokenauth.exit_codes import EXIT_GENERIC_FAILURE

if TYPE_CHECKING:
    from tokenauth.models import GlobalConfig, TargetConfig


app = typer.Typer(
    name="tokenauth",
    help="Send HTTP requests with automatically refreshed bearer tokens.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Eager ``--version`` handler."""
    if value:
        typer.echo(f"tokenauth {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    config_path: Optional[str] = typer.Option(
        None, "--config", "-c", help="Path to the config file."
    ),
    target: Optional[str] = typer.Option(
        None, "--target", "-t", help="Target name to use."
    ),
    json_output: bool = typer.Option(
        False, "--json", help="Print response bodies and tables as JSON."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Print tab-separated text, even on a terminal."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Never colourise output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Hide the HTTP status line and other status messages."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Trace token fetches and retries on stderr."
    ),
) -> None:
    """Apply global flags before any command runs.

    Installs the global :class:`~tokenauth.output.OutputManager` from the
    output flags and stores ``config_path`` and ``target`` in ``ctx.obj``.
    """
    from tokenauth.output import OutputFormat, OutputManager, set_output

    if json_output:
        selected = OutputFormat.JSON
    else:
        selected = OutputFormat.PLAIN if plain_output else OutputFormat.AUTO
    set_output(OutputManager(format=selected, no_color=no_color, quiet=quiet, verbose=verbose))

    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["target"] = target


# ------------------------------------------------------------------ #
# Commands
# ------------------------------------------------------------------ #


@app.command("request")
def request_command(
    ctx: typer.Context,
    method: str = typer.Argument(help="HTTP method, e.g. GET or POST."),
    path: str = typer.Argument(help="Path relative to the target's base URL, or a full URL."),
    header: Optional[list[str]] = typer.Option(
        None, "--header", "-H", help="Extra header as 'Name: value'. Repeatable."
    ),
    data: Optional[str] = typer.Option(
        None, "--data", "-d", help="Request body; sent as JSON when it parses as JSON."
    ),
) -> None:
    """Send one request to the selected target.

    The status line goes to stderr and the body to stdout.  A final 401/403
    exits with code 3, 404 with 4, other errors with 5, network failures
    with 6.
    """
    from tokenauth.client import create_client
    from tokenauth.exceptions import ConnectionError_
    from tokenauth.output import debug
    from tokenauth.registry import create_registry
    from tokenauth.response import format_api_response, raise_for_status

    config, target = _load_target(ctx.obj)
    registry = create_registry(config)
    headers = _parse_headers(header or [])

    body_kwargs: dict[str, Any] = {}
    if data is not None:
        try:
            body_kwargs["json"] = json.loads(data)
        except json.JSONDecodeError:
            body_kwargs["content"] = data

    debug(f"Sending {method.upper()} {path} to target '{target.name}'")
    try:
        with create_client(target, registry) as client:
            response = client.request(method.upper(), path, headers=headers, **body_kwargs)
    except httpx.TransportError as exc:
        raise ConnectionError_(f"Request failed: {exc}") from exc

    format_api_response(response)
    raise_for_status(response)


@app.command("targets")
def targets_command(ctx: typer.Context) -> None:
    """List the configured targets."""
    from tokenauth.config import load_config, resolve_config_path
    from tokenauth.output import info, print_table

    path = resolve_config_path(ctx.obj.get("config_path"))
    config = load_config(path)
    if not config.targets:
        info(f"No targets configured in {path}")
        return

    rows = [
        [
            name,
            target.base_url or "",
            target.provider.type,
            "*" if name == config.default_target else "",
        ]
        for name, target in sorted(config.targets.items())
    ]
    print_table(["name", "base_url", "provider", "default"], rows, title="Targets")


@app.command("token")
def token_command(
    ctx: typer.Context,
    target_name: Optional[str] = typer.Argument(
        None, help="Target name; defaults to --target or the configured default."
    ),
    show: bool = typer.Option(False, "--show", help="Print the full token."),
) -> None:
    """Fetch a token for a target and print it (masked unless --show)."""
    from tokenauth.output import print_table
    from tokenauth.registry import create_registry

    config, target = _load_target(ctx.obj, target_name)
    provider = create_registry(config).get(target.name)
    token = provider.get_token()

    value = token.token if show else _mask(token.token)
    expires = "" if token.expires_in is None else f"{token.expires_in:g}s"
    print_table(
        ["target", "type", "token", "expires_in"],
        [[target.name, token.scheme, value, expires]],
    )


# ------------------------------------------------------------------ #
# Helpers
# ------------------------------------------------------------------ #


def _load_target(
    obj: dict[str, Any], name: Optional[str] = None
) -> tuple[GlobalConfig, TargetConfig]:
    """Load the config file and select a target (argument, then --target, then default)."""
    from tokenauth.config import load_config, resolve_config_path, resolve_target

    config = load_config(resolve_config_path(obj.get("config_path")))
    return config, resolve_target(config, name or obj.get("target"))


def _parse_headers(values: list[str]) -> dict[str, str]:
    """Parse repeated ``Name: value`` options into a dict."""
    from tokenauth.exceptions import InvalidUsageError

    headers: dict[str, str] = {}
    for raw in values:
        name, sep, value = raw.partition(":")
        if not sep or not name.strip():
            raise InvalidUsageError(f"Invalid header '{raw}', expected 'Name: value'")
        headers[name.strip()] = value.strip()
    return headers


def _mask(token: str) -> str:
    """Mask all but the first four characters of *token*."""
    if len(token) <= 8:
        return "****"
    return f"{token[:4]}****"


def _setup_signal_handlers() -> None:
    """Exit with status 130 on SIGINT, without a traceback."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from tokenauth.config import get_data_dir

    log_path = get_data_dir() / "logs" / datetime.now().strftime("crash-%Y%m%d-%H%M%S.log")
    log_path.parent.mkdir(parents=True, exist_ok=True)
    log_path.write_text(
        "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    )
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``tokenauth`` console script.

    Unhandled :class:`~tokenauth.exceptions.TokenAuthError` instances cause
    a clean exit with the error's ``exit_code``.  All other exceptions
    leave a traceback in ``<data_dir>/logs`` and exit with status 1.

    Raises:
        SystemExit: Always.
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from tokenauth.exceptions import TokenAuthError
        from tokenauth.output import error

        if isinstance(exc, TokenAuthError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
