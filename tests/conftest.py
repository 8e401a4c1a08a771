"""Fixtures shared by the tokenauth test suite."""

from __future__ import annotations

from pathlib import Path

import pytest

from tokenauth.output import OutputFormat, OutputManager, reset_output, set_output


@pytest.fixture(autouse=True)
def _fresh_output() -> None:
    # A manager built under CliRunner or capfd holds streams that die with the test.
    yield
    reset_output()


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the config and data directories into *tmp_path*.

    Layout: ``tmp_path/config/tokenauth`` and ``tmp_path/data/tokenauth``.
    ``TOKENAUTH_CONFIG`` is unset and the working directory is *tmp_path*.
    """
    monkeypatch.setattr("tokenauth.config._is_xdg_platform", lambda: True)
    for env_var, sub in (("XDG_CONFIG_HOME", "config"), ("XDG_DATA_HOME", "data")):
        monkeypatch.setenv(env_var, str(tmp_path / sub))
    monkeypatch.delenv("TOKENAUTH_CONFIG", raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


def _install(**flags: bool) -> OutputManager:
    manager = OutputManager(format=OutputFormat.PLAIN, no_color=True, **flags)
    set_output(manager)
    return manager


@pytest.fixture
def quiet_output() -> OutputManager:
    yield _install(quiet=True)
    reset_output()


@pytest.fixture
def verbose_output() -> OutputManager:
    """Plain manager with ``debug`` enabled, so interceptor traces reach stderr."""
    yield _install(verbose=True)
    reset_output()


@pytest.fixture
def cli_runner():
    from typer.testing import CliRunner

    return CliRunner()
