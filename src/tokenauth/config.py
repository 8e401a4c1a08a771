"""Where tokenauth keeps its config file, and how it reads and writes it.

The config file is a JSON rendering of :class:`~tokenauth.models.GlobalConfig`:
a map of named API targets, each with a base URL and a token provider.

Lookup order for the file is ``--config``, then ``$TOKENAUTH_CONFIG``, then
``config.json`` in the per-user config directory (XDG on Linux and BSD,
``~/.tokenauth`` elsewhere).  Provider secrets are never stored in the file
itself, only a source descriptor handled by :func:`resolve_credential`.
"""

from __future__ import annotations

import getpass
import json
import os
import platform
import sys
import tempfile
from pathlib import Path
from typing import Any, Optional

from tokenauth.exceptions import ConfigError
from tokenauth.models import GlobalConfig, TargetConfig

_APP_NAME = "tokenauth"
_CONFIG_FILENAME = "config.json"
_CONFIG_ENV_VAR = "TOKENAUTH_CONFIG"

# env var, default location relative to $HOME, subdirectory of ~/.tokenauth
_DIRS: dict[str, tuple[str, tuple[str, ...], tuple[str, ...]]] = {
    "config": ("XDG_CONFIG_HOME", (".config",), ()),
    "data": ("XDG_DATA_HOME", (".local", "share"), ("data",)),
}


def _is_xdg_platform() -> bool:
    system = platform.system()
    return system == "Linux" or system.endswith("BSD")


def _user_dir(kind: str) -> Path:
    env_var, xdg_default, fallback = _DIRS[kind]
    if _is_xdg_platform():
        root = os.environ.get(env_var) or str(Path.home().joinpath(*xdg_default))
        path = Path(root) / _APP_NAME
    else:
        path = Path.home().joinpath(f".{_APP_NAME}", *fallback)
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_dir() -> Path:
    """Directory holding ``config.json``.  Created on first use."""
    return _user_dir("config")


def get_data_dir() -> Path:
    """Directory for crash logs.  Created on first use."""
    return _user_dir("data")


def _atomic_write(path: Path, data: str) -> None:
    """Replace *path* with *data* in one rename.

    The file is private (``0o600``) because it may name credential files
    and commands.  On failure the temporary file is removed and the error
    re-raised.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.chmod(tmp_name, 0o600)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def resolve_config_path(cli_path: Optional[str] = None) -> Path:
    """Path of the config file: ``--config``, then ``$TOKENAUTH_CONFIG``, then the default.

    The returned file may not exist yet.
    """
    explicit = cli_path or os.environ.get(_CONFIG_ENV_VAR)
    if explicit:
        return Path(explicit).expanduser()
    return get_config_dir() / _CONFIG_FILENAME


def _with_target_names(raw: dict[str, Any]) -> dict[str, Any]:
    targets = raw.get("targets")
    for key, entry in (targets.items() if isinstance(targets, dict) else ()):
        if isinstance(entry, dict):
            entry.setdefault("name", key)
    return raw


def load_config(path: Optional[Path] = None) -> GlobalConfig:
    """Read and validate the config file.

    A missing file is an empty configuration.  Target entries that omit
    ``name`` take their key in the ``targets`` object.

    Raises:
        ConfigError: Malformed JSON, a non-object document, or a
            validation failure.
    """
    path = path or resolve_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ConfigError(f"Invalid config file {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")
    try:
        return GlobalConfig.model_validate(_with_target_names(raw))
    except ValueError as exc:
        raise ConfigError(f"Invalid config file {path}: {exc}") from exc


def save_config(config: GlobalConfig, path: Optional[Path] = None) -> None:
    payload = config.model_dump(mode="json", exclude_none=True)
    _atomic_write(path or resolve_config_path(), json.dumps(payload, indent=2) + "\n")


def resolve_target(config: GlobalConfig, name: Optional[str] = None) -> TargetConfig:
    """Pick the target to talk to.

    *name* wins, then ``default_target``; a config with exactly one target
    needs neither.

    Raises:
        ConfigError: Nothing selected, or the selected name is unknown.
    """
    if name is None:
        name = config.default_target
    if name is None and len(config.targets) == 1:
        (name,) = config.targets
    if name is None:
        raise ConfigError(
            "No target selected. Pass --target or set 'default_target' in the config file."
        )
    try:
        return config.targets[name]
    except KeyError:
        available = ", ".join(sorted(config.targets)) or "(none)"
        raise ConfigError(
            f"Target '{name}' is not configured. Available targets: {available}"
        ) from None


def _from_env(name: str) -> str:
    value = os.environ.get(name)
    if value is None:
        raise ConfigError(f"Environment variable '{name}' is not set (source: env:{name})")
    return value


def _from_file(location: str) -> str:
    path = Path(location).expanduser()
    if not path.is_file():
        raise ConfigError(f"Credential file not found: {path} (source: file:{location})")
    try:
        return path.read_text(encoding="utf-8").strip()
    except OSError as exc:
        raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc


def resolve_credential(source: str) -> str:
    """Turn a source descriptor into the secret it names.

    ``env:NAME`` reads an environment variable, ``file:PATH`` reads a file
    (``~`` expanded, surrounding whitespace stripped) and ``prompt`` asks on
    the terminal.

    Raises:
        ConfigError: The source is malformed or yields nothing.
    """
    if source == "prompt":
        if not sys.stdin.isatty():
            raise ConfigError("Cannot prompt for a token: stdin is not a TTY (source: prompt)")
        return getpass.getpass("Enter token: ")

    scheme, sep, rest = source.partition(":")
    if sep and scheme == "env":
        return _from_env(rest)
    if sep and scheme == "file":
        return _from_file(rest)
    raise ConfigError(f"Unknown credential source format: {source}")
