"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for paymo:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.paymo/`` on macOS and Windows. See :func:`get_config_dir`,
  :func:`get_cache_dir`, :func:`get_data_dir`.
* **Global config** -- A single :class:`~paymo.models.GlobalConfig`
  JSON file storing API and cache settings.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables and the config file into the effective settings.
* **Credential resolution** -- :func:`resolve_credential` reads the API key
  from an env var or a file.

All file writes use an atomic temp-file-then-rename strategy
(:func:`atomic_write`); the cache store relies on it too, so that a crash
mid-flush never leaves a torn ``cache.json`` behind.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from paymo.exceptions import ConfigError
from paymo.models import GlobalConfig

_APP_NAME = "paymo"
_CONFIG_FILENAME = "config.json"
_CACHE_FILENAME = "cache.json"

_TRUTHY = ("1", "true", "yes", "on")


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory layout (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/paymo/`` (default ``~/.config/paymo/``).
    On macOS/Windows: ``~/.paymo/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_cache_dir() -> Path:
    """Return the cache directory, creating it if necessary.

    The cache can be deleted at any time; it only ever holds copies of
    data that lives on the Paymo server.

    On Linux/BSD: ``$XDG_CACHE_HOME/paymo/`` (default ``~/.cache/paymo/``).
    On macOS/Windows: ``~/.paymo/cache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CACHE_HOME", (".cache",)) / _APP_NAME
    else:
        path = _fallback_base_dir() / "cache"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/paymo/`` (default ``~/.local/share/paymo/``).
    On macOS/Windows: ``~/.paymo/logs/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_cache_path() -> Path:
    """Return the path of the persisted cache document (may not exist yet)."""
    return get_cache_dir() / _CACHE_FILENAME


# --- Atomic file writes ---


def atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. On any failure the
    temp file is removed and the exception re-raised.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Global config ---


def _global_config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration from the config directory.

    Returns:
        The deserialised :class:`~paymo.models.GlobalConfig`, or a default
        instance when the file does not exist.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc


# --- Precedence resolution ---


def resolve_config(
    cli_base_url: Optional[str] = None,
    cli_no_cache: bool = False,
) -> GlobalConfig:
    """Resolve config with full precedence chain.

    Precedence (high to low):
        1. CLI flags (``--base-url``, ``--no-cache``)
        2. Environment variables (``PAYMO_BASE_URL``, ``PAYMO_NO_CACHE``)
        3. User config (``~/.config/paymo/config.json``)
        4. Defaults

    Returns:
        The effective :class:`~paymo.models.GlobalConfig`.
    """
    config = load_global_config()

    env_base_url = os.environ.get("PAYMO_BASE_URL")
    if cli_base_url is not None:
        config.api.base_url = cli_base_url
    elif env_base_url:
        config.api.base_url = env_base_url

    env_no_cache = os.environ.get("PAYMO_NO_CACHE", "").lower() in _TRUTHY
    if cli_no_cache or env_no_cache:
        config.cache.enabled = False

    return config


# --- Credential source resolution ---


def resolve_credential(source: str) -> str:
    """Resolve a credential from its source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads file content, stripped of whitespace

    Raises:
        ConfigError: If the source can't be resolved.
    """
    if source.startswith("env:"):
        var_name = source[4:]
        value = os.environ.get(var_name)
        if not value:
            raise ConfigError(
                f"Environment variable '{var_name}' is not set (source: {source})"
            )
        return value

    if source.startswith("file:"):
        path = Path(source[5:]).expanduser()
        if not path.is_file():
            raise ConfigError(f"Credential file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc

    raise ConfigError(f"Unknown credential source format: {source}")


def resolve_api_key(config: GlobalConfig) -> str:
    """Return the API key, preferring ``PAYMO_API_KEY`` over the configured source."""
    env_key = os.environ.get("PAYMO_API_KEY")
    if env_key:
        return env_key
    try:
        return resolve_credential(config.api.api_key_source)
    except ConfigError as exc:
        raise ConfigError(
            f"Not authenticated: {exc}. Set PAYMO_API_KEY or api.api_key_source."
        ) from exc
