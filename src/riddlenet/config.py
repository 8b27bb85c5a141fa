"""Settings management with XDG paths, atomic writes, and precedence resolution.

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.riddlenet/`` on macOS and Windows. See :func:`get_config_dir`,
  :func:`get_cache_dir` and :func:`get_data_dir`.
* **Settings file** -- a single :class:`~riddlenet.models.Settings` JSON
  document at ``<config_dir>/config.json``, written atomically.
* **Precedence** -- :func:`resolve_settings` layers CLI flags, environment
  variables and the settings file over the defaults.

Environment variables:

=============================  ==========================================
``RIDDLENET_BASE_URL``         server base URL
``BASE_RIDDLES_SERVER_URL``    server base URL (used when the above is unset)
``RIDDLENET_TIMEOUT``          per-attempt timeout in seconds
``RIDDLENET_MAX_RETRIES``      retries after the first attempt
``RIDDLENET_CACHE_ENABLED``    ``0``/``false``/``no``/``off`` disables disk caching
``RIDDLENET_CACHE_DIR``        cache directory
=============================  ==========================================
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from riddlenet.exceptions import ConfigError
from riddlenet.models import Settings

_APP_NAME = "riddlenet"
_CONFIG_FILENAME = "config.json"

_FALSY = {"0", "false", "no", "off"}


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform uses XDG Base Directory paths (Linux/BSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/riddlenet/`` (default ``~/.config/riddlenet/``).
    On macOS/Windows: ``~/.riddlenet/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_cache_dir() -> Path:
    """Return the cache directory, creating it if necessary.

    Holds the diskcache store of server responses; it can be deleted at any
    time.

    On Linux/BSD: ``$XDG_CACHE_HOME/riddlenet/`` (default ``~/.cache/riddlenet/``).
    On macOS/Windows: ``~/.riddlenet/cache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CACHE_HOME", (".cache",)) / _APP_NAME
    else:
        path = _fallback_base_dir() / "cache"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs live in ``logs/``), creating it if necessary."""
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def default_cache_store_dir() -> Path:
    """Directory of the response store inside :func:`get_cache_dir`."""
    return get_cache_dir() / "responses"


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write *data* to *path* via a temp file in the same directory and ``os.replace``."""
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


# --- Settings file ---


def settings_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_settings_file() -> Settings:
    """Load the settings file, or return defaults when it does not exist.

    Raises:
        ConfigError: If the file contains invalid JSON or fails validation.
    """
    path = settings_path()
    if not path.is_file():
        return Settings()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return Settings.model_validate(data)
    except (json.JSONDecodeError, PydanticValidationError) as exc:
        raise ConfigError(f"Invalid settings at {path}: {exc}") from exc


def save_settings(settings: Settings) -> Path:
    """Persist *settings* atomically and return the file path."""
    path = settings_path()
    data = settings.model_dump(mode="json")
    _atomic_write(path, json.dumps(data, indent=2) + "\n")
    return path


# --- Precedence resolution ---


def _env_overrides() -> dict[str, Any]:
    """Collect overrides from environment variables as a nested settings dict."""
    overrides: dict[str, Any] = {"request": {}, "cache": {}}

    base_url = os.environ.get("RIDDLENET_BASE_URL") or os.environ.get("BASE_RIDDLES_SERVER_URL")
    if base_url:
        overrides["base_url"] = base_url

    timeout = os.environ.get("RIDDLENET_TIMEOUT")
    if timeout:
        try:
            overrides["request"]["timeout"] = float(timeout)
        except ValueError as exc:
            raise ConfigError(f"RIDDLENET_TIMEOUT must be a number, got {timeout!r}") from exc

    retries = os.environ.get("RIDDLENET_MAX_RETRIES")
    if retries:
        try:
            overrides["request"]["max_retries"] = int(retries)
        except ValueError as exc:
            raise ConfigError(
                f"RIDDLENET_MAX_RETRIES must be an integer, got {retries!r}"
            ) from exc

    enabled = os.environ.get("RIDDLENET_CACHE_ENABLED")
    if enabled:
        overrides["cache"]["enabled"] = enabled.strip().lower() not in _FALSY

    cache_dir = os.environ.get("RIDDLENET_CACHE_DIR")
    if cache_dir:
        overrides["cache"]["directory"] = cache_dir

    return overrides


def _merge(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def resolve_settings(
    cli_base_url: Optional[str] = None,
    cli_timeout: Optional[float] = None,
    cli_max_retries: Optional[int] = None,
    cli_no_cache: bool = False,
) -> Settings:
    """Resolve the effective settings.

    Precedence (high to low):
        1. CLI flags
        2. Environment variables (see module docstring)
        3. Settings file (``~/.config/riddlenet/config.json``)
        4. Defaults

    Raises:
        ConfigError: If any layer holds an invalid value.
    """
    data = load_settings_file().model_dump(mode="json")
    data = _merge(data, _env_overrides())

    cli: dict[str, Any] = {"request": {}, "cache": {}}
    if cli_base_url is not None:
        cli["base_url"] = cli_base_url
    if cli_timeout is not None:
        cli["request"]["timeout"] = cli_timeout
    if cli_max_retries is not None:
        cli["request"]["max_retries"] = cli_max_retries
    if cli_no_cache:
        cli["cache"]["enabled"] = False
    data = _merge(data, cli)

    try:
        return Settings.model_validate(data)
    except PydanticValidationError as exc:
        raise ConfigError(f"Invalid settings: {exc}") from exc
