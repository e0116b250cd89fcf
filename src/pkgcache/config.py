"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles the persistent configuration of pkgcache:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.pkgcache/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_cache_dir`.
* **Config file** -- a single :class:`~pkgcache.models.CacheConfig` JSON
  file. See :func:`load_config` and :func:`save_config`.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables, the config file and defaults.

File writes go through :func:`_atomic_write` (temp file, fsync, rename) so a
crash never leaves a half-written config behind.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from pkgcache.exceptions import ConfigError
from pkgcache.models import CacheConfig

_APP_NAME = "pkgcache"
_CONFIG_FILENAME = "config.json"

ENV_CACHE_DIR = "PKGCACHE_DIR"
ENV_MAX_AGE = "PKGCACHE_MAX_AGE"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
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

    On Linux/BSD: ``$XDG_CONFIG_HOME/pkgcache/`` (default ``~/.config/pkgcache/``).
    On macOS/Windows: ``~/.pkgcache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_cache_dir() -> Path:
    """Return the root cache directory, creating it if necessary.

    Every namespace lives in its own sub-directory. The whole tree can be
    deleted at any time; namespaces are re-provisioned on next use.

    On Linux/BSD: ``$XDG_CACHE_HOME/pkgcache/`` (default ``~/.cache/pkgcache/``).
    On macOS/Windows: ``~/.pkgcache/cache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CACHE_HOME", (".cache",)) / _APP_NAME
    else:
        path = _fallback_base_dir() / "cache"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write *data* to *path* atomically using a sibling temp file and ``os.replace``."""
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


# --- Config file ---


def config_path() -> Path:
    """Path to the config file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_config() -> CacheConfig:
    """Load the configuration from the config directory.

    Returns:
        The deserialised :class:`~pkgcache.models.CacheConfig`, or a default
        instance when the file does not exist.

    Raises:
        ConfigError: If the file exists but holds invalid JSON or fails
            validation.
    """
    path = config_path()
    if not path.is_file():
        return CacheConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return CacheConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc


def save_config(config: CacheConfig) -> None:
    """Persist *config* atomically to the config file."""
    data = config.model_dump(mode="json")
    _atomic_write(config_path(), json.dumps(data, indent=2) + "\n")


# --- Precedence resolution ---


def resolve_config(
    cli_root: Optional[str] = None,
    cli_max_age: Optional[str] = None,
) -> CacheConfig:
    """Resolve the effective configuration.

    Precedence (high to low):
        1. CLI flags (``cli_root``, ``cli_max_age``)
        2. Environment variables (``PKGCACHE_DIR``, ``PKGCACHE_MAX_AGE``)
        3. Config file (``~/.config/pkgcache/config.json``)
        4. Defaults

    The default age threshold is validated here so that a bad value fails
    at startup rather than on the first read.

    Raises:
        ConfigError: If the config file is invalid or the resolved
            ``default_max_age`` cannot be parsed.
    """
    from pkgcache.durations import parse_duration
    from pkgcache.exceptions import InvalidArgumentError

    config = load_config()

    env_root = os.environ.get(ENV_CACHE_DIR)
    if cli_root is not None:
        config.root_dir = cli_root
    elif env_root:
        config.root_dir = env_root

    env_max_age = os.environ.get(ENV_MAX_AGE)
    if cli_max_age is not None:
        config.default_max_age = cli_max_age
    elif env_max_age:
        config.default_max_age = env_max_age

    try:
        parse_duration(config.default_max_age)
    except InvalidArgumentError as exc:
        raise ConfigError(f"Invalid default_max_age: {exc}") from exc

    return config


def resolve_cache_root(config: CacheConfig) -> Path:
    """Return the directory namespaces are stored under for *config*."""
    if config.root_dir:
        path = Path(config.root_dir).expanduser()
        path.mkdir(parents=True, exist_ok=True)
        return path
    return get_cache_dir()
