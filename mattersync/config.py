# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Client configuration.

Configuration is read from a YAML file whose default location follows
the XDG Base Directory Specification:

    ``$XDG_CONFIG_HOME/mattersync/mattersync.yaml``
    (typically ``~/.config/mattersync/mattersync.yaml``)

Values tagged ``!env VAR_NAME`` are resolved from the environment at
load time, after ``.env`` files have been loaded.  Example::

    server_url: https://chat.example.com
    token: !env MATTERMOST_TOKEN
    team: engineering
    sync:
      page_size: 200
      request_timeout: 30
    rate_limit:
      max_backoff: 60
      default_backoff: 1
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar, overload

import yaml
from platformdirs import user_config_path

from mattersync.dotenv_loader import load_dotenv_once
from mattersync.logging import SecretFilter


logger = logging.getLogger(__name__)

T = TypeVar("T")

_APP_NAME = "mattersync"

#: Largest page the server accepts for channel listings.
MAX_PAGE_SIZE = 200


def get_config_path() -> Path:
    """Return the default config file path (XDG)."""
    return user_config_path(_APP_NAME) / "mattersync.yaml"


def get_dotenv_path() -> Path:
    """Return the ``.env`` path inside the XDG config directory."""
    return user_config_path(_APP_NAME) / ".env"


class ConfigError(Exception):
    """Raised for missing or invalid configuration."""


# ---------------------------------------------------------------------------
# YAML loading
# ---------------------------------------------------------------------------


class _EnvVar:
    """Placeholder for an unresolved ``!env VAR_NAME`` tag."""

    def __init__(self, var_name: str) -> None:
        self.var_name = var_name


def _env_constructor(loader: yaml.SafeLoader, node: yaml.Node) -> _EnvVar:
    """Handle ``!env VAR_NAME`` in YAML."""
    value = loader.construct_scalar(node)  # type: ignore[arg-type]
    return _EnvVar(str(value))


def _make_loader() -> type[yaml.SafeLoader]:
    """Create a YAML loader that understands ``!env``."""

    class EnvLoader(yaml.SafeLoader):
        pass

    EnvLoader.add_constructor("!env", _env_constructor)
    return EnvLoader


def _raw_resolve(value: object) -> str | None:
    """Resolve an ``_EnvVar`` to its value, or stringify a literal.

    Returns None for a missing value or an unset environment variable.
    """
    if isinstance(value, _EnvVar):
        return os.environ.get(value.var_name)
    if value is None:
        return None
    return str(value)


_MISSING = object()


@overload
def _resolve(value: object, coerce: type[T], *, default: T) -> T: ...


@overload
def _resolve(value: object, coerce: type[T], *, required: str) -> T: ...


def _resolve(
    value: object,
    coerce: type[Any],
    *,
    default: object = _MISSING,
    required: str = "",
) -> Any:
    """Resolve a YAML value, handling ``!env`` tags and type coercion.

    Args:
        value: Raw value from YAML (an ``_EnvVar``, None, or a literal).
        coerce: Target type (``str``, ``int`` or ``float``).
        default: Value used when ``value`` is absent.
        required: Field name for the error raised when ``value`` is
            absent and no default applies.

    Returns:
        The resolved, coerced value.

    Raises:
        ConfigError: If a required value is absent or cannot be coerced.
    """
    if not isinstance(value, _EnvVar) and value is not None:
        if isinstance(value, coerce) and not isinstance(value, bool):
            return value

    resolved = _raw_resolve(value)
    if resolved is None or (required and resolved == ""):
        if required:
            if isinstance(value, _EnvVar):
                raise ConfigError(
                    f"Required config '{required}': environment variable "
                    f"'{value.var_name}' is not set"
                )
            raise ConfigError(f"Required config '{required}' is missing")
        if default is not _MISSING:
            return default
        return None

    try:
        return coerce(resolved)
    except ValueError as e:
        raise ConfigError(
            f"Cannot convert {resolved!r} to {coerce.__name__}"
        ) from e


# ---------------------------------------------------------------------------
# Client configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ClientConfig:
    """Connection and synchronization settings.

    Attributes:
        server_url: Base URL of the Mattermost server.
        token: Personal access token or session token.
        team: Primary team, by id or by name.
        page_size: Page size for public channel listings.
        request_timeout: HTTP timeout in seconds.
        max_backoff: Upper bound in seconds for a single rate-limit wait.
        default_backoff: Wait in seconds when a throttled response
            carries no usable hint.
    """

    server_url: str
    token: str
    team: str
    page_size: int = MAX_PAGE_SIZE
    request_timeout: float = 30.0
    max_backoff: float = 60.0
    default_backoff: float = 1.0

    def __post_init__(self) -> None:
        """Validate configuration and register the token for redaction.

        Raises:
            ValueError: If configuration is invalid.
        """
        SecretFilter.register_secret(self.token)
        if not self.server_url.startswith(("http://", "https://")):
            raise ValueError(
                f"Server URL must start with http:// or https://: "
                f"{self.server_url}"
            )
        if not self.token:
            raise ValueError("Access token must not be empty")
        if not self.team:
            raise ValueError("Primary team must not be empty")
        if not 1 <= self.page_size <= MAX_PAGE_SIZE:
            raise ValueError(
                f"Page size must be between 1 and {MAX_PAGE_SIZE}: "
                f"{self.page_size}"
            )
        if self.request_timeout <= 0:
            raise ValueError(
                f"Request timeout must be > 0: {self.request_timeout}"
            )
        if self.max_backoff <= 0:
            raise ValueError(f"Max backoff must be > 0: {self.max_backoff}")
        if self.default_backoff < 0:
            raise ValueError(
                f"Default backoff must be >= 0: {self.default_backoff}"
            )

    @classmethod
    def from_yaml(cls, config_path: Path | None = None) -> "ClientConfig":
        """Load configuration from a YAML file.

        Args:
            config_path: Path to the YAML file.  Defaults to
                ``~/.config/mattersync/mattersync.yaml`` (XDG).

        Returns:
            ClientConfig instance.

        Raises:
            ConfigError: If the file is missing or required values are
                absent.
        """
        load_dotenv_once()

        if config_path is None:
            config_path = get_config_path()

        if not config_path.exists():
            raise ConfigError(f"Config file not found: {config_path}")

        with open(config_path) as f:
            raw = yaml.load(f, Loader=_make_loader())

        if not isinstance(raw, dict):
            raise ConfigError(
                f"Config file must be a YAML mapping: {config_path}"
            )

        config = cls._from_raw(raw)
        logger.info(
            "Config loaded from %s: server=%s team=%s",
            config_path,
            config.server_url,
            config.team,
        )
        return config

    @classmethod
    def _from_raw(cls, raw: dict) -> "ClientConfig":
        """Build config from parsed (but unresolved) YAML."""
        sync = raw.get("sync") or {}
        rate_limit = raw.get("rate_limit") or {}
        if not isinstance(sync, dict):
            raise ConfigError("'sync' must be a YAML mapping")
        if not isinstance(rate_limit, dict):
            raise ConfigError("'rate_limit' must be a YAML mapping")

        try:
            return cls(
                server_url=_resolve(
                    raw.get("server_url"), str, required="server_url"
                ).rstrip("/"),
                token=_resolve(raw.get("token"), str, required="token"),
                team=_resolve(raw.get("team"), str, required="team"),
                page_size=_resolve(
                    sync.get("page_size"), int, default=MAX_PAGE_SIZE
                ),
                request_timeout=_resolve(
                    sync.get("request_timeout"), float, default=30.0
                ),
                max_backoff=_resolve(
                    rate_limit.get("max_backoff"), float, default=60.0
                ),
                default_backoff=_resolve(
                    rate_limit.get("default_backoff"), float, default=1.0
                ),
            )
        except ValueError as e:
            raise ConfigError(str(e)) from e
