"""
Configuration: where OBS is, and the websocket password.

The password is read from a single-line file in the per-user configuration
directory, e.g. `~/.config/obs-do/websocket-token` on Linux.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from platformdirs import user_config_dir

from .client import DEFAULT_PORT
from .errors import ConfigError, CredentialReadError

__all__ = [
    "Settings",
    "APP_NAME",
    "TOKEN_FILE_NAME",
    "default_password_file",
    "load_password",
]

logger = logging.getLogger(__name__)

APP_NAME = "obs-do"
TOKEN_FILE_NAME = "websocket-token"
DEFAULT_HOST = "localhost"


def default_password_file() -> Path:
    try:
        config_dir = user_config_dir(APP_NAME, appauthor=False)
    except (OSError, KeyError, RuntimeError) as e:
        raise ConfigError(
            f"could not determine configuration file location: {e}"
        ) from e

    if not config_dir:
        raise ConfigError("could not determine configuration file location")

    return Path(config_dir) / TOKEN_FILE_NAME


def load_password(path: Path) -> str | None:
    """
    Read the websocket password. Returns `None` when the file doesn't exist
    (or is empty), which means we try to connect without password.
    """
    try:
        password = path.read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        logger.info("Attempting to connect to OBS in password-less mode.")
        return None
    except (OSError, UnicodeDecodeError) as e:
        raise CredentialReadError(path, e) from e

    if not password:
        logger.warning("Password file %s is empty, connecting without password.", path)
        return None

    return password


@dataclass
class Settings:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    password_file: Path | None = None
    handshake_timeout: float = 10.0

    @classmethod
    def from_env(cls) -> Settings:
        """
        Defaults, overridden by `OBS_DO_HOST` and `OBS_DO_PORT`.
        """
        settings = cls()
        settings.host = os.environ.get("OBS_DO_HOST", settings.host)

        port = os.environ.get("OBS_DO_PORT")
        if port:
            try:
                settings.port = int(port)
            except ValueError:
                raise ConfigError(f"OBS_DO_PORT is not a valid port: {port!r}") from None

        return settings

    def resolve_password_file(self) -> Path:
        if self.password_file is not None:
            return self.password_file
        return default_password_file()

    def load_password(self) -> str | None:
        return load_password(self.resolve_password_file())
