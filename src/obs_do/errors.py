from __future__ import annotations

from pathlib import Path

__all__ = [
    "ObsDoError",
    "ConfigError",
    "CredentialReadError",
    "ObsConnectionError",
    "UnreachableError",
    "HandshakeFailedError",
    "ParseError",
    "InvalidNumberError",
    "RpcError",
    "FadeError",
    "InvalidDurationError",
    "RemoteRejectedError",
    "Interrupted",
]


class ObsDoError(Exception):
    "Base class for all errors reported by obs-do."


class ConfigError(ObsDoError):
    "Raised when the configuration directory can't be determined."


class CredentialReadError(ObsDoError):
    "Raised when the credential file exists, but can't be read."

    def __init__(self, path: Path, cause: BaseException) -> None:
        super().__init__(f"Failed to read OBS WebSocket password file {path}: {cause}")
        self.path = path
        self.cause = cause


class ObsConnectionError(ObsDoError):
    "Raised when no usable session to OBS could be established."


class UnreachableError(ObsConnectionError):
    "The websocket transport could not be established."


class HandshakeFailedError(ObsConnectionError):
    "Authentication or RPC version negotiation was rejected."


class ParseError(ObsDoError):
    pass


class InvalidNumberError(ParseError):
    def __init__(self, raw: str, what: str = "number") -> None:
        super().__init__(f"Invalid {what}: {raw!r}")
        self.raw = raw
        self.what = what


class RpcError(ObsDoError):
    """
    Raised when OBS rejects a request, for instance because the input name
    doesn't exist.
    """

    def __init__(self, request_type: str, code: int, comment: str | None = None) -> None:
        message = f"{request_type} failed with code {code}"
        if comment:
            message += f": {comment}"
        super().__init__(message)
        self.request_type = request_type
        self.code = code
        self.comment = comment


class FadeError(ObsDoError):
    pass


class InvalidDurationError(FadeError):
    def __init__(self, duration: float) -> None:
        super().__init__(
            f"Fade duration must be a positive number of seconds, got {duration}"
        )
        self.duration = duration


class RemoteRejectedError(FadeError):
    """
    A volume change during a fade was not confirmed by OBS. The fade was
    aborted; `last_value` is the last value OBS accepted (or `None` if the
    very first tick failed).
    """

    def __init__(
        self, tick: int, cause: BaseException, last_value: float | None
    ) -> None:
        super().__init__(f"Fade aborted at tick {tick}: {cause}")
        self.tick = tick
        self.cause = cause
        self.last_value = last_value


class Interrupted(ObsDoError):
    "The command was stopped by a signal (SIGINT or SIGTERM)."

    def __init__(self, signal_name: str) -> None:
        super().__init__(f"interrupted by {signal_name}")
        self.signal_name = signal_name
