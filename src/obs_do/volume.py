from __future__ import annotations

import math
import re
from dataclasses import dataclass
from enum import Enum

from .errors import InvalidNumberError

__all__ = [
    "VolumeUnit",
    "VolumeSpec",
    "InputVolume",
    "parse_volume",
    "parse_duration",
]

# Plain ASCII decimal notation, optionally with exponent. No digit separators.
_NUMBER_RE = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)


class VolumeUnit(Enum):
    DECIBEL = "db"

    # Linear gain, 1.0 is unity.
    MULTIPLIER = "mul"


@dataclass(frozen=True, eq=True)
class VolumeSpec:
    """
    A volume in one particular scale.
    """

    unit: VolumeUnit
    value: float

    def __str__(self) -> str:
        if self.unit is VolumeUnit.DECIBEL:
            return f"{self.value} dB"
        return f"{self.value * 100:g}%"


@dataclass(frozen=True, eq=True)
class InputVolume:
    """
    The current volume of an input, as reported by OBS. OBS always reports
    both scales at once.
    """

    db: float
    mul: float

    def in_unit(self, unit: VolumeUnit) -> float:
        if unit is VolumeUnit.DECIBEL:
            return self.db
        return self.mul


def _parse_float(raw: str, original: str, what: str) -> float:
    if not _NUMBER_RE.fullmatch(raw):
        raise InvalidNumberError(original, what)

    value = float(raw)

    if not math.isfinite(value):
        raise InvalidNumberError(original, what)
    return value


def parse_volume(raw: str) -> VolumeSpec:
    """
    Parse a volume given on the command line.

    "-6dB" (case insensitive) is an absolute volume in decibel. "50%" or
    "50" is a multiplier, so both of these give 0.5.
    """
    text = raw.strip()

    if text[-2:].lower() == "db":
        return VolumeSpec(
            VolumeUnit.DECIBEL, _parse_float(text[:-2], raw, "dB value")
        )

    text = text.removesuffix("%")
    value = _parse_float(text, raw, "percentage value")
    if value < 0:
        raise InvalidNumberError(raw, "percentage value")
    return VolumeSpec(VolumeUnit.MULTIPLIER, value / 100)


def parse_duration(raw: str) -> float:
    """
    Parse a duration in seconds. A trailing "s" is allowed ("5s" or "5").
    The sign is not checked here.
    """
    text = raw.strip()
    if text[-1:] in ("s", "S"):
        text = text[:-1]
    return _parse_float(text, raw, "duration")
