from .client import Input, ObsClient, ObsVersion
from .errors import *
from .errors import __all__ as _errors_all
from .fader import fade
from .volume import InputVolume, VolumeSpec, VolumeUnit, parse_duration, parse_volume

__all__ = [
    "ObsClient",
    "ObsVersion",
    "Input",
    "fade",
    "VolumeUnit",
    "VolumeSpec",
    "InputVolume",
    "parse_volume",
    "parse_duration",
    *_errors_all,
]
