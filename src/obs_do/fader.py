"""
Smoothly fade the volume of an OBS input.

The fade is a linear interpolation in the scale of the requested target (dB
or multiplier), applied at a fixed rate of `TICK_RATE_HZ` volume changes per
second.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Protocol

from anyio import current_time, sleep_until

from .errors import InvalidDurationError, RemoteRejectedError, RpcError
from .volume import InputVolume, VolumeSpec, VolumeUnit

__all__ = [
    "FadeState",
    "fade",
    "validate_duration",
    "TICK_RATE_HZ",
    "VOLUME_TOLERANCE",
]

logger = logging.getLogger(__name__)

TICK_RATE_HZ = 60
VOLUME_TOLERANCE = 1e-6


class VolumeControl(Protocol):
    async def get_input_volume(self, input_name: str) -> InputVolume:
        ...

    async def set_input_volume(self, input_name: str, volume: VolumeSpec) -> None:
        ...


def validate_duration(duration: float) -> None:
    """
    Raise `InvalidDurationError` unless `duration` is a positive number of
    seconds whose tick count is representable.
    """
    if not (duration > 0 and math.isfinite(duration * TICK_RATE_HZ)):
        raise InvalidDurationError(duration)


@dataclass
class FadeState:
    """
    Interpolation state of one fade. Owned by a single `fade` call.
    """

    current: float
    target: float
    unit: VolumeUnit
    step: float
    total_ticks: int
    elapsed_ticks: int = 0

    # Last value that OBS confirmed.
    last_applied: float | None = None

    @classmethod
    def create(
        cls, current: float, target: VolumeSpec, duration: float
    ) -> FadeState:
        total_ticks = max(1, round(duration * TICK_RATE_HZ))
        return cls(
            current=current,
            target=target.value,
            unit=target.unit,
            step=(target.value - current) / total_ticks,
            total_ticks=total_ticks,
        )

    def reached(self) -> bool:
        "True when `current` is at or past the target, in the direction of travel."
        if self.step > 0:
            return self.current >= self.target
        return self.current <= self.target

    def advance(self) -> tuple[float, bool]:
        """
        Move one step toward the target. Returns the value to apply and
        whether this is the final tick. The final tick always lands exactly on
        the target.
        """
        self.current += self.step
        self.elapsed_ticks += 1

        if self.elapsed_ticks >= self.total_ticks or self.reached():
            self.current = self.target
            return self.target, True

        return self.current, False


async def fade(
    client: VolumeControl,
    input_name: str,
    target: VolumeSpec,
    duration: float,
) -> None:
    """
    Fade the volume of `input_name` from its current value to `target` over
    `duration` seconds.

    One `SetInputVolume` request is sent per tick. If OBS rejects any of them,
    the fade is aborted with `RemoteRejectedError`, and the input stays at
    the last value that was accepted. Cancelling the calling task stops the
    fade before the next tick.
    """
    validate_duration(duration)

    volume = await client.get_input_volume(input_name)

    # Interpolate in the scale of the target. Mixing dB and multiplier would
    # give a non-linear fade.
    current = volume.in_unit(target.unit)

    if abs(target.value - current) <= VOLUME_TOLERANCE:
        logger.info("%s is already at %s, nothing to fade.", input_name, target)
        return

    state = FadeState.create(current, target, duration)
    logger.info(
        "Fading %s from %s to %s over %ss (%d ticks).",
        input_name,
        VolumeSpec(state.unit, current),
        target,
        duration,
        state.total_ticks,
    )

    interval = 1 / TICK_RATE_HZ
    deadline = current_time() + interval

    while True:
        await sleep_until(deadline)

        value, done = state.advance()
        try:
            await client.set_input_volume(input_name, VolumeSpec(state.unit, value))
        except RpcError as e:
            raise RemoteRejectedError(state.elapsed_ticks, e, state.last_applied) from e

        state.last_applied = value
        logger.debug("Tick %d: %s = %s", state.elapsed_ticks, input_name, value)

        if done:
            break

        # Deadlines are absolute, so the cadence doesn't drift. If a request
        # took longer than a tick, continue from now instead of bursting.
        deadline = max(deadline + interval, current_time())

    logger.info("Faded %s to %s.", input_name, target)
