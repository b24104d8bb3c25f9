"""
Example of fading an input down and up in a loop.
"""
from asyncio import run, sleep

from obs_do import ObsClient, fade, parse_volume

__all__ = ["main"]


async def main() -> None:
    async with ObsClient.create("localhost") as client:
        while True:
            await fade(client, "Mic/Aux", parse_volume("-30dB"), 2)
            await sleep(1)
            await fade(client, "Mic/Aux", parse_volume("0dB"), 2)
            await sleep(1)


run(main())
