"""
Example of muting/unmuting an input in a loop.
"""
from asyncio import run, sleep

from obs_do import ObsClient

__all__ = ["main"]


async def main() -> None:
    async with ObsClient.create("localhost") as client:
        mic = client.input("Mic/Aux")

        while True:
            print("muted:", await mic.toggle_mute())
            await sleep(1)


run(main())
