import asyncio

from obs_do import ObsClient

__all__ = ["main"]


async def main() -> None:
    async with ObsClient.create("localhost", 4455, password=None) as client:
        mic = client.input("Mic/Aux")
        print("Connected to:", client.version)
        print("Volume of Mic/Aux:", await mic.get_volume())
        print("Mic/Aux muted:", await mic.toggle_mute())
        await mic.toggle_mute()


asyncio.run(main())
