from __future__ import annotations

import base64
import hashlib
import json
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, AsyncGenerator

import aiohttp
from aiohttp import ClientWebSocketResponse
from anyio import Lock, fail_after

from .errors import (
    HandshakeFailedError,
    ObsConnectionError,
    RpcError,
    UnreachableError,
)
from .volume import InputVolume, VolumeSpec, VolumeUnit

__all__ = ["ObsClient", "ObsVersion", "Input", "DEFAULT_PORT"]

logger = logging.getLogger(__name__)

DEFAULT_PORT = 4455
RPC_VERSION = 1
SUBPROTOCOL = "obswebsocket.json"


class OpCode(IntEnum):
    HELLO = 0
    IDENTIFY = 1
    IDENTIFIED = 2
    EVENT = 5
    REQUEST = 6
    REQUEST_RESPONSE = 7


class CloseCode(IntEnum):
    NOT_IDENTIFIED = 4007
    ALREADY_IDENTIFIED = 4008
    AUTHENTICATION_FAILED = 4009
    UNSUPPORTED_RPC_VERSION = 4010


class _ConnectionClosed(Exception):
    def __init__(self, code: int | None, reason: str | None = None) -> None:
        super().__init__(f"connection closed (code={code}, reason={reason!r})")
        self.code = code
        self.reason = reason


def _authentication_string(password: str, salt: str, challenge: str) -> str:
    """
    Compute the obs-websocket authentication string:
    base64(sha256(base64(sha256(password + salt)) + challenge))
    """
    secret = base64.b64encode(hashlib.sha256((password + salt).encode()).digest())
    return base64.b64encode(
        hashlib.sha256(secret + challenge.encode()).digest()
    ).decode()


@dataclass(frozen=True)
class ObsVersion:
    obs_version: str
    obs_web_socket_version: str
    rpc_version: int


@dataclass
class ObsClient:
    """
    Client for the OBS websocket server (protocol v5).

    Example usage::

        async with ObsClient.create("localhost", 4455, password) as client:
            await client.toggle_stream()
            await client.input("Mic/Aux").toggle_mute()
    """

    host: str
    port: int
    _websocket: ClientWebSocketResponse
    closed: bool = False
    version: ObsVersion | None = None

    # Only one request is in flight at a time.
    _lock: Lock = field(default_factory=Lock)
    _next_request_id: int = 0

    @classmethod
    @asynccontextmanager
    async def create(
        cls,
        host: str = "localhost",
        port: int = DEFAULT_PORT,
        password: str | None = None,
        *,
        handshake_timeout: float = 10.0,
    ) -> AsyncGenerator[ObsClient, None]:
        url = f"ws://{host}:{port}"

        async with aiohttp.ClientSession() as session:
            try:
                websocket = await session.ws_connect(url, protocols=(SUBPROTOCOL,))
            except (aiohttp.ClientError, OSError) as e:
                raise UnreachableError(f"Could not connect to {url}: {e}") from e

            async with websocket:
                instance = cls(host=host, port=port, _websocket=websocket)

                try:
                    with fail_after(handshake_timeout):
                        await instance._identify(password)
                except TimeoutError:
                    raise HandshakeFailedError(
                        f"No handshake response from {url} within {handshake_timeout}s."
                    ) from None

                instance.version = await instance.get_version()
                logger.info(
                    "Connected to OBS: %s / %s",
                    instance.version.obs_version,
                    instance.version.obs_web_socket_version,
                )

                try:
                    yield instance
                finally:
                    # Stop accepting commands.
                    instance.closed = True

    async def _identify(self, password: str | None) -> None:
        try:
            hello = await self._receive_message()
            if hello["op"] != OpCode.HELLO:
                raise HandshakeFailedError(
                    f"Expected Hello from OBS, got opcode {hello['op']}."
                )

            identify: dict[str, Any] = {
                "rpcVersion": RPC_VERSION,
                "eventSubscriptions": 0,
            }
            auth = hello["d"].get("authentication")
            if auth is not None:
                if password is None:
                    raise HandshakeFailedError(
                        "OBS requires a password, but none was configured."
                    )
                identify["authentication"] = _authentication_string(
                    password, auth["salt"], auth["challenge"]
                )

            await self._send(OpCode.IDENTIFY, identify)

            identified = await self._receive_message()
            if identified["op"] != OpCode.IDENTIFIED:
                raise HandshakeFailedError(
                    f"Expected Identified from OBS, got opcode {identified['op']}."
                )
            logger.debug(
                "Identified, negotiated RPC version %s",
                identified["d"].get("negotiatedRpcVersion"),
            )
        except _ConnectionClosed as e:
            if e.code == CloseCode.AUTHENTICATION_FAILED:
                raise HandshakeFailedError("OBS rejected the password.") from e
            if e.code == CloseCode.UNSUPPORTED_RPC_VERSION:
                raise HandshakeFailedError(
                    f"OBS does not support RPC version {RPC_VERSION}."
                ) from e
            raise HandshakeFailedError(f"OBS closed the connection: {e}") from e

    async def _send(self, op: OpCode, data: dict[str, Any]) -> None:
        await self._websocket.send_str(json.dumps({"op": int(op), "d": data}))

    async def _receive_message(self) -> dict[str, Any]:
        while True:
            message = await self._websocket.receive()

            if message.type == aiohttp.WSMsgType.TEXT:
                return json.loads(message.data)

            if message.type in (
                aiohttp.WSMsgType.CLOSE,
                aiohttp.WSMsgType.CLOSING,
                aiohttp.WSMsgType.CLOSED,
            ):
                code = message.data if isinstance(message.data, int) else None
                raise _ConnectionClosed(
                    code or self._websocket.close_code, message.extra
                )

            if message.type == aiohttp.WSMsgType.ERROR:
                raise _ConnectionClosed(self._websocket.close_code, str(message.data))

            # Binary frames or pings are not part of the JSON protocol. Ignore.

    def _handle_message(self, message: dict[str, Any]) -> None:
        if message.get("op") == OpCode.EVENT:
            logger.debug("Ignoring event %s", message["d"].get("eventType"))
            return

        logger.debug("Ignoring unexpected message with opcode %s", message.get("op"))

    async def request(
        self, request_type: str, data: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """
        Send a request and wait for the corresponding response. Returns the
        `responseData` (empty if OBS didn't send any).

        Raises `RpcError` when OBS rejects the request.
        """
        if self.closed:
            raise ObsConnectionError("ObsClient instance was already closed.")

        async with self._lock:
            self._next_request_id += 1
            request_id = str(self._next_request_id)

            payload: dict[str, Any] = {
                "requestType": request_type,
                "requestId": request_id,
            }
            if data is not None:
                payload["requestData"] = data

            logger.debug("Request %s %s", request_type, data)
            try:
                await self._send(OpCode.REQUEST, payload)

                while True:
                    message = await self._receive_message()
                    if (
                        message.get("op") == OpCode.REQUEST_RESPONSE
                        and message["d"].get("requestId") == request_id
                    ):
                        break
                    self._handle_message(message)
            except _ConnectionClosed as e:
                raise RpcError(
                    request_type, e.code or 0, "connection to OBS was closed"
                ) from e
            except (aiohttp.ClientError, ConnectionError) as e:
                raise RpcError(request_type, 0, str(e)) from e

        response = message["d"]
        status = response["requestStatus"]
        if not status["result"]:
            raise RpcError(request_type, status["code"], status.get("comment"))

        return response.get("responseData") or {}

    async def get_version(self) -> ObsVersion:
        data = await self.request("GetVersion")
        return ObsVersion(
            obs_version=data["obsVersion"],
            obs_web_socket_version=data["obsWebSocketVersion"],
            rpc_version=data["rpcVersion"],
        )

    async def get_input_volume(self, input_name: str) -> InputVolume:
        data = await self.request("GetInputVolume", {"inputName": input_name})
        return InputVolume(db=data["inputVolumeDb"], mul=data["inputVolumeMul"])

    async def set_input_volume(self, input_name: str, volume: VolumeSpec) -> None:
        key = {
            VolumeUnit.DECIBEL: "inputVolumeDb",
            VolumeUnit.MULTIPLIER: "inputVolumeMul",
        }[volume.unit]

        await self.request(
            "SetInputVolume", {"inputName": input_name, key: volume.value}
        )

    async def toggle_input_mute(self, input_name: str) -> bool:
        "Toggle mute. Returns whether the input is muted now."
        data = await self.request("ToggleInputMute", {"inputName": input_name})
        return bool(data.get("inputMuted"))

    async def toggle_stream(self) -> bool:
        "Toggle streaming. Returns whether the stream is active now."
        data = await self.request("ToggleStream")
        return bool(data.get("outputActive"))

    async def toggle_record(self) -> bool:
        data = await self.request("ToggleRecord")
        return bool(data.get("outputActive"))

    async def set_current_scene(self, scene_name: str) -> None:
        await self.request("SetCurrentProgramScene", {"sceneName": scene_name})

    def input(self, name: str) -> Input:
        return Input(self, name)


@dataclass
class Input:
    """
    An OBS input, identified by its name (e.g. "Mic/Aux"). Existence is only
    checked by OBS itself.
    """

    client: ObsClient
    name: str

    async def get_volume(self) -> InputVolume:
        return await self.client.get_input_volume(self.name)

    async def set_volume(self, volume: VolumeSpec) -> None:
        await self.client.set_input_volume(self.name, volume)

    async def toggle_mute(self) -> bool:
        return await self.client.toggle_input_mute(self.name)
