"""Fake obs-websocket (protocol v5) server for tests."""

from __future__ import annotations

import base64
import hashlib
import json
import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from aiohttp import WSMsgType, web
from aiohttp.test_utils import TestServer

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

_LOGGER = logging.getLogger(__name__)

RESOURCE_NOT_FOUND = 600
UNKNOWN_REQUEST_TYPE = 204


class ObsSimulator:
    """Simulates the websocket server of OBS."""

    def __init__(self, password: str | None = None) -> None:
        """Initialize the simulator."""
        self.password = password
        self.salt = "c2FsdA=="
        self.challenge = "Y2hhbGxlbmdl"

        # OBS state
        self.volumes: dict[str, dict[str, float]] = {
            "Mic/Aux": {"inputVolumeDb": 0.0, "inputVolumeMul": 1.0},
        }
        self.muted: dict[str, bool] = {"Mic/Aux": False}
        self.scenes = ["Scene", "Intermission"]
        self.current_scene = "Scene"
        self.streaming = False
        self.recording = False

        # Every request received, as (requestType, requestData).
        self.requests: list[tuple[str, dict[str, Any]]] = []

        # Reject the n-th SetInputVolume request (1-based).
        self.fail_set_volume_at: int | None = None
        self._set_volume_count = 0

    def _authentication(self) -> str:
        assert self.password is not None
        secret = base64.b64encode(
            hashlib.sha256((self.password + self.salt).encode()).digest()
        )
        return base64.b64encode(
            hashlib.sha256(secret + self.challenge.encode()).digest()
        ).decode()

    async def handle(self, request: web.Request) -> web.WebSocketResponse:
        """Handle one websocket client."""
        ws = web.WebSocketResponse(protocols=("obswebsocket.json",))
        await ws.prepare(request)

        hello: dict[str, Any] = {
            "obsWebSocketVersion": "5.4.2",
            "rpcVersion": 1,
        }
        if self.password is not None:
            hello["authentication"] = {
                "challenge": self.challenge,
                "salt": self.salt,
            }
        await ws.send_json({"op": 0, "d": hello})

        message = await ws.receive()
        if message.type != WSMsgType.TEXT:
            return ws
        identify = json.loads(message.data)
        if identify["op"] != 1:
            await ws.close(code=4007)
            return ws
        if identify["d"].get("rpcVersion") != 1:
            await ws.close(code=4010)
            return ws
        if self.password is not None and (
            identify["d"].get("authentication") != self._authentication()
        ):
            await ws.close(code=4009)
            return ws

        await ws.send_json({"op": 2, "d": {"negotiatedRpcVersion": 1}})

        async for message in ws:
            if message.type != WSMsgType.TEXT:
                break
            data = json.loads(message.data)
            if data["op"] != 6:
                continue
            await ws.send_json({"op": 7, "d": self._handle_request(data["d"])})

        return ws

    def _handle_request(self, request: dict[str, Any]) -> dict[str, Any]:
        request_type = request["requestType"]
        data = request.get("requestData", {})
        self.requests.append((request_type, data))
        _LOGGER.debug("Request %s %s", request_type, data)

        response: dict[str, Any] = {
            "requestType": request_type,
            "requestId": request["requestId"],
        }

        def ok(response_data: dict[str, Any] | None = None) -> dict[str, Any]:
            response["requestStatus"] = {"result": True, "code": 100}
            if response_data is not None:
                response["responseData"] = response_data
            return response

        def fail(code: int, comment: str) -> dict[str, Any]:
            response["requestStatus"] = {
                "result": False,
                "code": code,
                "comment": comment,
            }
            return response

        if request_type == "GetVersion":
            return ok(
                {
                    "obsVersion": "30.1.0",
                    "obsWebSocketVersion": "5.4.2",
                    "rpcVersion": 1,
                }
            )

        if request_type == "ToggleStream":
            self.streaming = not self.streaming
            return ok({"outputActive": self.streaming})

        if request_type == "ToggleRecord":
            self.recording = not self.recording
            return ok({"outputActive": self.recording})

        if request_type == "SetCurrentProgramScene":
            if data["sceneName"] not in self.scenes:
                return fail(RESOURCE_NOT_FOUND, "No source was found.")
            self.current_scene = data["sceneName"]
            return ok()

        input_name = data.get("inputName")
        if request_type in ("GetInputVolume", "SetInputVolume", "ToggleInputMute"):
            if input_name not in self.volumes:
                return fail(RESOURCE_NOT_FOUND, "No source was found.")

        if request_type == "GetInputVolume":
            return ok(dict(self.volumes[input_name]))

        if request_type == "SetInputVolume":
            self._set_volume_count += 1
            if self._set_volume_count == self.fail_set_volume_at:
                return fail(RESOURCE_NOT_FOUND, "Injected failure.")
            # OBS keeps both scales in sync; the tests only look at the one set.
            self.volumes[input_name].update(
                {k: v for k, v in data.items() if k != "inputName"}
            )
            return ok()

        if request_type == "ToggleInputMute":
            self.muted[input_name] = not self.muted[input_name]
            return ok({"inputMuted": self.muted[input_name]})

        return fail(UNKNOWN_REQUEST_TYPE, f"Unknown request type {request_type}")


@asynccontextmanager
async def obs_simulator(
    password: str | None = None,
) -> AsyncGenerator[tuple[ObsSimulator, str, int]]:
    """Run a simulator on a free local port."""
    simulator = ObsSimulator(password=password)
    app = web.Application()
    app.router.add_get("/", simulator.handle)

    server = TestServer(app, host="127.0.0.1")
    await server.start_server()
    try:
        yield simulator, "127.0.0.1", server.port
    finally:
        await server.close()
