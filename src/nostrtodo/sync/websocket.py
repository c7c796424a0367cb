"""
WebSocket relay transport — NIP-01 over aiohttp.

Client messages:  ["REQ", sub_id, filter]  ["CLOSE", sub_id]  ["EVENT", event]
Relay messages:   ["EVENT", sub_id, event] ["EOSE", sub_id]
                  ["CLOSED", sub_id, msg]  ["OK", event_id, bool, msg]
                  ["NOTICE", msg]

Every connect, query, and publish is bounded by the transport timeout.
Failures surface as RelayError naming the relay.
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from typing import Any, Optional

import aiohttp
from aiohttp import WSMsgType
from pydantic import ValidationError

from ..config import DEFAULT_TIMEOUT
from ..errors import RelayError, describe
from .records import RecordFilter, RemoteRecord
from .transport import PublishAck, RelaySession, RelayTransport

logger = logging.getLogger("nostrtodo.sync.websocket")


class WebSocketSession(RelaySession):
    """One WebSocket connection to one relay."""

    def __init__(
        self,
        url: str,
        http: aiohttp.ClientSession,
        ws: aiohttp.ClientWebSocketResponse,
        timeout: float,
    ) -> None:
        self.url = url
        self._http = http
        self._ws = ws
        self._timeout = timeout

    async def _send(self, message: list[Any]) -> None:
        try:
            await self._ws.send_str(json.dumps(message, ensure_ascii=False))
        except (aiohttp.ClientError, ConnectionError) as exc:
            raise RelayError(self.url, f"send failed: {describe(exc)}") from exc

    async def _receive(self, deadline: float) -> list[Any]:
        """Next well-formed relay message, or RelayError."""
        loop = asyncio.get_running_loop()
        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                raise RelayError(self.url, "timed out waiting for relay")
            try:
                msg = await asyncio.wait_for(self._ws.receive(), remaining)
            except asyncio.TimeoutError as exc:
                raise RelayError(self.url, "timed out waiting for relay") from exc

            if msg.type in (WSMsgType.CLOSE, WSMsgType.CLOSING, WSMsgType.CLOSED):
                raise RelayError(self.url, "connection closed by relay")
            if msg.type == WSMsgType.ERROR:
                raise RelayError(self.url, f"websocket error: {describe(self._ws.exception() or msg.data)}")
            if msg.type != WSMsgType.TEXT:
                continue

            try:
                data = json.loads(msg.data)
            except ValueError:
                logger.debug("%s sent non-JSON frame, ignoring", self.url)
                continue
            if not isinstance(data, list) or not data or not isinstance(data[0], str):
                logger.debug("%s sent malformed message, ignoring", self.url)
                continue
            if data[0] == "NOTICE":
                logger.info("%s notice: %s", self.url, data[1] if len(data) > 1 else "")
                continue
            return data

    async def query(self, record_filter: RecordFilter) -> Optional[RemoteRecord]:
        sub_id = uuid.uuid4().hex[:16]
        deadline = asyncio.get_running_loop().time() + self._timeout
        await self._send(["REQ", sub_id, record_filter.to_wire()])
        try:
            while True:
                data = await self._receive(deadline)
                if len(data) < 2 or data[1] != sub_id:
                    continue
                if data[0] == "EVENT" and len(data) >= 3:
                    try:
                        return RemoteRecord.model_validate(data[2])
                    except ValidationError:
                        logger.warning("%s returned a malformed event, ignoring", self.url)
                        continue
                if data[0] == "EOSE":
                    return None
                if data[0] == "CLOSED":
                    logger.info(
                        "%s closed subscription: %s", self.url, data[2] if len(data) > 2 else ""
                    )
                    return None
        finally:
            if not self._ws.closed:
                try:
                    await self._send(["CLOSE", sub_id])
                except RelayError as exc:
                    logger.debug("Could not close subscription: %s", exc)

    async def publish(self, record: RemoteRecord) -> PublishAck:
        deadline = asyncio.get_running_loop().time() + self._timeout
        await self._send(["EVENT", record.to_wire()])
        while True:
            data = await self._receive(deadline)
            if data[0] != "OK" or len(data) < 3 or data[1] != record.id:
                continue
            message = data[3] if len(data) > 3 and isinstance(data[3], str) else ""
            return PublishAck(accepted=bool(data[2]), message=message)

    async def close(self) -> None:
        if not self._ws.closed:
            await self._ws.close()
        if not self._http.closed:
            await self._http.close()


class WebSocketTransport(RelayTransport):
    """Opens a fresh aiohttp session and WebSocket per relay."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.timeout = timeout

    async def connect(self, url: str) -> RelaySession:
        http = aiohttp.ClientSession()
        try:
            ws = await asyncio.wait_for(http.ws_connect(url, autoping=True), self.timeout)
        except asyncio.TimeoutError as exc:
            await http.close()
            raise RelayError(url, "timed out connecting") from exc
        except (aiohttp.ClientError, OSError, ValueError) as exc:
            await http.close()
            raise RelayError(url, f"connection failed: {describe(exc)}") from exc
        except asyncio.CancelledError:
            await http.close()
            raise
        logger.debug("Connected to %s", url)
        return WebSocketSession(url, http, ws, self.timeout)
