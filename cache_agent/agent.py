#!/usr/bin/env python3
"""
Neptune Cache Agent
Serves a local OSRS cache to the Neptune web IDE through an outbound
websocket tunnel. No port forwarding needed.

Responsibilities:
- Connect to the Neptune hub
- Register with a fresh agent id and a preview of the cache
- Serve listFiles / readFile / writeFile / getCacheInfo requests
- Reconnect after a fixed delay whenever the connection drops
"""

import argparse
import asyncio
import contextlib
import enum
import os
import signal
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

import aiohttp
import structlog

# Local modules
from . import __version__, config, protocol
from .cache_ops import CacheOps
from .dispatcher import Dispatcher
from .errors import MalformedMessage, TransportError
from .identity import new_agent_id
from .log import configure_logging

log = structlog.get_logger(__name__)

RULE = "=" * 59


class ConnectionState(enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    REGISTERED = "registered"


@dataclass
class AgentSession:
    """State for one connection. Only cache_root outlives a disconnect."""

    cache_root: Path
    agent_id: Optional[str] = None
    token: Optional[str] = None

    def new_registration(self) -> str:
        self.agent_id = new_agent_id()
        return self.agent_id

    def clear(self) -> None:
        self.token = None


class Agent:
    def __init__(self, server_url: str, cache_root: Path,
                 reconnect_delay: float = config.RECONNECT_DELAY,
                 heartbeat: Optional[float] = config.HEARTBEAT):
        self.server_url = server_url
        self.reconnect_delay = reconnect_delay
        self.heartbeat = heartbeat
        self.session = AgentSession(cache_root)
        self.ops = CacheOps(cache_root)
        self.dispatcher = Dispatcher(self.ops)
        self.state = ConnectionState.DISCONNECTED
        self.ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._http: Optional[aiohttp.ClientSession] = None
        self._reconnect_handle: Optional[asyncio.TimerHandle] = None
        self._connection_task: Optional[asyncio.Task] = None
        self._stopping = False
        self._stopped = asyncio.Event()

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_handle is not None

    async def _open(self) -> aiohttp.ClientWebSocketResponse:
        try:
            return await self._http.ws_connect(self.server_url, heartbeat=self.heartbeat)
        except (aiohttp.ClientError, OSError, asyncio.TimeoutError) as e:
            raise TransportError(f"Connection failed: {e}") from e

    async def connect(self):
        """Open the tunnel, register, and serve until the connection closes."""
        self.state = ConnectionState.CONNECTING
        print(f"[i] Connecting to Neptune server {self.server_url} ...")
        try:
            self.ws = await self._open()
        except TransportError as e:
            print(f"[!] {e}", file=sys.stderr)
            self._on_close()
            return

        self.state = ConnectionState.CONNECTED
        print("[+] Connected to Neptune server")
        try:
            await self.register()
            await self.serve()
        finally:
            if not self.ws.closed:
                await self.ws.close()
            self._on_close()

    async def register(self):
        agent_id = self.session.new_registration()
        await self.send_message(protocol.register_message(
            agent_id,
            str(self.session.cache_root),
            self.ops.preview(config.REGISTER_PREVIEW_LIMIT),
        ))
        log.debug("register_sent", agent_id=agent_id)

    async def serve(self):
        """Read frames until the hub closes the connection or it fails."""
        async for frame in self.ws:
            if frame.type in (aiohttp.WSMsgType.TEXT, aiohttp.WSMsgType.BINARY):
                await self.handle_raw(frame.data)
            elif frame.type == aiohttp.WSMsgType.ERROR:
                err = TransportError(f"WebSocket error: {self.ws.exception()}")
                print(f"[!] {err}", file=sys.stderr)
                break

    def _on_close(self):
        was_connected = self.state in (ConnectionState.CONNECTED, ConnectionState.REGISTERED)
        self.state = ConnectionState.DISCONNECTED
        self.session.clear()
        if was_connected:
            print("[i] Disconnected from server")
        if not self._stopping:
            self.schedule_reconnect()

    def schedule_reconnect(self):
        """Arm the reconnect timer unless one is already pending."""
        if self._reconnect_handle is not None:
            return
        print(f"[i] Reconnecting in {self.reconnect_delay:g}s...")
        loop = asyncio.get_running_loop()
        self._reconnect_handle = loop.call_later(self.reconnect_delay, self._fire_reconnect)
        log.debug("reconnect_scheduled", delay=self.reconnect_delay)

    def _fire_reconnect(self):
        self._reconnect_handle = None
        if self._stopping:
            return
        self._connection_task = asyncio.get_running_loop().create_task(self.connect())

    async def send_message(self, msg: Dict[str, Any]) -> bool:
        """Send a message to the hub. Dropped, not queued, if the socket is not open."""
        if self.ws is None or self.ws.closed:
            log.debug("send_dropped", type=msg.get("type"))
            return False
        try:
            await self.ws.send_str(protocol.encode(msg))
            return True
        except (aiohttp.ClientError, ConnectionError) as e:
            print(f"[!] Send error: {e}", file=sys.stderr)
            return False

    async def handle_raw(self, raw: Union[str, bytes]):
        try:
            msg = protocol.decode(raw)
        except MalformedMessage as e:
            print(f"[!] Failed to parse message: {e}", file=sys.stderr)
            log.debug("message_dropped", reason=e.message)
            return
        await self.handle_message(msg)

    async def handle_message(self, msg: Dict[str, Any]):
        msg_type = msg.get("type")
        if msg_type == protocol.REGISTERED:
            self.on_registered(msg.get("sessionToken"))
        elif msg_type == protocol.REQUEST:
            await self.handle_request(msg)
        elif msg_type == protocol.ERROR:
            print(f"[!] Server error: {msg.get('message')}", file=sys.stderr)
        else:
            print(f"[?] Unknown message type: {msg_type}", file=sys.stderr)

    def on_registered(self, token: Optional[str]):
        self.session.token = token
        self.state = ConnectionState.REGISTERED
        print("")
        print(RULE)
        print("  Agent registered successfully!")
        print("")
        print(f"  Your session token: {token}")
        print("")
        print("  Open Neptune IDE and enter this token to connect")
        print("  to your local cache.")
        print(RULE)
        print("")
        print("[i] Waiting for requests...")

    async def handle_request(self, msg: Dict[str, Any]):
        action = msg.get("action")
        params = msg.get("params")
        print(f"[>] Request: {action}")
        log.debug("request_received", request_id=msg.get("requestId"), action=action,
                  params=sorted(params) if isinstance(params, dict) else params)

        response = await self.dispatcher.dispatch(msg)
        await self.send_message(response)

        if response["success"]:
            print(f"[<] Response sent for {action}")
        else:
            print(f"[!] Error handling {action}: {response['error']}", file=sys.stderr)

    async def run(self):
        """Main agent loop. Returns after shutdown()."""
        async with aiohttp.ClientSession() as http:
            self._http = http
            self._connection_task = asyncio.get_running_loop().create_task(self.connect())
            try:
                await self._stopped.wait()
            finally:
                await self._teardown()

    def shutdown(self):
        self._stopping = True
        self._stopped.set()

    async def _teardown(self):
        self._stopping = True
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None
        if self.ws is not None and not self.ws.closed:
            await self.ws.close()
        task = self._connection_task
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task


async def _serve(agent: Agent):
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # Windows event loops lack signal handlers; Ctrl+C arrives as KeyboardInterrupt there
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, agent.shutdown)
    await agent.run()


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="neptune-cache-agent",
        description="Neptune Cache Agent: serve a local OSRS cache to the Neptune IDE",
        epilog="Example: neptune-cache-agent ./cache",
    )
    parser.add_argument("cache_path",
                        help="Path to the cache directory (e.g. ./cache)")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Enable debug logging")
    parser.add_argument("--version", action="version",
                        version=f"%(prog)s {__version__}")

    args = parser.parse_args(argv)
    configure_logging("DEBUG" if args.verbose else config.log_level())

    # Validate cache path
    try:
        cache_root = config.resolve_cache_path(args.cache_path)
    except ValueError as e:
        print(f"[!] Error: {e}", file=sys.stderr)
        sys.exit(1)

    if not config.looks_like_cache(os.listdir(cache_root)):
        print(f"[!] Warning: No obvious cache files found in {cache_root}", file=sys.stderr)
        print("[!] Expected files like main_file_cache.dat2, main_file_cache.idx*, etc.",
              file=sys.stderr)

    server_url = config.server_url()

    print(RULE)
    print(f"  Neptune Cache Agent v{__version__}")
    print(RULE)
    print(f"  Cache path: {cache_root}")
    print(f"  Server: {server_url}")
    print("")

    agent = Agent(server_url, cache_root)
    try:
        asyncio.run(_serve(agent))
    except KeyboardInterrupt:
        print("\n[i] Agent interrupted")
    print("[i] Shutting down...")


if __name__ == "__main__":
    main()
