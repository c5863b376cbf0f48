"""
Neptune Cache Agent request dispatcher.

Routes a decoded request envelope to a cache operation and wraps the outcome
in a response envelope. Any failure, including path guard rejections and
plain OS errors, becomes success=false with the error text; nothing raised
by an operation escapes dispatch().
"""

import asyncio
from typing import Any, Callable, Dict

import structlog

from . import protocol
from .cache_ops import CacheOps
from .errors import InvalidParams, UnknownAction

log = structlog.get_logger(__name__)


class Dispatcher:
    def __init__(self, ops: CacheOps):
        self.ops = ops
        self._routes: Dict[str, Callable[[Dict[str, Any]], Any]] = {
            "listFiles": self._list_files,
            "readFile": self._read_file,
            "writeFile": self._write_file,
            "getCacheInfo": self._get_cache_info,
        }

    def _list_files(self, params: Dict[str, Any]) -> Any:
        return [entry.to_dict() for entry in self.ops.list_files(params.get("subdir"))]

    def _read_file(self, params: Dict[str, Any]) -> Any:
        return self.ops.read_file(params.get("filePath"))

    def _write_file(self, params: Dict[str, Any]) -> Any:
        return self.ops.write_file(params.get("filePath"), params.get("data"), params.get("encoding"))

    def _get_cache_info(self, params: Dict[str, Any]) -> Any:
        return self.ops.get_cache_info()

    def execute(self, action: Any, params: Any) -> Any:
        """Run one action synchronously. Raises on any failure."""
        route = self._routes.get(action) if isinstance(action, str) else None
        if route is None:
            raise UnknownAction(f"Unknown action: {action}")
        if params is None:
            params = {}
        if not isinstance(params, dict):
            raise InvalidParams("Request params must be an object")
        return route(params)

    async def dispatch(self, msg: Dict[str, Any]) -> Dict[str, Any]:
        """Execute a request envelope and return its response envelope."""
        request_id = msg.get("requestId")
        action = msg.get("action")

        try:
            data = await asyncio.to_thread(self.execute, action, msg.get("params"))
        except Exception as e:
            log.debug("request_failed", request_id=request_id, action=action, exc_info=True)
            return protocol.error_response(request_id, str(e) or type(e).__name__)

        return protocol.success_response(request_id, data)
