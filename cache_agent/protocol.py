"""
Neptune Cache Agent Protocol Definitions
Message schemas for agent <-> hub communication.

All messages are JSON objects with a "type" field, one object per websocket
frame.
"""

# Example messages:

# Agent -> Hub (Registration)
# {
#   "type": "register",
#   "agentId": "3f9a0c1d5e7b2468",
#   "cachePath": "/home/player/osrs-cache",
#   "cacheFiles": ["main_file_cache.dat2", "main_file_cache.idx0", ...]   (<= 20)
# }

# Hub -> Agent (Registration acknowledged)
# {
#   "type": "registered",
#   "sessionToken": "K7Q2XP"
# }

# Hub -> Agent (Request)
# {
#   "type": "request",
#   "requestId": "r-42",
#   "action": "readFile",
#   "params": {"filePath": "main_file_cache.idx2"}
# }

# Agent -> Hub (Response)
# {
#   "type": "response",
#   "requestId": "r-42",
#   "success": true,
#   "data": {"data": "<base64>", "size": 1234}
# }
# or, on failure:
# {
#   "type": "response",
#   "requestId": "r-42",
#   "success": false,
#   "error": "File not found: main_file_cache.idx2"
# }

# Hub -> Agent (Error, logged only)
# {
#   "type": "error",
#   "message": "Invalid registration"
# }

import json
from typing import Any, Dict, List, Union

from .errors import MalformedMessage

REGISTER = "register"
REGISTERED = "registered"
REQUEST = "request"
RESPONSE = "response"
ERROR = "error"


def encode(msg: Dict[str, Any]) -> str:
    return json.dumps(msg, separators=(',', ':'))


def decode(raw: Union[str, bytes]) -> Dict[str, Any]:
    """Parse one inbound frame. Raises MalformedMessage if it is not a JSON object."""
    try:
        if isinstance(raw, bytes):
            raw = raw.decode('utf-8')
        msg = json.loads(raw)
    except (UnicodeDecodeError, ValueError) as e:
        raise MalformedMessage(f"Undecodable message: {e}") from e

    if not isinstance(msg, dict):
        raise MalformedMessage(f"Expected a JSON object, got {type(msg).__name__}")
    return msg


def register_message(agent_id: str, cache_path: str, cache_files: List[str]) -> Dict[str, Any]:
    return {
        "type": REGISTER,
        "agentId": agent_id,
        "cachePath": cache_path,
        "cacheFiles": cache_files,
    }


def success_response(request_id: Any, data: Any) -> Dict[str, Any]:
    return {
        "type": RESPONSE,
        "requestId": request_id,
        "success": True,
        "data": data,
    }


def error_response(request_id: Any, error: str) -> Dict[str, Any]:
    return {
        "type": RESPONSE,
        "requestId": request_id,
        "success": False,
        "error": error,
    }
