"""Neptune Cache Agent: serves a local game cache to the Neptune IDE over a websocket tunnel."""

__version__ = "0.1.0"
