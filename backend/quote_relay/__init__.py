"""Quote relay: normalizes an upstream quote feed and fans it out over SSE."""

__version__ = "0.1.0"
