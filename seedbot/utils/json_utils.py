"""JSON utilities using orjson.

Usage:
    from seedbot.utils.json_utils import json_dumps, json_loads

    data = json_loads('{"key": "value"}')
    json_str = json_dumps({"key": "value"})
"""

from typing import Any
from uuid import UUID

import orjson


def _default_serializer(obj: Any) -> Any:
    """Custom serializer for types not natively supported by orjson."""
    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, bytes):
        return obj.decode("utf-8")
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def json_dumps(data: Any) -> str:
    """Serialize data to JSON string using orjson.

    Args:
        data: Data to serialize

    Returns:
        JSON string (WebSocket text frames must be str, not bytes)
    """
    return orjson.dumps(data, default=_default_serializer, option=orjson.OPT_UTC_Z).decode("utf-8")


def json_loads(data: str | bytes) -> Any:
    """Deserialize JSON string/bytes to Python object.

    Raises:
        orjson.JSONDecodeError: If data is not valid JSON (a ValueError)
    """
    return orjson.loads(data)
