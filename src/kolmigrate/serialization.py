"""
JSON serialization utilities for migration documents.

Documents built by the phases carry ``datetime`` timestamps and may carry
``Decimal`` or enum values; the standard encoder rejects all three.

Example:
    >>> from datetime import UTC, datetime
    >>> from kolmigrate.serialization import json_dumps, json_loads
    >>>
    >>> json_str = json_dumps({"createdAt": datetime.now(UTC)})
    >>> parsed = json_loads(json_str)
"""

import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any


class DocumentJSONEncoder(json.JSONEncoder):
    """
    JSON encoder for target documents.

    Handles:
    - datetime and date objects: ISO 8601 string
    - Decimal: int when integral, float otherwise
    - Enum members: their value
    """

    def default(self, obj: Any) -> Any:
        """
        Convert non-serializable objects to JSON-serializable formats.

        Raises:
            TypeError: If object type is not supported
        """
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, Decimal):
            return int(obj) if obj == obj.to_integral_value() else float(obj)
        if isinstance(obj, Enum):
            return obj.value
        return super().default(obj)


def json_dumps(obj: Any) -> str:
    """
    Serialize object to JSON string using DocumentJSONEncoder.

    Non-ASCII text (project names, status labels) is written as-is.
    """
    return json.dumps(obj, cls=DocumentJSONEncoder, ensure_ascii=False)


def json_loads(s: str) -> Any:
    """Deserialize a JSON string."""
    return json.loads(s)


__all__ = [
    "DocumentJSONEncoder",
    "json_dumps",
    "json_loads",
]
