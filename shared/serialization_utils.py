"""
Serialization utilities for the Uniswap pool analytics service.

Provides JSON encoding for Decimal amounts, enums, the frozen dataclasses in
shared/types.py, and on-chain integers too large for a JSON double.

Usage:
    from shared.serialization_utils import DecimalEncoder, to_json

    json.dumps(data, cls=DecimalEncoder)
    payload = to_json(pool_summary)
"""

import dataclasses
import json
from decimal import Decimal
from enum import Enum
from json import JSONEncoder
from typing import Any


class DecimalEncoder(JSONEncoder):
    """
    Custom JSON encoder handling Decimal, Enum, dataclasses and large integers.

    Sources:
    - RFC 7159 section 6 (JSON number limits)
    - IEEE 754-2008 (double precision safe integer limit: 2^53 - 1)
    """

    # IEEE 754 double precision safe integer limit
    _MAX_SAFE_INTEGER = 2**53 - 1

    def default(self, obj: Any) -> Any:
        if isinstance(obj, Decimal):
            return str(obj)
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, (set, frozenset)):
            return sorted(obj)
        return super().default(obj)

    def encode(self, obj: Any) -> str:
        """Override encode to convert large integers to strings before JSON serialization."""
        return super().encode(self._convert_large_ints(obj))

    def _convert_large_ints(self, obj: Any) -> Any:
        """
        Recursively convert integers exceeding IEEE 754 safe limits to strings.

        Token amounts in base units (18-decimal tokens) routinely exceed
        2^53 and would silently lose precision in JSON consumers.
        Dataclasses are expanded field by field so nested values are visited.
        """
        if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
            return {f.name: self._convert_large_ints(getattr(obj, f.name)) for f in dataclasses.fields(obj)}
        if isinstance(obj, dict):
            return {
                (k.value if isinstance(k, Enum) else k): self._convert_large_ints(v)
                for k, v in obj.items()
            }
        elif isinstance(obj, (list, tuple)):
            return [self._convert_large_ints(item) for item in obj]
        elif isinstance(obj, bool):
            return obj
        elif isinstance(obj, int) and (obj > self._MAX_SAFE_INTEGER or obj < -self._MAX_SAFE_INTEGER):
            return str(obj)
        return obj


def to_json(obj: Any, indent: int | None = None) -> str:
    """Serialize any service result (dataclasses, Decimals, enums) to JSON."""
    return json.dumps(obj, cls=DecimalEncoder, indent=indent)
