"""
Utility functions for the rate pipeline.
"""
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

# A parsed carrier payload: nested dicts and lists with scalar leaves.
Tree = Union[Dict[str, Any], List[Any], str, int, float, bool, None]

MAX_CLIENT_BODY_CHARS = 1024

_MISSING = object()


def dig(tree: Tree, *path: Union[str, int], default: Any = None) -> Any:
    """
    Walk ``path`` through a nested dict/list tree and return the value found.

    String segments index dicts, integer segments index lists. Any absent
    segment, wrong container type or ``None`` along the way returns
    ``default``. A ``None`` leaf also returns ``default``.

    Example:
        dig(soap, "Envelope", 0, "Body", 0, "rateShipmentResponse", 0)
    """
    node: Any = tree
    for segment in path:
        if isinstance(segment, int):
            if not isinstance(node, list) or not -len(node) <= segment < len(node):
                return default
            node = node[segment]
        else:
            if not isinstance(node, dict):
                return default
            node = node.get(segment, _MISSING)
            if node is _MISSING:
                return default
        if node is None:
            return default
    return node


def parse_number(value: Any) -> Optional[float]:
    """Parse ``value`` as a float; ``None`` when it is absent or not numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return None
        try:
            return float(stripped)
        except ValueError:
            return None
    return None


def to_float(value: Any, default: float = 0.0) -> float:
    number = parse_number(value)
    return default if number is None else number


def to_int(value: Any, default: int = 0) -> int:
    number = parse_number(value)
    return default if number is None else int(number)


def now_ms() -> int:
    return int(time.time() * 1000)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def generate_quote_id(carrier_key: str) -> str:
    """Synthesize a quote id as ``{CARRIER}_{timestamp}_{random}``."""
    return f"{carrier_key}_{now_ms()}_{uuid.uuid4().hex[:9]}"


def truncate(text: str, limit: int = MAX_CLIENT_BODY_CHARS) -> str:
    if text is None:
        return ""
    return text if len(text) <= limit else text[:limit] + "..."
