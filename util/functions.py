# util/functions.py
import math
from urllib.parse import urlsplit
from uuid import uuid4

_UNITS = ("B", "KB", "MB", "GB")


def format_bytes(size: float) -> str:
    """
    - Render a byte count with the largest unit that keeps the value >= 1.
    - One decimal below 10 (except plain bytes), none above.
    """
    if size is None or not math.isfinite(size):
        return "0 B"
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(_UNITS) - 1:
        value /= 1024
        unit += 1
    precision = 0 if value >= 10 or unit == 0 else 1
    return f"{value:.{precision}f} {_UNITS[unit]}"


def is_valid_http_url(url: str | None) -> bool:
    if not url:
        return False
    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return False
    return parts.scheme in ("http", "https") and bool(parts.netloc)


def new_local_id() -> str:
    # Process-local row id; never sent to the backend.
    return str(uuid4())
