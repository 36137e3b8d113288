import secrets
from datetime import datetime, timedelta
from typing import Optional


def get_current_timestamp() -> datetime:
    """Get current UTC timestamp."""
    return datetime.utcnow()


def next_timestamp(previous: Optional[datetime]) -> datetime:
    """Current UTC timestamp, strictly later than `previous`."""
    now = get_current_timestamp()
    if previous is not None and now <= previous:
        return previous + timedelta(microseconds=1)
    return now


def generate_id(prefix: str, nbytes: int = 8) -> str:
    """Generate a prefixed random identifier, e.g. cart_item_3f9a..."""
    return f"{prefix}_{secrets.token_hex(nbytes)}"
