"""
Utility modules for namesmith
"""

from .clock import utcnow
from .database import (
    get_session_maker,
    get_sync_db,
    init_db,
    close_db,
)
from .security import (
    generate_input_hash,
    generate_session_id,
    generate_request_token,
)
from .cache import (
    get_redis,
    close_redis,
    to_micros,
    from_micros,
)

__all__ = [
    "utcnow",
    # Database
    "get_session_maker",
    "get_sync_db",
    "init_db",
    "close_db",
    # Hashing
    "generate_input_hash",
    "generate_session_id",
    "generate_request_token",
    # Cache
    "get_redis",
    "close_redis",
    "to_micros",
    "from_micros",
]
