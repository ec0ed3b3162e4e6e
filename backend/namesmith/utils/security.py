"""
Hashing and identifier utilities
"""

import hashlib
import json
import secrets
from uuid import uuid4


SESSION_ID_PREFIX = "session_"


def generate_input_hash(business_description: str, mode: str, deep_thinking: bool) -> str:
    """
    Deterministic cache key for a generation request.
    Description is trimmed and lowercased so cosmetic differences share an entry.
    """
    payload = {
        "business_description": business_description.strip().lower(),
        "mode": mode,
        "deep_thinking": bool(deep_thinking),
    }
    content = json.dumps(payload, sort_keys=True)
    return hashlib.sha256(content.encode()).hexdigest()


def generate_session_id() -> str:
    """Opaque, globally unique session identifier"""
    return f"{SESSION_ID_PREFIX}{uuid4().hex}"


def generate_request_token() -> str:
    """Unique member name for rate-limit windows"""
    return secrets.token_hex(8)
