import hashlib
from contextvars import ContextVar

cart_session_var: ContextVar[str] = ContextVar("cart_session", default="")


def hash_session_key(session_key: str) -> str:
    """Short, non-reversible form of a session key for logs."""
    return hashlib.sha256(session_key.encode()).hexdigest()[:8]
