"""Per-request context: correlation ID and client details.

Both values live in ContextVars set by RequestIDMiddleware. Log records
read the request ID through RequestIDFilter; activity events copy both at
creation time, so events written later by the queued recorder's worker
thread still carry the request they came from.
"""

import uuid
from contextvars import ContextVar
from typing import Optional, Tuple

NO_REQUEST_ID = "no-request-id"

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# (ip_address, user_agent)
client_info_var: ContextVar[Tuple[Optional[str], Optional[str]]] = ContextVar(
    "client_info", default=(None, None)
)


def generate_request_id() -> str:
    return str(uuid.uuid4())


def get_request_id() -> str:
    """Current request ID, NO_REQUEST_ID outside a request."""
    return request_id_var.get() or NO_REQUEST_ID


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)


def get_client_info() -> Tuple[Optional[str], Optional[str]]:
    return client_info_var.get()


def set_client_info(ip_address: Optional[str], user_agent: Optional[str]) -> None:
    client_info_var.set((ip_address, user_agent))
