"""
Request dependencies for FastAPI.

Authentication is handled upstream; the operator identity arrives as a
plain header and is only used to attribute audit entries.
"""

from typing import Optional
from fastapi import Header, Request


async def get_operator(x_operator: Optional[str] = Header(None, max_length=100)) -> Optional[str]:
    """Operator username from the `X-Operator` header, if present."""
    return x_operator


def client_ip(request: Request) -> Optional[str]:
    """IP address of the caller for audit entries."""
    return request.client.host if request.client else None
