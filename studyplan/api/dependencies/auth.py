"""Principal extraction from identity headers.

The upstream identity service authenticates the caller and forwards the
principal as X-Actor-Id / X-Actor-Role headers.
"""

from __future__ import annotations

from fastapi import Header, HTTPException, Request, status
from loguru import logger

from studyplan.users.directory import Principal, PrincipalKind


def get_principal(
    request: Request,
    x_actor_id: str | None = Header(default=None),
    x_actor_role: str | None = Header(default=None),
) -> Principal:
    """FastAPI dependency to get the authenticated principal.

    Args:
        request: FastAPI request object (for logging)
        x_actor_id: Principal ID header
        x_actor_role: Principal kind header (admin, teacher, student, parent)

    Returns:
        Principal for the request

    Raises:
        HTTPException: 401 if either header is missing or the role is unknown
    """
    if not x_actor_id or not x_actor_id.strip():
        logger.warning(f"[AUTH] Missing X-Actor-Id on {request.method} {request.url.path}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-Actor-Id header")

    try:
        kind = PrincipalKind((x_actor_role or "").strip().lower())
    except ValueError as e:
        logger.warning(f"[AUTH] Invalid X-Actor-Role '{x_actor_role}' on {request.method} {request.url.path}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid X-Actor-Role header") from e

    return Principal(principal_id=x_actor_id.strip(), kind=kind)
