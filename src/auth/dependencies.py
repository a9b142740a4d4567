"""
FastAPI dependencies for authentication.
"""

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.auth.jwt import ADMIN_KIND, get_token, verify_token
from src.db import get_db
from src.models import ActorKind, ActorRef, Admin


def _payload(request: Request) -> dict:
    token = get_token(request)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )

    payload = verify_token(token)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )
    return payload


async def get_actor_context(request: Request) -> ActorRef:
    """
    Authenticated actor (agent, landlord or tenant) of the request.

    Raises 401 if not authenticated, 403 for admin tokens.
    """
    payload = _payload(request)
    if payload["kind"] == ADMIN_KIND:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Actor access required",
        )
    return ActorRef(kind=payload["kind"], id=payload["id"])


async def require_agent(
    actor: ActorRef = Depends(get_actor_context),
) -> ActorRef:
    """
    Require the current actor to be an agent.

    Raises 403 for landlords and tenants.
    """
    if actor.kind != ActorKind.AGENT:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Agent access required",
        )
    return actor


async def require_admin(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Admin:
    """
    Get the current admin.

    Raises 401 if not authenticated, 403 if the token is not an admin
    token or the admin account is disabled.
    """
    payload = _payload(request)
    if payload["kind"] != ADMIN_KIND:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )

    admin = await db.scalar(
        select(Admin).where(Admin.id == payload["id"])
    )

    if not admin:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Admin not found",
        )

    if not admin.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin account is disabled",
        )

    return admin
