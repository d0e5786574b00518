"""
Authentication utilities.
Uses Supabase Auth - tokens are issued and verified by Supabase.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from ..db import Repository, get_repository, get_supabase_client
from ..models import Owner
from .owners import OwnerService


security = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> dict:
    """
    Validate JWT and return the authenticated identity.
    Uses Supabase Auth - no custom JWT handling.
    """
    client = get_supabase_client()

    try:
        user = client.auth.get_user(credentials.credentials)
    except Exception:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token"
        )

    if not user or not user.user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token"
        )

    return {
        "id": user.user.id,
        "email": user.user.email,
    }


def get_current_owner(
    user: dict = Depends(get_current_user),
    repository: Repository = Depends(get_repository),
) -> Owner:
    """
    The local owner record for the authenticated user.
    Created on first sight; services receive its id explicitly.
    """
    return OwnerService(repository).ensure_owner(user["id"], user["email"])
