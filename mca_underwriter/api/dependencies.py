"""Dependency injection and request helpers for FastAPI endpoints"""

import uuid
from typing import Optional

from fastapi import Header, HTTPException, Request

SYSTEM_ACTOR = "system"


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_actor_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    """Acting user, resolved upstream by the auth layer and forwarded as X-User-ID"""
    return x_user_id or SYSTEM_ACTOR


def parse_deal_id(deal_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(deal_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid deal ID format")
