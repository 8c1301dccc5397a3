"""Dependency injection for FastAPI endpoints"""

import uuid
from fastapi import HTTPException, Request


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def parse_uuid(value: str, label: str) -> uuid.UUID:
    """Path parameter to UUID, 400 on malformed input"""
    try:
        return uuid.UUID(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {label} ID format")
