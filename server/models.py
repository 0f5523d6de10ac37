"""
Pydantic response models for the authentication endpoints.
"""
from typing import Optional
from pydantic import BaseModel


class SessionStatus(BaseModel):
    """Authentication state of the caller's session"""
    authenticated: bool
    user_id: Optional[str] = None
    error: Optional[str] = None


class HealthStatus(BaseModel):
    """Health check response"""
    status: str
    timestamp: float
