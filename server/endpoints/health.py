"""
Health check endpoint.
"""
import time
from fastapi import APIRouter

from ..models import HealthStatus

router = APIRouter()


@router.get("/health", response_model=HealthStatus)
async def health_check():
    """Health check endpoint"""
    return HealthStatus(status="healthy", timestamp=time.time())
