"""
API v1 router combining all v1 endpoints.
"""
from fastapi import APIRouter
from catexam.api.v1 import cat, health

api_router = APIRouter()

# Include all v1 routers
api_router.include_router(health.router, tags=["health"])
api_router.include_router(cat.router, prefix="/cat", tags=["cat"])
