"""
API v1 router.
"""
from fastapi import APIRouter

from app.api.v1.endpoints import activity, api_keys, health, key_requests, quotes

api_router = APIRouter()

# Health check endpoint (no prefix, so it's /api/v1/health)
api_router.include_router(health.router, tags=["health"])

api_router.include_router(quotes.router, prefix="/quotes", tags=["quotes"])
api_router.include_router(key_requests.router, prefix="/key-requests", tags=["key-requests"])
api_router.include_router(api_keys.router, prefix="/keys", tags=["keys"])
api_router.include_router(activity.router, prefix="/activity", tags=["activity"])
