"""Main API router that aggregates all route modules."""

from fastapi import APIRouter

from studioauth.api import auth, health, verify
from studioauth.constants import VERIFY_PATH

api_router = APIRouter()

# Include all route modules
api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])

# Verification links are opened from email clients, so they live outside /api
verify_router = APIRouter()
verify_router.include_router(verify.router, prefix=VERIFY_PATH, tags=["verify"])
