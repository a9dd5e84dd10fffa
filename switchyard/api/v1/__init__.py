"""API v1 routes."""

from fastapi import APIRouter

from switchyard.api.v1 import api_tokens, auth, health, namespaces

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(namespaces.router, tags=["namespaces"])
router.include_router(api_tokens.router, tags=["tokens"])
