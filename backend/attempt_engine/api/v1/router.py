from fastapi import APIRouter

from attempt_engine.api.v1.endpoints import attempts, content_attempts, health


api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(attempts.router)
api_router.include_router(content_attempts.router)
