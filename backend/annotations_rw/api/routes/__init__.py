"""API route handlers."""
from fastapi import APIRouter
from annotations_rw.api.routes import annotations, health

api_router = APIRouter()

# Include all route modules
api_router.include_router(health.router)
api_router.include_router(health.metrics_router)
api_router.include_router(annotations.router)
