"""Aggregate all API routers."""

from fastapi import APIRouter
from app.api.health import router as health_router
from app.api.video import router as video_router

api_router = APIRouter()
api_router.include_router(health_router, tags=["health"])  # GET /health at root
api_router.include_router(video_router, tags=["video"])
