"""Taskboard API Router - aggregates all API routes."""

from fastapi import APIRouter

from app.api import auth, tasks, users

# Main API router - all routes will be prefixed with /api
api_router = APIRouter(prefix="/api")

# Include routers
api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(tasks.router)
