"""API v1 router - aggregates all endpoint routers."""

from fastapi import APIRouter

from app.api.v1 import admin, games, lists

api_router = APIRouter()

api_router.include_router(lists.router, prefix="/lists", tags=["lists"])
api_router.include_router(games.router, prefix="/games", tags=["games"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
