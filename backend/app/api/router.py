"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from app.api.routes import players, courts, bookings, waitlist

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(players.router)
api_router.include_router(courts.router)
api_router.include_router(bookings.router)
api_router.include_router(waitlist.router)
