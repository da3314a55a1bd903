"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from auditorium.api.routes import bookings, seats

api_router = APIRouter(prefix="/api")
api_router.include_router(seats.router)
api_router.include_router(bookings.router)
