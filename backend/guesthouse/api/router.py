"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter

from guesthouse.api.routes import bookings, gallery, site, telegram

api_router = APIRouter(prefix="/api")
api_router.include_router(bookings.router)
api_router.include_router(gallery.router)
api_router.include_router(telegram.router)
api_router.include_router(site.router)
