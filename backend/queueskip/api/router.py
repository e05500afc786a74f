"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from queueskip.api.routes import reservations, schedules, transactions, venues, webhooks

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(venues.router)
api_router.include_router(schedules.router)
api_router.include_router(reservations.router)
api_router.include_router(webhooks.router)
api_router.include_router(transactions.router)
