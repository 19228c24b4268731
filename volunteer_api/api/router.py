"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from volunteer_api.api.routes import users, events, membership

api_router = APIRouter(prefix="/api")
api_router.include_router(users.router)
api_router.include_router(events.router)
api_router.include_router(membership.router)
