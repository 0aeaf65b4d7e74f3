"""Main API router aggregating all v1 routes."""

from fastapi import APIRouter

from ledgercrm.api.routes import aliases, holders

# Create main router
api_router = APIRouter()

# Include route modules
api_router.include_router(holders.router)
api_router.include_router(aliases.router)
